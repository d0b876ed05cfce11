"""Tests for storage.filters."""
import pytest

from shared.schemas import TradeType
from storage.filters import BySymbol, ByTag, ByType, EntryDateRange, Page, build_trade_query


def test_no_filters_lists_everything():
    query, params = build_trade_query()
    assert query == "SELECT * FROM trades ORDER BY entry_date DESC"
    assert params == []


def test_filters_are_joined_with_and():
    query, params = build_trade_query([BySymbol("AAPL"), ByType(TradeType.BUY)])
    assert "WHERE symbol = ? AND type = ?" in query
    assert params == ["AAPL", "buy"]


def test_type_accepts_plain_string():
    _, params = build_trade_query([ByType("sell")])
    assert params == ["sell"]


def test_type_rejects_unknown_side():
    with pytest.raises(ValueError):
        build_trade_query([ByType("short")])


def test_open_ended_date_range():
    query, params = build_trade_query([EntryDateRange(end="2024-02-01")])
    assert "entry_date <= ?" in query
    assert "entry_date >= ?" not in query
    assert params == ["2024-02-01"]


def test_empty_date_range_adds_nothing():
    query, _ = build_trade_query([EntryDateRange()])
    assert "WHERE" not in query


def test_tag_filter_searches_json_array():
    query, params = build_trade_query([ByTag("scalp")])
    assert "json_each(trades.tags)" in query
    assert params == ["scalp"]


def test_page_goes_after_order_by():
    query, params = build_trade_query([Page(limit=10, offset=20), BySymbol("TSLA")])
    assert query.endswith("ORDER BY entry_date DESC LIMIT ? OFFSET ?")
    assert params == ["TSLA", 10, 20]


def test_offset_without_limit():
    query, params = build_trade_query([Page(offset=5)])
    assert query.endswith("LIMIT ? OFFSET ?")
    assert params == [-1, 5]


def test_negative_page_values_rejected():
    with pytest.raises(ValueError):
        Page(limit=-1)
    with pytest.raises(ValueError):
        Page(offset=-3)


def test_unknown_filter_rejected():
    with pytest.raises(TypeError):
        build_trade_query(["symbol = 'AAPL'"])
