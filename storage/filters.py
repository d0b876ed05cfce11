"""Trade query predicates.

Each filter type contributes one conjunct to the trade listing query;
filters that are not passed impose no constraint.
"""
from dataclasses import dataclass
from typing import Optional, Union

from shared.schemas import TradeType


@dataclass(frozen=True)
class BySymbol:
    symbol: str

    def clause(self) -> tuple[str, list]:
        return "symbol = ?", [self.symbol]


@dataclass(frozen=True)
class ByType:
    type: TradeType | str

    def clause(self) -> tuple[str, list]:
        return "type = ?", [TradeType(self.type).value]


@dataclass(frozen=True)
class EntryDateRange:
    """Inclusive bounds on entry_date; either side may be open."""
    start: Optional[str] = None
    end: Optional[str] = None

    def clause(self) -> tuple[str, list]:
        parts, params = [], []
        if self.start is not None:
            parts.append("entry_date >= ?")
            params.append(self.start)
        if self.end is not None:
            parts.append("entry_date <= ?")
            params.append(self.end)
        return " AND ".join(parts), params


@dataclass(frozen=True)
class ByTag:
    tag: str

    def clause(self) -> tuple[str, list]:
        return (
            "EXISTS (SELECT 1 FROM json_each(trades.tags) WHERE json_each.value = ?)",
            [self.tag],
        )


@dataclass(frozen=True)
class Page:
    limit: Optional[int] = None
    offset: int = 0

    def __post_init__(self):
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit must be non-negative")
        if self.offset < 0:
            raise ValueError("offset must be non-negative")


TradeFilter = Union[BySymbol, ByType, EntryDateRange, ByTag, Page]


def build_trade_query(filters: tuple[TradeFilter, ...] | list[TradeFilter] = ()) -> tuple[str, list]:
    """Compile filters into a parameterized SELECT over trades."""
    where, params = [], []
    page: Optional[Page] = None
    for f in filters:
        if isinstance(f, Page):
            page = f
            continue
        if not isinstance(f, (BySymbol, ByType, EntryDateRange, ByTag)):
            raise TypeError(f"Unsupported trade filter: {f!r}")
        sql, args = f.clause()
        if sql:
            where.append(sql)
            params.extend(args)

    query = "SELECT * FROM trades"
    if where:
        query += " WHERE " + " AND ".join(where)
    query += " ORDER BY entry_date DESC"

    if page is not None and (page.limit is not None or page.offset):
        query += " LIMIT ?"
        params.append(page.limit if page.limit is not None else -1)
        if page.offset:
            query += " OFFSET ?"
            params.append(page.offset)
    return query, params
