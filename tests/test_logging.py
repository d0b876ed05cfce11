"""Tests for shared.logging."""
import json
import logging
import sys

from shared.logging import StructuredFormatter, setup_logging


def _record(msg="hello", **extra):
    record = logging.LogRecord("storage.db", logging.INFO, __file__, 10, msg, None, None)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


def test_formatter_emits_json_with_extras():
    out = json.loads(StructuredFormatter().format(_record("Trade created", trade_id="t1", symbol="AAPL")))
    assert out["message"] == "Trade created"
    assert out["level"] == "INFO"
    assert out["logger"] == "storage.db"
    assert out["trade_id"] == "t1"
    assert out["symbol"] == "AAPL"
    assert out["timestamp"].endswith("Z")
    assert "lineno" not in out


def test_formatter_includes_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
    out = json.loads(StructuredFormatter().format(record))
    assert "RuntimeError: boom" in out["exception"]


def test_setup_logging_accepts_level_names(restore_root_logger):
    assert setup_logging("debug") is None
    assert restore_root_logger.level == logging.DEBUG
    assert isinstance(restore_root_logger.handlers[0].formatter, StructuredFormatter)

    setup_logging("not-a-level")
    assert restore_root_logger.level == logging.INFO
    setup_logging(logging.WARNING)
    assert restore_root_logger.level == logging.WARNING
