"""Tests for the batch pricing pipeline."""
import logging
import sqlite3
from decimal import Decimal

import pytest

from discount_engine.errors import MalformedRecord, PersistenceFailure, PricingFailure, SourceUnavailable
from discount_engine.models import PricedResult
from discount_engine.pipeline import PricingPipeline
from discount_engine.rules import build_rules
from discount_engine.store import CsvOrderSource, ResultStore, sqlite_sink

SPECIAL_DAY_BREAD = "2025-03-23T10:00:00,bread,2025-06-01,3,2.00,Store,Cash"
CHEESE_NEAR_EXPIRY = "2025-01-01T00:00:00,cheese,2025-01-10,1,10.00,Store,Cash"
BULK_STORE = "2025-01-01T00:00:00,rice,2025-12-31,12,2.00,Store,Cash"
APP_VISA = "2025-01-01T00:00:00,rice,2025-12-31,7,2.00,App,Visa"

LOGGER_NAME = "tests.pipeline"


@pytest.fixture
def batch_logger(caplog):
    caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
    return logging.getLogger(LOGGER_NAME)


def _messages(caplog):
    return [r.getMessage() for r in caplog.records if r.name == LOGGER_NAME]


def test_batch_prices_every_order_in_input_order(write_csv, store, batch_logger, caplog):
    path = write_csv(SPECIAL_DAY_BREAD, CHEESE_NEAR_EXPIRY, BULK_STORE, APP_VISA)
    pipeline = PricingPipeline(CsvOrderSource(path), store, logger=batch_logger)

    outcome = pipeline.run()

    assert outcome.is_ok
    report = outcome.value
    assert report.rows_loaded == 4
    assert report.rows_written == 4
    assert store.rows == report.results
    assert store.rows == [
        PricedResult("bread", Decimal("6.00"), Decimal("50.00"), Decimal("3.00")),
        PricedResult("cheese", Decimal("10.00"), Decimal("60.50"), Decimal("3.95")),
        PricedResult("rice", Decimal("24.00"), Decimal("7.00"), Decimal("22.32")),
        PricedResult("rice", Decimal("14.00"), Decimal("30.00"), Decimal("9.80")),
    ]

    messages = _messages(caplog)
    assert "batch started, 4 rows loaded" in messages
    assert not any(m.startswith("batch failed") for m in messages)
    assert store.opened == store.closed == 1


def test_malformed_row_aborts_before_any_insert(write_csv, store, batch_logger, caplog):
    path = write_csv(SPECIAL_DAY_BREAD, "2025-01-01T00:00:00,cheese,2025-01-10,1,10.00,Store", BULK_STORE)
    pipeline = PricingPipeline(CsvOrderSource(path), store, logger=batch_logger)

    outcome = pipeline.run()

    assert outcome.is_err
    assert isinstance(outcome.error, MalformedRecord)
    assert store.rows == []
    assert store.opened == 0

    errors = [r for r in caplog.records if r.name == LOGGER_NAME and r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert errors[0].getMessage().startswith("batch failed: Invalid line format")


def test_invalid_date_aborts_batch(write_csv, store, batch_logger):
    path = write_csv(SPECIAL_DAY_BREAD, "2025-02-30T00:00:00,bread,2025-06-01,3,2.00,Store,Cash")
    outcome = PricingPipeline(CsvOrderSource(path), store, logger=batch_logger).run()
    assert isinstance(outcome.error, MalformedRecord)
    assert store.rows == []


def test_missing_source_fails_before_processing(tmp_path, store, batch_logger, caplog):
    pipeline = PricingPipeline(CsvOrderSource(tmp_path / "missing.csv"), store, logger=batch_logger)

    outcome = pipeline.run()

    assert isinstance(outcome.error, SourceUnavailable)
    assert store.opened == 0
    messages = _messages(caplog)
    assert not any(m.startswith("batch started") for m in messages)
    assert any(m.startswith("batch failed") for m in messages)


def test_rejected_insert_stops_remaining_rows(write_csv, batch_logger, caplog):
    store = ResultStore(reject_after=2)
    path = write_csv(SPECIAL_DAY_BREAD, CHEESE_NEAR_EXPIRY, BULK_STORE, APP_VISA)

    outcome = PricingPipeline(CsvOrderSource(path), store, logger=batch_logger).run()

    assert isinstance(outcome.error, PersistenceFailure)
    assert [r.product_name for r in store.rows] == ["bread", "cheese"]
    assert store.closed == 1
    assert "insert failed after 2 of 4 rows: insert rejected for rice" in _messages(caplog)
    errors = [r for r in caplog.records if r.name == LOGGER_NAME and r.levelno == logging.ERROR]
    assert errors[-1].getMessage() == "batch failed: insert rejected for rice"


def test_run_or_raise(write_csv, store, batch_logger):
    good = PricingPipeline(CsvOrderSource(write_csv(BULK_STORE)), store, logger=batch_logger)
    assert good.run_or_raise().rows_written == 1

    bad = PricingPipeline(CsvOrderSource(write_csv("garbage", name="bad.csv")), store, logger=batch_logger)
    with pytest.raises(MalformedRecord):
        bad.run_or_raise()
    assert len(store.rows) == 1


def test_empty_batch(write_csv, store, batch_logger, caplog):
    outcome = PricingPipeline(CsvOrderSource(write_csv()), store, logger=batch_logger).run()
    assert outcome.value.rows_written == 0
    assert "batch started, 0 rows loaded" in _messages(caplog)


def test_visa_rate_from_rule_set(write_csv, store, batch_logger):
    rules = build_rules(visa_rate=Decimal("0.05"))
    path = write_csv(APP_VISA)
    report = PricingPipeline(CsvOrderSource(path), store, rules=rules, logger=batch_logger).run_or_raise()
    # top two are app (0.10) and visa (0.05)
    assert report.results[0].discount_percent == Decimal("7.50")


def test_default_logger_is_module_logger(write_csv, store, caplog):
    caplog.set_level(logging.INFO, logger="discount_engine")
    PricingPipeline(CsvOrderSource(write_csv(BULK_STORE)), store).run()
    assert any(
        r.name == "discount_engine.pipeline" and r.getMessage() == "batch started, 1 rows loaded"
        for r in caplog.records
    )


def test_batch_into_sqlite(write_csv, tmp_path, batch_logger):
    db = tmp_path / "orders.db"
    path = write_csv(SPECIAL_DAY_BREAD, CHEESE_NEAR_EXPIRY)

    report = PricingPipeline(CsvOrderSource(path), sqlite_sink(db), logger=batch_logger).run_or_raise()

    assert report.rows_written == 2
    with sqlite3.connect(db) as conn:
        rows = conn.execute("SELECT product_name, total_after FROM processed_orders ORDER BY rowid").fetchall()
    conn.close()
    assert [(name, Decimal(str(after))) for name, after in rows] == [
        ("bread", Decimal("3.00")),
        ("cheese", Decimal("3.95")),
    ]


def test_undecodable_source_is_reported(tmp_path, store, batch_logger, caplog):
    path = tmp_path / "orders.csv"
    path.write_bytes(b"header\n2025-01-01T00:00:00,br\xffad,2025-12-31,3,2.00,Store,Cash\n")

    outcome = PricingPipeline(CsvOrderSource(path), store, logger=batch_logger).run()

    assert isinstance(outcome.error, SourceUnavailable)
    assert store.opened == 0
    errors = [r for r in caplog.records if r.name == LOGGER_NAME and r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert errors[0].getMessage().startswith("batch failed: Cannot read orders from")


def test_unpriceable_amount_aborts_before_any_insert(write_csv, store, batch_logger, caplog):
    path = write_csv(BULK_STORE, "2025-01-01T00:00:00,gold,2025-12-31,1,1E30,Store,Cash")

    outcome = PricingPipeline(CsvOrderSource(path), store, logger=batch_logger).run()

    assert isinstance(outcome.error, PricingFailure)
    assert store.rows == []
    assert store.opened == 0
    messages = _messages(caplog)
    assert "batch started, 2 rows loaded" in messages
    errors = [r for r in caplog.records if r.name == LOGGER_NAME and r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert errors[0].getMessage().startswith("batch failed: Cannot price gold")
