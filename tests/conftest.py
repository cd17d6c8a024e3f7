"""Pytest fixtures for the discount engine."""

import logging
from datetime import date, datetime
from decimal import Decimal

import pytest

from discount_engine.logging_config import PACKAGE_LOGGER
from discount_engine.models import Order
from discount_engine.store import ResultStore

HEADER = "timestamp,product_name,expiry_date,quantity,unit_price,channel,payment_method"


@pytest.fixture
def make_order():
    """Order that no rule applies to, unless a field is overridden."""

    def _make(**overrides) -> Order:
        fields = dict(
            timestamp=datetime(2025, 1, 1, 10, 0, 0),
            product_name="bread",
            expiry_date=date(2025, 12, 31),
            quantity=3,
            unit_price=Decimal("2.00"),
            channel="Store",
            payment_method="Cash",
        )
        fields.update(overrides)
        return Order(**fields)

    return _make


@pytest.fixture
def store() -> ResultStore:
    return ResultStore()


@pytest.fixture
def write_csv(tmp_path):
    def _write(*lines: str, name: str = "orders.csv", header: str = HEADER):
        path = tmp_path / name
        path.write_text("\n".join([header, *lines]) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def package_logger():
    """Package logger, with handlers and propagation restored after the test."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
