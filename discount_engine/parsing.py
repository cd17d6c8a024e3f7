from __future__ import annotations

import logging
import re
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Iterable, List

from discount_engine.errors import InvalidDate, MalformedRecord
from discount_engine.models import Order
from discount_engine.result import Result

logger = logging.getLogger(__name__)

FIELD_DELIMITER = ","
FIELD_COUNT = 7
INTEGER = re.compile(r"[+-]?[0-9]+")


def order_date(timestamp: str) -> str:
    """Date part of a timestamp such as 2023-04-18T18:18:40Z."""
    return timestamp.split("T")[0]


def parse_date(text: str) -> date:
    try:
        return date.fromisoformat(text)
    except ValueError as e:
        raise InvalidDate(f"Invalid date {text!r}: {e}") from e


def parse_timestamp(text: str) -> datetime:
    day = parse_date(order_date(text))
    _, sep, clock = text.partition("T")
    if not sep:
        return datetime.combine(day, time())
    try:
        return datetime.combine(day, time.fromisoformat(clock))
    except ValueError as e:
        raise InvalidDate(f"Invalid time {clock!r} in timestamp {text!r}: {e}") from e


def days_between(start: date, end: date) -> int:
    return (end - start).days


def _parse_quantity(text: str, line: str) -> int:
    # ASCII digits only: no spaces, no underscores
    if not INTEGER.fullmatch(text):
        raise MalformedRecord(f"Invalid quantity {text!r} in line: {line}", line=line)
    return int(text)


def _parse_price(text: str, line: str) -> Decimal:
    try:
        price = Decimal(text)
    except InvalidOperation as e:
        raise MalformedRecord(f"Invalid unit price {text!r} in line: {line}", line=line) from e
    if not price.is_finite():
        raise MalformedRecord(f"Invalid unit price {text!r} in line: {line}", line=line)
    return price


def _to_order(line: str) -> Order:
    parts = line.split(FIELD_DELIMITER)
    if len(parts) != FIELD_COUNT:
        raise MalformedRecord(
            f"Invalid line format: expected {FIELD_COUNT} fields, got {len(parts)}: {line}",
            line=line,
        )
    timestamp, product_name, expiry_date, quantity, unit_price, channel, payment_method = parts
    try:
        ts = parse_timestamp(timestamp)
        expiry = parse_date(expiry_date)
    except InvalidDate as e:
        raise InvalidDate(f"{e} in line: {line}", line=line) from e
    return Order(
        timestamp=ts,
        product_name=product_name,
        expiry_date=expiry,
        quantity=_parse_quantity(quantity, line),
        unit_price=_parse_price(unit_price, line),
        channel=channel,
        payment_method=payment_method,
    )


def parse_order(line: str) -> Result[Order, MalformedRecord]:
    try:
        return Result.ok(_to_order(line))
    except MalformedRecord as e:
        return Result.err(e)


def parse_orders(lines: Iterable[str]) -> Result[List[Order], MalformedRecord]:
    """Parse every line; the first malformed one stops parsing."""
    orders: List[Order] = []
    for lineno, line in enumerate(lines, start=1):
        parsed = parse_order(line)
        if parsed.is_err:
            logger.debug("row %d rejected: %s", lineno, parsed.error)
            return Result.err(parsed.error)
        orders.append(parsed.value)
    return Result.ok(orders)
