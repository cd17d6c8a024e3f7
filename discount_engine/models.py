from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable


@dataclass(frozen=True, slots=True)
class Order:
    """
    One transaction row.

    Built once by parsing.parse_order and never changed afterwards; quantity
    and unit_price are taken as written (no sign checks).
    """

    timestamp: datetime
    product_name: str
    expiry_date: date
    quantity: int
    unit_price: Decimal
    channel: str
    payment_method: str

    @property
    def order_date(self) -> date:
        return self.timestamp.date()


@dataclass(frozen=True, slots=True)
class Rule:
    name: str
    qualifies: Callable[[Order], bool]
    discount: Callable[[Order], Decimal]

    def applies(self, order: Order) -> bool:
        return self.qualifies(order)

    def apply(self, order: Order) -> Decimal:
        # only meaningful once applies(order) held
        return self.discount(order)


@dataclass(frozen=True, slots=True)
class AppliedDiscount:
    rule_name: str
    value: Decimal


@dataclass(frozen=True, slots=True)
class PricedResult:
    product_name: str
    total_before: Decimal
    discount_percent: Decimal
    total_after: Decimal
