from __future__ import annotations

from decimal import Decimal
from typing import Dict, Optional, Tuple

from discount_engine.models import Order, Rule
from discount_engine.parsing import days_between

EXPIRY_WINDOW_DAYS = 30

# Category rates are multiplied by the unit price, so this rule yields a
# currency-scaled value that is averaged with plain fractions downstream.
# Kept as-is for compatibility with already persisted results.
CATEGORY_RATES: Dict[str, Decimal] = {
    "cheese": Decimal("0.10"),
    "wine": Decimal("0.05"),
}

# (min, max) inclusive; None means no upper bound
QUANTITY_TIERS: Tuple[Tuple[int, Optional[int], Decimal], ...] = (
    (6, 9, Decimal("0.05")),
    (10, 14, Decimal("0.07")),
    (15, None, Decimal("0.10")),
)

SPECIAL_DAY = (3, 23)
SPECIAL_DAY_DISCOUNT = Decimal("0.5")
APP_CHANNEL = "App"
APP_QUANTITY_STEP = 5
VISA_PAYMENT = "Visa"
DEFAULT_VISA_RATE = Decimal("0.5")


def days_to_expiry(order: Order) -> int:
    return days_between(order.order_date, order.expiry_date)


def expires_soon(order: Order) -> bool:
    return days_to_expiry(order) < EXPIRY_WINDOW_DAYS


def expiry_discount(order: Order) -> Decimal:
    return Decimal(EXPIRY_WINDOW_DAYS - days_to_expiry(order)) / 100


def is_discounted_category(order: Order) -> bool:
    return order.product_name in CATEGORY_RATES


def category_discount(order: Order) -> Decimal:
    return order.unit_price * CATEGORY_RATES.get(order.product_name, Decimal("0"))


def sold_on_special_day(order: Order) -> bool:
    day = order.order_date
    return (day.month, day.day) == SPECIAL_DAY


def special_day_discount(order: Order) -> Decimal:
    return SPECIAL_DAY_DISCOUNT


def is_bulk(order: Order) -> bool:
    return order.quantity > 5


def quantity_discount(order: Order) -> Decimal:
    for low, high, rate in QUANTITY_TIERS:
        if order.quantity >= low and (high is None or order.quantity <= high):
            return rate
    return Decimal("0")


def is_app_order(order: Order) -> bool:
    return order.channel == APP_CHANNEL


def app_discount(order: Order) -> Decimal:
    """Quantity rounded up to the next multiple of 5, as a percentage: 7 -> 0.10."""
    rounded = -(-order.quantity // APP_QUANTITY_STEP) * APP_QUANTITY_STEP
    return Decimal(rounded) / 100


def is_visa_payment(order: Order) -> bool:
    return order.payment_method == VISA_PAYMENT


def build_rules(visa_rate: Decimal = DEFAULT_VISA_RATE) -> Tuple[Rule, ...]:
    """
    The fixed rule set, in evaluation order.

    The order matters only when two discounts are equal: the earlier rule wins
    the tie when the top two are picked.
    """
    return (
        Rule("expiry", expires_soon, expiry_discount),
        Rule("category", is_discounted_category, category_discount),
        Rule("special_date", sold_on_special_day, special_day_discount),
        Rule("quantity", is_bulk, quantity_discount),
        Rule("app_channel", is_app_order, app_discount),
        Rule("visa_payment", is_visa_payment, lambda order: visa_rate),
    )


DEFAULT_RULES = build_rules()
