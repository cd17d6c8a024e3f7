from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Sequence

from discount_engine.models import AppliedDiscount, Order, PricedResult, Rule
from discount_engine.rules import DEFAULT_RULES

logger = logging.getLogger(__name__)

TOP_DISCOUNTS = 2


def round_half_up(value: Decimal, places: int = 2) -> Decimal:
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def applicable_discounts(order: Order, rules: Sequence[Rule] = DEFAULT_RULES) -> List[AppliedDiscount]:
    return [AppliedDiscount(rule.name, rule.apply(order)) for rule in rules if rule.applies(order)]


def select_top(discounts: Sequence[AppliedDiscount], limit: int = TOP_DISCOUNTS) -> List[AppliedDiscount]:
    # sorted() is stable with reverse=True, so equal values keep rule order
    return sorted(discounts, key=lambda d: d.value, reverse=True)[:limit]


def effective_discount(order: Order, rules: Sequence[Rule] = DEFAULT_RULES) -> Decimal:
    """
    Mean of the (at most two) largest discounts of the qualifying rules.

    0 when no rule qualifies. The result is not capped: an expired item or the
    category rule on an expensive product can push it past 1.
    """
    top = select_top(applicable_discounts(order, rules))
    if not top:
        return Decimal("0")
    return sum((d.value for d in top), Decimal("0")) / len(top)


def price_order(order: Order, rules: Sequence[Rule] = DEFAULT_RULES) -> PricedResult:
    discount = effective_discount(order, rules)
    total_before = round_half_up(order.unit_price * order.quantity)
    total_after = round_half_up(total_before * (1 - discount))
    result = PricedResult(
        product_name=order.product_name,
        total_before=total_before,
        discount_percent=round_half_up(discount * 100),
        total_after=total_after,
    )
    logger.debug(
        "priced %s: before=%s discount=%s%% after=%s",
        order.product_name,
        result.total_before,
        result.discount_percent,
        result.total_after,
    )
    return result
