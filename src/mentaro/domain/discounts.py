"""
mentaro.domain.discounts

Coupon evaluation rules.

Responsibilities:
- Decide whether a discount is currently usable (`is_valid`).
- Compute the reduction for an order amount (`calculate_discount`).
- Check course scoping (`applies_to_course`).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from mentaro.domain.money import ZERO, to_money


class DiscountLike(Protocol):
    type: str
    value: Decimal
    min_order_amount: Decimal | None
    max_discount_amount: Decimal | None
    usage_limit: int | None
    used_count: int | None
    is_active: bool | None
    valid_from: datetime
    valid_until: datetime
    applicable_to_all: bool | None
    applicable_courses: list[str] | None


def is_valid(discount: DiscountLike, now: datetime) -> bool:
    if not discount.is_active:
        return False
    if not (discount.valid_from <= now <= discount.valid_until):
        return False
    return discount.usage_limit is None or (discount.used_count or 0) < discount.usage_limit


def calculate_discount(discount: DiscountLike, amount: Decimal, now: datetime) -> Decimal:
    """
    Reduction to apply to `amount`; 0 when the coupon is unusable or the order is too small.
    The result never exceeds `max_discount_amount` (when set) nor `amount` itself.
    """

    amount = to_money(amount)
    if not is_valid(discount, now) or amount < to_money(discount.min_order_amount):
        return ZERO

    if discount.type == "percentage":
        reduction = to_money(amount * Decimal(discount.value) / 100)
    else:
        reduction = to_money(discount.value)

    if discount.max_discount_amount is not None and reduction > discount.max_discount_amount:
        reduction = to_money(discount.max_discount_amount)

    return max(ZERO, min(reduction, amount))


def applies_to_course(discount: DiscountLike, course_id: str | None) -> bool:
    if discount.applicable_to_all or course_id is None:
        return True
    return course_id in (discount.applicable_courses or [])


# --- Module Notes -----------------------------------------------------------
# `now` is always passed in: callers use `mentaro.clock.utcnow()` (naive UTC), matching
# how `valid_from` / `valid_until` are persisted.
