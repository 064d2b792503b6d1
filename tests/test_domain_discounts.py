"""
tests.test_domain_discounts

Coupon rules without a database.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

from mentaro.domain.discounts import applies_to_course, calculate_discount, is_valid

NOW = datetime(2026, 3, 1, 12, 0, 0)


@dataclass
class Coupon:
    type: str = "percentage"
    value: Decimal = Decimal("10")
    min_order_amount: Decimal | None = Decimal("0")
    max_discount_amount: Decimal | None = None
    usage_limit: int | None = None
    used_count: int | None = 0
    is_active: bool | None = True
    valid_from: datetime = NOW - timedelta(days=1)
    valid_until: datetime = NOW + timedelta(days=1)
    applicable_to_all: bool | None = True
    applicable_courses: list[str] | None = field(default_factory=list)


def test_percentage_discount() -> None:
    assert calculate_discount(Coupon(), Decimal("100"), NOW) == Decimal("10.00")


def test_percentage_rounds_half_up_to_cents() -> None:
    coupon = Coupon(value=Decimal("15"))
    assert calculate_discount(coupon, Decimal("19.99"), NOW) == Decimal("3.00")


def test_fixed_discount_never_exceeds_amount() -> None:
    coupon = Coupon(type="fixed", value=Decimal("50"))
    assert calculate_discount(coupon, Decimal("30"), NOW) == Decimal("30.00")


def test_max_discount_caps_reduction() -> None:
    coupon = Coupon(value=Decimal("50"), max_discount_amount=Decimal("20"))
    assert calculate_discount(coupon, Decimal("100"), NOW) == Decimal("20.00")


def test_zero_max_discount_is_a_cap() -> None:
    coupon = Coupon(max_discount_amount=Decimal("0"))
    assert calculate_discount(coupon, Decimal("100"), NOW) == Decimal("0.00")


def test_below_minimum_order_gives_nothing() -> None:
    coupon = Coupon(min_order_amount=Decimal("50"))
    assert calculate_discount(coupon, Decimal("49.99"), NOW) == Decimal("0.00")
    assert calculate_discount(coupon, Decimal("50"), NOW) == Decimal("5.00")


def test_validity_window_is_inclusive() -> None:
    coupon = Coupon(valid_from=NOW, valid_until=NOW)
    assert is_valid(coupon, NOW)
    assert not is_valid(coupon, NOW + timedelta(seconds=1))
    assert not is_valid(coupon, NOW - timedelta(seconds=1))


def test_inactive_or_exhausted_is_invalid() -> None:
    assert not is_valid(Coupon(is_active=False), NOW)
    assert not is_valid(Coupon(usage_limit=3, used_count=3), NOW)
    assert is_valid(Coupon(usage_limit=3, used_count=2), NOW)
    assert calculate_discount(Coupon(is_active=False), Decimal("100"), NOW) == Decimal("0.00")


def test_course_scoping() -> None:
    scoped = Coupon(applicable_to_all=False, applicable_courses=["c1"])
    assert applies_to_course(scoped, "c1")
    assert not applies_to_course(scoped, "c2")
    assert applies_to_course(scoped, None)
    assert applies_to_course(Coupon(), "anything")
