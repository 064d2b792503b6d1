"""
mentaro.domain.revenue

Commission split between the platform and the course instructor.

Responsibilities:
- Split a payment amount using the configured commission rate.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from mentaro.domain.money import to_money


@dataclass(frozen=True, slots=True)
class RevenueSplit:
    amount: Decimal
    platform_commission: Decimal
    instructor_earning: Decimal


def split_payment(amount: Decimal, commission_rate: Decimal) -> RevenueSplit:
    # The instructor share is derived by subtraction so both parts always sum to `amount`.
    amount = to_money(amount)
    commission = to_money(amount * commission_rate)
    return RevenueSplit(
        amount=amount,
        platform_commission=commission,
        instructor_earning=amount - commission,
    )


# --- Module Notes -----------------------------------------------------------
# The split is computed once per payment and stored on the enrollment; reports sum the
# stored figures so historical numbers survive a change of the configured rate.
