"""
mentaro.services.pricing_service

Coupon lookup + price quoting.

Responsibilities:
- Resolve a coupon code and check validity and course scoping.
- Produce a price quote (original, discount, final) for a course purchase.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from mentaro.db.models import Discount, DiscountType
from mentaro.db.repositories.discounts import DiscountRepo
from mentaro.domain import discounts as rules
from mentaro.domain.money import to_money
from mentaro.errors import BusinessRuleError, NotFoundError


@dataclass(frozen=True, slots=True)
class Quote:
    discount: Discount
    original_amount: Decimal
    discount_amount: Decimal

    @property
    def final_amount(self) -> Decimal:
        return self.original_amount - self.discount_amount

    @property
    def percentage(self) -> Decimal:
        if self.discount.type == DiscountType.percentage:
            return to_money(self.discount.value)
        return to_money(0)


class PricingService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._discounts = DiscountRepo(session)

    async def quote(
        self,
        *,
        code: str,
        amount: Decimal,
        course_id: str | None,
        now: datetime,
        for_update: bool = False,
    ) -> Quote:
        discount = await self._discounts.get_by_code(code)
        if discount is None:
            raise NotFoundError("Invalid discount code")
        if for_update:
            # Re-read under lock before consuming a use.
            discount = await self._discounts.get(discount.id, for_update=True) or discount
        if not rules.is_valid(discount, now):
            raise BusinessRuleError("Discount code has expired or reached usage limit")
        if not rules.applies_to_course(discount, course_id):
            raise BusinessRuleError("Discount code is not applicable to this course")

        amount = to_money(amount)
        return Quote(
            discount=discount,
            original_amount=amount,
            discount_amount=rules.calculate_discount(discount, amount, now),
        )

    @staticmethod
    def consume(quote: Quote) -> None:
        quote.discount.used_count = (quote.discount.used_count or 0) + 1


# --- Module Notes -----------------------------------------------------------
# `consume` runs in the same transaction as the enrollment it pays for, so a failed
# purchase never burns a coupon use.
