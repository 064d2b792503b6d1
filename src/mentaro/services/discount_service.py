"""
mentaro.services.discount_service

Coupon management for admins and instructors.

Responsibilities:
- Create/update/delete/toggle coupons with per-role ownership rules.
- Instructors may only scope coupons to their own courses.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from mentaro.auth.models import Principal
from mentaro.clock import to_naive_utc
from mentaro.db.models import Discount, DiscountType, UserRole
from mentaro.db.pagination import Page
from mentaro.db.repositories.courses import CourseRepo
from mentaro.db.repositories.discounts import DiscountRepo
from mentaro.errors import BusinessRuleError, ConflictError, ForbiddenError, NotFoundError
from mentaro.observability.logging import get_logger

log = get_logger(__name__)

_FIELDS = frozenset(
    {
        "code",
        "description",
        "type",
        "value",
        "min_order_amount",
        "max_discount_amount",
        "usage_limit",
        "valid_from",
        "valid_until",
        "applicable_to_all",
        "applicable_courses",
        "is_active",
    }
)
# Nullable columns: an explicit null clears them, elsewhere null means "unchanged".
_CLEARABLE = frozenset({"max_discount_amount", "usage_limit"})


class DiscountService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._discounts = DiscountRepo(session)
        self._courses = CourseRepo(session)

    async def _check_courses(self, principal: Principal, course_ids: list[str]) -> None:
        if principal.is_admin or not course_ids:
            return
        owned = {str(c) for c in await self._courses.ids_for_instructor(principal.id)}
        if not set(course_ids) <= owned:
            raise ForbiddenError("You can only create discounts for your own courses")

    @staticmethod
    def _check_window(discount: Discount) -> None:
        if discount.valid_until <= discount.valid_from:
            raise BusinessRuleError("Valid until date must be after valid from date")

    @staticmethod
    def _check_value(discount: Discount) -> None:
        if discount.type == DiscountType.percentage and discount.value > 100:
            raise BusinessRuleError("Percentage discount cannot exceed 100")

    async def _get(self, discount_id: uuid.UUID) -> Discount:
        discount = await self._discounts.get(discount_id)
        if discount is None:
            raise NotFoundError("Discount not found")
        return discount

    async def _owned(self, principal: Principal, discount_id: uuid.UUID, action: str) -> Discount:
        discount = await self._get(discount_id)
        if not principal.is_admin and discount.created_by_id != principal.id:
            raise ForbiddenError(f"You can only {action} your own discounts")
        return discount

    async def create(self, *, principal: Principal, data: dict[str, Any]) -> Discount:
        fields = {k: v for k, v in data.items() if k in _FIELDS}
        courses = [str(c) for c in fields.pop("applicable_courses", None) or []]
        applicable_to_all = bool(fields.pop("applicable_to_all", not courses))

        if not principal.is_admin:
            # Instructor coupons are always scoped to the instructor's own courses.
            if not courses:
                raise BusinessRuleError("Select at least one of your courses for this discount")
            applicable_to_all = False
        await self._check_courses(principal, courses)

        if await self._discounts.code_exists(fields["code"]):
            raise ConflictError("Discount code already exists")

        discount = Discount(
            **fields,
            applicable_to_all=applicable_to_all,
            applicable_courses=[] if applicable_to_all else courses,
            used_count=0,
            created_by_id=principal.id,
            created_by_role=UserRole.admin if principal.is_admin else UserRole.instructor,
        )
        discount.valid_from = to_naive_utc(discount.valid_from)
        discount.valid_until = to_naive_utc(discount.valid_until)
        self._check_window(discount)
        self._check_value(discount)
        await self._discounts.add(discount)
        log.info("discount_created", discount_id=str(discount.id), code=discount.code)
        return discount

    async def search(
        self,
        *,
        principal: Principal,
        page: int,
        limit: int,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> Page[Discount]:
        return await self._discounts.search(
            page=page,
            limit=limit,
            is_active=is_active,
            search=search,
            created_by_id=None if principal.is_admin else principal.id,
        )

    async def get(self, *, principal: Principal, discount_id: uuid.UUID) -> Discount:
        return await self._owned(principal, discount_id, "view")

    async def update(
        self, *, principal: Principal, discount_id: uuid.UUID, data: dict[str, Any]
    ) -> Discount:
        discount = await self._owned(principal, discount_id, "update")
        changes = {
            k: v for k, v in data.items() if k in _FIELDS and (v is not None or k in _CLEARABLE)
        }

        if "code" in changes and await self._discounts.code_exists(
            changes["code"], exclude_id=discount.id
        ):
            raise ConflictError("Discount code already exists")
        if "applicable_courses" in changes:
            changes["applicable_courses"] = [str(c) for c in changes["applicable_courses"] or []]
            await self._check_courses(principal, changes["applicable_courses"])
        if not principal.is_admin:
            changes["applicable_to_all"] = False
        for key in ("valid_from", "valid_until"):
            if changes.get(key) is not None:
                changes[key] = to_naive_utc(changes[key])

        await self._discounts.apply(discount, changes)
        self._check_window(discount)
        self._check_value(discount)
        return discount

    async def delete(self, *, principal: Principal, discount_id: uuid.UUID) -> None:
        discount = await self._owned(principal, discount_id, "delete")
        await self._discounts.delete(discount)
        log.info("discount_deleted", discount_id=str(discount_id))

    async def toggle(self, *, principal: Principal, discount_id: uuid.UUID) -> Discount:
        discount = await self._owned(principal, discount_id, "toggle")
        return await self._discounts.apply(discount, {"is_active": not discount.is_active})
