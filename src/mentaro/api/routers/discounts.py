"""
mentaro.api.routers.discounts

Coupon endpoints.

Responsibilities:
- Public coupon validation (`POST /api/discounts/validate`).
- Admin coupon CRUD under `/api/discounts`.
- Instructor coupon CRUD, scoped to their own courses, under `/api/instructor/discounts`.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from mentaro.api import serializers
from mentaro.api.deps import PageParams, db_session, page_params
from mentaro.auth.deps import require_admin, require_approved_instructor
from mentaro.auth.models import Principal
from mentaro.clock import utcnow
from mentaro.db.models import DiscountType
from mentaro.services.discount_service import DiscountService
from mentaro.services.pricing_service import PricingService

router = APIRouter(prefix="/api/discounts", tags=["discounts"])
instructor_router = APIRouter(prefix="/api/instructor/discounts", tags=["instructor"])

_CODE_PATTERN = r"^[A-Za-z0-9]+$"


class DiscountCreateRequest(BaseModel):
    code: str = Field(min_length=3, max_length=20, pattern=_CODE_PATTERN)
    description: str = Field(min_length=5, max_length=200)
    type: DiscountType
    value: Decimal = Field(gt=0)
    min_order_amount: Decimal = Field(default=Decimal("0"), ge=0)
    max_discount_amount: Decimal | None = Field(default=None, ge=0)
    usage_limit: int | None = Field(default=None, ge=1)
    valid_from: datetime
    valid_until: datetime
    applicable_to_all: bool | None = None
    applicable_courses: list[uuid.UUID] = Field(default_factory=list)

    @field_validator("code")
    @classmethod
    def upper_code(cls, value: str) -> str:
        return value.strip().upper()

    @model_validator(mode="after")
    def percentage_cap(self) -> DiscountCreateRequest:
        if self.type == DiscountType.percentage and self.value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class DiscountUpdateRequest(BaseModel):
    code: str | None = Field(default=None, min_length=3, max_length=20, pattern=_CODE_PATTERN)
    description: str | None = Field(default=None, min_length=5, max_length=200)
    type: DiscountType | None = None
    value: Decimal | None = Field(default=None, gt=0)
    min_order_amount: Decimal | None = Field(default=None, ge=0)
    max_discount_amount: Decimal | None = Field(default=None, ge=0)
    usage_limit: int | None = Field(default=None, ge=1)
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    applicable_to_all: bool | None = None
    applicable_courses: list[uuid.UUID] | None = None
    is_active: bool | None = None

    @model_validator(mode="after")
    def percentage_cap(self) -> DiscountUpdateRequest:
        if self.type == DiscountType.percentage and self.value is not None and self.value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class ValidateRequest(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    course_id: uuid.UUID | None = None
    amount: Decimal = Field(ge=0)


@router.post("/validate")
async def validate_discount(
    body: ValidateRequest,
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    quote = await PricingService(session=session).quote(
        code=body.code,
        amount=body.amount,
        course_id=str(body.course_id) if body.course_id is not None else None,
        now=utcnow(),
    )
    return {
        "success": True,
        "message": "Discount code is valid",
        "discount": {
            "code": quote.discount.code,
            "type": quote.discount.type,
            "value": quote.discount.value,
            "discount_amount": quote.discount_amount,
            "final_amount": quote.final_amount,
            "original_amount": quote.original_amount,
        },
    }


# --- shared handlers -------------------------------------------------------


async def _create(
    body: DiscountCreateRequest, principal: Principal, session: AsyncSession
) -> dict[str, Any]:
    discount = await DiscountService(session=session).create(
        principal=principal, data=body.model_dump(exclude_none=True)
    )
    await session.commit()
    return {
        "success": True,
        "message": "Discount created successfully",
        "discount": serializers.discount(discount),
    }


async def _list(
    principal: Principal,
    pages: PageParams,
    is_active: bool | None,
    search: str | None,
    session: AsyncSession,
) -> dict[str, Any]:
    page = await DiscountService(session=session).search(
        principal=principal, page=pages.page, limit=pages.limit, is_active=is_active, search=search
    )
    return {
        "success": True,
        "discounts": [serializers.discount(d) for d in page.items],
        "pagination": serializers.pagination(page),
    }


async def _get(
    discount_id: uuid.UUID, principal: Principal, session: AsyncSession
) -> dict[str, Any]:
    discount = await DiscountService(session=session).get(
        principal=principal, discount_id=discount_id
    )
    return {"success": True, "discount": serializers.discount(discount)}


async def _update(
    discount_id: uuid.UUID,
    body: DiscountUpdateRequest,
    principal: Principal,
    session: AsyncSession,
) -> dict[str, Any]:
    data = body.model_dump(exclude_unset=True)
    if data.get("code"):
        data["code"] = data["code"].strip().upper()
    discount = await DiscountService(session=session).update(
        principal=principal, discount_id=discount_id, data=data
    )
    await session.commit()
    return {
        "success": True,
        "message": "Discount updated successfully",
        "discount": serializers.discount(discount),
    }


async def _delete(
    discount_id: uuid.UUID, principal: Principal, session: AsyncSession
) -> dict[str, Any]:
    await DiscountService(session=session).delete(principal=principal, discount_id=discount_id)
    await session.commit()
    return {"success": True, "message": "Discount deleted successfully"}


async def _toggle(
    discount_id: uuid.UUID, principal: Principal, session: AsyncSession
) -> dict[str, Any]:
    discount = await DiscountService(session=session).toggle(
        principal=principal, discount_id=discount_id
    )
    await session.commit()
    state = "activated" if discount.is_active else "deactivated"
    return {
        "success": True,
        "message": f"Discount {state} successfully",
        "discount": serializers.discount(discount),
    }


# --- admin -----------------------------------------------------------------


@router.post("", status_code=HTTP_201_CREATED)
async def create_discount(
    body: DiscountCreateRequest,
    principal: Principal = Depends(require_admin),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return await _create(body, principal, session)


@router.get("")
async def list_discounts(
    pages: PageParams = Depends(page_params),
    is_active: bool | None = None,
    search: str | None = None,
    principal: Principal = Depends(require_admin),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return await _list(principal, pages, is_active, search, session)


@router.get("/{discount_id}")
async def get_discount(
    discount_id: uuid.UUID,
    principal: Principal = Depends(require_admin),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return await _get(discount_id, principal, session)


@router.put("/{discount_id}")
async def update_discount(
    discount_id: uuid.UUID,
    body: DiscountUpdateRequest,
    principal: Principal = Depends(require_admin),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return await _update(discount_id, body, principal, session)


@router.delete("/{discount_id}")
async def delete_discount(
    discount_id: uuid.UUID,
    principal: Principal = Depends(require_admin),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return await _delete(discount_id, principal, session)


@router.patch("/{discount_id}/toggle-status")
async def toggle_discount(
    discount_id: uuid.UUID,
    principal: Principal = Depends(require_admin),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return await _toggle(discount_id, principal, session)


# --- instructor ------------------------------------------------------------


@instructor_router.post("", status_code=HTTP_201_CREATED)
async def instructor_create_discount(
    body: DiscountCreateRequest,
    principal: Principal = Depends(require_approved_instructor),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return await _create(body, principal, session)


@instructor_router.get("")
async def instructor_list_discounts(
    pages: PageParams = Depends(page_params),
    is_active: bool | None = None,
    search: str | None = None,
    principal: Principal = Depends(require_approved_instructor),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return await _list(principal, pages, is_active, search, session)


@instructor_router.get("/{discount_id}")
async def instructor_get_discount(
    discount_id: uuid.UUID,
    principal: Principal = Depends(require_approved_instructor),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return await _get(discount_id, principal, session)


@instructor_router.put("/{discount_id}")
async def instructor_update_discount(
    discount_id: uuid.UUID,
    body: DiscountUpdateRequest,
    principal: Principal = Depends(require_approved_instructor),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return await _update(discount_id, body, principal, session)


@instructor_router.delete("/{discount_id}")
async def instructor_delete_discount(
    discount_id: uuid.UUID,
    principal: Principal = Depends(require_approved_instructor),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return await _delete(discount_id, principal, session)


@instructor_router.patch("/{discount_id}/toggle-status")
async def instructor_toggle_discount(
    discount_id: uuid.UUID,
    principal: Principal = Depends(require_approved_instructor),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return await _toggle(discount_id, principal, session)
