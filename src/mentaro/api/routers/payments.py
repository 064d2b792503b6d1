"""
mentaro.api.routers.payments

Purchase, payment history, earnings, analytics and refund endpoints.

Responsibilities:
- Purchase a course (coupon applied server-side) creating a paid enrollment.
- Payment histories for students, instructors and admins.
- Admin analytics and refunds.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from mentaro.api import serializers
from mentaro.api.deps import PageParams, db_session, page_params, settings_dep
from mentaro.auth.deps import get_principal, require_admin, require_roles
from mentaro.auth.models import Principal
from mentaro.clock import to_naive_utc, utcnow
from mentaro.db.models import PaymentMethod, PaymentStatus, UserRole
from mentaro.services.enrollment_service import EnrollmentService, PaymentInput
from mentaro.services.reporting_service import ReportingService
from mentaro.settings import Settings

router = APIRouter(prefix="/api/payments", tags=["payments"])


class PaymentRequest(BaseModel):
    course_id: uuid.UUID
    payment_method: PaymentMethod
    transaction_id: str | None = Field(default=None, max_length=128)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    discount_code: str | None = Field(default=None, max_length=64)


class RefundRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=300)
    refund_amount: Decimal | None = Field(default=None, ge=0)


def _window(start: datetime | None, end: datetime | None) -> tuple[datetime | None, datetime | None]:
    return (
        to_naive_utc(start) if start is not None else None,
        to_naive_utc(end) if end is not None else None,
    )


@router.post("", status_code=HTTP_201_CREATED)
async def create_payment(
    body: PaymentRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    enrollment, quote = await EnrollmentService(session=session, settings=settings).enroll(
        student=principal.user,
        course_id=body.course_id,
        payment=PaymentInput(
            method=body.payment_method,
            transaction_id=body.transaction_id,
            currency=body.currency,
            discount_code=body.discount_code,
        ),
        now=utcnow(),
    )
    await session.commit()
    return {
        "success": True,
        "message": "Payment processed successfully",
        "payment": serializers.payment(enrollment),
        "enrollment": serializers.enrollment(enrollment, with_course=False),
        "discount_applied": (
            {"code": quote.discount.code, "amount": quote.discount_amount} if quote else None
        ),
    }


@router.get("/my-payments")
async def my_payments(
    pages: PageParams = Depends(page_params),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    page = await ReportingService(session=session).student_payments(
        student_id=principal.id, page=pages.page, limit=pages.limit
    )
    return {
        "success": True,
        "payments": [serializers.payment(e) for e in page.items],
        "pagination": serializers.pagination(page),
    }


@router.get("/instructor/earnings")
async def instructor_earnings(
    pages: PageParams = Depends(page_params),
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    principal: Principal = Depends(require_roles(UserRole.instructor)),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    start, end = _window(start_date, end_date)
    earnings = await ReportingService(session=session).instructor_earnings(
        instructor_id=principal.id, page=pages.page, limit=pages.limit, start=start, end=end
    )
    return {
        "success": True,
        "payments": [serializers.payment(e) for e in earnings.page.items],
        "stats": earnings.stats,
        "pagination": serializers.pagination(earnings.page),
    }


@router.get("/admin/all", dependencies=[Depends(require_admin)])
async def all_payments(
    pages: PageParams = Depends(page_params),
    status: PaymentStatus | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    start, end = _window(start_date, end_date)
    page = await ReportingService(session=session).all_payments(
        page=pages.page, limit=pages.limit, status=status, start=start, end=end
    )
    return {
        "success": True,
        "payments": [serializers.payment(e) for e in page.items],
        "pagination": serializers.pagination(page),
    }


@router.get("/admin/analytics", dependencies=[Depends(require_admin)])
async def admin_analytics(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    start, end = _window(start_date, end_date)
    analytics = await ReportingService(session=session).admin_analytics(
        now=utcnow(), start=start, end=end
    )
    analytics["recent_transactions"] = [
        serializers.payment(e) for e in analytics["recent_transactions"]
    ]
    return {"success": True, "analytics": analytics}


@router.post("/admin/refund/{enrollment_id}", dependencies=[Depends(require_admin)])
async def refund(
    enrollment_id: uuid.UUID,
    body: RefundRequest | None = None,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    result = await EnrollmentService(session=session, settings=settings).refund(
        enrollment_id=enrollment_id,
        reason=body.reason if body is not None else None,
        refund_amount=body.refund_amount if body is not None else None,
        now=utcnow(),
    )
    await session.commit()
    return {
        "success": True,
        "message": "Refund processed successfully",
        "refund": {
            "enrollment_id": result.enrollment.id,
            "refund_amount": result.refund_amount,
            "instructor_earning_reversed": result.enrollment.instructor_earning,
            "reason": result.reason,
            "processed_at": result.processed_at,
        },
        "payment": serializers.payment(result.enrollment),
    }
