"""
mentaro.services.reporting_service

Read-only payment and enrollment reports.

Responsibilities:
- Payment histories (student, instructor, admin) over the enrollment payment snapshot.
- Admin analytics: revenue totals, monthly buckets, top courses, recent transactions.
- Instructor enrollment statistics.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from mentaro.db.models import Enrollment, PaymentStatus
from mentaro.db.pagination import Page
from mentaro.db.repositories.courses import CourseRepo
from mentaro.db.repositories.enrollments import EnrollmentRepo, PaymentFilter
from mentaro.db.repositories.users import UserRepo
from mentaro.domain.money import ZERO, to_money


@dataclass(frozen=True, slots=True)
class Earnings:
    page: Page[Enrollment]
    stats: dict[str, Any]


def _year_bounds(now: datetime) -> tuple[datetime, datetime]:
    return (
        datetime(now.year, 1, 1),
        datetime(now.year, 12, 31, 23, 59, 59, 999999),
    )


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole > 0 else 0.0


class ReportingService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._courses = CourseRepo(session)
        self._enrollments = EnrollmentRepo(session)
        self._users = UserRepo(session)

    async def student_payments(
        self, *, student_id: uuid.UUID, page: int, limit: int
    ) -> Page[Enrollment]:
        return await self._enrollments.payments(
            PaymentFilter(student_id=student_id), page=page, limit=limit
        )

    async def all_payments(
        self,
        *,
        page: int,
        limit: int,
        status: PaymentStatus | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Page[Enrollment]:
        flt = PaymentFilter(status=status, start=start, end=end)
        return await self._enrollments.payments(flt, page=page, limit=limit)

    async def instructor_earnings(
        self,
        *,
        instructor_id: uuid.UUID,
        page: int,
        limit: int,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Earnings:
        course_ids = await self._courses.ids_for_instructor(instructor_id)
        flt = PaymentFilter(
            status=PaymentStatus.completed, start=start, end=end, course_ids=course_ids
        )
        totals = await self._enrollments.revenue_totals(flt)
        return Earnings(
            page=await self._enrollments.payments(flt, page=page, limit=limit),
            stats={
                "total_earnings": totals["instructor_revenue"],
                "total_sales": totals["total_revenue"],
                "total_transactions": totals["total_transactions"],
            },
        )

    async def admin_analytics(
        self,
        *,
        now: datetime,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[str, Any]:
        year_start, year_end = _year_bounds(now)
        flt = PaymentFilter(status=PaymentStatus.completed, start=start or year_start, end=end or now)

        return {
            "revenue": await self._enrollments.revenue_totals(flt),
            "monthly_revenue": await self._monthly(
                PaymentFilter(status=PaymentStatus.completed, start=year_start, end=year_end)
            ),
            "top_courses": await self._enrollments.per_course(flt, limit=10),
            "recent_transactions": await self._enrollments.recent(flt, limit=10),
            "user_stats": [
                {"role": role, "count": n} for role, n in (await self._users.count_by_role()).items()
            ],
            "course_count": await self._courses.count(),
        }

    async def _monthly(self, flt: PaymentFilter) -> list[dict[str, Any]]:
        buckets: dict[tuple[int, int], dict[str, Any]] = {}
        for created_at, amount, commission in await self._enrollments.payment_rows(flt):
            key = (created_at.year, created_at.month)
            bucket = buckets.setdefault(
                key,
                {
                    "year": key[0],
                    "month": key[1],
                    "revenue": ZERO,
                    "admin_commission": ZERO,
                    "transactions": 0,
                },
            )
            bucket["revenue"] = to_money(bucket["revenue"] + to_money(amount))
            bucket["admin_commission"] = to_money(bucket["admin_commission"] + to_money(commission))
            bucket["transactions"] += 1
        return [buckets[k] for k in sorted(buckets)]

    async def instructor_enrollments(
        self,
        *,
        instructor_id: uuid.UUID,
        page: int,
        limit: int,
        course_id: uuid.UUID | None = None,
    ) -> Page[Enrollment]:
        course_ids = await self._courses.ids_for_instructor(instructor_id, course_id=course_id)
        return await self._enrollments.payments(
            PaymentFilter(course_ids=course_ids), page=page, limit=limit
        )

    async def instructor_stats(
        self,
        *,
        instructor_id: uuid.UUID,
        now: datetime,
        course_id: uuid.UUID | None = None,
    ) -> dict[str, Any]:
        course_ids = await self._courses.ids_for_instructor(instructor_id, course_id=course_id)
        flt = PaymentFilter(status=PaymentStatus.completed, course_ids=course_ids)
        month = PaymentFilter(
            status=PaymentStatus.completed,
            course_ids=course_ids,
            start=datetime(now.year, now.month, 1),
        )

        total, completed = await self._enrollments.completion_counts(flt)
        totals = await self._enrollments.revenue_totals(flt)
        monthly = await self._enrollments.revenue_totals(month)

        course_stats = await self._enrollments.per_course(flt)
        for row in course_stats:
            row["completion_rate"] = _rate(row["completions"], row["enrollments"])

        return {
            "stats": {
                "total_enrollments": total,
                "completed_enrollments": completed,
                "completion_rate": _rate(completed, total),
                "total_revenue": totals["total_revenue"],
                "instructor_revenue": totals["instructor_revenue"],
                "monthly_enrollments": monthly["total_transactions"],
                "monthly_revenue": monthly["total_revenue"],
            },
            "course_stats": course_stats,
        }


# --- Module Notes -----------------------------------------------------------
# Reports count completed payments only; refunded enrollments drop out of every total,
# matching the counters that a refund decrements.
