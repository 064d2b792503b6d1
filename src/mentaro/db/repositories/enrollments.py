"""
mentaro.db.repositories.enrollments

Repository for `Enrollment` entities (enrollment + payment snapshot).

Responsibilities:
- Create and fetch enrollments, list them per student / per instructor course set.
- Payment listings and revenue aggregates over the stored payment snapshot.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from sqlalchemy import Select, case, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mentaro.db.models import Course, Enrollment, PaymentStatus
from mentaro.db.pagination import Page, paginate
from mentaro.domain.money import to_money

ProgressFilter = Literal["completed", "in-progress", "not-started"]


@dataclass(frozen=True, slots=True)
class PaymentFilter:
    status: PaymentStatus | None = None
    start: datetime | None = None
    end: datetime | None = None
    student_id: uuid.UUID | None = None
    course_ids: Sequence[uuid.UUID] | None = None

    def apply(self, stmt: Select) -> Select:
        if self.status is not None:
            stmt = stmt.where(Enrollment.payment_status == self.status)
        if self.start is not None:
            stmt = stmt.where(Enrollment.created_at >= self.start)
        if self.end is not None:
            stmt = stmt.where(Enrollment.created_at <= self.end)
        if self.student_id is not None:
            stmt = stmt.where(Enrollment.student_id == self.student_id)
        if self.course_ids is not None:
            stmt = stmt.where(Enrollment.course_id.in_(list(self.course_ids)))
        return stmt


class EnrollmentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, enrollment: Enrollment) -> Enrollment:
        self._session.add(enrollment)
        await self._session.flush()
        return enrollment

    async def get(self, enrollment_id: uuid.UUID, *, for_update: bool = False) -> Enrollment | None:
        return await self._session.get(Enrollment, enrollment_id, with_for_update=for_update)

    async def get_for_student(
        self, enrollment_id: uuid.UUID, student_id: uuid.UUID
    ) -> Enrollment | None:
        stmt = select(Enrollment).where(
            Enrollment.id == enrollment_id, Enrollment.student_id == student_id
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def find(self, *, student_id: uuid.UUID, course_id: uuid.UUID) -> Enrollment | None:
        stmt = select(Enrollment).where(
            Enrollment.student_id == student_id, Enrollment.course_id == course_id
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def count_for_course(self, course_id: uuid.UUID) -> int:
        stmt = select(func.count(Enrollment.id)).where(Enrollment.course_id == course_id)
        return int((await self._session.execute(stmt)).scalar_one())

    async def paid_by_course(
        self, *, course_id: uuid.UUID | None = None, student_id: uuid.UUID | None = None
    ) -> list[tuple[uuid.UUID, uuid.UUID, int, Decimal]]:
        # (course_id, instructor_id, enrollments, instructor earnings) over unrefunded payments.
        stmt = (
            select(
                Enrollment.course_id,
                Course.instructor_id,
                func.count(Enrollment.id),
                func.coalesce(func.sum(Enrollment.instructor_earning), 0),
            )
            .join(Course, Course.id == Enrollment.course_id)
            .where(Enrollment.payment_status == PaymentStatus.completed)
            .group_by(Enrollment.course_id, Course.instructor_id)
        )
        if course_id is not None:
            stmt = stmt.where(Enrollment.course_id == course_id)
        if student_id is not None:
            stmt = stmt.where(Enrollment.student_id == student_id)
        return [
            (cid, iid, int(n), to_money(earned))
            for cid, iid, n, earned in (await self._session.execute(stmt)).all()
        ]

    async def for_student(
        self,
        student_id: uuid.UUID,
        *,
        page: int,
        limit: int,
        progress: ProgressFilter | None = None,
    ) -> Page[Enrollment]:
        # Refunded enrollments no longer count as owned courses.
        stmt = (
            select(Enrollment)
            .where(
                Enrollment.student_id == student_id,
                Enrollment.payment_status != PaymentStatus.refunded,
            )
            .order_by(desc(Enrollment.created_at))
        )
        if progress == "completed":
            stmt = stmt.where(Enrollment.is_completed.is_(True))
        elif progress == "in-progress":
            stmt = stmt.where(Enrollment.is_completed.is_(False), Enrollment.progress > 0)
        elif progress == "not-started":
            stmt = stmt.where(Enrollment.progress == 0)
        return await paginate(self._session, stmt, page=page, limit=limit)

    async def payments(self, flt: PaymentFilter, *, page: int, limit: int) -> Page[Enrollment]:
        stmt = flt.apply(select(Enrollment).order_by(desc(Enrollment.created_at)))
        return await paginate(self._session, stmt, page=page, limit=limit)

    async def recent(self, flt: PaymentFilter, *, limit: int = 10) -> list[Enrollment]:
        stmt = flt.apply(select(Enrollment).order_by(desc(Enrollment.created_at)).limit(limit))
        return list((await self._session.execute(stmt)).scalars().all())

    async def revenue_totals(self, flt: PaymentFilter) -> dict[str, Any]:
        stmt = flt.apply(
            select(
                func.coalesce(func.sum(Enrollment.payment_amount), 0),
                func.coalesce(func.sum(Enrollment.platform_commission), 0),
                func.coalesce(func.sum(Enrollment.instructor_earning), 0),
                func.count(Enrollment.id),
            )
        )
        gross, platform, instructor, count = (await self._session.execute(stmt)).one()
        return {
            "total_revenue": to_money(gross),
            "platform_revenue": to_money(platform),
            "instructor_revenue": to_money(instructor),
            "total_transactions": int(count),
        }

    async def completion_counts(self, flt: PaymentFilter) -> tuple[int, int]:
        stmt = flt.apply(
            select(
                func.count(Enrollment.id),
                func.coalesce(func.sum(case((Enrollment.is_completed.is_(True), 1), else_=0)), 0),
            )
        )
        total, completed = (await self._session.execute(stmt)).one()
        return int(total), int(completed)

    async def payment_rows(self, flt: PaymentFilter) -> list[tuple[datetime, Decimal, Decimal]]:
        # Raw rows for calendar bucketing, which is done in Python to stay dialect-neutral.
        stmt = flt.apply(
            select(
                Enrollment.created_at,
                Enrollment.payment_amount,
                Enrollment.platform_commission,
            )
        )
        return [tuple(r) for r in (await self._session.execute(stmt)).all()]

    async def per_course(self, flt: PaymentFilter, *, limit: int | None = None) -> list[dict[str, Any]]:
        revenue = func.coalesce(func.sum(Enrollment.payment_amount), 0)
        stmt = flt.apply(
            select(
                Enrollment.course_id,
                Course.title,
                func.count(Enrollment.id),
                func.coalesce(func.sum(case((Enrollment.is_completed.is_(True), 1), else_=0)), 0),
                revenue,
                func.coalesce(func.sum(Enrollment.platform_commission), 0),
                func.coalesce(func.sum(Enrollment.instructor_earning), 0),
            )
            .join(Course, Course.id == Enrollment.course_id)
            .group_by(Enrollment.course_id, Course.title)
            .order_by(desc(revenue))
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        out: list[dict[str, Any]] = []
        for course_id, title, n, completed, gross, platform, instructor in (
            await self._session.execute(stmt)
        ).all():
            out.append(
                {
                    "course_id": str(course_id),
                    "title": title,
                    "enrollments": int(n),
                    "completions": int(completed),
                    "total_revenue": to_money(gross),
                    "platform_revenue": to_money(platform),
                    "instructor_revenue": to_money(instructor),
                }
            )
        return out


# --- Module Notes -----------------------------------------------------------
# Every revenue figure comes from the per-enrollment split stored at payment time.
