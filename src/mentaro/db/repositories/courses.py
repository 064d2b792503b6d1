"""
mentaro.db.repositories.courses

Repository for `Course` entities.

Responsibilities:
- Persist courses, recomputing denormalized aggregates on every save.
- Catalog search (filters, text search, sorting) and moderation queues.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Literal

from sqlalchemy import String, asc, cast, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from mentaro.db.models import Course, CourseCategory, CourseLevel, CourseStatus
from mentaro.db.pagination import Page, paginate
from mentaro.domain.catalog import recompute_aggregates

SortField = Literal["created_at", "price", "title", "rating_average", "enrollment_count"]


@dataclass(frozen=True, slots=True)
class CatalogFilter:
    category: CourseCategory | None = None
    level: CourseLevel | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    search: str | None = None
    # None means "approved + published only" (public catalog).
    status: CourseStatus | None = None
    instructor_id: uuid.UUID | None = None


class CourseRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save(self, course: Course) -> Course:
        recompute_aggregates(course)
        self._session.add(course)
        await self._session.flush()
        return course

    async def get(self, course_id: uuid.UUID, *, for_update: bool = False) -> Course | None:
        return await self._session.get(Course, course_id, with_for_update=for_update)

    async def get_many(self, course_ids: list[uuid.UUID]) -> list[Course]:
        if not course_ids:
            return []
        stmt = select(Course).where(Course.id.in_(course_ids))
        return list((await self._session.execute(stmt)).scalars().all())

    async def catalog(
        self,
        flt: CatalogFilter,
        *,
        page: int,
        limit: int,
        sort_by: SortField = "created_at",
        sort_order: Literal["asc", "desc"] = "desc",
        public: bool = True,
    ) -> Page[Course]:
        column = getattr(Course, sort_by)
        stmt = select(Course).order_by(desc(column) if sort_order == "desc" else asc(column))

        if public:
            stmt = stmt.where(Course.status == CourseStatus.approved, Course.is_published.is_(True))
        elif flt.status is not None:
            stmt = stmt.where(Course.status == flt.status)

        if flt.instructor_id is not None:
            stmt = stmt.where(Course.instructor_id == flt.instructor_id)
        if flt.category is not None:
            stmt = stmt.where(Course.category == flt.category)
        if flt.level is not None:
            stmt = stmt.where(Course.level == flt.level)
        if flt.min_price is not None:
            stmt = stmt.where(Course.price >= flt.min_price)
        if flt.max_price is not None:
            stmt = stmt.where(Course.price <= flt.max_price)
        if flt.search:
            pattern = f"%{flt.search}%"
            stmt = stmt.where(
                or_(
                    Course.title.ilike(pattern),
                    Course.description.ilike(pattern),
                    cast(Course.tags, String).ilike(pattern),
                )
            )
        return await paginate(self._session, stmt, page=page, limit=limit)

    async def for_instructor(
        self,
        instructor_id: uuid.UUID,
        *,
        page: int,
        limit: int,
        status: CourseStatus | None = None,
    ) -> Page[Course]:
        stmt = (
            select(Course)
            .where(Course.instructor_id == instructor_id)
            .order_by(desc(Course.created_at))
        )
        if status is not None:
            stmt = stmt.where(Course.status == status)
        return await paginate(self._session, stmt, page=page, limit=limit)

    async def ids_for_instructor(
        self, instructor_id: uuid.UUID, *, course_id: uuid.UUID | None = None
    ) -> list[uuid.UUID]:
        stmt = select(Course.id).where(Course.instructor_id == instructor_id)
        if course_id is not None:
            stmt = stmt.where(Course.id == course_id)
        return list((await self._session.execute(stmt)).scalars().all())

    async def count(self) -> int:
        return int((await self._session.execute(select(func.count(Course.id)))).scalar_one())

    async def delete(self, course: Course) -> None:
        await self._session.delete(course)
        await self._session.flush()


# --- Module Notes -----------------------------------------------------------
# `save` is the single write path for courses so the aggregates can never drift from
# the chapters/reviews arrays.
