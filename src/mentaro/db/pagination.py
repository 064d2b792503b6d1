"""
mentaro.db.pagination

Offset pagination over SQLAlchemy select statements.

Responsibilities:
- Count the unpaged result set and fetch one page of ORM rows.
- Expose the page metadata shape shared by every list endpoint.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    items: list[T]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def meta(self) -> dict[str, Any]:
        return {
            "current_page": self.page,
            "total_pages": self.total_pages,
            "total": self.total,
            "has_next": self.page < self.total_pages,
            "has_prev": self.page > 1,
        }


async def paginate(session: AsyncSession, stmt: Select, *, page: int, limit: int) -> Page:
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = int((await session.execute(count_stmt)).scalar_one())
    rows = await session.execute(stmt.offset((page - 1) * limit).limit(limit))
    return Page(items=list(rows.scalars().all()), total=total, page=page, limit=limit)
