from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import desc, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from mentaro.db.models import Discount
from mentaro.db.pagination import Page, paginate


class DiscountRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, discount: Discount) -> Discount:
        discount.code = discount.code.strip().upper()
        self._session.add(discount)
        await self._session.flush()
        return discount

    async def get(self, discount_id: uuid.UUID, *, for_update: bool = False) -> Discount | None:
        return await self._session.get(Discount, discount_id, with_for_update=for_update)

    async def get_by_code(self, code: str, *, active_only: bool = True) -> Discount | None:
        stmt = select(Discount).where(Discount.code == code.strip().upper())
        if active_only:
            stmt = stmt.where(Discount.is_active.is_(True))
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def code_exists(self, code: str, *, exclude_id: uuid.UUID | None = None) -> bool:
        stmt = select(Discount.id).where(Discount.code == code.strip().upper())
        if exclude_id is not None:
            stmt = stmt.where(Discount.id != exclude_id)
        return (await self._session.execute(stmt.limit(1))).first() is not None

    async def search(
        self,
        *,
        page: int,
        limit: int,
        is_active: bool | None = None,
        search: str | None = None,
        created_by_id: uuid.UUID | None = None,
    ) -> Page[Discount]:
        stmt = select(Discount).order_by(desc(Discount.created_at))
        if is_active is not None:
            stmt = stmt.where(Discount.is_active == is_active)
        if created_by_id is not None:
            stmt = stmt.where(Discount.created_by_id == created_by_id)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(Discount.code.ilike(pattern), Discount.description.ilike(pattern)))
        return await paginate(self._session, stmt, page=page, limit=limit)

    async def apply(self, discount: Discount, changes: dict[str, Any]) -> Discount:
        for key, value in changes.items():
            setattr(discount, key, value)
        discount.code = discount.code.strip().upper()
        await self._session.flush()
        return discount

    async def delete(self, discount: Discount) -> None:
        await self._session.delete(discount)
        await self._session.flush()
