"""
mentaro.db.repositories.users

Repository for `User` entities.

Responsibilities:
- Create, fetch, search and delete accounts.
- Maintain instructor aggregate counters under a row lock.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from mentaro.db.models import User, UserRole
from mentaro.db.pagination import Page, paginate


class UserRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password_hash: str,
        role: UserRole = UserRole.student,
        bio: str = "",
        expertise: list[str] | None = None,
        is_email_verified: bool = False,
    ) -> User:
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email.lower(),
            password_hash=password_hash,
            role=role,
            bio=bio,
            expertise=list(expertise or []),
            social_links={},
            wishlist=[],
            cart=[],
            is_active=True,
            is_email_verified=is_email_verified,
            # Instructors start unapproved; other roles carry no instructor profile.
            is_approved=False if role == UserRole.instructor else None,
            total_students=0,
            total_courses=0,
            total_revenue=Decimal("0"),
        )
        self._session.add(user)
        await self._session.flush()
        return user

    async def get(self, user_id: uuid.UUID, *, for_update: bool = False) -> User | None:
        return await self._session.get(User, user_id, with_for_update=for_update)

    async def get_by_email(self, email: str, *, role: UserRole | None = None) -> User | None:
        stmt = select(User).where(User.email == email.lower())
        if role is not None:
            stmt = stmt.where(User.role == role)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def email_taken(self, email: str, *, exclude_id: uuid.UUID | None = None) -> bool:
        stmt = select(User.id).where(User.email == email.lower())
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        return (await self._session.execute(stmt.limit(1))).first() is not None

    async def search(
        self,
        *,
        page: int,
        limit: int,
        role: UserRole | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> Page[User]:
        stmt = select(User).order_by(desc(User.created_at))
        if role is not None:
            stmt = stmt.where(User.role == role)
        if is_active is not None:
            stmt = stmt.where(User.is_active == is_active)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(
                    User.first_name.ilike(pattern),
                    User.last_name.ilike(pattern),
                    User.email.ilike(pattern),
                )
            )
        return await paginate(self._session, stmt, page=page, limit=limit)

    async def pending_instructors(self, *, page: int, limit: int) -> Page[User]:
        stmt = (
            select(User)
            .where(User.role == UserRole.instructor, User.is_approved.is_(False))
            .order_by(desc(User.created_at))
        )
        return await paginate(self._session, stmt, page=page, limit=limit)

    async def count_by_role(self) -> dict[str, int]:
        stmt = select(User.role, func.count()).group_by(User.role)
        return {str(role): int(n) for role, n in (await self._session.execute(stmt)).all()}

    async def adjust_instructor_stats(
        self,
        instructor_id: uuid.UUID,
        *,
        students: int = 0,
        courses: int = 0,
        revenue: Decimal = Decimal("0"),
    ) -> None:
        # Counters are locked so concurrent enrollments don't lose increments.
        user = await self.get(instructor_id, for_update=True)
        if user is None:
            return
        user.total_students = max(0, (user.total_students or 0) + students)
        user.total_courses = max(0, (user.total_courses or 0) + courses)
        user.total_revenue = (user.total_revenue or Decimal("0")) + revenue

    async def apply(self, user: User, changes: dict[str, Any]) -> User:
        for key, value in changes.items():
            setattr(user, key, value)
        await self._session.flush()
        return user

    async def delete(self, user: User) -> None:
        await self._session.delete(user)
        await self._session.flush()


# --- Module Notes -----------------------------------------------------------
# Counters mirror information derivable from enrollments; reporting endpoints read
# enrollments instead (see `services.reporting_service`).
