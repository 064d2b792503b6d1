"""
mentaro.api.routers.admin

Administration endpoints (admin role only).

Responsibilities:
- User management: list, activate/deactivate, edit, delete.
- Instructor applications: pending queue, approve, reject.
- Course moderation: pending queue, approve, reject, full listing.
- Bootstrap additional admin accounts.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from mentaro.api import serializers
from mentaro.api.deps import PageParams, db_session, page_params, settings_dep
from mentaro.api.routers.auth import _strong
from mentaro.auth.deps import require_admin
from mentaro.clock import utcnow
from mentaro.db.models import CourseStatus, UserRole
from mentaro.db.repositories.courses import CatalogFilter, CourseRepo
from mentaro.db.repositories.users import UserRepo
from mentaro.services.account_service import AccountService
from mentaro.services.catalog_service import CatalogService
from mentaro.settings import Settings

# Every route in this module is admin-only.
router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])


class StatusRequest(BaseModel):
    is_active: bool


class UserUpdateRequest(BaseModel):
    first_name: str | None = Field(default=None, min_length=2, max_length=50)
    last_name: str | None = Field(default=None, min_length=2, max_length=50)
    email: EmailStr | None = None


class ReasonRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


class CreateAdminRequest(BaseModel):
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def password_policy(cls, value: str) -> str:
        return _strong(value)


def _accounts(session: AsyncSession, settings: Settings) -> AccountService:
    return AccountService(session=session, settings=settings)


@router.get("/users")
async def list_users(
    pages: PageParams = Depends(page_params),
    role: UserRole | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    page = await UserRepo(session).search(
        page=pages.page, limit=pages.limit, role=role, is_active=is_active, search=search
    )
    return {
        "message": "Users retrieved successfully",
        "users": [serializers.user_public(u) for u in page.items],
        "pagination": serializers.pagination(page),
    }


@router.put("/users/{user_id}/status")
async def update_user_status(
    user_id: uuid.UUID,
    body: StatusRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    user = await _accounts(session, settings).set_status(user_id=user_id, is_active=body.is_active)
    await session.commit()
    state = "activated" if body.is_active else "deactivated"
    return {"message": f"User {state} successfully", "user": serializers.user_public(user)}


@router.put("/users/{user_id}")
async def update_user(
    user_id: uuid.UUID,
    body: UserUpdateRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    user = await _accounts(session, settings).admin_update(
        user_id=user_id, changes=body.model_dump(exclude_none=True)
    )
    await session.commit()
    return {"message": "User updated successfully", "user": serializers.user_public(user)}


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: uuid.UUID,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, str]:
    await _accounts(session, settings).delete(user_id=user_id)
    await session.commit()
    return {"message": "User deleted successfully"}


@router.get("/instructors/pending")
async def pending_instructors(
    pages: PageParams = Depends(page_params),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    page = await UserRepo(session).pending_instructors(page=pages.page, limit=pages.limit)
    return {
        "message": "Pending instructors retrieved successfully",
        "instructors": [serializers.user_public(u) for u in page.items],
        "pagination": serializers.pagination(page),
    }


@router.put("/instructors/{user_id}/approve")
async def approve_instructor(
    user_id: uuid.UUID,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    user = await _accounts(session, settings).approve_instructor(user_id=user_id, now=utcnow())
    await session.commit()
    return {"message": "Instructor approved successfully", "instructor": serializers.user_public(user)}


@router.put("/instructors/{user_id}/reject")
async def reject_instructor(
    user_id: uuid.UUID,
    body: ReasonRequest | None = None,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    user = await _accounts(session, settings).reject_instructor(
        user_id=user_id, reason=body.reason if body is not None else None
    )
    await session.commit()
    return {"message": "Instructor application rejected", "instructor": serializers.user_public(user)}


@router.get("/courses/pending")
async def pending_courses(
    pages: PageParams = Depends(page_params),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    page = await CourseRepo(session).catalog(
        CatalogFilter(status=CourseStatus.pending),
        page=pages.page,
        limit=pages.limit,
        public=False,
    )
    return {
        "message": "Pending courses retrieved successfully",
        "courses": [serializers.course_summary(c) for c in page.items],
        "pagination": serializers.pagination(page),
    }


@router.put("/courses/{course_id}/approve")
async def approve_course(
    course_id: uuid.UUID,
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    course = await CatalogService(session=session).approve(course_id=course_id, now=utcnow())
    await session.commit()
    return {"message": "Course approved successfully", "course": serializers.course_summary(course)}


@router.put("/courses/{course_id}/reject")
async def reject_course(
    course_id: uuid.UUID,
    body: ReasonRequest | None = None,
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    course = await CatalogService(session=session).reject(
        course_id=course_id, reason=body.reason if body is not None else None
    )
    await session.commit()
    return {
        "message": "Course rejected successfully",
        "course": serializers.course_detail(course),
    }


@router.get("/courses")
async def all_courses(
    pages: PageParams = Depends(page_params),
    status: CourseStatus | None = None,
    search: str | None = None,
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    page = await CourseRepo(session).catalog(
        CatalogFilter(status=status, search=search),
        page=pages.page,
        limit=pages.limit,
        public=False,
    )
    return {
        "message": "Courses retrieved successfully",
        "courses": [serializers.course_summary(c) for c in page.items],
        "pagination": serializers.pagination(page),
    }


@router.post("/create-admin", status_code=HTTP_201_CREATED)
async def create_admin(
    body: CreateAdminRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    admin = await _accounts(session, settings).create_admin(
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=body.password,
    )
    await session.commit()
    return {"message": "Admin created successfully", "admin": serializers.user_public(admin)}
