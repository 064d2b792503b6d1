"""
mentaro.api.routers.courses

Course catalog and authoring endpoints.

Responsibilities:
- Public catalog listing and course detail (with optional authentication).
- Instructor authoring: create/update/delete, chapters, lessons, submit, publish.
- Reviews by enrolled students.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any, Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from mentaro.api import serializers
from mentaro.api.deps import PageParams, db_session, page_params
from mentaro.auth.deps import get_principal, optional_principal, require_approved_instructor
from mentaro.auth.models import Principal
from mentaro.clock import utcnow
from mentaro.db.models import CourseCategory, CourseLevel, CourseStatus
from mentaro.db.repositories.courses import CatalogFilter, CourseRepo, SortField
from mentaro.services.catalog_service import CatalogService

router = APIRouter(prefix="/api/courses", tags=["courses"])


class LessonIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    video_url: str = ""
    duration: int = Field(default=0, ge=0)
    is_preview: bool = False
    resources: list[dict[str, Any]] = Field(default_factory=list)


class ChapterIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    lessons: list[LessonIn] = Field(default_factory=list)


class CourseCreateRequest(BaseModel):
    title: str = Field(min_length=5, max_length=100)
    description: str = Field(min_length=20, max_length=2000)
    short_description: str | None = Field(default=None, max_length=200)
    category: CourseCategory
    subcategory: str | None = Field(default=None, max_length=100)
    level: CourseLevel
    language: str = Field(default="English", max_length=50)
    price: Decimal = Field(ge=0)
    original_price: Decimal | None = Field(default=None, ge=0)
    thumbnail: str = ""
    preview_video: str = ""
    requirements: list[str] = Field(default_factory=list)
    objectives: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    chapters: list[ChapterIn] = Field(default_factory=list)


class CourseUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=5, max_length=100)
    description: str | None = Field(default=None, min_length=20, max_length=2000)
    short_description: str | None = Field(default=None, max_length=200)
    category: CourseCategory | None = None
    subcategory: str | None = Field(default=None, max_length=100)
    level: CourseLevel | None = None
    language: str | None = Field(default=None, max_length=50)
    price: Decimal | None = Field(default=None, ge=0)
    original_price: Decimal | None = Field(default=None, ge=0)
    thumbnail: str | None = None
    preview_video: str | None = None
    requirements: list[str] | None = None
    objectives: list[str] | None = None
    tags: list[str] | None = None
    chapters: list[ChapterIn] | None = None


class ReviewRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str = Field(default="", max_length=500)


@router.get("")
async def list_courses(
    pages: PageParams = Depends(page_params),
    category: CourseCategory | None = None,
    level: CourseLevel | None = None,
    min_price: Decimal | None = Query(default=None, ge=0),
    max_price: Decimal | None = Query(default=None, ge=0),
    search: str | None = Query(default=None, max_length=100),
    sort_by: SortField = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    status: CourseStatus | None = None,
    principal: Principal | None = Depends(optional_principal),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    # Admins browse every status; everyone else sees the live catalog only.
    is_admin = principal is not None and principal.is_admin
    page = await CourseRepo(session).catalog(
        CatalogFilter(
            category=category,
            level=level,
            min_price=min_price,
            max_price=max_price,
            search=search,
            status=status,
        ),
        page=pages.page,
        limit=pages.limit,
        sort_by=sort_by,
        sort_order=sort_order,
        public=not is_admin,
    )
    return {
        "message": "Courses retrieved successfully",
        "courses": [serializers.course_summary(c) for c in page.items],
        "pagination": serializers.pagination(page),
    }


@router.get("/instructor")
async def instructor_courses(
    pages: PageParams = Depends(page_params),
    status: CourseStatus | None = None,
    principal: Principal = Depends(require_approved_instructor),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    page = await CourseRepo(session).for_instructor(
        principal.id, page=pages.page, limit=pages.limit, status=status
    )
    return {
        "message": "Instructor courses retrieved successfully",
        "courses": [serializers.course_summary(c) for c in page.items],
        "pagination": serializers.pagination(page),
    }


@router.get("/{course_id}")
async def get_course(
    course_id: uuid.UUID,
    principal: Principal | None = Depends(optional_principal),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    course = await CatalogService(session=session).visible(principal, course_id)
    full = principal is not None and (
        principal.is_admin or principal.id == course.instructor_id
    )
    return {
        "message": "Course retrieved successfully",
        "course": serializers.course_detail(course, include_content=full),
    }


@router.post("", status_code=HTTP_201_CREATED)
async def create_course(
    body: CourseCreateRequest,
    principal: Principal = Depends(require_approved_instructor),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    course = await CatalogService(session=session).create(
        instructor=principal, data=body.model_dump(mode="python")
    )
    await session.commit()
    return {"message": "Course created successfully", "course": serializers.course_detail(course)}


@router.put("/{course_id}")
async def update_course(
    course_id: uuid.UUID,
    body: CourseUpdateRequest,
    principal: Principal = Depends(require_approved_instructor),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    course = await CatalogService(session=session).update(
        principal=principal,
        course_id=course_id,
        data=body.model_dump(exclude_unset=True, exclude_none=True),
    )
    await session.commit()
    return {"message": "Course updated successfully", "course": serializers.course_detail(course)}


@router.delete("/{course_id}")
async def delete_course(
    course_id: uuid.UUID,
    principal: Principal = Depends(require_approved_instructor),
    session: AsyncSession = Depends(db_session),
) -> dict[str, str]:
    await CatalogService(session=session).delete(principal=principal, course_id=course_id)
    await session.commit()
    return {"message": "Course deleted successfully"}


@router.post("/{course_id}/chapters", status_code=HTTP_201_CREATED)
async def add_chapter(
    course_id: uuid.UUID,
    body: ChapterIn,
    principal: Principal = Depends(require_approved_instructor),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    chapter = await CatalogService(session=session).add_chapter(
        principal=principal, course_id=course_id, data=body.model_dump()
    )
    await session.commit()
    return {"message": "Chapter added successfully", "chapter": chapter}


@router.post("/{course_id}/chapters/{chapter_id}/lessons", status_code=HTTP_201_CREATED)
async def add_lesson(
    course_id: uuid.UUID,
    chapter_id: str,
    body: LessonIn,
    principal: Principal = Depends(require_approved_instructor),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    lesson = await CatalogService(session=session).add_lesson(
        principal=principal, course_id=course_id, chapter_id=chapter_id, data=body.model_dump()
    )
    await session.commit()
    return {"message": "Lesson added successfully", "lesson": lesson}


@router.post("/{course_id}/reviews", status_code=HTTP_201_CREATED)
async def add_review(
    course_id: uuid.UUID,
    body: ReviewRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    course = await CatalogService(session=session).add_review(
        principal=principal,
        course_id=course_id,
        rating=body.rating,
        comment=body.comment,
        now=utcnow(),
    )
    await session.commit()
    return {
        "message": "Review added successfully",
        "rating_average": course.rating_average,
        "rating_count": course.rating_count,
        "reviews": course.reviews,
    }


@router.put("/{course_id}/submit")
async def submit_course(
    course_id: uuid.UUID,
    principal: Principal = Depends(require_approved_instructor),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    course = await CatalogService(session=session).submit(principal=principal, course_id=course_id)
    await session.commit()
    return {
        "message": "Course submitted for review successfully",
        "course": serializers.course_summary(course),
    }


@router.put("/{course_id}/publish")
async def publish_course(
    course_id: uuid.UUID,
    principal: Principal = Depends(require_approved_instructor),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    course = await CatalogService(session=session).publish(
        principal=principal, course_id=course_id, now=utcnow()
    )
    await session.commit()
    return {"message": "Course published successfully", "course": serializers.course_summary(course)}
