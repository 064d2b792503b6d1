"""
mentaro.api.routers.enrollments

Student enrollment, learning progress, wishlist and cart endpoints.

Responsibilities:
- Enroll into a course and list/read the caller's enrollments.
- Lesson completion, last-accessed lesson and per-chapter progress.
- Instructor views over enrollments in their courses.
- Wishlist / cart maintenance.
"""

from __future__ import annotations

import uuid
from typing import Any, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from mentaro.api import serializers
from mentaro.api.deps import PageParams, db_session, page_params, settings_dep
from mentaro.auth.deps import require_approved_instructor, require_student
from mentaro.auth.models import Principal
from mentaro.clock import utcnow
from mentaro.db.models import PaymentMethod
from mentaro.db.repositories.courses import CourseRepo
from mentaro.db.repositories.enrollments import EnrollmentRepo
from mentaro.services.enrollment_service import EnrollmentService, PaymentInput
from mentaro.services.reporting_service import ReportingService
from mentaro.settings import Settings

router = APIRouter(prefix="/api/enrollments", tags=["enrollments"])


class PaymentDetails(BaseModel):
    payment_method: PaymentMethod
    transaction_id: str | None = Field(default=None, max_length=128)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    discount_code: str | None = Field(default=None, max_length=64)


class EnrollRequest(BaseModel):
    payment_details: PaymentDetails


class LessonCompleteRequest(BaseModel):
    watch_time: int | None = Field(default=None, ge=0)


class LastAccessedRequest(BaseModel):
    chapter_id: str = Field(min_length=1)
    lesson_id: str = Field(min_length=1)


def _service(session: AsyncSession, settings: Settings) -> EnrollmentService:
    return EnrollmentService(session=session, settings=settings)


@router.post("/enroll/{course_id}", status_code=HTTP_201_CREATED)
async def enroll(
    course_id: uuid.UUID,
    body: EnrollRequest,
    principal: Principal = Depends(require_student),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    details = body.payment_details
    enrollment, _ = await _service(session, settings).enroll(
        student=principal.user,
        course_id=course_id,
        payment=PaymentInput(
            method=details.payment_method,
            transaction_id=details.transaction_id,
            currency=details.currency,
            discount_code=details.discount_code,
        ),
        now=utcnow(),
    )
    await session.commit()
    return {
        "message": "Successfully enrolled in course",
        "enrollment": serializers.enrollment(enrollment),
    }


@router.get("/my-enrollments")
async def my_enrollments(
    pages: PageParams = Depends(page_params),
    status: Literal["completed", "in-progress", "not-started"] | None = None,
    principal: Principal = Depends(require_student),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    page = await EnrollmentRepo(session).for_student(
        principal.id, page=pages.page, limit=pages.limit, progress=status
    )
    return {
        "message": "Enrollments retrieved successfully",
        "enrollments": [serializers.enrollment(e) for e in page.items],
        "pagination": serializers.pagination(page),
    }


@router.get("/details/{enrollment_id}")
async def enrollment_details(
    enrollment_id: uuid.UUID,
    principal: Principal = Depends(require_student),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    enrollment = await _service(session, settings).get_owned(
        student=principal.user, enrollment_id=enrollment_id
    )
    out = serializers.enrollment(enrollment)
    out["course"] = serializers.course_detail(enrollment.course)
    return {"message": "Enrollment details retrieved successfully", "enrollment": out}


@router.put("/{enrollment_id}/lessons/{lesson_id}/complete")
async def complete_lesson(
    enrollment_id: uuid.UUID,
    lesson_id: str,
    body: LessonCompleteRequest | None = None,
    principal: Principal = Depends(require_student),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    enrollment = await _service(session, settings).complete_lesson(
        student=principal.user,
        enrollment_id=enrollment_id,
        lesson_id=lesson_id,
        watch_time=body.watch_time if body is not None else None,
        now=utcnow(),
    )
    await session.commit()
    return {
        "message": "Lesson marked as complete",
        "progress": enrollment.progress,
        "is_completed": enrollment.is_completed,
        "completed_lessons": enrollment.completed_lessons,
        "total_watch_time": enrollment.total_watch_time,
    }


@router.put("/{enrollment_id}/last-accessed")
async def last_accessed(
    enrollment_id: uuid.UUID,
    body: LastAccessedRequest,
    principal: Principal = Depends(require_student),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    enrollment = await _service(session, settings).touch_lesson(
        student=principal.user,
        enrollment_id=enrollment_id,
        chapter_id=body.chapter_id,
        lesson_id=body.lesson_id,
        now=utcnow(),
    )
    await session.commit()
    return {
        "message": "Last accessed lesson updated",
        "last_accessed_lesson": enrollment.last_accessed_lesson,
    }


@router.get("/progress/{course_id}")
async def course_progress(
    course_id: uuid.UUID,
    principal: Principal = Depends(require_student),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    progress = await _service(session, settings).course_progress(
        student=principal.user, course_id=course_id
    )
    return {"message": "Course progress retrieved successfully", **progress}


@router.get("/instructor/enrollments")
async def instructor_enrollments(
    pages: PageParams = Depends(page_params),
    course_id: uuid.UUID | None = None,
    principal: Principal = Depends(require_approved_instructor),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    page = await ReportingService(session=session).instructor_enrollments(
        instructor_id=principal.id, page=pages.page, limit=pages.limit, course_id=course_id
    )
    enrollments = []
    for e in page.items:
        out = serializers.enrollment(e)
        out["student"] = serializers.user_brief(e.student)
        enrollments.append(out)
    return {
        "message": "Instructor enrollments retrieved successfully",
        "enrollments": enrollments,
        "pagination": serializers.pagination(page),
    }


@router.get("/instructor/stats")
async def instructor_stats(
    course_id: uuid.UUID | None = None,
    principal: Principal = Depends(require_approved_instructor),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    stats = await ReportingService(session=session).instructor_stats(
        instructor_id=principal.id, now=utcnow(), course_id=course_id
    )
    return {"message": "Enrollment stats retrieved successfully", **stats}


@router.get("/wishlist")
async def get_wishlist(
    principal: Principal = Depends(require_student),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    ids = [uuid.UUID(c) for c in principal.user.wishlist or []]
    courses = await CourseRepo(session).get_many(ids)
    return {
        "message": "Wishlist retrieved successfully",
        "wishlist": [serializers.course_summary(c) for c in courses],
    }


@router.post("/wishlist/{course_id}", status_code=HTTP_201_CREATED)
async def add_to_wishlist(
    course_id: uuid.UUID,
    principal: Principal = Depends(require_student),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    wishlist = await _service(session, settings).add_to_wishlist(
        student=principal.user, course_id=course_id
    )
    await session.commit()
    return {"message": "Course added to wishlist", "wishlist": wishlist}


@router.delete("/wishlist/{course_id}")
async def remove_from_wishlist(
    course_id: uuid.UUID,
    principal: Principal = Depends(require_student),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    wishlist = await _service(session, settings).remove_from_wishlist(
        student=principal.user, course_id=course_id
    )
    await session.commit()
    return {"message": "Course removed from wishlist", "wishlist": wishlist}


@router.get("/cart")
async def get_cart(
    principal: Principal = Depends(require_student),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    entries = principal.user.cart or []
    courses = {
        str(c.id): c
        for c in await CourseRepo(session).get_many([uuid.UUID(i["course_id"]) for i in entries])
    }
    items = [
        {"course": serializers.course_summary(courses[i["course_id"]]), "added_at": i.get("added_at")}
        for i in entries
        if i["course_id"] in courses
    ]
    total = sum((courses[i["course_id"]].price for i in entries if i["course_id"] in courses), 0)
    return {"message": "Cart retrieved successfully", "cart": items, "total": total}


@router.post("/cart/{course_id}", status_code=HTTP_201_CREATED)
async def add_to_cart(
    course_id: uuid.UUID,
    principal: Principal = Depends(require_student),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    cart = await _service(session, settings).add_to_cart(
        student=principal.user, course_id=course_id, now=utcnow()
    )
    await session.commit()
    return {"message": "Course added to cart", "cart": cart}


@router.delete("/cart/{course_id}")
async def remove_from_cart(
    course_id: uuid.UUID,
    principal: Principal = Depends(require_student),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    cart = await _service(session, settings).remove_from_cart(
        student=principal.user, course_id=course_id
    )
    await session.commit()
    return {"message": "Course removed from cart", "cart": cart}
