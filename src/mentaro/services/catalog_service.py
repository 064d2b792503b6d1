"""
mentaro.services.catalog_service

Course authoring and moderation.

Responsibilities:
- Create/update/delete courses with ownership checks.
- Append chapters and lessons, keeping ids and ordering stable.
- Reviews (enrolled students only, one per user).
- Moderation lifecycle: draft -> pending -> approved/rejected -> published.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from mentaro.auth.models import Principal
from mentaro.db.models import Course, CourseStatus, PaymentStatus
from mentaro.db.repositories.courses import CourseRepo
from mentaro.db.repositories.enrollments import EnrollmentRepo
from mentaro.db.repositories.users import UserRepo
from mentaro.domain.catalog import new_id, normalize_chapter, normalize_chapters, normalize_lesson
from mentaro.errors import BusinessRuleError, ForbiddenError, NotFoundError
from mentaro.observability.logging import get_logger
from mentaro.services.enrollment_service import release_enrollment_counters

log = get_logger(__name__)

# Fields an owner may change through a plain update.
_EDITABLE = frozenset(
    {
        "title",
        "description",
        "short_description",
        "category",
        "subcategory",
        "level",
        "language",
        "price",
        "original_price",
        "thumbnail",
        "preview_video",
        "requirements",
        "objectives",
        "tags",
    }
)


class CatalogService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._courses = CourseRepo(session)
        self._enrollments = EnrollmentRepo(session)
        self._users = UserRepo(session)

    async def _get(self, course_id: uuid.UUID) -> Course:
        course = await self._courses.get(course_id)
        if course is None:
            raise NotFoundError("Course not found")
        return course

    async def _owned(self, principal: Principal, course_id: uuid.UUID, action: str) -> Course:
        course = await self._get(course_id)
        if course.instructor_id != principal.id and not principal.is_admin:
            raise ForbiddenError(f"Not authorized to {action} this course")
        return course

    async def visible(self, principal: Principal | None, course_id: uuid.UUID) -> Course:
        course = await self._get(course_id)
        if course.status == CourseStatus.approved:
            return course
        if principal is not None and (principal.is_admin or principal.id == course.instructor_id):
            return course
        raise ForbiddenError("Course not available")

    async def create(self, *, instructor: Principal, data: dict[str, Any]) -> Course:
        fields = {k: v for k, v in data.items() if k in _EDITABLE}
        if not fields.get("short_description"):
            fields["short_description"] = str(fields.get("description", ""))[:200]
        course = Course(
            instructor_id=instructor.id,
            chapters=normalize_chapters(data.get("chapters")),
            reviews=[],
            status=CourseStatus.draft,
            is_published=False,
            enrollment_count=0,
            **fields,
        )
        course.instructor = instructor.user
        await self._courses.save(course)
        log.info("course_created", course_id=str(course.id), instructor_id=str(instructor.id))
        return course

    async def update(
        self, *, principal: Principal, course_id: uuid.UUID, data: dict[str, Any]
    ) -> Course:
        course = await self._owned(principal, course_id, "update")
        for key, value in data.items():
            if key in _EDITABLE:
                setattr(course, key, value)
        if "chapters" in data and data["chapters"] is not None:
            course.chapters = normalize_chapters(data["chapters"])
        # Edits to a live course go back through moderation.
        if not principal.is_admin and course.status == CourseStatus.approved:
            course.status = CourseStatus.pending
        await self._courses.save(course)
        return course

    async def delete(self, *, principal: Principal, course_id: uuid.UUID) -> None:
        course = await self._owned(principal, course_id, "delete")
        if not principal.is_admin and await self._enrollments.count_for_course(course.id) > 0:
            raise BusinessRuleError("Cannot delete course with active enrollments")
        await release_enrollment_counters(self._session, course_id=course.id)
        if course.published_at is not None:
            # Counted once on first approval.
            await self._users.adjust_instructor_stats(course.instructor_id, courses=-1)
        await self._courses.delete(course)
        log.info("course_deleted", course_id=str(course_id))

    async def add_chapter(
        self, *, principal: Principal, course_id: uuid.UUID, data: dict[str, Any]
    ) -> dict[str, Any]:
        course = await self._owned(principal, course_id, "modify")
        chapters = list(course.chapters or [])
        chapter = normalize_chapter({**data, "id": new_id()}, len(chapters))
        course.chapters = [*chapters, chapter]
        await self._courses.save(course)
        return chapter

    async def add_lesson(
        self,
        *,
        principal: Principal,
        course_id: uuid.UUID,
        chapter_id: str,
        data: dict[str, Any],
    ) -> dict[str, Any]:
        course = await self._owned(principal, course_id, "modify")
        chapters = [dict(c) for c in course.chapters or []]
        target = next((c for c in chapters if c.get("id") == chapter_id), None)
        if target is None:
            raise NotFoundError("Chapter not found")
        lessons = list(target.get("lessons") or [])
        lesson = normalize_lesson({**data, "id": new_id()}, len(lessons))
        target["lessons"] = [*lessons, lesson]
        course.chapters = chapters
        await self._courses.save(course)
        return lesson

    async def add_review(
        self,
        *,
        principal: Principal,
        course_id: uuid.UUID,
        rating: int,
        comment: str,
        now: datetime,
    ) -> Course:
        course = await self._get(course_id)
        enrollment = await self._enrollments.find(student_id=principal.id, course_id=course.id)
        if enrollment is None or enrollment.payment_status == PaymentStatus.refunded:
            raise ForbiddenError("Must be enrolled to review this course")

        review = {
            "user_id": str(principal.id),
            "user_name": principal.user.full_name,
            "rating": int(rating),
            "comment": comment,
            "created_at": now.isoformat(),
        }
        reviews = [r for r in course.reviews or [] if r.get("user_id") != str(principal.id)]
        course.reviews = [*reviews, review]
        await self._courses.save(course)
        return course

    async def submit(self, *, principal: Principal, course_id: uuid.UUID) -> Course:
        course = await self._owned(principal, course_id, "submit")
        chapters = course.chapters or []
        if not chapters:
            raise BusinessRuleError("Course must have at least one chapter")
        if not any(c.get("lessons") for c in chapters):
            raise BusinessRuleError("Course must have at least one lesson")
        course.status = CourseStatus.pending
        await self._courses.save(course)
        log.info("course_submitted", course_id=str(course.id))
        return course

    async def publish(self, *, principal: Principal, course_id: uuid.UUID, now: datetime) -> Course:
        course = await self._owned(principal, course_id, "publish")
        if course.status != CourseStatus.approved:
            raise BusinessRuleError("Course must be approved before publishing")
        course.is_published = True
        course.published_at = course.published_at or now
        await self._courses.save(course)
        return course

    async def approve(self, *, course_id: uuid.UUID, now: datetime) -> Course:
        course = await self._get(course_id)
        first_approval = course.published_at is None
        course.status = CourseStatus.approved
        course.is_published = True
        course.published_at = course.published_at or now
        await self._courses.save(course)
        if first_approval:
            await self._users.adjust_instructor_stats(course.instructor_id, courses=1)
        log.info("course_approved", course_id=str(course.id))
        return course

    async def reject(self, *, course_id: uuid.UUID, reason: str | None) -> Course:
        course = await self._get(course_id)
        course.status = CourseStatus.rejected
        course.is_published = False
        course.admin_notes = reason or "No reason provided"
        await self._courses.save(course)
        log.info("course_rejected", course_id=str(course.id))
        return course


# --- Module Notes -----------------------------------------------------------
# Chapters/lessons/reviews are JSON; every change reassigns the whole list so the ORM
# sees it as dirty.
