"""
mentaro.services.enrollment_service

Enrollment, payment and refund lifecycle (cross-table consistency owner).

Responsibilities:
- Enroll a student into a course, pricing it (coupon included) and freezing the revenue split.
- Keep course/instructor counters in step with enrollments inside the same transaction.
- Refund a payment, reversing exactly what the payment added.
- Lesson completion, last-accessed tracking and per-chapter progress.
- Wishlist and cart maintenance.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mentaro.db.models import (
    Course,
    CourseStatus,
    Enrollment,
    PaymentMethod,
    PaymentStatus,
    User,
)
from mentaro.db.repositories.courses import CourseRepo
from mentaro.db.repositories.enrollments import EnrollmentRepo
from mentaro.db.repositories.users import UserRepo
from mentaro.domain.catalog import find_lesson
from mentaro.domain.money import to_money
from mentaro.domain.progress import chapter_progress, record_lesson_completion
from mentaro.domain.revenue import split_payment
from mentaro.errors import BusinessRuleError, ConflictError, NotFoundError
from mentaro.observability.logging import get_logger
from mentaro.services.pricing_service import PricingService, Quote
from mentaro.settings import Settings

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class PaymentInput:
    method: PaymentMethod
    transaction_id: str | None = None
    currency: str = "USD"
    discount_code: str | None = None


@dataclass(frozen=True, slots=True)
class RefundResult:
    enrollment: Enrollment
    refund_amount: Decimal
    reason: str | None
    processed_at: datetime


class EnrollmentService:
    def __init__(self, *, session: AsyncSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings

        self._courses = CourseRepo(session)
        self._enrollments = EnrollmentRepo(session)
        self._users = UserRepo(session)
        self._pricing = PricingService(session=session)

    async def enroll(
        self,
        *,
        student: User,
        course_id: uuid.UUID,
        payment: PaymentInput,
        now: datetime,
    ) -> tuple[Enrollment, Quote | None]:
        course = await self._courses.get(course_id, for_update=True)
        if course is None:
            raise NotFoundError("Course not found")
        if course.status != CourseStatus.approved or not course.is_published:
            raise BusinessRuleError("Course is not available for enrollment")
        if course.instructor_id == student.id:
            raise BusinessRuleError("Instructors cannot enroll in their own courses")
        if await self._enrollments.find(student_id=student.id, course_id=course.id) is not None:
            raise ConflictError("Already enrolled in this course")

        quote: Quote | None = None
        amount = to_money(course.price)
        if payment.discount_code:
            quote = await self._pricing.quote(
                code=payment.discount_code,
                amount=amount,
                course_id=str(course.id),
                now=now,
                for_update=True,
            )
            amount = quote.final_amount

        if amount > 0 and payment.method == PaymentMethod.free:
            raise BusinessRuleError("Payment method 'free' is only valid for free courses")

        split = split_payment(amount, self._settings.platform_commission_rate)
        enrollment = Enrollment(
            student=student,
            course=course,
            enrolled_at=now,
            progress=0,
            completed_lessons=[],
            total_watch_time=0,
            is_completed=False,
            payment_amount=split.amount,
            payment_currency=payment.currency.upper(),
            payment_method=payment.method,
            transaction_id=payment.transaction_id or f"txn_{uuid.uuid4().hex}",
            payment_status=PaymentStatus.completed,
            discount_code=quote.discount.code if quote else None,
            discount_percentage=quote.percentage if quote else None,
            discount_amount=quote.discount_amount if quote else None,
            platform_commission=split.platform_commission,
            instructor_earning=split.instructor_earning,
        )
        try:
            await self._enrollments.add(enrollment)
        except IntegrityError as e:
            # Concurrent duplicate that slipped past the existence check above.
            raise ConflictError("Already enrolled in this course") from e

        if quote is not None:
            self._pricing.consume(quote)
        course.enrollment_count = (course.enrollment_count or 0) + 1
        await self._users.adjust_instructor_stats(
            course.instructor_id, students=1, revenue=split.instructor_earning
        )
        self._drop_from_lists(student, course.id)
        await self._session.flush()

        log.info(
            "enrollment_created",
            enrollment_id=str(enrollment.id),
            course_id=str(course.id),
            amount=str(split.amount),
            discount_code=enrollment.discount_code,
        )
        return enrollment, quote

    async def refund(
        self,
        *,
        enrollment_id: uuid.UUID,
        reason: str | None,
        refund_amount: Decimal | None,
        now: datetime,
    ) -> RefundResult:
        enrollment = await self._enrollments.get(enrollment_id, for_update=True)
        if enrollment is None:
            raise NotFoundError("Payment not found")
        if enrollment.payment_status == PaymentStatus.refunded:
            raise BusinessRuleError("Payment already refunded")

        enrollment.payment_status = PaymentStatus.refunded
        enrollment.notes = f"Refunded: {reason or 'Admin refund'} - Processed at {now.isoformat()}"

        course = await self._courses.get(enrollment.course_id, for_update=True)
        if course is not None:
            course.enrollment_count = max(0, (course.enrollment_count or 0) - 1)
            await self._users.adjust_instructor_stats(
                course.instructor_id,
                students=-1,
                revenue=-(enrollment.instructor_earning or Decimal("0")),
            )
        await self._session.flush()

        log.info(
            "payment_refunded",
            enrollment_id=str(enrollment.id),
            amount=str(enrollment.payment_amount),
            instructor_earning_reversed=str(enrollment.instructor_earning),
        )
        return RefundResult(
            enrollment=enrollment,
            refund_amount=to_money(refund_amount) if refund_amount is not None
            else to_money(enrollment.payment_amount),
            reason=reason,
            processed_at=now,
        )

    async def _owned(self, student: User, enrollment_id: uuid.UUID) -> Enrollment:
        enrollment = await self._enrollments.get_for_student(enrollment_id, student.id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found")
        return enrollment

    async def get_owned(self, *, student: User, enrollment_id: uuid.UUID) -> Enrollment:
        return await self._owned(student, enrollment_id)

    async def complete_lesson(
        self,
        *,
        student: User,
        enrollment_id: uuid.UUID,
        lesson_id: str,
        watch_time: int | None,
        now: datetime,
    ) -> Enrollment:
        enrollment = await self._owned(student, enrollment_id)
        if enrollment.payment_status == PaymentStatus.refunded:
            raise BusinessRuleError("Enrollment has been refunded")
        course = enrollment.course
        if find_lesson(course.chapters or [], lesson_id) is None:
            raise NotFoundError("Lesson not found")

        was_completed = enrollment.is_completed
        record_lesson_completion(
            enrollment,
            lesson_id=lesson_id,
            watch_time=watch_time,
            total_lessons=course.total_lessons,
            now=now,
        )
        await self._session.flush()
        if enrollment.is_completed and not was_completed:
            log.info("course_completed", enrollment_id=str(enrollment.id), course_id=str(course.id))
        return enrollment

    async def touch_lesson(
        self,
        *,
        student: User,
        enrollment_id: uuid.UUID,
        chapter_id: str,
        lesson_id: str,
        now: datetime,
    ) -> Enrollment:
        enrollment = await self._owned(student, enrollment_id)
        enrollment.last_accessed_lesson = {
            "chapter_id": chapter_id,
            "lesson_id": lesson_id,
            "accessed_at": now.isoformat(),
        }
        await self._session.flush()
        return enrollment

    async def course_progress(self, *, student: User, course_id: uuid.UUID) -> dict[str, Any]:
        enrollment = await self._enrollments.find(student_id=student.id, course_id=course_id)
        if enrollment is None:
            raise NotFoundError("Not enrolled in this course")
        completed_ids = {str(e.get("lesson_id")) for e in enrollment.completed_lessons or []}
        return {
            "enrollment": {
                "id": str(enrollment.id),
                "progress": enrollment.progress,
                "is_completed": enrollment.is_completed,
                "total_watch_time": enrollment.total_watch_time,
                "last_accessed_lesson": enrollment.last_accessed_lesson,
            },
            "progress_by_chapter": chapter_progress(enrollment.course.chapters or [], completed_ids),
        }

    # --- wishlist / cart ---------------------------------------------------

    async def _listable_course(self, student: User, course_id: uuid.UUID, label: str) -> Course:
        course = await self._courses.get(course_id)
        if course is None:
            raise NotFoundError("Course not found")
        if await self._enrollments.find(student_id=student.id, course_id=course_id) is not None:
            raise BusinessRuleError(f"Cannot add enrolled course to {label}")
        return course

    async def add_to_wishlist(self, *, student: User, course_id: uuid.UUID) -> list[str]:
        if str(course_id) in (student.wishlist or []):
            raise ConflictError("Course already in wishlist")
        await self._listable_course(student, course_id, "wishlist")
        student.wishlist = [*(student.wishlist or []), str(course_id)]
        await self._session.flush()
        return student.wishlist

    async def remove_from_wishlist(self, *, student: User, course_id: uuid.UUID) -> list[str]:
        student.wishlist = [c for c in student.wishlist or [] if c != str(course_id)]
        await self._session.flush()
        return student.wishlist

    async def add_to_cart(
        self, *, student: User, course_id: uuid.UUID, now: datetime
    ) -> list[dict[str, Any]]:
        if any(item.get("course_id") == str(course_id) for item in student.cart or []):
            raise ConflictError("Course already in cart")
        await self._listable_course(student, course_id, "cart")
        student.cart = [
            *(student.cart or []),
            {"course_id": str(course_id), "added_at": now.isoformat()},
        ]
        await self._session.flush()
        return student.cart

    async def remove_from_cart(self, *, student: User, course_id: uuid.UUID) -> list[dict[str, Any]]:
        student.cart = [i for i in student.cart or [] if i.get("course_id") != str(course_id)]
        await self._session.flush()
        return student.cart

    @staticmethod
    def _drop_from_lists(student: User, course_id: uuid.UUID) -> None:
        key = str(course_id)
        if key in (student.wishlist or []):
            student.wishlist = [c for c in student.wishlist if c != key]
        if any(i.get("course_id") == key for i in student.cart or []):
            student.cart = [i for i in student.cart if i.get("course_id") != key]


async def release_enrollment_counters(
    session: AsyncSession,
    *,
    course_id: uuid.UUID | None = None,
    student_id: uuid.UUID | None = None,
) -> None:
    """
    Reverse what paid enrollments added to course and instructor counters.

    Called right before the enrollments are removed by a cascading delete, so the
    counters agree with the rows that remain.
    """
    courses = CourseRepo(session)
    users = UserRepo(session)
    rows = await EnrollmentRepo(session).paid_by_course(course_id=course_id, student_id=student_id)
    for cid, instructor_id, count, earned in rows:
        course = await courses.get(cid, for_update=True)
        if course is not None:
            course.enrollment_count = max(0, (course.enrollment_count or 0) - count)
        await users.adjust_instructor_stats(instructor_id, students=-count, revenue=-earned)
    await session.flush()
    if rows:
        log.info(
            "enrollment_counters_released",
            course_id=str(course_id) if course_id else None,
            student_id=str(student_id) if student_id else None,
            enrollments=sum(r[2] for r in rows),
        )


# --- Module Notes -----------------------------------------------------------
# enroll/refund touch enrollments, courses, users and discounts; none of those writes is
# committed here. The calling router commits once, so a failure anywhere leaves no
# partial state behind.
