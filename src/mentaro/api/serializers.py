"""
mentaro.api.serializers

ORM row -> JSON-ready dict shaping.

Responsibilities:
- Public user profile (never the password hash).
- Course, enrollment, payment and discount representations shared by routers.
"""

from __future__ import annotations

from typing import Any

from mentaro.db.models import Course, Discount, Enrollment, User
from mentaro.db.pagination import Page
from mentaro.domain.money import to_money


def user_public(user: User) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "full_name": user.full_name,
        "email": user.email,
        "role": user.role,
        "avatar": user.avatar,
        "bio": user.bio,
        "expertise": user.expertise or [],
        "social_links": user.social_links or {},
        "is_active": user.is_active,
        "is_email_verified": user.is_email_verified,
        "last_login": user.last_login,
        "wishlist": user.wishlist or [],
        "cart": user.cart or [],
        "created_at": user.created_at,
        "updated_at": user.updated_at,
    }
    if user.is_approved is not None:
        out["instructor_profile"] = {
            "is_approved": user.is_approved,
            "approved_at": user.approved_at,
            "total_students": user.total_students,
            "total_courses": user.total_courses,
            "total_revenue": to_money(user.total_revenue),
        }
    return out


def user_brief(user: User | None) -> dict[str, Any] | None:
    if user is None:
        return None
    return {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "email": user.email,
        "avatar": user.avatar,
    }


def course_summary(course: Course) -> dict[str, Any]:
    return {
        "id": course.id,
        "title": course.title,
        "short_description": course.short_description,
        "category": course.category,
        "level": course.level,
        "language": course.language,
        "price": to_money(course.price),
        "original_price": to_money(course.original_price) if course.original_price is not None else None,
        "thumbnail": course.thumbnail,
        "status": course.status,
        "is_published": course.is_published,
        "total_duration": course.total_duration,
        "total_lessons": course.total_lessons,
        "rating_average": course.rating_average,
        "rating_count": course.rating_count,
        "enrollment_count": course.enrollment_count,
        "instructor": user_brief(course.instructor),
        "created_at": course.created_at,
    }


def course_detail(course: Course, *, include_content: bool = True) -> dict[str, Any]:
    out = course_summary(course)
    out.update(
        {
            "description": course.description,
            "subcategory": course.subcategory,
            "preview_video": course.preview_video,
            "requirements": course.requirements or [],
            "objectives": course.objectives or [],
            "tags": course.tags or [],
            "reviews": course.reviews or [],
            "admin_notes": course.admin_notes,
            "published_at": course.published_at,
            "updated_at": course.updated_at,
        }
    )
    if include_content:
        out["chapters"] = course.chapters or []
    else:
        # Outsiders see the outline; only preview lessons keep their video URL.
        out["chapters"] = [
            {
                **chapter,
                "lessons": [
                    lesson if lesson.get("is_preview") else {**lesson, "video_url": "", "resources": []}
                    for lesson in chapter.get("lessons") or []
                ],
            }
            for chapter in course.chapters or []
        ]
    return out


def enrollment(e: Enrollment, *, with_course: bool = True) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": e.id,
        "student_id": e.student_id,
        "course_id": e.course_id,
        "enrolled_at": e.enrolled_at,
        "progress": e.progress,
        "completed_lessons": e.completed_lessons or [],
        "last_accessed_lesson": e.last_accessed_lesson,
        "is_completed": e.is_completed,
        "completed_at": e.completed_at,
        "certificate_issued": e.certificate_issued,
        "total_watch_time": e.total_watch_time,
        "payment_details": payment_details(e),
        "created_at": e.created_at,
    }
    if with_course and e.course is not None:
        out["course"] = course_summary(e.course)
    return out


def payment_details(e: Enrollment) -> dict[str, Any]:
    return {
        "amount": to_money(e.payment_amount),
        "currency": e.payment_currency,
        "payment_method": e.payment_method,
        "transaction_id": e.transaction_id,
        "payment_status": e.payment_status,
        "discount_applied": (
            {
                "code": e.discount_code,
                "percentage": e.discount_percentage,
                "amount": to_money(e.discount_amount),
            }
            if e.discount_code
            else None
        ),
    }


def payment(e: Enrollment) -> dict[str, Any]:
    discount = to_money(e.discount_amount)
    course = e.course
    return {
        "id": e.id,
        "user": user_brief(e.student),
        "course": (
            {"id": course.id, "title": course.title, "price": to_money(course.price)}
            if course is not None
            else None
        ),
        "instructor": user_brief(course.instructor) if course is not None else None,
        "amount": to_money(e.payment_amount),
        "original_amount": to_money(e.payment_amount) + discount,
        "discount_applied": discount,
        "discount_code": e.discount_code,
        "platform_commission": to_money(e.platform_commission),
        "instructor_earning": to_money(e.instructor_earning),
        "payment_method": e.payment_method,
        "transaction_id": e.transaction_id,
        "currency": e.payment_currency,
        "payment_status": e.payment_status,
        "notes": e.notes,
        "created_at": e.created_at,
        "updated_at": e.updated_at,
    }


def discount(d: Discount) -> dict[str, Any]:
    return {
        "id": d.id,
        "code": d.code,
        "description": d.description,
        "type": d.type,
        "value": d.value,
        "min_order_amount": to_money(d.min_order_amount),
        "max_discount_amount": (
            to_money(d.max_discount_amount) if d.max_discount_amount is not None else None
        ),
        "usage_limit": d.usage_limit,
        "used_count": d.used_count,
        "is_active": d.is_active,
        "valid_from": d.valid_from,
        "valid_until": d.valid_until,
        "applicable_to_all": d.applicable_to_all,
        "applicable_courses": d.applicable_courses or [],
        "created_by": d.created_by_id,
        "created_by_role": d.created_by_role,
        "created_at": d.created_at,
    }


def pagination(page: Page) -> dict[str, Any]:
    return page.meta()
