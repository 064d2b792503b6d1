"""
mentaro.db.models

Persistence schema for the marketplace.

Responsibilities:
- Define ORM models for the four collections:
  - User: identity, role, credentials, instructor profile + aggregate stats, wishlist/cart
  - Course: catalog entry with nested chapters/lessons and reviews, moderation status
  - Enrollment: student x course join carrying the payment snapshot and progress
  - Discount: time- and usage-bounded coupon
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid as SAUuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mentaro.clock import utcnow
from mentaro.db.base import Base


class UserRole(enum.StrEnum):
    student = "student"
    instructor = "instructor"
    admin = "admin"


class CourseStatus(enum.StrEnum):
    draft = "draft"
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    archived = "archived"


class CourseLevel(enum.StrEnum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


class CourseCategory(enum.StrEnum):
    web_development = "web-development"
    mobile_development = "mobile-development"
    data_science = "data-science"
    machine_learning = "machine-learning"
    design = "design"
    business = "business"
    marketing = "marketing"
    photography = "photography"
    music = "music"
    language = "language"
    programming = "programming"
    other = "other"


class PaymentMethod(enum.StrEnum):
    credit_card = "credit_card"
    debit_card = "debit_card"
    paypal = "paypal"
    stripe = "stripe"
    free = "free"


class PaymentStatus(enum.StrEnum):
    pending = "pending"
    completed = "completed"
    failed = "failed"
    refunded = "refunded"


class DiscountType(enum.StrEnum):
    percentage = "percentage"
    fixed = "fixed"


def _enum(cls: type[enum.Enum]) -> Enum:
    # Store the lowercase values (API contract), not member names.
    return Enum(cls, values_callable=lambda e: [m.value for m in e], native_enum=False)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        _enum(UserRole), nullable=False, default=UserRole.student, index=True
    )

    avatar: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    bio: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    expertise: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    social_links: Mapped[dict[str, str]] = mapped_column(JSON, nullable=False, default=dict)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_login: Mapped[datetime | None] = mapped_column(nullable=True)

    # Course ids (str) and {"course_id", "added_at"} entries.
    wishlist: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    cart: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    # Instructor profile; `is_approved` is NULL for accounts that never applied.
    is_approved: Mapped[bool | None] = mapped_column(Boolean, nullable=True, index=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    total_students: Mapped[int] = mapped_column(nullable=False, default=0)
    total_courses: Mapped[int] = mapped_column(nullable=False, default=0)
    total_revenue: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    instructor_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(2000), nullable=False)
    short_description: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    category: Mapped[CourseCategory] = mapped_column(
        _enum(CourseCategory), nullable=False, index=True
    )
    subcategory: Mapped[str | None] = mapped_column(String(100), nullable=True)
    level: Mapped[CourseLevel] = mapped_column(_enum(CourseLevel), nullable=False, index=True)
    language: Mapped[str] = mapped_column(String(50), nullable=False, default="English")

    price: Mapped[Decimal] = mapped_column(nullable=False)
    original_price: Mapped[Decimal | None] = mapped_column(nullable=True)
    thumbnail: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    preview_video: Mapped[str] = mapped_column(String(512), nullable=False, default="")

    # Nested document parts. Always reassign (never mutate in place) so changes are flushed.
    chapters: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    reviews: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    requirements: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    objectives: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    status: Mapped[CourseStatus] = mapped_column(
        _enum(CourseStatus), nullable=False, default=CourseStatus.draft, index=True
    )
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    published_at: Mapped[datetime | None] = mapped_column(nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    # Denormalized from `chapters` / `reviews` by `domain.catalog.recompute_aggregates`.
    total_duration: Mapped[int] = mapped_column(nullable=False, default=0)
    total_lessons: Mapped[int] = mapped_column(nullable=False, default=0)
    rating_average: Mapped[float] = mapped_column(nullable=False, default=0.0)
    rating_count: Mapped[int] = mapped_column(nullable=False, default=0)

    enrollment_count: Mapped[int] = mapped_column(nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)

    instructor: Mapped[User] = relationship(lazy="selectin")


class Enrollment(Base):
    __tablename__ = "enrollments"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    course_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    enrolled_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)

    # Progress state
    progress: Mapped[int] = mapped_column(nullable=False, default=0)
    completed_lessons: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    last_accessed_lesson: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    certificate_issued: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    total_watch_time: Mapped[int] = mapped_column(nullable=False, default=0)

    # Payment snapshot
    payment_amount: Mapped[Decimal] = mapped_column(nullable=False)
    payment_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    payment_method: Mapped[PaymentMethod] = mapped_column(_enum(PaymentMethod), nullable=False)
    transaction_id: Mapped[str] = mapped_column(String(128), nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        _enum(PaymentStatus), nullable=False, default=PaymentStatus.completed, index=True
    )
    discount_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    discount_percentage: Mapped[Decimal | None] = mapped_column(nullable=True)
    discount_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    # Split frozen at payment time; a refund reverses exactly these figures.
    platform_commission: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    instructor_earning: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)

    student: Mapped[User] = relationship(lazy="selectin")
    course: Mapped[Course] = relationship(lazy="selectin")

    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_enrollments_student_course"),
        Index("ix_enrollments_course_created", "course_id", "created_at"),
    )


class Discount(Base):
    __tablename__ = "discounts"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    type: Mapped[DiscountType] = mapped_column(_enum(DiscountType), nullable=False)
    value: Mapped[Decimal] = mapped_column(nullable=False)
    min_order_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    max_discount_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    usage_limit: Mapped[int | None] = mapped_column(nullable=True)
    used_count: Mapped[int] = mapped_column(nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    valid_from: Mapped[datetime] = mapped_column(nullable=False)
    valid_until: Mapped[datetime] = mapped_column(nullable=False)

    applicable_to_all: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    applicable_courses: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    created_by_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_by_role: Mapped[UserRole] = mapped_column(
        _enum(UserRole), nullable=False, default=UserRole.admin
    )

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)


# --- Module Notes -----------------------------------------------------------
# JSON columns hold the nested parts of a row (chapters, reviews, wishlist, cart).
# Reports aggregate over Enrollment rows; User.total_* are convenience counters kept in
# step by `services.enrollment_service` inside the same transaction.
