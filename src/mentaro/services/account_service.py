"""
mentaro.services.account_service

Accounts: registration, login, profile and admin user management.

Responsibilities:
- Register students/instructors and issue session tokens.
- Role-specific logins with the instructor approval gate.
- Profile edits and password changes.
- Admin operations on users (status, edit, delete, instructor approval, admin bootstrap).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from mentaro.auth.jwt import JwtConfig, issue_token
from mentaro.auth.passwords import hash_password, verify_password
from mentaro.db.models import User, UserRole
from mentaro.db.repositories.users import UserRepo
from mentaro.errors import (
    AuthenticationError,
    BusinessRuleError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
)
from mentaro.observability.logging import get_logger
from mentaro.services.enrollment_service import release_enrollment_counters
from mentaro.settings import Settings

log = get_logger(__name__)

_PROFILE_FIELDS = frozenset({"first_name", "last_name", "bio", "avatar", "expertise", "social_links"})


@dataclass(frozen=True, slots=True)
class LoginResult:
    user: User
    # None while the account still waits for instructor approval.
    token: str | None


class AccountService:
    def __init__(self, *, session: AsyncSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings
        self._users = UserRepo(session)

    def _token(self, user: User) -> str:
        return issue_token(
            cfg=JwtConfig.from_settings(self._settings), user_id=str(user.id), role=str(user.role)
        )

    async def _create(self, *, email: str, password: str, **fields: Any) -> User:
        if await self._users.email_taken(email):
            raise ConflictError("User already exists with this email")
        user = await self._users.create(
            email=email,
            password_hash=hash_password(password, rounds=self._settings.bcrypt_rounds),
            **fields,
        )
        log.info("user_registered", user_id=str(user.id), role=str(user.role))
        return user

    async def register(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        role: UserRole = UserRole.student,
    ) -> LoginResult:
        if role == UserRole.admin:
            raise ForbiddenError("Cannot self-register as admin")
        user = await self._create(
            first_name=first_name, last_name=last_name, email=email, password=password, role=role
        )
        if _awaiting_approval(user):
            return LoginResult(user=user, token=None)
        return LoginResult(user=user, token=self._token(user))

    async def register_instructor(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        bio: str = "",
        expertise: list[str] | None = None,
    ) -> User:
        # No token: the account cannot log in until an admin approves it.
        return await self._create(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password=password,
            role=UserRole.instructor,
            bio=bio,
            expertise=expertise,
        )

    async def create_admin(
        self, *, first_name: str, last_name: str, email: str, password: str
    ) -> User:
        return await self._create(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password=password,
            role=UserRole.admin,
            is_email_verified=True,
        )

    async def login(
        self,
        *,
        email: str,
        password: str,
        now: datetime,
        role: UserRole | None = None,
    ) -> LoginResult:
        user = await self._users.get_by_email(email, role=role)
        if user is None:
            raise AuthenticationError(_invalid_credentials(role))
        if not user.is_active:
            raise AuthenticationError(_deactivated(role))
        if not verify_password(password, user.password_hash):
            raise AuthenticationError(_invalid_credentials(role))
        if _awaiting_approval(user):
            raise ForbiddenError(
                "Your instructor account is pending admin approval. "
                "Please wait for approval before logging in.",
                extra={"is_approved": False},
            )

        user.last_login = now
        await self._session.flush()
        log.info("user_logged_in", user_id=str(user.id), role=str(user.role))
        return LoginResult(user=user, token=self._token(user))

    async def update_profile(self, *, user: User, changes: dict[str, Any]) -> User:
        return await self._users.apply(
            user, {k: v for k, v in changes.items() if k in _PROFILE_FIELDS}
        )

    async def change_password(self, *, user: User, current: str, new: str) -> None:
        if not verify_password(current, user.password_hash):
            raise BusinessRuleError("Current password is incorrect")
        user.password_hash = hash_password(new, rounds=self._settings.bcrypt_rounds)
        await self._session.flush()
        log.info("password_changed", user_id=str(user.id))

    # --- admin -------------------------------------------------------------

    async def _get(self, user_id: uuid.UUID) -> User:
        user = await self._users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def set_status(self, *, user_id: uuid.UUID, is_active: bool) -> User:
        user = await self._get(user_id)
        user.is_active = is_active
        await self._session.flush()
        log.info("user_status_changed", target_user_id=str(user.id), is_active=is_active)
        return user

    async def admin_update(self, *, user_id: uuid.UUID, changes: dict[str, Any]) -> User:
        email = changes.get("email")
        if email and await self._users.email_taken(email, exclude_id=user_id):
            raise ConflictError("Email already exists")
        user = await self._get(user_id)
        allowed = {k: v for k, v in changes.items() if k in {"first_name", "last_name"} and v}
        if email:
            allowed["email"] = email.lower()
        return await self._users.apply(user, allowed)

    async def delete(self, *, user_id: uuid.UUID) -> None:
        user = await self._get(user_id)
        if user.role == UserRole.admin:
            raise ForbiddenError("Cannot delete admin users")
        await release_enrollment_counters(self._session, student_id=user.id)
        await self._users.delete(user)
        log.info("user_deleted", target_user_id=str(user_id))

    async def _instructor(self, user_id: uuid.UUID) -> User:
        user = await self._users.get(user_id)
        if user is None or user.role != UserRole.instructor:
            raise NotFoundError("Instructor not found")
        return user

    async def approve_instructor(self, *, user_id: uuid.UUID, now: datetime) -> User:
        user = await self._instructor(user_id)
        user.is_approved = True
        user.approved_at = now
        await self._session.flush()
        log.info("instructor_approved", target_user_id=str(user.id))
        return user

    async def reject_instructor(self, *, user_id: uuid.UUID, reason: str | None) -> User:
        user = await self._instructor(user_id)
        user.role = UserRole.student
        user.is_approved = None
        user.approved_at = None
        user.total_students = 0
        user.total_courses = 0
        user.total_revenue = Decimal("0")
        if reason:
            user.admin_notes = reason
        await self._session.flush()
        log.info("instructor_rejected", target_user_id=str(user.id))
        return user


def _awaiting_approval(user: User) -> bool:
    return user.role == UserRole.instructor and not user.is_approved


def _deactivated(role: UserRole | None) -> str:
    if role is None or role == UserRole.student:
        return "Account is deactivated"
    return f"{str(role).capitalize()} account is deactivated"


def _invalid_credentials(role: UserRole | None) -> str:
    if role is None or role == UserRole.student:
        return "Invalid email or password"
    return f"Invalid {role} credentials"


# --- Module Notes -----------------------------------------------------------
# Login failures never reveal whether the email exists; the same message covers an
# unknown email and a wrong password.
