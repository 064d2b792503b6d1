"""
mentaro.api.routers.auth

Registration, login and profile endpoints.

Responsibilities:
- Student/instructor registration and role-specific logins returning a bearer token.
- Profile read/update, password change and token verification for the caller.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from mentaro.api import serializers
from mentaro.api.deps import db_session, settings_dep
from mentaro.auth.deps import get_principal
from mentaro.auth.models import Principal
from mentaro.auth.passwords import WEAK_PASSWORD, is_strong
from mentaro.clock import utcnow
from mentaro.db.models import UserRole
from mentaro.services.account_service import AccountService
from mentaro.settings import Settings

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _strong(value: str) -> str:
    if not is_strong(value):
        raise ValueError(WEAK_PASSWORD)
    return value


class RegisterRequest(BaseModel):
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    password: str
    role: UserRole = UserRole.student

    @field_validator("password")
    @classmethod
    def password_policy(cls, value: str) -> str:
        return _strong(value)


class InstructorRegisterRequest(BaseModel):
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    password: str
    bio: str = Field(default="", max_length=500)
    expertise: list[str] = Field(default_factory=list)

    @field_validator("password")
    @classmethod
    def password_policy(cls, value: str) -> str:
        return _strong(value)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ProfileUpdateRequest(BaseModel):
    first_name: str | None = Field(default=None, min_length=2, max_length=50)
    last_name: str | None = Field(default=None, min_length=2, max_length=50)
    bio: str | None = Field(default=None, max_length=500)
    avatar: str | None = Field(default=None, max_length=512)
    expertise: list[str] | None = None
    social_links: dict[str, str] | None = None


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def password_policy(cls, value: str) -> str:
        return _strong(value)


def _service(session: AsyncSession, settings: Settings) -> AccountService:
    return AccountService(session=session, settings=settings)


@router.post("/register", status_code=HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    result = await _service(session, settings).register(
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=body.password,
        role=body.role,
    )
    await session.commit()
    if result.token is None:
        return {
            "message": "Instructor registration successful. Awaiting admin approval.",
            "user": serializers.user_public(result.user),
        }
    return {
        "message": "User registered successfully",
        "token": result.token,
        "user": serializers.user_public(result.user),
    }


async def _login(
    body: LoginRequest,
    session: AsyncSession,
    settings: Settings,
    *,
    role: UserRole | None,
    message: str,
) -> dict[str, Any]:
    result = await _service(session, settings).login(
        email=body.email, password=body.password, now=utcnow(), role=role
    )
    await session.commit()
    return {
        "success": True,
        "message": message,
        "token": result.token,
        "user": serializers.user_public(result.user),
    }


@router.post("/login")
async def login(
    body: LoginRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    return await _login(body, session, settings, role=None, message="Login successful")


@router.post("/admin/login")
async def admin_login(
    body: LoginRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    return await _login(body, session, settings, role=UserRole.admin, message="Admin login successful")


@router.post("/instructor/register", status_code=HTTP_201_CREATED)
async def instructor_register(
    body: InstructorRegisterRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    await _service(session, settings).register_instructor(
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=body.password,
        bio=body.bio,
        expertise=body.expertise,
    )
    await session.commit()
    return {
        "success": True,
        "message": (
            "Instructor registration successful. Awaiting admin approval. "
            "You will be able to login once approved."
        ),
    }


@router.post("/instructor/login")
async def instructor_login(
    body: LoginRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    out = await _login(
        body, session, settings, role=UserRole.instructor, message="Instructor login successful"
    )
    out["is_approved"] = True
    return out


@router.get("/profile")
async def get_profile(principal: Principal = Depends(get_principal)) -> dict[str, Any]:
    return {
        "message": "Profile retrieved successfully",
        "user": serializers.user_public(principal.user),
    }


@router.put("/profile")
async def update_profile(
    body: ProfileUpdateRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    user = await _service(session, settings).update_profile(
        user=principal.user, changes=body.model_dump(exclude_none=True)
    )
    await session.commit()
    return {"message": "Profile updated successfully", "user": serializers.user_public(user)}


@router.put("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, str]:
    await _service(session, settings).change_password(
        user=principal.user, current=body.current_password, new=body.new_password
    )
    await session.commit()
    return {"message": "Password changed successfully"}


@router.get("/verify")
async def verify(principal: Principal = Depends(get_principal)) -> dict[str, Any]:
    return {"message": "Token is valid", "user": serializers.user_public(principal.user)}
