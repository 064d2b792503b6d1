"""
tests.conftest

Shared fixtures for API-level tests.

Responsibilities:
- Boot a fresh app per test against a throwaway SQLite file.
- Provide an httpx client bound to the ASGI app.
- Provide ready-made actors (admin, approved instructor, student) and a live course.
"""

from __future__ import annotations

from typing import Any

import httpx
import pytest
import pytest_asyncio

from mentaro.api.app import create_app
from mentaro.services.account_service import AccountService
from mentaro.settings import Settings

PASSWORD = "Secret123"


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'mentaro-test.db'}",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def app(settings: Settings):
    app = create_app(settings=settings)
    # httpx ASGITransport does not manage lifespan automatically; do it explicitly.
    await app.router.startup()
    try:
        yield app
    finally:
        await app.router.shutdown()


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def register_student(client: httpx.AsyncClient, email: str) -> dict[str, str]:
    r = await client.post(
        "/api/auth/register",
        json={"first_name": "Sam", "last_name": "Student", "email": email, "password": PASSWORD},
    )
    assert r.status_code == 201, r.text
    return bearer(r.json()["token"])


async def register_instructor(
    client: httpx.AsyncClient, admin: dict[str, str], email: str
) -> dict[str, str]:
    r = await client.post(
        "/api/auth/instructor/register",
        json={
            "first_name": "Ivy",
            "last_name": "Instructor",
            "email": email,
            "password": PASSWORD,
            "bio": "Teaches things",
            "expertise": ["python"],
        },
    )
    assert r.status_code == 201, r.text

    r = await client.get("/api/admin/instructors/pending", headers=admin)
    pending = [u for u in r.json()["instructors"] if u["email"] == email]
    r = await client.put(f"/api/admin/instructors/{pending[0]['id']}/approve", headers=admin)
    assert r.status_code == 200, r.text

    r = await client.post("/api/auth/instructor/login", json={"email": email, "password": PASSWORD})
    assert r.status_code == 200, r.text
    return bearer(r.json()["token"])


def course_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "title": "Async Python in Practice",
        "description": "Event loops, tasks and structured concurrency from the ground up.",
        "category": "programming",
        "level": "intermediate",
        "price": 100,
        "tags": ["python", "asyncio"],
        "chapters": [
            {
                "title": "Foundations",
                "lessons": [
                    {"title": "Intro", "duration": 10, "is_preview": True, "video_url": "v/intro"},
                    {"title": "Event loop", "duration": 20, "video_url": "v/loop"},
                ],
            },
            {
                "title": "Tasks",
                "lessons": [{"title": "Gather", "duration": 15, "video_url": "v/gather"}],
            },
        ],
    }
    payload.update(overrides)
    return payload


async def live_course(
    client: httpx.AsyncClient,
    instructor: dict[str, str],
    admin: dict[str, str],
    **overrides: Any,
) -> dict[str, Any]:
    r = await client.post("/api/courses", json=course_payload(**overrides), headers=instructor)
    assert r.status_code == 201, r.text
    course_id = r.json()["course"]["id"]
    r = await client.put(f"/api/courses/{course_id}/submit", headers=instructor)
    assert r.status_code == 200, r.text
    r = await client.put(f"/api/admin/courses/{course_id}/approve", headers=admin)
    assert r.status_code == 200, r.text
    r = await client.get(f"/api/courses/{course_id}", headers=instructor)
    return r.json()["course"]


@pytest_asyncio.fixture
async def admin(app, settings: Settings, client: httpx.AsyncClient) -> dict[str, str]:
    async with app.state.sessionmaker() as session:
        await AccountService(session=session, settings=settings).create_admin(
            first_name="Ada", last_name="Admin", email="admin@example.com", password=PASSWORD
        )
        await session.commit()
    r = await client.post(
        "/api/auth/admin/login", json={"email": "admin@example.com", "password": PASSWORD}
    )
    assert r.status_code == 200, r.text
    return bearer(r.json()["token"])


@pytest_asyncio.fixture
async def instructor(client: httpx.AsyncClient, admin: dict[str, str]) -> dict[str, str]:
    return await register_instructor(client, admin, "ivy@example.com")


@pytest_asyncio.fixture
async def student(client: httpx.AsyncClient) -> dict[str, str]:
    return await register_student(client, "sam@example.com")


@pytest_asyncio.fixture
async def course(
    client: httpx.AsyncClient, instructor: dict[str, str], admin: dict[str, str]
) -> dict[str, Any]:
    return await live_course(client, instructor, admin)
