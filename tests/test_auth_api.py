"""
tests.test_auth_api

Registration, login and profile flows over HTTP.
"""

from __future__ import annotations

import pytest

from conftest import PASSWORD, bearer, register_student


@pytest.mark.asyncio
async def test_register_returns_token_and_public_profile(client) -> None:
    r = await client.post(
        "/api/auth/register",
        json={"first_name": "Sam", "last_name": "Student", "email": "Sam@Example.com", "password": PASSWORD},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["token"]
    assert body["user"]["email"] == "sam@example.com"
    assert body["user"]["role"] == "student"
    assert "password_hash" not in body["user"]
    assert "instructor_profile" not in body["user"]


@pytest.mark.asyncio
async def test_duplicate_email_rejected(client) -> None:
    await register_student(client, "dup@example.com")
    r = await client.post(
        "/api/auth/register",
        json={"first_name": "Sam", "last_name": "Again", "email": "dup@example.com", "password": PASSWORD},
    )
    assert r.status_code == 400
    assert r.json()["message"] == "User already exists with this email"


@pytest.mark.asyncio
async def test_weak_password_is_a_validation_error(client) -> None:
    r = await client.post(
        "/api/auth/register",
        json={"first_name": "Sam", "last_name": "Student", "email": "weak@example.com", "password": "abc"},
    )
    assert r.status_code == 400
    body = r.json()
    assert body["message"] == "Validation failed"
    assert any(e["field"] == "password" for e in body["errors"])


@pytest.mark.asyncio
async def test_cannot_self_register_as_admin(client) -> None:
    r = await client.post(
        "/api/auth/register",
        json={
            "first_name": "Eve",
            "last_name": "Sneaky",
            "email": "eve@example.com",
            "password": PASSWORD,
            "role": "admin",
        },
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_login_and_bad_password(client) -> None:
    await register_student(client, "sam@example.com")
    r = await client.post("/api/auth/login", json={"email": "sam@example.com", "password": PASSWORD})
    assert r.status_code == 200
    assert r.json()["user"]["last_login"] is not None

    r = await client.post("/api/auth/login", json={"email": "sam@example.com", "password": "Wrong123"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid email or password"

    r = await client.post("/api/auth/login", json={"email": "nobody@example.com", "password": PASSWORD})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_unapproved_instructor_cannot_log_in(client) -> None:
    r = await client.post(
        "/api/auth/instructor/register",
        json={"first_name": "Ivy", "last_name": "Instructor", "email": "ivy@example.com", "password": PASSWORD},
    )
    assert r.status_code == 201
    assert "token" not in r.json()

    r = await client.post("/api/auth/instructor/login", json={"email": "ivy@example.com", "password": PASSWORD})
    assert r.status_code == 403
    assert r.json()["is_approved"] is False


@pytest.mark.asyncio
async def test_unapproved_instructor_blocked_on_generic_login(client) -> None:
    r = await client.post(
        "/api/auth/instructor/register",
        json={"first_name": "Ivy", "last_name": "Instructor", "email": "ivy@example.com", "password": PASSWORD},
    )
    assert r.status_code == 201

    r = await client.post("/api/auth/login", json={"email": "ivy@example.com", "password": PASSWORD})
    assert r.status_code == 403
    assert r.json()["is_approved"] is False
    assert "token" not in r.json()


@pytest.mark.asyncio
async def test_self_registered_instructor_gets_no_token(client, admin) -> None:
    r = await client.post(
        "/api/auth/register",
        json={
            "first_name": "Ian",
            "last_name": "Teacher",
            "email": "ian@example.com",
            "password": PASSWORD,
            "role": "instructor",
        },
    )
    assert r.status_code == 201
    assert "token" not in r.json()
    assert r.json()["user"]["role"] == "instructor"

    r = await client.post("/api/auth/login", json={"email": "ian@example.com", "password": PASSWORD})
    assert r.status_code == 403

    r = await client.get("/api/admin/instructors/pending", headers=admin)
    assert "ian@example.com" in [u["email"] for u in r.json()["instructors"]]


@pytest.mark.asyncio
async def test_approved_instructor_logs_in(client, instructor) -> None:
    r = await client.get("/api/auth/profile", headers=instructor)
    assert r.status_code == 200
    profile = r.json()["user"]["instructor_profile"]
    assert profile["is_approved"] is True
    assert profile["approved_at"] is not None


@pytest.mark.asyncio
async def test_student_cannot_use_admin_login(client) -> None:
    await register_student(client, "sam@example.com")
    r = await client.post("/api/auth/admin/login", json={"email": "sam@example.com", "password": PASSWORD})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid admin credentials"


@pytest.mark.asyncio
async def test_profile_requires_token(client) -> None:
    r = await client.get("/api/auth/profile")
    assert r.status_code == 401
    r = await client.get("/api/auth/profile", headers=bearer("not-a-jwt"))
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_update_profile_ignores_role(client, student) -> None:
    r = await client.put(
        "/api/auth/profile", json={"bio": "Learner", "role": "admin"}, headers=student
    )
    assert r.status_code == 200
    assert r.json()["user"]["bio"] == "Learner"
    assert r.json()["user"]["role"] == "student"


@pytest.mark.asyncio
async def test_change_password(client, student) -> None:
    r = await client.put(
        "/api/auth/change-password",
        json={"current_password": "Wrong123", "new_password": "Another123"},
        headers=student,
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Current password is incorrect"

    r = await client.put(
        "/api/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "Another123"},
        headers=student,
    )
    assert r.status_code == 200
    r = await client.post("/api/auth/login", json={"email": "sam@example.com", "password": "Another123"})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_deactivated_user_is_locked_out(client, admin, student) -> None:
    r = await client.get("/api/admin/users", params={"search": "sam@"}, headers=admin)
    user_id = r.json()["users"][0]["id"]
    r = await client.put(f"/api/admin/users/{user_id}/status", json={"is_active": False}, headers=admin)
    assert r.status_code == 200

    r = await client.get("/api/auth/verify", headers=student)
    assert r.status_code == 401
    r = await client.post("/api/auth/login", json={"email": "sam@example.com", "password": PASSWORD})
    assert r.status_code == 401
    assert r.json()["message"] == "Account is deactivated"
