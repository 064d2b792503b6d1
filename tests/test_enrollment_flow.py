"""
tests.test_enrollment_flow

End-to-end enrollment: purchase, counters, progress, wishlist/cart and refunds.

Responsibilities:
- Enrollment updates course/instructor counters in the same transaction.
- Refunds reverse exactly what the enrollment added.
- Progress is derived from completed lessons and never goes backwards.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import course_payload, register_student


def money(value) -> Decimal:
    return Decimal(str(value))


async def _enroll(client, course_id: str, headers: dict[str, str], **details):
    return await client.post(
        f"/api/enrollments/enroll/{course_id}",
        json={"payment_details": {"payment_method": "credit_card", **details}},
        headers=headers,
    )


async def _instructor_profile(client, headers: dict[str, str]) -> dict:
    r = await client.get("/api/auth/profile", headers=headers)
    return r.json()["user"]["instructor_profile"]


@pytest.mark.asyncio
async def test_enroll_freezes_revenue_split_and_updates_counters(
    client, student, instructor, course
) -> None:
    r = await _enroll(client, course["id"], student)
    assert r.status_code == 201
    payment = r.json()["enrollment"]["payment_details"]
    assert money(payment["amount"]) == Decimal("100")
    assert payment["payment_status"] == "completed"
    assert payment["transaction_id"].startswith("txn_")

    r = await client.get(f"/api/courses/{course['id']}")
    assert r.json()["course"]["enrollment_count"] == 1

    profile = await _instructor_profile(client, instructor)
    assert profile["total_students"] == 1
    assert money(profile["total_revenue"]) == Decimal("90")


@pytest.mark.asyncio
async def test_duplicate_enrollment_rejected(client, student, course) -> None:
    assert (await _enroll(client, course["id"], student)).status_code == 201
    r = await _enroll(client, course["id"], student)
    assert r.status_code == 400
    assert r.json()["message"] == "Already enrolled in this course"


@pytest.mark.asyncio
async def test_free_method_requires_free_course(client, student, course) -> None:
    r = await _enroll(client, course["id"], student, payment_method="free")
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_cannot_enroll_in_unpublished_course(client, student, instructor) -> None:
    r = await client.post("/api/courses", json=course_payload(), headers=instructor)
    r = await _enroll(client, r.json()["course"]["id"], student)
    assert r.status_code == 400
    assert r.json()["message"] == "Course is not available for enrollment"


@pytest.mark.asyncio
async def test_only_students_enroll(client, instructor, course) -> None:
    r = await _enroll(client, course["id"], instructor)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_lesson_progress(client, student, course) -> None:
    r = await _enroll(client, course["id"], student)
    enrollment_id = r.json()["enrollment"]["id"]
    lessons = [lesson["id"] for ch in course["chapters"] for lesson in ch["lessons"]]

    r = await client.put(
        f"/api/enrollments/{enrollment_id}/lessons/{lessons[0]}/complete",
        json={"watch_time": 300},
        headers=student,
    )
    assert r.status_code == 200
    assert r.json()["progress"] == 33
    assert r.json()["is_completed"] is False

    r = await client.put(
        f"/api/enrollments/{enrollment_id}/lessons/does-not-exist/complete", headers=student
    )
    assert r.status_code == 404

    for lesson_id in lessons[1:]:
        r = await client.put(
            f"/api/enrollments/{enrollment_id}/lessons/{lesson_id}/complete", headers=student
        )
    assert r.json()["progress"] == 100
    assert r.json()["is_completed"] is True
    assert r.json()["total_watch_time"] == 300

    r = await client.get(f"/api/enrollments/progress/{course['id']}", headers=student)
    chapters = r.json()["progress_by_chapter"]
    assert [c["progress"] for c in chapters] == [100, 100]

    r = await client.get("/api/enrollments/my-enrollments", params={"status": "completed"}, headers=student)
    assert r.json()["pagination"]["total"] == 1
    r = await client.get("/api/enrollments/my-enrollments", params={"status": "not-started"}, headers=student)
    assert r.json()["pagination"]["total"] == 0


@pytest.mark.asyncio
async def test_last_accessed_lesson(client, student, course) -> None:
    r = await _enroll(client, course["id"], student)
    enrollment_id = r.json()["enrollment"]["id"]
    chapter = course["chapters"][1]
    r = await client.put(
        f"/api/enrollments/{enrollment_id}/last-accessed",
        json={"chapter_id": chapter["id"], "lesson_id": chapter["lessons"][0]["id"]},
        headers=student,
    )
    assert r.status_code == 200
    assert r.json()["last_accessed_lesson"]["chapter_id"] == chapter["id"]


@pytest.mark.asyncio
async def test_other_students_cannot_read_enrollment(client, student, course) -> None:
    r = await _enroll(client, course["id"], student)
    enrollment_id = r.json()["enrollment"]["id"]
    other = await register_student(client, "other@example.com")
    r = await client.get(f"/api/enrollments/details/{enrollment_id}", headers=other)
    assert r.status_code == 404
    r = await client.get(f"/api/enrollments/details/{enrollment_id}", headers=student)
    assert r.status_code == 200
    assert r.json()["enrollment"]["course"]["chapters"][0]["lessons"][1]["video_url"] == "v/loop"


@pytest.mark.asyncio
async def test_wishlist_and_cart(client, student, course) -> None:
    r = await client.post(f"/api/enrollments/wishlist/{course['id']}", headers=student)
    assert r.status_code == 201
    r = await client.post(f"/api/enrollments/wishlist/{course['id']}", headers=student)
    assert r.status_code == 400
    assert r.json()["message"] == "Course already in wishlist"

    r = await client.post(f"/api/enrollments/cart/{course['id']}", headers=student)
    assert r.status_code == 201
    r = await client.get("/api/enrollments/cart", headers=student)
    assert money(r.json()["total"]) == Decimal("100")
    assert len(r.json()["cart"]) == 1

    # Enrolling clears both lists.
    await _enroll(client, course["id"], student)
    r = await client.get("/api/enrollments/wishlist", headers=student)
    assert r.json()["wishlist"] == []
    r = await client.get("/api/enrollments/cart", headers=student)
    assert r.json()["cart"] == []

    r = await client.post(f"/api/enrollments/cart/{course['id']}", headers=student)
    assert r.status_code == 400
    assert r.json()["message"] == "Cannot add enrolled course to cart"


@pytest.mark.asyncio
async def test_refund_reverses_exactly_what_enrollment_added(
    client, admin, student, instructor, course
) -> None:
    r = await _enroll(client, course["id"], student)
    enrollment_id = r.json()["enrollment"]["id"]

    r = await client.post(
        f"/api/payments/admin/refund/{enrollment_id}", json={"reason": "Changed mind"}, headers=admin
    )
    assert r.status_code == 200
    refund = r.json()["refund"]
    assert money(refund["refund_amount"]) == Decimal("100")
    assert money(refund["instructor_earning_reversed"]) == Decimal("90")
    assert r.json()["payment"]["notes"].startswith("Refunded: Changed mind - Processed at ")

    profile = await _instructor_profile(client, instructor)
    assert profile["total_students"] == 0
    assert money(profile["total_revenue"]) == Decimal("0")
    r = await client.get(f"/api/courses/{course['id']}")
    assert r.json()["course"]["enrollment_count"] == 0

    r = await client.post(f"/api/payments/admin/refund/{enrollment_id}", headers=admin)
    assert r.status_code == 400
    assert r.json()["message"] == "Payment already refunded"

    r = await client.get("/api/enrollments/my-enrollments", headers=student)
    assert r.json()["pagination"]["total"] == 0

    r = await client.put(
        f"/api/enrollments/{enrollment_id}/lessons/{course['chapters'][0]['lessons'][0]['id']}/complete",
        headers=student,
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_refund_uses_amount_stored_at_payment_time(
    client, admin, student, instructor, course, settings
) -> None:
    r = await _enroll(client, course["id"], student)
    enrollment_id = r.json()["enrollment"]["id"]

    # A later change to the commission rate must not alter what gets reversed.
    settings.platform_commission_rate = Decimal("0.30")
    r = await client.post(f"/api/payments/admin/refund/{enrollment_id}", headers=admin)
    assert money(r.json()["refund"]["instructor_earning_reversed"]) == Decimal("90")
    profile = await _instructor_profile(client, instructor)
    assert money(profile["total_revenue"]) == Decimal("0")


@pytest.mark.asyncio
async def test_instructor_views(client, student, instructor, course) -> None:
    r = await _enroll(client, course["id"], student)
    enrollment_id = r.json()["enrollment"]["id"]
    lesson_id = course["chapters"][0]["lessons"][0]["id"]
    await client.put(f"/api/enrollments/{enrollment_id}/lessons/{lesson_id}/complete", headers=student)

    r = await client.get("/api/enrollments/instructor/enrollments", headers=instructor)
    assert r.status_code == 200
    assert r.json()["enrollments"][0]["student"]["email"] == "sam@example.com"

    r = await client.get("/api/enrollments/instructor/stats", headers=instructor)
    stats = r.json()["stats"]
    assert stats["total_enrollments"] == 1
    assert money(stats["total_revenue"]) == Decimal("100")
    assert money(stats["instructor_revenue"]) == Decimal("90")
    assert r.json()["course_stats"][0]["enrollments"] == 1


@pytest.mark.asyncio
async def test_admin_course_delete_releases_instructor_counters(
    client, admin, student, instructor, course
) -> None:
    assert (await _enroll(client, course["id"], student)).status_code == 201
    other = await register_student(client, "olga@example.com")
    assert (await _enroll(client, course["id"], other)).status_code == 201

    profile = await _instructor_profile(client, instructor)
    assert profile["total_students"] == 2
    assert profile["total_courses"] == 1

    r = await client.delete(f"/api/courses/{course['id']}", headers=admin)
    assert r.status_code == 200

    profile = await _instructor_profile(client, instructor)
    assert profile["total_students"] == 0
    assert money(profile["total_revenue"]) == Decimal("0")
    assert profile["total_courses"] == 0


@pytest.mark.asyncio
async def test_admin_user_delete_releases_enrollment_counters(
    client, admin, student, instructor, course
) -> None:
    assert (await _enroll(client, course["id"], student)).status_code == 201
    other = await register_student(client, "olga@example.com")
    assert (await _enroll(client, course["id"], other)).status_code == 201

    r = await client.get("/api/admin/users", params={"search": "sam@"}, headers=admin)
    sam_id = r.json()["users"][0]["id"]
    r = await client.delete(f"/api/admin/users/{sam_id}", headers=admin)
    assert r.status_code == 200

    r = await client.get(f"/api/courses/{course['id']}")
    assert r.json()["course"]["enrollment_count"] == 1
    profile = await _instructor_profile(client, instructor)
    assert profile["total_students"] == 1
    assert money(profile["total_revenue"]) == Decimal("90")

    r = await client.get("/api/enrollments/instructor/stats", headers=instructor)
    assert money(r.json()["stats"]["instructor_revenue"]) == Decimal("90")
