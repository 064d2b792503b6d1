"""
tests.test_courses_api

Catalog visibility, authoring and moderation over HTTP.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import course_payload, live_course, register_instructor, register_student


@pytest.mark.asyncio
async def test_new_course_is_a_hidden_draft(client, instructor, student) -> None:
    r = await client.post("/api/courses", json=course_payload(), headers=instructor)
    assert r.status_code == 201
    course = r.json()["course"]
    assert course["status"] == "draft"
    assert course["total_lessons"] == 3
    assert course["total_duration"] == 45
    assert [c["order"] for c in course["chapters"]] == [1, 2]

    r = await client.get("/api/courses")
    assert r.json()["pagination"]["total"] == 0

    r = await client.get(f"/api/courses/{course['id']}", headers=student)
    assert r.status_code == 403
    r = await client.get(f"/api/courses/{course['id']}", headers=instructor)
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_course_validation(client, instructor) -> None:
    r = await client.post("/api/courses", json=course_payload(title="Tiny"), headers=instructor)
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "title"

    r = await client.post("/api/courses", json=course_payload(price=-1), headers=instructor)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_students_cannot_author(client, student) -> None:
    r = await client.post("/api/courses", json=course_payload(), headers=student)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_moderation_lifecycle(client, instructor, admin) -> None:
    r = await client.post("/api/courses", json=course_payload(chapters=[]), headers=instructor)
    course_id = r.json()["course"]["id"]

    r = await client.put(f"/api/courses/{course_id}/submit", headers=instructor)
    assert r.status_code == 400
    assert r.json()["message"] == "Course must have at least one chapter"

    r = await client.post(
        f"/api/courses/{course_id}/chapters", json={"title": "Only chapter"}, headers=instructor
    )
    assert r.status_code == 201
    chapter_id = r.json()["chapter"]["id"]
    r = await client.put(f"/api/courses/{course_id}/submit", headers=instructor)
    assert r.json()["message"] == "Course must have at least one lesson"

    r = await client.post(
        f"/api/courses/{course_id}/chapters/{chapter_id}/lessons",
        json={"title": "First", "duration": 12},
        headers=instructor,
    )
    assert r.status_code == 201
    assert r.json()["lesson"]["order"] == 1

    r = await client.put(f"/api/courses/{course_id}/publish", headers=instructor)
    assert r.status_code == 400

    r = await client.put(f"/api/courses/{course_id}/submit", headers=instructor)
    assert r.json()["course"]["status"] == "pending"

    r = await client.get("/api/admin/courses/pending", headers=admin)
    assert [c["id"] for c in r.json()["courses"]] == [course_id]

    r = await client.put(
        f"/api/admin/courses/{course_id}/reject", json={"reason": "Needs more depth"}, headers=admin
    )
    assert r.json()["course"]["status"] == "rejected"
    assert r.json()["course"]["admin_notes"] == "Needs more depth"

    r = await client.put(f"/api/admin/courses/{course_id}/approve", headers=admin)
    assert r.json()["course"]["status"] == "approved"
    assert r.json()["course"]["is_published"] is True

    r = await client.get("/api/courses")
    assert [c["id"] for c in r.json()["courses"]] == [course_id]

    r = await client.get("/api/auth/profile", headers=instructor)
    assert r.json()["user"]["instructor_profile"]["total_courses"] == 1


@pytest.mark.asyncio
async def test_editing_live_course_sends_it_back_to_review(client, instructor, admin, course) -> None:
    r = await client.put(
        f"/api/courses/{course['id']}", json={"price": 120}, headers=instructor
    )
    assert r.status_code == 200
    assert r.json()["course"]["status"] == "pending"

    # Re-approval does not count the course twice.
    await client.put(f"/api/admin/courses/{course['id']}/approve", headers=admin)
    r = await client.get("/api/auth/profile", headers=instructor)
    assert r.json()["user"]["instructor_profile"]["total_courses"] == 1


@pytest.mark.asyncio
async def test_other_instructor_cannot_edit(client, admin, course) -> None:
    other = await register_instructor(client, admin, "other@example.com")
    r = await client.put(f"/api/courses/{course['id']}", json={"price": 1}, headers=other)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_public_detail_hides_non_preview_content(client, course) -> None:
    r = await client.get(f"/api/courses/{course['id']}")
    assert r.status_code == 200
    lessons = r.json()["course"]["chapters"][0]["lessons"]
    assert lessons[0]["is_preview"] is True
    assert lessons[0]["video_url"] == "v/intro"
    assert lessons[1]["video_url"] == ""


@pytest.mark.asyncio
async def test_catalog_filters_and_sorting(client, instructor, admin) -> None:
    await live_course(client, instructor, admin, title="Cheap design basics", price=10, category="design")
    await live_course(client, instructor, admin, title="Pricey data science", price=200, category="data-science")

    r = await client.get("/api/courses", params={"category": "design"})
    assert [c["title"] for c in r.json()["courses"]] == ["Cheap design basics"]

    r = await client.get("/api/courses", params={"max_price": 50})
    assert r.json()["pagination"]["total"] == 1

    r = await client.get("/api/courses", params={"sort_by": "price", "sort_order": "asc"})
    assert [Decimal(str(c["price"])) for c in r.json()["courses"]] == [Decimal("10"), Decimal("200")]

    r = await client.get("/api/courses", params={"search": "pricey"})
    assert r.json()["pagination"]["total"] == 1

    r = await client.get("/api/courses", params={"limit": 1, "page": 2})
    meta = r.json()["pagination"]
    assert meta == {"current_page": 2, "total_pages": 2, "total": 2, "has_next": False, "has_prev": True}


@pytest.mark.asyncio
async def test_reviews_require_enrollment(client, course) -> None:
    student = await register_student(client, "reviewer@example.com")
    r = await client.post(
        f"/api/courses/{course['id']}/reviews", json={"rating": 5, "comment": "Great"}, headers=student
    )
    assert r.status_code == 403

    r = await client.post(
        f"/api/enrollments/enroll/{course['id']}",
        json={"payment_details": {"payment_method": "credit_card"}},
        headers=student,
    )
    assert r.status_code == 201

    r = await client.post(
        f"/api/courses/{course['id']}/reviews", json={"rating": 5, "comment": "Great"}, headers=student
    )
    assert r.status_code == 201
    r = await client.post(
        f"/api/courses/{course['id']}/reviews", json={"rating": 3, "comment": "Changed my mind"}, headers=student
    )
    body = r.json()
    assert body["rating_count"] == 1
    assert body["rating_average"] == 3


@pytest.mark.asyncio
async def test_delete_blocked_by_enrollments(client, instructor, course, student) -> None:
    r = await client.post(
        f"/api/enrollments/enroll/{course['id']}",
        json={"payment_details": {"payment_method": "paypal"}},
        headers=student,
    )
    assert r.status_code == 201
    r = await client.delete(f"/api/courses/{course['id']}", headers=instructor)
    assert r.status_code == 400
    assert r.json()["message"] == "Cannot delete course with active enrollments"
