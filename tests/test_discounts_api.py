"""
tests.test_discounts_api

Coupon administration by admins and instructors, and public validation.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from mentaro.clock import utcnow

from conftest import live_course, register_instructor


def coupon(code: str, **overrides) -> dict:
    now = utcnow()
    body = {
        "code": code,
        "description": "Seasonal promotion",
        "type": "percentage",
        "value": 20,
        "valid_from": (now - timedelta(days=1)).isoformat(),
        "valid_until": (now + timedelta(days=7)).isoformat(),
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_validate_quotes_final_amount(client, admin) -> None:
    r = await client.post(
        "/api/discounts", json=coupon("spring", max_discount_amount=15), headers=admin
    )
    assert r.status_code == 201
    assert r.json()["discount"]["code"] == "SPRING"

    r = await client.post("/api/discounts/validate", json={"code": "SPRING", "amount": 100})
    assert r.status_code == 200
    quote = r.json()["discount"]
    assert Decimal(str(quote["discount_amount"])) == Decimal("15")
    assert Decimal(str(quote["final_amount"])) == Decimal("85")


@pytest.mark.asyncio
async def test_coupon_input_rules(client, admin) -> None:
    r = await client.post("/api/discounts", json=coupon("BIG", value=150), headers=admin)
    assert r.status_code == 400

    r = await client.post("/api/discounts", json=coupon("BAD-CODE"), headers=admin)
    assert r.status_code == 400

    now = utcnow()
    r = await client.post(
        "/api/discounts",
        json=coupon(
            "BACKWARDS",
            valid_from=(now + timedelta(days=2)).isoformat(),
            valid_until=now.isoformat(),
        ),
        headers=admin,
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Valid until date must be after valid from date"

    await client.post("/api/discounts", json=coupon("TWICE"), headers=admin)
    r = await client.post("/api/discounts", json=coupon("twice"), headers=admin)
    assert r.status_code == 400
    assert r.json()["message"] == "Discount code already exists"


@pytest.mark.asyncio
async def test_update_checks_percentage_against_stored_type(client, admin) -> None:
    r = await client.post("/api/discounts", json=coupon("TENOFF", value=10), headers=admin)
    discount_id = r.json()["discount"]["id"]

    r = await client.put(f"/api/discounts/{discount_id}", json={"value": "250"}, headers=admin)
    assert r.status_code == 400
    assert r.json()["message"] == "Percentage discount cannot exceed 100"

    r = await client.post("/api/discounts/validate", json={"code": "TENOFF", "amount": 100})
    assert Decimal(str(r.json()["discount"]["discount_amount"])) == Decimal("10")

    r = await client.post(
        "/api/discounts", json=coupon("FLAT500", type="fixed", value=500), headers=admin
    )
    flat_id = r.json()["discount"]["id"]
    r = await client.put(f"/api/discounts/{flat_id}", json={"type": "percentage"}, headers=admin)
    assert r.status_code == 400

    r = await client.get(f"/api/discounts/{flat_id}", headers=admin)
    assert r.json()["discount"]["type"] == "fixed"


@pytest.mark.asyncio
async def test_update_null_clears_optional_limits(client, admin) -> None:
    r = await client.post(
        "/api/discounts",
        json=coupon("CAPPED", max_discount_amount=5, usage_limit=3),
        headers=admin,
    )
    discount_id = r.json()["discount"]["id"]

    r = await client.put(
        f"/api/discounts/{discount_id}",
        json={"max_discount_amount": None, "usage_limit": None, "description": None},
        headers=admin,
    )
    assert r.status_code == 200
    body = r.json()["discount"]
    assert body["max_discount_amount"] is None
    assert body["usage_limit"] is None
    assert body["description"] == "Seasonal promotion"

    r = await client.put(f"/api/discounts/{discount_id}", json={"min_order_amount": 10}, headers=admin)
    assert r.status_code == 200
    assert r.json()["discount"]["max_discount_amount"] is None


@pytest.mark.asyncio
async def test_toggle_and_delete(client, admin) -> None:
    r = await client.post("/api/discounts", json=coupon("FLIP"), headers=admin)
    discount_id = r.json()["discount"]["id"]

    r = await client.patch(f"/api/discounts/{discount_id}/toggle-status", headers=admin)
    assert r.json()["message"] == "Discount deactivated successfully"
    r = await client.post("/api/discounts/validate", json={"code": "FLIP", "amount": 50})
    assert r.status_code == 404

    r = await client.delete(f"/api/discounts/{discount_id}", headers=admin)
    assert r.status_code == 200
    r = await client.get(f"/api/discounts/{discount_id}", headers=admin)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_instructor_coupons_are_scoped_to_own_courses(
    client, admin, instructor, course
) -> None:
    r = await client.post("/api/instructor/discounts", json=coupon("MINE"), headers=instructor)
    assert r.status_code == 400
    assert r.json()["message"] == "Select at least one of your courses for this discount"

    other = await register_instructor(client, admin, "other@example.com")
    other_course = await live_course(client, other, admin, title="Somebody else's course")

    r = await client.post(
        "/api/instructor/discounts",
        json=coupon("THEIRS", applicable_courses=[other_course["id"]]),
        headers=instructor,
    )
    assert r.status_code == 403

    r = await client.post(
        "/api/instructor/discounts",
        json=coupon("MINE", applicable_to_all=True, applicable_courses=[course["id"]]),
        headers=instructor,
    )
    assert r.status_code == 201
    created = r.json()["discount"]
    assert created["applicable_to_all"] is False
    assert created["created_by_role"] == "instructor"

    r = await client.post(
        "/api/discounts/validate",
        json={"code": "MINE", "amount": 100, "course_id": other_course["id"]},
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Discount code is not applicable to this course"

    r = await client.get("/api/instructor/discounts", headers=other)
    assert r.json()["discounts"] == []
    r = await client.patch(
        f"/api/instructor/discounts/{created['id']}/toggle-status", headers=other
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_admin_discount_routes_reject_instructors(client, instructor) -> None:
    r = await client.get("/api/discounts", headers=instructor)
    assert r.status_code == 403
