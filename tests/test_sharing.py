"""Tests for sharing: email invites, invite links and joining."""
from datetime import datetime, timedelta, timezone

import pytest

from src.db.access_tables import ShareLinkRow


async def _share(client, owner, plan_id, email, role="editor"):
    return await client.post("/api/meal-plans/share", headers=owner["headers"], json={
        "mealPlanId": plan_id, "email": email, "role": role,
    })


async def _generate(client, user, plan_id, **extra):
    return await client.post("/api/meal-plans/generate-link", headers=user["headers"], json={
        "mealPlanId": plan_id, **extra,
    })


async def _join(client, user, code):
    return await client.post("/api/meal-plans/join", headers=user["headers"], json={"code": code})


# ── Share by email ──────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_share_by_email(client, owner, guest, plan):
    resp = await _share(client, owner, plan["id"], guest["email"], "viewer")
    assert resp.status_code == 200
    assert resp.json() == {"message": "Meal plan shared successfully"}

    resp = await client.get(f"/api/meal-plans/{plan['id']}", headers=guest["headers"])
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_share_with_yourself(client, owner, plan):
    resp = await _share(client, owner, plan["id"], owner["email"])
    assert resp.status_code == 400
    assert resp.json() == {"error": "self_share", "message": "Cannot share with yourself"}


@pytest.mark.asyncio
async def test_share_with_unknown_email(client, owner, plan):
    resp = await _share(client, owner, plan["id"], "nobody@example.com")
    assert resp.status_code == 404
    assert resp.json()["message"] == "User not found"


@pytest.mark.asyncio
async def test_share_with_owner_role_rejected(client, owner, guest, plan):
    resp = await _share(client, owner, plan["id"], guest["email"], "owner")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid role. Must be 'editor' or 'viewer'"


@pytest.mark.asyncio
async def test_only_owner_can_share(client, owner, guest, stranger, plan):
    await _share(client, owner, plan["id"], guest["email"], "editor")
    resp = await _share(client, guest, plan["id"], stranger["email"], "viewer")
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_non_owner_with_bad_role_is_forbidden(client, owner, guest, stranger, plan):
    await _share(client, owner, plan["id"], guest["email"], "editor")
    resp = await _share(client, guest, plan["id"], stranger["email"], "admin")
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_share_missing_fields(client, owner):
    resp = await client.post("/api/meal-plans/share", headers=owner["headers"], json={"role": "viewer"})
    assert resp.status_code == 400


# ── Invite links ────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_generate_link(client, owner, plan):
    from config.settings import settings

    resp = await _generate(client, owner, plan["id"], role="editor", expiresIn=24)
    assert resp.status_code == 200
    data = resp.json()
    assert data["role"] == "editor"
    assert data["shareLink"] == f"{settings.FRONTEND_URL}/join/{data['code']}"

    expires_at = datetime.fromisoformat(data["expiresAt"].replace("Z", "+00:00"))
    remaining = expires_at - datetime.now(timezone.utc)
    assert timedelta(hours=23) < remaining <= timedelta(hours=24)


@pytest.mark.asyncio
async def test_generate_link_defaults_to_viewer_for_seven_days(client, owner, plan):
    resp = await _generate(client, owner, plan["id"], role="owner")
    data = resp.json()
    assert data["role"] == "viewer"

    expires_at = datetime.fromisoformat(data["expiresAt"].replace("Z", "+00:00"))
    remaining = expires_at - datetime.now(timezone.utc)
    assert timedelta(days=6, hours=23) < remaining <= timedelta(days=7)


@pytest.mark.asyncio
async def test_generate_link_lifetime_too_long(client, owner, plan):
    resp = await _generate(client, owner, plan["id"], role="editor", expiresIn=10**11)
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"

    resp = await _generate(client, owner, plan["id"], expiresIn=24 * 365 + 1)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_only_owner_can_generate_link(client, owner, guest, plan):
    await _share(client, owner, plan["id"], guest["email"], "editor")
    resp = await _generate(client, guest, plan["id"], role="editor")
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_generate_link_for_missing_plan(client, owner):
    resp = await _generate(client, owner, "missing-plan")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_week_one_editor_link_scenario(client, owner, guest, plan):
    """Owner invites by link, guest joins as editor and sees the plan listed."""
    code = (await _generate(client, owner, plan["id"], role="editor")).json()["code"]

    resp = await _join(client, guest, code)
    assert resp.status_code == 200
    data = resp.json()
    assert data["message"] == "Successfully joined meal plan"
    assert data["role"] == "editor"
    assert data["mealPlan"]["id"] == plan["id"]
    assert data["mealPlan"]["name"] == "Week 1"

    resp = await client.get("/api/meal-plans", headers=guest["headers"])
    assert [p["name"] for p in resp.json()] == ["Week 1"]

    resp = await client.get(f"/api/meal-plans/{plan['id']}", headers=guest["headers"])
    assert resp.status_code == 200

    resp = await client.post("/api/meals", headers=guest["headers"], json={
        "mealPlanId": plan["id"],
        "meal": {"name": "Lentil soup", "day": "wednesday", "mealType": "dinner"},
    })
    assert resp.status_code == 201
    assert resp.json()["mealPlanId"] == plan["id"]

    resp = await client.put(f"/api/meal-plans/{plan['id']}", headers=guest["headers"], json={
        "name": "Week 1", "description": "Edited by guest",
    })
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_join_twice_is_already_member(client, owner, guest, plan):
    code = (await _generate(client, owner, plan["id"])).json()["code"]
    assert (await _join(client, guest, code)).status_code == 200

    resp = await _join(client, guest, code)
    assert resp.status_code == 400
    assert resp.json()["error"] == "already_member"


@pytest.mark.asyncio
async def test_join_after_email_share_is_already_member(client, owner, guest, plan):
    await _share(client, owner, plan["id"], guest["email"], "viewer")
    code = (await _generate(client, owner, plan["id"], role="editor")).json()["code"]
    resp = await _join(client, guest, code)
    assert resp.json()["error"] == "already_member"


@pytest.mark.asyncio
async def test_owner_joining_own_plan(client, owner, plan):
    code = (await _generate(client, owner, plan["id"])).json()["code"]
    resp = await _join(client, owner, code)
    assert resp.status_code == 400
    assert resp.json()["error"] == "already_owner"


@pytest.mark.asyncio
async def test_link_works_for_many_users(client, owner, guest, stranger, plan):
    code = (await _generate(client, owner, plan["id"])).json()["code"]
    assert (await _join(client, guest, code)).status_code == 200
    assert (await _join(client, stranger, code)).status_code == 200


@pytest.mark.asyncio
async def test_join_unknown_code(client, guest):
    resp = await _join(client, guest, "not-a-real-code")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Invalid share code"


@pytest.mark.asyncio
async def test_join_empty_code(client, guest):
    resp = await _join(client, guest, "  ")
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_join_expired_link(client, owner, guest, plan, db_session):
    now = datetime.now(timezone.utc)
    db_session.add(ShareLinkRow(
        code="expired-code",
        meal_plan_id=plan["id"],
        created_by=owner["id"],
        role="editor",
        expires_at=now - timedelta(minutes=1),
        created_at=now - timedelta(days=8),
    ))
    await db_session.commit()

    resp = await _join(client, guest, "expired-code")
    assert resp.status_code == 403
    assert resp.json() == {"error": "share_link_expired", "message": "Share link has expired"}

    resp = await client.get(f"/api/meal-plans/{plan['id']}", headers=guest["headers"])
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_join_after_plan_deleted(client, owner, guest, plan):
    code = (await _generate(client, owner, plan["id"])).json()["code"]
    await client.delete(f"/api/meal-plans/{plan['id']}", headers=owner["headers"])

    resp = await _join(client, guest, code)
    assert resp.status_code == 404
    assert resp.json()["message"] == "Meal plan not found"


# ── Role strictness ─────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_viewer_can_delete_when_roles_are_permissive(client, owner, guest, plan, monkeypatch):
    from config.settings import settings
    monkeypatch.setattr(settings, "STRICT_ROLE_ENFORCEMENT", False)

    await _share(client, owner, plan["id"], guest["email"], "viewer")
    resp = await client.delete(f"/api/meal-plans/{plan['id']}", headers=guest["headers"])
    assert resp.status_code == 204


@pytest.mark.asyncio
async def test_viewer_cannot_edit_or_delete_when_strict(client, owner, guest, plan, monkeypatch):
    from config.settings import settings
    monkeypatch.setattr(settings, "STRICT_ROLE_ENFORCEMENT", True)

    await _share(client, owner, plan["id"], guest["email"], "viewer")
    url = f"/api/meal-plans/{plan['id']}"
    assert (await client.get(url, headers=guest["headers"])).status_code == 200
    resp = await client.put(url, headers=guest["headers"], json={"name": "Renamed"})
    assert resp.status_code == 403
    resp = await client.delete(url, headers=guest["headers"])
    assert resp.status_code == 403
    assert resp.json()["error"] == "forbidden"


@pytest.mark.asyncio
async def test_editor_cannot_delete_when_strict(client, owner, guest, plan, monkeypatch):
    from config.settings import settings
    monkeypatch.setattr(settings, "STRICT_ROLE_ENFORCEMENT", True)

    await _share(client, owner, plan["id"], guest["email"], "editor")
    url = f"/api/meal-plans/{plan['id']}"
    resp = await client.put(url, headers=guest["headers"], json={"name": "Renamed"})
    assert resp.status_code == 200
    resp = await client.delete(url, headers=guest["headers"])
    assert resp.status_code == 403
