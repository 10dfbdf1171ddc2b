"""Tests for the error envelope: every failure is {"error": code, "message": text}."""
from __future__ import annotations

import pytest

from src.errors import (
    AlreadyMemberError,
    AlreadyOwnerError,
    AuthError,
    AuthorizationError,
    ConfigurationError,
    ConflictError,
    ExpiredError,
    MealPlannerError,
    NotFoundError,
    SelfShareError,
    ValidationError,
)


@pytest.mark.parametrize("exc_cls,status,code", [
    (ValidationError, 400, "validation_error"),
    (AuthError, 401, "unauthorized"),
    (AuthorizationError, 403, "forbidden"),
    (ExpiredError, 403, "share_link_expired"),
    (NotFoundError, 404, "not_found"),
    (ConflictError, 400, "conflict"),
    (SelfShareError, 400, "self_share"),
    (AlreadyOwnerError, 400, "already_owner"),
    (AlreadyMemberError, 400, "already_member"),
    (ConfigurationError, 500, "configuration_error"),
])
def test_error_taxonomy(exc_cls, status, code):
    exc = exc_cls("something")
    assert isinstance(exc, MealPlannerError)
    assert exc.status_code == status
    assert exc.code == code
    assert exc.message == "something"
    assert str(exc) == "something"


def test_conflict_subclasses():
    for cls in (SelfShareError, AlreadyOwnerError, AlreadyMemberError):
        assert issubclass(cls, ConflictError)


@pytest.mark.asyncio
async def test_unknown_route_returns_structured_error(client):
    resp = await client.get("/api/nothing-here")
    assert resp.status_code == 404
    data = resp.json()
    assert "error" in data
    assert "message" in data


@pytest.mark.asyncio
async def test_wrong_method_returns_structured_error(client):
    resp = await client.patch("/health")
    assert resp.status_code == 405
    assert "error" in resp.json()


@pytest.mark.asyncio
async def test_malformed_json_is_validation_error(client, owner):
    resp = await client.post(
        "/api/meal-plans",
        headers={**owner["headers"], "Content-Type": "application/json"},
        content=b"{not json",
    )
    assert resp.status_code == 400
    data = resp.json()
    assert data["error"] == "validation_error"
    assert isinstance(data["details"], list)


@pytest.mark.asyncio
async def test_wrong_field_type_is_validation_error(client, owner, plan):
    resp = await client.post("/api/meal-plans/generate-link", headers=owner["headers"], json={
        "mealPlanId": plan["id"], "expiresIn": "soon",
    })
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_unauthorized_carries_www_authenticate(client):
    resp = await client.get("/api/meals", params={"mealPlanId": "x"})
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"
