"""Tests for request ID tracing middleware."""
import logging

import pytest

from src.logging_config import JSONFormatter, RequestIDFilter
from src.middleware.request_id import request_id_var


@pytest.mark.asyncio
async def test_response_includes_request_id(client):
    """Every response should have X-Request-ID header."""
    resp = await client.get("/health")
    assert "x-request-id" in resp.headers
    rid = resp.headers["x-request-id"]
    assert len(rid) == 36  # UUID format


@pytest.mark.asyncio
async def test_client_request_id_honored(client):
    custom_id = "my-trace-12345"
    resp = await client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers["x-request-id"] == custom_id


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_id", ["has spaces", "x" * 200, "semi;colon", "<script>"])
async def test_malformed_request_id_replaced(client, bad_id):
    resp = await client.get("/health", headers={"X-Request-ID": bad_id})
    rid = resp.headers["x-request-id"]
    assert rid != bad_id
    assert len(rid) == 36


@pytest.mark.asyncio
async def test_unique_ids_per_request(client):
    r1 = await client.get("/health")
    r2 = await client.get("/health")
    assert r1.headers["x-request-id"] != r2.headers["x-request-id"]


@pytest.mark.asyncio
async def test_error_responses_carry_request_id(client):
    resp = await client.get("/api/me", headers={"X-Request-ID": "trace-401"})
    assert resp.status_code == 401
    assert resp.headers["x-request-id"] == "trace-401"


def test_log_records_pick_up_request_id():
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    token = request_id_var.set("req-42")
    try:
        RequestIDFilter().filter(record)
    finally:
        request_id_var.reset(token)
    assert record.request_id == "req-42"

    line = JSONFormatter().format(record)
    assert '"request_id": "req-42"' in line
    assert '"message": "hello world"' in line
