import hashlib
import uuid

import pytest

pytestmark = pytest.mark.anyio

PAYLOAD = {"items": [{"productId": 1, "quantity": 1}], "location": "Gate 4"}


async def _count(client, headers):
    return (await client.get("/orders", headers=headers)).json()["count"]


async def test_replay_returns_cached_response(client, auth_headers):
    headers = {**auth_headers(), "Idempotency-Key": uuid.uuid4().hex}

    first = await client.post("/orders", json=PAYLOAD, headers=headers)
    second = await client.post("/orders", json=PAYLOAD, headers=headers)

    assert first.status_code == second.status_code == 201
    assert second.json() == first.json()
    assert second.headers["Idempotent-Replayed"] == "true"
    assert "Idempotent-Replayed" not in first.headers
    assert await _count(client, auth_headers()) == 1


async def test_new_key_creates_new_order(client, auth_headers):
    for _ in range(2):
        headers = {**auth_headers(), "Idempotency-Key": uuid.uuid4().hex}
        resp = await client.post("/orders", json=PAYLOAD, headers=headers)
        assert resp.status_code == 201
    assert await _count(client, auth_headers()) == 2


async def test_keys_are_scoped_to_the_caller(client, auth_headers):
    key = uuid.uuid4().hex
    for uid in ("cust-1", "cust-2"):
        headers = {**auth_headers(uid), "Idempotency-Key": key}
        resp = await client.post("/orders", json=PAYLOAD, headers=headers)
        assert "Idempotent-Replayed" not in resp.headers
    assert await _count(client, auth_headers("cust-2")) == 1


@pytest.mark.parametrize("key", ["short", "bad-$$$-key", "x" * 129])
async def test_rejects_invalid_keys(client, auth_headers, key):
    headers = {**auth_headers(), "Idempotency-Key": key}
    resp = await client.post("/orders", json=PAYLOAD, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid Idempotency-Key header"
    assert await _count(client, auth_headers()) == 0


async def test_concurrent_duplicate_is_a_conflict(client, api_app, auth_headers):
    key = uuid.uuid4().hex
    headers = {**auth_headers(), "Idempotency-Key": key}
    digest = hashlib.sha256(f"{headers['Authorization']}|{key}".encode()).hexdigest()
    await api_app.state.redis.set(f"idem:/orders:{digest}:lock", "1", ex=30)

    resp = await client.post("/orders", json=PAYLOAD, headers=headers)
    assert resp.status_code == 409
    assert resp.headers["Retry-After"] == "1"
    assert await _count(client, auth_headers()) == 0


async def test_without_key_every_post_counts(client, auth_headers):
    await client.post("/orders", json=PAYLOAD, headers=auth_headers())
    await client.post("/orders", json=PAYLOAD, headers=auth_headers())
    assert await _count(client, auth_headers()) == 2
