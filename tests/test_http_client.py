"""Tests for the provider HTTP client: auth, retries and error mapping."""

import httpx
import pytest

from errors import AppError, ErrorCode
from services.http_client import ApiHttpClient
from services.rate_limiter import TokenBucket

URL = "https://api.example.com/v3/channels"


def quota_body():
    return {"error": {"code": 403, "errors": [{"reason": "quotaExceeded"}]}}


def build_client(handler, token="token-1", api_key=None, max_retries=3):
    sleeps = []

    async def sleep(seconds):
        sleeps.append(seconds)

    async def token_provider():
        return token

    client = ApiHttpClient(
        limiter=TokenBucket(100, 100.0),
        token_provider=token_provider,
        api_key=api_key,
        max_retries=max_retries,
        backoff_base=1.0,
        backoff_jitter=0.0,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        sleep=sleep,
    )
    return client, sleeps


@pytest.mark.asyncio
async def test_bearer_token_sent():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"items": []})

    client, _ = build_client(handler)
    assert await client.get_json(URL, {"part": "snippet"}) == {"items": []}
    assert seen["auth"] == "Bearer token-1"


@pytest.mark.asyncio
async def test_api_key_when_no_token():
    seen = {}

    def handler(request):
        seen["key"] = request.url.params.get("key")
        return httpx.Response(200, json={})

    client, _ = build_client(handler, token=None, api_key="k-123")
    await client.get_json(URL)
    assert seen["key"] == "k-123"


@pytest.mark.asyncio
async def test_no_credentials_is_auth_error():
    client, _ = build_client(lambda request: httpx.Response(200, json={}), token=None)
    with pytest.raises(AppError) as exc:
        await client.get_json(URL)
    assert exc.value.code == ErrorCode.AUTH_ERROR


@pytest.mark.asyncio
async def test_unauthorized_is_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(401, json={})

    client, sleeps = build_client(handler)
    with pytest.raises(AppError) as exc:
        await client.get_json(URL)

    assert exc.value.code == ErrorCode.AUTH_ERROR
    assert exc.value.retryable is False
    assert len(calls) == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_forbidden_without_quota_reason_is_auth():
    client, _ = build_client(lambda request: httpx.Response(403, json={"error": {"errors": [{"reason": "forbidden"}]}}))
    with pytest.raises(AppError) as exc:
        await client.get_json(URL)
    assert exc.value.code == ErrorCode.AUTH_ERROR


@pytest.mark.asyncio
async def test_quota_exhausts_retries_and_stays_quota():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(403, json=quota_body())

    client, sleeps = build_client(handler)
    with pytest.raises(AppError) as exc:
        await client.get_json(URL)

    assert exc.value.code == ErrorCode.QUOTA_EXCEEDED
    assert len(calls) == 3
    assert sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_rate_limited_then_success():
    responses = iter([httpx.Response(429), httpx.Response(503), httpx.Response(200, json={"ok": True})])
    client, sleeps = build_client(lambda request: next(responses))
    assert await client.get_json(URL) == {"ok": True}
    assert sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_persistent_server_errors_become_network_error():
    client, _ = build_client(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(AppError) as exc:
        await client.get_json(URL)
    assert exc.value.code == ErrorCode.NETWORK_ERROR
    assert exc.value.message == "Request failed after 3 attempts"


@pytest.mark.asyncio
async def test_transport_errors_are_retried():
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"ok": True})

    client, sleeps = build_client(handler)
    assert await client.get_json(URL) == {"ok": True}
    assert len(sleeps) == 1


@pytest.mark.asyncio
async def test_not_found_raises_immediately():
    client, sleeps = build_client(lambda request: httpx.Response(404))
    with pytest.raises(AppError) as exc:
        await client.get_json(URL)
    assert exc.value.code == ErrorCode.NOT_FOUND
    assert sleeps == []
