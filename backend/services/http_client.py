"""HTTP client for provider APIs: auth, rate limiting, retries and error classification."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from errors import AppError, ErrorCode
from services.rate_limiter import TokenBucket

logger = logging.getLogger(__name__)

QUOTA_REASONS = {"quotaExceeded", "dailyLimitExceeded", "rateLimitExceeded", "userRateLimitExceeded"}


def _error_reason(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    errors = (body.get("error") or {}).get("errors") or []
    return errors[0].get("reason") if errors else None


def classify_response(response: httpx.Response) -> AppError:
    """Map a non-2xx response to an AppError."""
    status = response.status_code
    if status == 401:
        return AppError(ErrorCode.AUTH_ERROR, "Unauthorized: token expired or invalid")
    if status == 403:
        reason = _error_reason(response)
        if reason in QUOTA_REASONS:
            return AppError(ErrorCode.QUOTA_EXCEEDED, "API quota exceeded", details=reason)
        return AppError(ErrorCode.AUTH_ERROR, "Forbidden access", details=reason)
    if status == 400:
        return AppError(ErrorCode.VALIDATION_ERROR, f"Bad request: {response.text[:200]}")
    if status == 404:
        return AppError(ErrorCode.NOT_FOUND, f"Not found: {response.request.url}")
    return AppError(ErrorCode.NETWORK_ERROR, f"HTTP error {status}", details=response.text[:200])


class ApiHttpClient:
    """GET JSON with bearer-token or API-key auth.

    Retryable failures (429, 5xx, quota, transport errors) are retried with
    exponential backoff plus jitter; anything else raises immediately.
    """

    def __init__(
        self,
        limiter: TokenBucket,
        token_provider: Callable[[], Awaitable[str | None]] | None = None,
        api_key: str | None = None,
        max_retries: int = 3,
        backoff_base: float = 1.0,
        backoff_jitter: float = 0.5,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.limiter = limiter
        self.token_provider = token_provider
        self.api_key = api_key
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.backoff_jitter = backoff_jitter
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._sleep = sleep

    async def _auth(self, params: dict[str, Any]) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = await self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        elif self.api_key:
            params["key"] = self.api_key
        else:
            raise AppError(ErrorCode.AUTH_ERROR, "No access token or API key available")
        return headers

    def backoff_delay(self, attempt: int) -> float:
        return self.backoff_base * 2 ** attempt + random.uniform(0, self.backoff_jitter)

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> dict:
        params = dict(params or {})
        headers = await self._auth(params)
        last_error: AppError | None = None

        for attempt in range(self.max_retries):
            await self.limiter.acquire()
            try:
                response = await self._client.get(url, params=params, headers=headers)
            except httpx.TransportError as e:
                last_error = AppError(ErrorCode.NETWORK_ERROR, f"Network error: {e}", details=str(e))
            else:
                if response.is_success:
                    return response.json()
                error = classify_response(response)
                retryable_status = response.status_code == 429 or response.status_code >= 500
                if not (error.retryable or retryable_status):
                    raise error
                last_error = error

            if attempt < self.max_retries - 1:
                delay = self.backoff_delay(attempt)
                logger.warning(
                    f"Request to {url} failed ({last_error.code.value}), "
                    f"retrying in {delay:.1f}s ({attempt + 1}/{self.max_retries})"
                )
                await self._sleep(delay)

        if last_error and last_error.code == ErrorCode.QUOTA_EXCEEDED:
            raise last_error
        raise AppError(
            ErrorCode.NETWORK_ERROR,
            f"Request failed after {self.max_retries} attempts",
            details=last_error.message if last_error else None,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
