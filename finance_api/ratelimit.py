"""Per-client request admission backed by an external counter service.

The gate keeps no local state: every decision is one ``incr`` call against a
``RateCounter``. In production that is a fixed-window counter stored in
Upstash Redis and reached over its REST API.
"""

import logging
import time
from typing import Protocol

import httpx
from starlette.requests import Request

logger = logging.getLogger(__name__)


class RateCounterError(Exception):
    """Raised when the counter service cannot be reached or answers badly."""


class RateCounter(Protocol):
    async def incr(self, key: str, window_seconds: int) -> int:
        """Count one request for ``key`` and return the total in this window."""
        ...


class UpstashRateCounter:
    def __init__(
        self,
        url: str,
        token: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 5.0,
        clock=time.time,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._pipeline_url = url.rstrip("/") + "/pipeline"
        self._headers = {"Authorization": f"Bearer {token}"}
        self._clock = clock

    async def incr(self, key: str, window_seconds: int) -> int:
        window = int(self._clock() // window_seconds)
        counter_key = f"ratelimit:{key}:{window}"
        commands = [
            ["INCR", counter_key],
            ["EXPIRE", counter_key, str(window_seconds)],
        ]
        try:
            response = await self._client.post(
                self._pipeline_url, json=commands, headers=self._headers
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise RateCounterError(f"counter request failed: {exc}") from exc

        try:
            first = payload[0]
        except (TypeError, IndexError, KeyError) as exc:
            raise RateCounterError("counter returned an empty pipeline") from exc
        if not isinstance(first, dict) or "error" in first:
            raise RateCounterError(f"counter rejected INCR: {first!r}")
        try:
            return int(first["result"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RateCounterError(f"counter returned {first!r}") from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def client_key(request: Request, trust_forwarded_for: bool = False) -> str:
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client is None:
        return "unknown"
    return request.client.host


class RateGate:
    def __init__(
        self,
        counter: RateCounter,
        *,
        limit: int,
        window_seconds: int,
        trust_forwarded_for: bool = False,
    ):
        self.counter = counter
        self.limit = limit
        self.window_seconds = window_seconds
        self.trust_forwarded_for = trust_forwarded_for

    async def allow(self, request: Request) -> bool:
        key = client_key(request, self.trust_forwarded_for)
        count = await self.counter.incr(key, self.window_seconds)
        if count > self.limit:
            logger.info("rate limit exceeded for %s (%d/%d)", key, count, self.limit)
            return False
        return True
