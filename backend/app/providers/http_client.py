"""
backend/app/providers/http_client.py

Purpose:
    Shared async HTTP client for sports data providers. Logs every upstream
    failure without query strings and optionally retries throttled or
    unavailable responses.

Dependencies:
    - httpx
"""

import asyncio
import logging
from typing import Optional
from urllib.parse import urlparse

import httpx

logger = logging.getLogger("tawaqo.http_client")

RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})
MAX_BACKOFF_SECONDS = 60.0


def safe_url(url: str) -> str:
    """Drop the query string so API keys never reach the logs."""
    parsed = urlparse(str(url))
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"


def retry_delay(response: Optional[httpx.Response], attempt: int, base_delay: float) -> float:
    """Seconds to wait before the next attempt. Provider hints win over backoff."""
    if response is not None:
        for header in ("retry-after", "x-ratelimit-retry-after"):
            hint = response.headers.get(header)
            if hint is None:
                continue
            try:
                return min(float(hint), MAX_BACKOFF_SECONDS)
            except ValueError:
                continue
    return min(base_delay * (2 ** attempt), MAX_BACKOFF_SECONDS)


class ResilientClient:
    """httpx.AsyncClient owned by one provider.

    max_retries defaults to 0: a failed provider call is reported to the
    caller, which decides whether to re-trigger the sync.
    """

    def __init__(
        self,
        name: str,
        timeout: float = 20.0,
        max_retries: int = 0,
        base_delay: float = 2.0,
    ):
        self.name = name
        self.max_retries = max(0, int(max_retries))
        self.base_delay = base_delay
        self.request_count = 0
        self.failure_count = 0
        self._client = httpx.AsyncClient(timeout=timeout)

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        self.request_count += 1
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            self.failure_count += 1
            logger.warning("[%s] %s %s failed: %s", self.name, method, safe_url(url), exc)
            raise
        if response.status_code in RETRY_STATUSES:
            self.failure_count += 1
            logger.warning("[%s] %s %s returned HTTP %d", self.name, method, safe_url(url), response.status_code)
        return response

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request. The last response (or transport error) is returned to the caller."""
        attempts = self.max_retries + 1
        for attempt in range(attempts):
            final = attempt == attempts - 1
            try:
                response = await self._send(method, url, **kwargs)
            except httpx.TransportError:
                if final:
                    raise
                await asyncio.sleep(retry_delay(None, attempt, self.base_delay))
                continue
            if final or response.status_code not in RETRY_STATUSES:
                return response
            await asyncio.sleep(retry_delay(response, attempt, self.base_delay))
        raise RuntimeError("unreachable")

    async def get(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()
