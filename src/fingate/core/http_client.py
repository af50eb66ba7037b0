"""Process-wide pooled ``httpx.AsyncClient``.

Every provider integration issues its calls through one pool. Per-request
timeouts and retries belong to ``ResilientFetchClient``; the pool only sets
the connection limits, the default timeout and the identifying headers.
"""

from functools import lru_cache

import httpx

from .config import Settings, get_settings_instance
from .logging import get_logger

logger = get_logger(__name__)

POOL_LIMITS = httpx.Limits(max_keepalive_connections=10, max_connections=30, keepalive_expiry=30.0)


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        limits=POOL_LIMITS,
        timeout=httpx.Timeout(settings.http_timeout),
        follow_redirects=True,
        headers={"User-Agent": f"fingate/{settings.version}", "Accept": "application/json"},
    )


class SharedHttpPool:
    """Lazily opened client that is reopened if something closed it underneath us."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings_instance()
        self._client: httpx.AsyncClient | None = None

    async def get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            logger.debug("Opening shared HTTP pool", extra={"timeout": self._settings.http_timeout})
            self._client = build_http_client(self._settings)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            logger.debug("Closing shared HTTP pool")
            await self._client.aclose()
            self._client = None


@lru_cache(maxsize=1)
def get_http_pool() -> SharedHttpPool:
    return SharedHttpPool()


async def get_http_client() -> httpx.AsyncClient:
    """Get the pooled client for provider API calls."""
    return await get_http_pool().get_client()


async def close_http_client() -> None:
    await get_http_pool().close()
