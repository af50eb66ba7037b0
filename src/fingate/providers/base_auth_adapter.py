from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime, timedelta
from typing import Any

import httpx

from ..auth.models import utcnow
from ..auth.prompter import Prompter
from ..auth.token_manager import Refresher, TokenManager
from ..core.config import Settings
from ..http.fetch_client import ResilientFetchClient
from ..http.retry import RetryConfig


class BaseAuthAdapter:
    """
    Provider auth adapter interface.

    An adapter owns one provider's credentials: it runs the login flow, holds
    the ``TokenManager`` and builds fetch clients for the provider's API whose
    HTTP 401 handling drops the cached token.

    Subclasses set the class attributes, validate their configuration in
    ``_configure()`` and implement ``login()``.
    """

    provider_key: str = ""
    label: str = ""
    api_base_url: str = ""
    refresh_buffer: timedelta = timedelta(minutes=5)
    # Delay for a 429 without Retry-After; None means regular backoff.
    rate_limit_delay: float | None = None

    def __init__(
        self,
        settings: Settings,
        http: httpx.AsyncClient,
        *,
        now: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._settings = settings
        self._http = http
        self._now = now
        self._sleep = sleep
        self._retry = RetryConfig.from_settings(settings)
        self._configure()
        self.token_manager = TokenManager(
            self.provider_key,
            self._refresher(),
            refresh_buffer=self.refresh_buffer,
            now=now,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    async def sleep(self, seconds: float) -> None:
        await self._sleep(seconds)

    # -- Subclass hooks --
    def _configure(self) -> None:
        """Validate settings and build OAuth clients. Raises ConfigurationError."""

    def _refresher(self) -> Refresher | None:
        return None

    async def login(self, prompter: Prompter) -> dict[str, Any]:
        """Run the interactive login flow and return {profiles, notes}."""
        raise NotImplementedError

    # -- Shared helpers --
    def fetch_client(self, base_url: str, *, on_unauthorized: Callable[[], None] | None = None) -> ResilientFetchClient:
        return ResilientFetchClient(
            base_url=base_url,
            http=self._http,
            timeout=self._settings.http_timeout,
            retry=self._retry,
            on_unauthorized=on_unauthorized,
            provider=self.provider_key,
            rate_limit_delay=self.rate_limit_delay,
        )

    def api_client(self) -> ResilientFetchClient:
        """Fetch client for resource calls; HTTP 401 invalidates the token."""
        return self.fetch_client(self.api_base_url, on_unauthorized=self.token_manager.invalidate)

    async def access_token(self) -> str:
        return await self.token_manager.get_access_token()

    def _profile(self, notes: list[str]) -> dict[str, Any]:
        subject = self.token_manager.subject_id
        return {
            "profiles": [
                {
                    "profile_id": f"{self.provider_key}:{subject or 'default'}",
                    "credential": self.export_credential(),
                }
            ],
            "notes": notes,
        }

    # -- Status/Disconnect hooks --
    def status(self) -> dict[str, Any]:
        """Shape: { user_connected: bool, subject_id?: str }"""
        return {
            "provider": self.provider_key,
            "user_connected": self.token_manager.is_authenticated,
            "subject_id": self.token_manager.subject_id,
        }

    def disconnect(self) -> None:
        self.token_manager.invalidate()

    def export_credential(self) -> dict[str, Any] | None:
        return self.token_manager.export_credential()

    def restore_credential(self, credential: Mapping[str, Any]) -> None:
        self.token_manager.restore_credential(credential)
