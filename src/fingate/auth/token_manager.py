"""Token lifecycle: hand out valid access tokens, refreshing at most once at a time.

A ``TokenManager`` instance is the only owner of its ``TokenRecord``. Callers
get the access string through ``get_access_token()``; the host receives an
opaque credential via ``export_credential()`` for persistence.

When the cached token is inside the refresh buffer, the first caller starts a
refresh task and every concurrent caller awaits that same task.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime, timedelta
from typing import Any

from ..core.exceptions import FinGateError, NotAuthenticatedError
from ..core.logging import get_logger
from .models import TokenRecord, utcnow
from .oauth_client import OAuthClient

logger = get_logger(__name__)

Refresher = Callable[[TokenRecord], Awaitable[TokenRecord]]


def oauth_refresher(oauth: OAuthClient, now: Callable[[], datetime] = utcnow) -> Refresher:
    """Build a refresher that uses the ``refresh_token`` grant of ``oauth``."""

    async def _refresh(current: TokenRecord) -> TokenRecord:
        payload = await oauth.refresh(current.refresh)
        return TokenRecord.from_response(payload, now(), previous=current)

    return _refresh


class TokenManager:
    """Owns the current token of one provider integration.

    Args:
        provider: Provider name for errors and log records.
        refresher: Coroutine producing a new record from the current one, or
            ``None`` when the token cannot be refreshed.
        refresh_buffer: Margin before expiry at which a refresh is triggered.
        now: Clock returning an aware UTC datetime.
    """

    def __init__(
        self,
        provider: str,
        refresher: Refresher | None,
        *,
        refresh_buffer: timedelta = timedelta(minutes=5),
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self.provider = provider
        self._refresher = refresher
        self._refresh_buffer = refresh_buffer
        self._now = now
        self._token: TokenRecord | None = None
        self._pending_refresh: asyncio.Task[str] | None = None

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    @property
    def subject_id(self) -> str | None:
        return self._token.subject_id if self._token else None

    @property
    def refresh_in_flight(self) -> bool:
        return self._pending_refresh is not None

    def set_token(self, record: TokenRecord) -> None:
        self._token = record
        logger.debug("Token stored", extra={"provider": self.provider, "expires": record.expires.isoformat()})

    def invalidate(self) -> None:
        """Drop the current token; the next caller must re-authenticate."""
        if self._token is not None:
            logger.info("Token invalidated", extra={"provider": self.provider})
        self._token = None

    def export_credential(self) -> dict[str, Any] | None:
        return self._token.to_credential() if self._token else None

    def restore_credential(self, credential: Mapping[str, Any]) -> None:
        self.set_token(TokenRecord.from_credential(credential))

    async def get_access_token(self) -> str:
        """Return a usable access token.

        Raises:
            NotAuthenticatedError: No token is held, it expired without a
                refresh value, or the refresh failed.
        """
        token = self._token
        if token is None:
            raise NotAuthenticatedError(self.provider)

        if not token.needs_refresh(self._now(), self._refresh_buffer):
            return token.access

        if self._pending_refresh is None:
            if not token.refresh or self._refresher is None:
                self._token = None
                raise NotAuthenticatedError(
                    self.provider,
                    "token expired and cannot be refreshed",
                    hint="Re-authenticate with the provider.",
                )
            self._pending_refresh = asyncio.ensure_future(self._refresh(token))

        # A caller being cancelled must not cancel the refresh other callers share.
        return await asyncio.shield(self._pending_refresh)

    async def _refresh(self, current: TokenRecord) -> str:
        assert self._refresher is not None
        logger.info("Refreshing access token", extra={"provider": self.provider})
        try:
            record = await self._refresher(current)
        except FinGateError as e:
            self._token = None
            logger.warning(
                "Token refresh failed",
                extra={"provider": self.provider, "kind": e.kind.value, "status": e.status_code},
            )
            raise NotAuthenticatedError(
                self.provider,
                "token refresh failed",
                hint="Refresh token expired. Re-authenticate with the provider.",
            ) from e
        except Exception:
            self._token = None
            logger.exception("Token refresh failed", extra={"provider": self.provider})
            raise
        finally:
            self._pending_refresh = None

        self._token = record
        logger.info(
            "Access token refreshed",
            extra={"provider": self.provider, "expires": record.expires.isoformat()},
        )
        return record.access
