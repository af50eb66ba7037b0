"""OAuth 2.0 device authorization grant (RFC 8628) with PKCE.

The flow requests a device code, shows the verification URL and user code
through the injected ``Prompter``, then polls the token endpoint until the
user approves, the provider rejects, or the device code expires.

Each poll produces a ``DevicePollResult`` whose ``status`` drives the loop;
``authorization_pending`` and ``slow_down`` are ordinary outcomes, not errors.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from ..core.exceptions import AuthorizationExpiredError, HttpError, OAuthFlowError
from ..core.logging import get_logger
from .models import DeviceAuthorizationSession, TokenRecord, utcnow
from .oauth_client import OAuthClient
from .pkce import PkcePair, generate_pkce
from .prompter import Prompter

logger = get_logger(__name__)


class DevicePollStatus(str, Enum):
    pending = "pending"
    slow_down = "slow_down"
    success = "success"
    error = "error"
    expired = "expired"


@dataclass(frozen=True)
class DevicePollResult:
    status: DevicePollStatus
    token: TokenRecord | None = None
    message: str | None = None


class DeviceCodeFlow:
    """Drives one provider's device-code login.

    Args:
        oauth: Client bound to the provider's device and token endpoints.
        scope: Space-separated scopes requested with the device code.
        default_interval: Poll interval in seconds when the provider omits one.
        slow_down_factor: Interval multiplier applied on ``slow_down``.
        max_interval: Upper bound for the poll interval.
        max_poll_attempts: Optional hard cap on token endpoint polls, on top of
            the device code's own expiry.
        sleep: Awaitable sleep, injectable for tests.
        now: Clock returning an aware UTC datetime.
    """

    def __init__(
        self,
        oauth: OAuthClient,
        *,
        scope: str | None = None,
        title: str | None = None,
        default_interval: float = 5.0,
        slow_down_factor: float = 1.5,
        max_interval: float = 30.0,
        max_poll_attempts: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self._oauth = oauth
        self._scope = scope
        self._title = title or f"{oauth.provider} OAuth"
        self._default_interval = default_interval
        self._slow_down_factor = slow_down_factor
        self._max_interval = max_interval
        self._max_poll_attempts = max_poll_attempts
        self._sleep = sleep
        self._now = now

    @property
    def provider(self) -> str:
        return self._oauth.provider

    async def start(self) -> tuple[DeviceAuthorizationSession, PkcePair]:
        """Request a device code bound to a fresh PKCE challenge."""
        pkce = generate_pkce()
        payload = await self._oauth.request_device_code(scope=self._scope, code_challenge=pkce.challenge)
        session = DeviceAuthorizationSession.from_response(payload, self._now(), self._default_interval)
        logger.info(
            "Device code issued",
            extra={
                "provider": self.provider,
                "expires_at": session.expires_at.isoformat(),
                "interval": session.poll_interval,
            },
        )
        return session, pkce

    async def poll_once(self, session: DeviceAuthorizationSession, code_verifier: str) -> DevicePollResult:
        """Poll the token endpoint once and classify the outcome."""
        try:
            payload = await self._oauth.exchange_device_code(
                device_code=session.device_code,
                code_verifier=code_verifier,
            )
        except HttpError as e:
            code = e.provider_error_code
            if code == "authorization_pending":
                return DevicePollResult(DevicePollStatus.pending)
            if code == "slow_down":
                return DevicePollResult(DevicePollStatus.slow_down)
            if code == "expired_token":
                return DevicePollResult(DevicePollStatus.expired, message=e.provider_message)
            return DevicePollResult(DevicePollStatus.error, message=e.provider_message or str(e))
        return DevicePollResult(DevicePollStatus.success, token=TokenRecord.from_response(payload, self._now()))

    async def run(self, prompter: Prompter) -> TokenRecord:
        """Run the full flow and return the issued token record.

        Raises:
            OAuthFlowError: The provider answered with a terminal error.
            AuthorizationExpiredError: The device code expired, or the poll
                budget ran out, before the user approved.
        """
        session, pkce = await self.start()

        await prompter.note(
            f"Open {session.verification_url} to approve access.\n"
            f"If prompted, enter the code {session.user_code}.",
            self._title,
        )
        try:
            await prompter.open_url(session.verification_url)
        except Exception as e:  # noqa: BLE001
            logger.info(
                "Could not open browser; waiting for manual verification",
                extra={"provider": self.provider, "reason": type(e).__name__},
            )

        interval = session.poll_interval
        attempts = 0
        while self._now() < session.expires_at:
            if self._max_poll_attempts is not None and attempts >= self._max_poll_attempts:
                break
            attempts += 1
            result = await self.poll_once(session, pkce.verifier)
            logger.debug(
                "Device code poll",
                extra={"provider": self.provider, "attempt": attempts, "status": result.status.value},
            )

            if result.status is DevicePollStatus.success and result.token is not None:
                logger.info("Device authorization complete", extra={"provider": self.provider, "attempts": attempts})
                return result.token
            if result.status is DevicePollStatus.error:
                logger.warning("Device authorization failed", extra={"provider": self.provider})
                raise OAuthFlowError(self.provider, result.message or "authorization failed")
            if result.status is DevicePollStatus.expired:
                break
            if result.status is DevicePollStatus.slow_down:
                interval = min(interval * self._slow_down_factor, self._max_interval)

            await self._sleep(interval)

        logger.warning("Device authorization expired", extra={"provider": self.provider, "attempts": attempts})
        raise AuthorizationExpiredError(self.provider)
