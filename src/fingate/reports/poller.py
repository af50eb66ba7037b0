"""Generate-then-poll orchestration for asynchronously built reports.

A report is requested once, then downloaded with a growing delay between
attempts while the provider answers "not ready" (``ReportNotReadyError``).
Running out of attempts is a normal ``ReportStatus.timeout`` outcome that
carries the report id, so the caller can resume later without regenerating.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..core.exceptions import ReportNotReadyError
from ..core.logging import get_logger

logger = get_logger(__name__)


class ReportStatus(str, Enum):
    ready = "ready"
    timeout = "timeout"


@dataclass(frozen=True)
class ReportPollPolicy:
    """Delay schedule for report downloads.

    Attributes:
        initial_delay: Seconds slept before the first download attempt.
        backoff: Multiplier applied to the delay after each "not ready".
        max_delay: Cap on the delay between attempts.
        max_attempts: Download attempts before giving up with a timeout.
    """

    initial_delay: float = 5.0
    backoff: float = 1.5
    max_delay: float = 30.0
    max_attempts: int = 12

    @classmethod
    def from_settings(cls, settings: Any) -> ReportPollPolicy:
        return cls(
            initial_delay=settings.report_poll_initial_delay,
            backoff=settings.report_poll_backoff,
            max_delay=settings.report_poll_max_delay,
            max_attempts=settings.report_poll_max_attempts,
        )


@dataclass(frozen=True)
class ReportPollResult:
    status: ReportStatus
    report_id: str
    attempts: int
    content: str | None = None

    @property
    def ready(self) -> bool:
        return self.status is ReportStatus.ready


class ReportPoller:
    def __init__(
        self,
        policy: ReportPollPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.policy = policy or ReportPollPolicy()
        self._sleep = sleep

    async def poll(self, report_id: str, download: Callable[[str], Awaitable[str]]) -> ReportPollResult:
        """Download ``report_id`` once it is ready.

        Any error other than ``ReportNotReadyError`` propagates immediately.
        """
        delay = self.policy.initial_delay
        for attempt in range(1, self.policy.max_attempts + 1):
            await self._sleep(delay)
            try:
                content = await download(report_id)
            except ReportNotReadyError:
                logger.debug(
                    "Report not ready",
                    extra={"report_id": report_id, "attempt": attempt, "delay": delay},
                )
                delay = min(delay * self.policy.backoff, self.policy.max_delay)
                continue
            logger.info("Report ready", extra={"report_id": report_id, "attempts": attempt})
            return ReportPollResult(ReportStatus.ready, report_id, attempt, content)

        logger.warning(
            "Report still processing after polling budget",
            extra={"report_id": report_id, "attempts": self.policy.max_attempts},
        )
        return ReportPollResult(ReportStatus.timeout, report_id, self.policy.max_attempts)

    async def generate_and_poll(
        self,
        generate: Callable[[], Awaitable[str]],
        download: Callable[[str], Awaitable[str]],
    ) -> ReportPollResult:
        """Request a new report, then poll for it."""
        report_id = await generate()
        logger.info("Report requested", extra={"report_id": report_id})
        return await self.poll(report_id, download)
