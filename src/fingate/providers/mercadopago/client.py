"""Mercado Pago API client: balance, payment search and settlement cashflow."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any
from urllib.parse import quote

from ...core.logging import get_logger
from ...reports.cashflow import CashflowSummary, aggregate
from ...reports.csv_stream import parse_csv
from ...reports.poller import ReportPoller, ReportPollResult
from .auth_adapter import MercadoPagoAuthAdapter
from .schemas import (
    MpBalance,
    MpPaymentsSearchResponse,
    MpReleaseReport,
    MpTransaction,
    MpUserInfo,
)

logger = get_logger(__name__)

RELEASE_REPORT_PATH = "/v1/account/release_report"
MAX_PAYMENTS_LIMIT = 100
DEFAULT_LOOKBACK_DAYS = 7


@dataclass(frozen=True)
class PaymentsPage:
    transactions: list[MpTransaction]
    total_available: int
    start_date: str
    end_date: str


@dataclass(frozen=True)
class CashflowResult:
    """Outcome of a cashflow request; ``summary`` is None while the report is pending."""

    poll: ReportPollResult
    summary: CashflowSummary | None = None

    @property
    def report_id(self) -> str:
        return self.poll.report_id


class MercadoPagoClient:
    def __init__(
        self,
        auth: MercadoPagoAuthAdapter,
        *,
        poller: ReportPoller | None = None,
        today: Callable[[], date] = date.today,
    ):
        self._auth = auth
        self._api = auth.api_client()
        self._poller = poller or ReportPoller()
        self._today = today

    async def get_balance(self) -> MpBalance:
        token = await self._auth.access_token()
        return await self._api.request("/v1/account/balance", token, MpBalance)

    async def get_account_info(self) -> MpUserInfo:
        token = await self._auth.access_token()
        return await self._api.request("/users/me", token, MpUserInfo)

    async def search_payments(
        self,
        *,
        limit: int = 10,
        date_from: str | None = None,
        date_to: str | None = None,
        status: str | None = None,
    ) -> PaymentsPage:
        """Search payments, newest first. Dates default to the last seven days."""
        end_date = date_to or self._today().isoformat()
        start_date = date_from or (self._today() - timedelta(days=DEFAULT_LOOKBACK_DAYS)).isoformat()
        params: dict[str, Any] = {
            "limit": min(limit, MAX_PAYMENTS_LIMIT),
            "sort": "date_created",
            "criteria": "desc",
            "range": "date_created",
            "begin_date": f"{start_date}T00:00:00Z",
            "end_date": f"{end_date}T23:59:59Z",
        }
        if status:
            params["status"] = status
        token = await self._auth.access_token()
        response = await self._api.request("/v1/payments/search", token, MpPaymentsSearchResponse, params=params)
        return PaymentsPage(
            transactions=[MpTransaction.from_payment(p) for p in response.results],
            total_available=response.paging.total,
            start_date=start_date,
            end_date=end_date,
        )

    async def request_release_report(self, start_date: date, end_date: date) -> str:
        """Ask for a release report covering whole days; returns its file name."""
        token = await self._auth.access_token()
        report = await self._api.request(
            RELEASE_REPORT_PATH,
            token,
            MpReleaseReport,
            method="POST",
            json_body={
                "begin_date": f"{start_date.isoformat()}T00:00:00Z",
                "end_date": f"{end_date.isoformat()}T23:59:59Z",
            },
        )
        return report.file_name

    async def download_release_report(self, file_name: str) -> str:
        token = await self._auth.access_token()
        return await self._api.request_raw(f"{RELEASE_REPORT_PATH}/{quote(file_name, safe='')}", token)

    async def get_cashflow(
        self,
        start_date: date,
        end_date: date,
        *,
        report_id: str | None = None,
    ) -> CashflowResult:
        """Aggregate money in and out over a release report.

        With ``report_id`` the poll resumes on an existing report instead of
        requesting a new one.
        """
        if report_id:
            poll = await self._poller.poll(report_id, self.download_release_report)
        else:
            poll = await self._poller.generate_and_poll(
                lambda: self.request_release_report(start_date, end_date),
                self.download_release_report,
            )
        if not poll.ready or poll.content is None:
            return CashflowResult(poll=poll)

        totals = aggregate(parse_csv(poll.content))
        logger.info(
            "Cashflow aggregated",
            extra={"report_id": poll.report_id, "transactions": totals.transaction_count},
        )
        return CashflowResult(poll=poll, summary=CashflowSummary.for_period(start_date, end_date, totals))
