"""Mercado Pago plugin: balance, recent payments and cashflow from release reports."""

from __future__ import annotations

from typing import Any

from ..core.exceptions import FinGateError, HttpError
from ..core.logging import get_logger
from ..providers.mercadopago.client import MercadoPagoClient
from ..reports.poller import ReportPoller, ReportPollPolicy
from .base import DATE_PATTERN, ProviderPlugin, check_date_order, parse_date
from .result import PluginResult

logger = get_logger(__name__)

_OP_SCHEMAS: dict[str, dict[str, Any]] = {
    "get_balance": {
        "type": "object",
        "properties": {"op": {"type": "string", "enum": ["get_balance"]}},
        "required": ["op"],
        "additionalProperties": False,
    },
    "list_transactions": {
        "type": "object",
        "properties": {
            "op": {"type": "string", "enum": ["list_transactions"]},
            "limit": {"type": "integer", "minimum": 1, "maximum": 100, "description": "Maximum results (default 10)"},
            "date_from": {"type": "string", "pattern": DATE_PATTERN, "description": "Defaults to 7 days ago"},
            "date_to": {"type": "string", "pattern": DATE_PATTERN, "description": "Defaults to today"},
            "status": {"type": "string", "description": "approved, pending, rejected, ..."},
        },
        "required": ["op"],
        "additionalProperties": False,
    },
    "get_cashflow": {
        "type": "object",
        "properties": {
            "op": {"type": "string", "enum": ["get_cashflow"]},
            "start_date": {"type": "string", "pattern": DATE_PATTERN},
            "end_date": {"type": "string", "pattern": DATE_PATTERN},
            "report_id": {
                "type": "string",
                "minLength": 1,
                "description": "Report id from a previous timeout; resumes polling without regenerating",
            },
        },
        "required": ["op", "start_date", "end_date"],
        "additionalProperties": False,
    },
}


class MercadoPagoPlugin(ProviderPlugin):
    name = "mercadopago"
    version = "1"
    provider = "mercadopago"
    _OP_SCHEMAS = _OP_SCHEMAS

    def _build_client(self, auth) -> MercadoPagoClient:
        poller = ReportPoller(ReportPollPolicy.from_settings(auth.settings), sleep=auth.sleep)
        return MercadoPagoClient(auth, poller=poller)

    async def _op_get_balance(self, params: dict[str, Any]) -> PluginResult:
        try:
            balance = await self.client.get_balance()
        except HttpError as exc:
            if exc.status_code not in (403, 404):
                raise
            return await self._balance_unavailable(exc)
        return PluginResult.ok(
            data={
                "available": balance.available_balance,
                "pending": balance.unavailable_balance,
                "total": balance.available_balance + balance.unavailable_balance,
                "currency": balance.currency_id,
            }
        )

    async def _balance_unavailable(self, exc: HttpError) -> PluginResult:
        """Report the missing balance permission along with whatever account info is reachable."""
        try:
            account = await self.client.get_account_info()
        except FinGateError:
            logger.debug("Account info fallback failed", extra={"status": exc.status_code})
            return PluginResult.from_error(exc)
        details = exc.to_agent_error()
        details.update(
            {
                "recoverable": False,
                "account": {"id": account.id, "nickname": account.nickname, "country": account.country_id},
                "hint": (
                    "Use list_transactions to see payment activity. "
                    "The balance API requires special permissions from Mercado Pago."
                ),
            }
        )
        return PluginResult.err(
            f"Balance endpoint not available for account {account.nickname}",
            code=exc.kind.value,
            details=details,
        )

    async def _op_list_transactions(self, params: dict[str, Any]) -> PluginResult:
        if err := check_date_order(params.get("date_from"), params.get("date_to")):
            return err
        page = await self.client.search_payments(
            limit=params.get("limit", 10),
            date_from=params.get("date_from"),
            date_to=params.get("date_to"),
            status=params.get("status"),
        )
        return PluginResult.ok(
            data={
                "transactions": [t.model_dump() for t in page.transactions],
                "count": len(page.transactions),
                "total_available": page.total_available,
                "period": {"start_date": page.start_date, "end_date": page.end_date},
            }
        )

    async def _op_get_cashflow(self, params: dict[str, Any]) -> PluginResult:
        if err := check_date_order(params["start_date"], params["end_date"]):
            return err
        start = parse_date(params["start_date"], "start_date")
        end = parse_date(params["end_date"], "end_date")

        result = await self.client.get_cashflow(start, end, report_id=params.get("report_id"))
        if result.summary is None:
            return PluginResult.timeout(
                data={
                    "status": "timeout",
                    "report_id": result.report_id,
                    "hint": "Report is still processing. Call again with this report_id in a few minutes.",
                },
                message=f"Report generation timed out. Report ID: {result.report_id}",
            )
        data = result.summary.to_dict()
        data["report_id"] = result.report_id
        return PluginResult.ok(data=data)
