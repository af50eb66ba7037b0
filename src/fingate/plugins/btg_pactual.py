"""BTG Pactual plugin: read-only business banking tools.

Ops:
- ``list_accounts``: call first to discover ``account_id`` values.
- ``get_balance``: available and total balance of one account.
- ``list_transactions``: one page of transactions; pass ``cursor`` from the
  previous page to continue.
"""

from __future__ import annotations

from typing import Any

from ..providers.btg_pactual.client import BtgPactualClient
from .base import DATE_PATTERN, ProviderPlugin, check_date_order
from .result import PluginResult

_ACCOUNT_ID = {"type": "string", "minLength": 1, "description": "Account ID from list_accounts"}

_OP_SCHEMAS: dict[str, dict[str, Any]] = {
    "list_accounts": {
        "type": "object",
        "properties": {"op": {"type": "string", "enum": ["list_accounts"]}},
        "required": ["op"],
        "additionalProperties": False,
    },
    "get_balance": {
        "type": "object",
        "properties": {
            "op": {"type": "string", "enum": ["get_balance"]},
            "account_id": _ACCOUNT_ID,
        },
        "required": ["op", "account_id"],
        "additionalProperties": False,
    },
    "list_transactions": {
        "type": "object",
        "properties": {
            "op": {"type": "string", "enum": ["list_transactions"]},
            "account_id": _ACCOUNT_ID,
            "start_date": {"type": "string", "pattern": DATE_PATTERN, "description": "Start date (YYYY-MM-DD)"},
            "end_date": {"type": "string", "pattern": DATE_PATTERN, "description": "End date (YYYY-MM-DD)"},
            "limit": {"type": "integer", "minimum": 1, "maximum": 100, "description": "Max transactions (default 50)"},
            "cursor": {"type": "string", "description": "Pagination cursor from the previous response"},
        },
        "required": ["op", "account_id"],
        "additionalProperties": False,
    },
}


class BtgPactualPlugin(ProviderPlugin):
    name = "btg_pactual"
    version = "1"
    provider = "btg-pactual"
    _OP_SCHEMAS = _OP_SCHEMAS

    def _build_client(self, auth) -> BtgPactualClient:
        return BtgPactualClient(auth)

    async def _op_list_accounts(self, params: dict[str, Any]) -> PluginResult:
        accounts = await self.client.list_accounts()
        return PluginResult.ok(data={"accounts": [a.model_dump() for a in accounts]})

    async def _op_get_balance(self, params: dict[str, Any]) -> PluginResult:
        balance = await self.client.get_balance(params["account_id"])
        return PluginResult.ok(data=balance.model_dump())

    async def _op_list_transactions(self, params: dict[str, Any]) -> PluginResult:
        if err := check_date_order(params.get("start_date"), params.get("end_date")):
            return err
        page = await self.client.list_transactions(
            params["account_id"],
            start_date=params.get("start_date"),
            end_date=params.get("end_date"),
            limit=params.get("limit"),
            cursor=params.get("cursor"),
        )
        data = page.model_dump()
        data["hint"] = (
            f'More transactions available. Call list_transactions with cursor="{page.next_cursor}".'
            if page.has_more
            else "All transactions returned."
        )
        return PluginResult.ok(data=data)
