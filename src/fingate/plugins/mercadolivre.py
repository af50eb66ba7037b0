"""Mercado Livre plugin: read-only seller tools for orders, listings and billing."""

from __future__ import annotations

from typing import Any

from ..providers.mercadolivre.client import MercadoLivreClient, summarize_billing, totals_by_group
from .base import DATE_PATTERN, ProviderPlugin, check_date_order
from .result import PluginResult

_PAGE_PROPS = {
    "limit": {"type": "integer", "minimum": 1, "maximum": 50, "description": "Maximum results (default 20)"},
    "offset": {"type": "integer", "minimum": 0, "description": "Offset for pagination (default 0)"},
}

_OP_SCHEMAS: dict[str, dict[str, Any]] = {
    "get_user_info": {
        "type": "object",
        "properties": {"op": {"type": "string", "enum": ["get_user_info"]}},
        "required": ["op"],
        "additionalProperties": False,
    },
    "list_orders": {
        "type": "object",
        "properties": {
            "op": {"type": "string", "enum": ["list_orders"]},
            "order_id": {"type": "integer", "minimum": 1, "description": "Fetch one order (overrides filters)"},
            "status": {"type": "string", "description": "paid, shipped, delivered, cancelled"},
            "date_from": {"type": "string", "pattern": DATE_PATTERN},
            "date_to": {"type": "string", "pattern": DATE_PATTERN},
            **_PAGE_PROPS,
        },
        "required": ["op"],
        "additionalProperties": False,
    },
    "list_items": {
        "type": "object",
        "properties": {
            "op": {"type": "string", "enum": ["list_items"]},
            "item_id": {"type": "string", "minLength": 1, "description": "Fetch one item (overrides filters)"},
            "status": {"type": "string", "description": "active, paused, closed"},
            **_PAGE_PROPS,
        },
        "required": ["op"],
        "additionalProperties": False,
    },
    "get_billing": {
        "type": "object",
        "properties": {
            "op": {"type": "string", "enum": ["get_billing"]},
            "period_key": {"type": "string", "minLength": 1, "description": "Period key from the periods list"},
            "group": {"type": "string", "enum": ["ML", "MP"], "description": "Billing group (default ML)"},
            "limit": {"type": "integer", "minimum": 1, "maximum": 50, "description": "Maximum entries (default 12)"},
        },
        "required": ["op"],
        "additionalProperties": False,
    },
}


class MercadoLivrePlugin(ProviderPlugin):
    name = "mercadolivre"
    version = "1"
    provider = "mercadolivre"
    _OP_SCHEMAS = _OP_SCHEMAS

    def _build_client(self, auth) -> MercadoLivreClient:
        return MercadoLivreClient(auth)

    async def _op_get_user_info(self, params: dict[str, Any]) -> PluginResult:
        user = await self.client.get_user_info()
        return PluginResult.ok(data={"user": user.model_dump()})

    async def _op_list_orders(self, params: dict[str, Any]) -> PluginResult:
        if order_id := params.get("order_id"):
            order = await self.client.get_order(order_id)
            return PluginResult.ok(data={"order": order.model_dump()})

        if err := check_date_order(params.get("date_from"), params.get("date_to")):
            return err
        response = await self.client.search_orders(
            status=params.get("status"),
            date_from=params.get("date_from"),
            date_to=params.get("date_to"),
            limit=params.get("limit", 20),
            offset=params.get("offset", 0),
        )
        orders = response.results
        return PluginResult.ok(
            data={
                "orders": [o.model_dump() for o in orders],
                "count": len(orders),
                "total_available": response.paging.total,
                "page_total": sum(o.total_amount for o in orders),
                "has_more": response.paging.has_more,
            }
        )

    async def _op_list_items(self, params: dict[str, Any]) -> PluginResult:
        if item_id := params.get("item_id"):
            item = await self.client.get_item(item_id)
            return PluginResult.ok(data={"item": item.model_dump()})

        items, paging = await self.client.search_items(
            status=params.get("status"),
            limit=params.get("limit", 20),
            offset=params.get("offset", 0),
        )
        data: dict[str, Any] = {
            "items": [i.model_dump() for i in items],
            "count": len(items),
            "total_available": paging.total,
            "inventory_value": sum(i.price * i.available_quantity for i in items),
            "total_sold": sum(i.sold_quantity for i in items),
            "has_more": paging.has_more,
        }
        if paging.has_more:
            data["next_offset"] = paging.offset + paging.limit
        return PluginResult.ok(data=data)

    async def _op_get_billing(self, params: dict[str, Any]) -> PluginResult:
        group = params.get("group", "ML")
        limit = params.get("limit", 12)
        if period_key := params.get("period_key"):
            details = await self.client.get_billing_details(period_key, group=group, limit=limit)
            return PluginResult.ok(
                data={
                    "period_key": period_key,
                    "group": group,
                    "details": [d.model_dump() for d in details],
                    "summary": summarize_billing(details),
                }
            )

        periods = await self.client.list_billing_periods(limit=limit)
        return PluginResult.ok(
            data={
                "periods": [p.model_dump() for p in periods],
                "count": len(periods),
                "totals_by_group": totals_by_group(periods),
            }
        )
