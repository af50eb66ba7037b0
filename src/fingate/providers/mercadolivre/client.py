"""Read-only Mercado Livre API client: seller profile, orders, items and billing."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from urllib.parse import quote

from ...core.logging import get_logger
from .auth_adapter import MercadoLivreAuthAdapter
from .schemas import (
    MlBillingDetail,
    MlBillingDetailsResponse,
    MlBillingPeriod,
    MlBillingPeriodsResponse,
    MlItem,
    MlItemMultigetEntry,
    MlItemsSearchResponse,
    MlOrder,
    MlOrdersSearchResponse,
    MlPaging,
    MlUser,
)

logger = get_logger(__name__)

MAX_SEARCH_LIMIT = 50
MULTIGET_BATCH_SIZE = 20


def summarize_billing(details: Iterable[MlBillingDetail]) -> dict[str, Any]:
    """Group billing details by type. Fees are negative, sales positive."""
    by_type: dict[str, dict[str, Any]] = {}
    total = 0.0
    count = 0
    currency = "BRL"
    for detail in details:
        currency = detail.currency_id
        total += detail.amount
        count += 1
        bucket = by_type.setdefault(detail.type, {"count": 0, "total": 0.0})
        bucket["count"] += 1
        bucket["total"] += detail.amount
    ordered = dict(sorted(by_type.items(), key=lambda kv: abs(kv[1]["total"]), reverse=True))
    return {"by_type": ordered, "total": total, "currency": currency, "detail_count": count}


def totals_by_group(periods: Iterable[MlBillingPeriod]) -> dict[str, float]:
    totals: dict[str, float] = {}
    for period in periods:
        totals[period.group] = totals.get(period.group, 0.0) + (period.total or 0.0)
    return totals


class MercadoLivreClient:
    def __init__(self, auth: MercadoLivreAuthAdapter):
        self._auth = auth
        self._api = auth.api_client()

    async def get_user_info(self) -> MlUser:
        token = await self._auth.access_token()
        return await self._api.request("/users/me", token, MlUser)

    async def seller_id(self) -> str:
        """Seller id from the token record, falling back to ``/users/me``."""
        subject = self._auth.token_manager.subject_id
        if subject:
            return subject
        user = await self.get_user_info()
        return str(user.id)

    async def get_order(self, order_id: int | str) -> MlOrder:
        token = await self._auth.access_token()
        return await self._api.request(f"/orders/{quote(str(order_id), safe='')}", token, MlOrder)

    async def search_orders(
        self,
        *,
        status: str | None = None,
        date_from: str | None = None,
        date_to: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> MlOrdersSearchResponse:
        seller = await self.seller_id()
        params: dict[str, Any] = {
            "seller": seller,
            "limit": min(limit, MAX_SEARCH_LIMIT),
            "offset": offset,
            "sort": "date_desc",
        }
        if status:
            params["order.status"] = status
        if date_from:
            params["order.date_created.from"] = f"{date_from}T00:00:00.000-00:00"
        if date_to:
            params["order.date_created.to"] = f"{date_to}T23:59:59.999-00:00"
        token = await self._auth.access_token()
        return await self._api.request("/orders/search", token, MlOrdersSearchResponse, params=params)

    async def get_item(self, item_id: str) -> MlItem:
        token = await self._auth.access_token()
        return await self._api.request(f"/items/{quote(item_id, safe='')}", token, MlItem)

    async def get_items(self, item_ids: list[str]) -> list[MlItem]:
        """Multi-get item details in batches."""
        items: list[MlItem] = []
        for start in range(0, len(item_ids), MULTIGET_BATCH_SIZE):
            batch = item_ids[start:start + MULTIGET_BATCH_SIZE]
            token = await self._auth.access_token()
            entries = await self._api.request(
                "/items",
                token,
                list[MlItemMultigetEntry | MlItem],
                params={"ids": ",".join(batch)},
            )
            for entry in entries:
                if isinstance(entry, MlItemMultigetEntry):
                    if entry.code == 200 and isinstance(entry.body, MlItem):
                        items.append(entry.body)
                    else:
                        logger.debug("Item multiget entry skipped", extra={"code": entry.code})
                else:
                    items.append(entry)
        return items

    async def search_items(
        self,
        *,
        status: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[MlItem], MlPaging]:
        seller = await self.seller_id()
        params: dict[str, Any] = {"limit": min(limit, MAX_SEARCH_LIMIT), "offset": offset}
        if status:
            params["status"] = status
        token = await self._auth.access_token()
        search = await self._api.request(
            f"/users/{quote(seller, safe='')}/items/search",
            token,
            MlItemsSearchResponse,
            params=params,
        )
        return await self.get_items(search.results), search.paging

    async def list_billing_periods(self, *, limit: int = 12) -> list[MlBillingPeriod]:
        seller = await self.seller_id()
        token = await self._auth.access_token()
        response = await self._api.request(
            "/billing/integration/monthly/periods",
            token,
            MlBillingPeriodsResponse,
            params={"user_id": seller, "limit": limit},
        )
        return response.periods

    async def get_billing_details(self, period_key: str, *, group: str = "ML", limit: int = 12) -> list[MlBillingDetail]:
        token = await self._auth.access_token()
        response = await self._api.request(
            f"/billing/integration/periods/key/{quote(period_key, safe='')}/group/{quote(group, safe='')}/details",
            token,
            MlBillingDetailsResponse,
            params={"limit": limit},
        )
        return response.results
