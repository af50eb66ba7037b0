"""Unit tests for the Mercado Livre plugin."""

from __future__ import annotations

from datetime import timedelta

import pytest

from fingate.plugins.mercadolivre import MercadoLivrePlugin
from fingate.providers.mercadolivre.auth_adapter import MERCADOLIVRE_API_BASE, MercadoLivreAuthAdapter
from fingate.testing import FakeApiBuilder

API = MERCADOLIVRE_API_BASE


def _order(order_id: int, total: float) -> dict:
    return {
        "id": order_id,
        "status": "paid",
        "date_created": "2026-01-10T10:00:00.000-03:00",
        "total_amount": total,
        "currency_id": "BRL",
        "order_items": [
            {"item": {"id": "MLB1", "title": "Widget"}, "quantity": 1, "unit_price": total, "currency_id": "BRL"}
        ],
    }


def _item(item_id: str, price: float, available: int, sold: int) -> dict:
    return {
        "id": item_id,
        "title": item_id,
        "status": "active",
        "price": price,
        "currency_id": "BRL",
        "available_quantity": available,
        "sold_quantity": sold,
        "category_id": "MLB1",
        "listing_type_id": "gold_special",
    }


def _plugin(api: FakeApiBuilder, settings, clock) -> MercadoLivrePlugin:
    adapter = MercadoLivreAuthAdapter(settings, api.build(), now=clock.now, sleep=clock.sleep)
    adapter.restore_credential(
        {
            "access": "APP_USR-ml",
            "refresh": "TG-ml",
            "expires": int((clock.now() + timedelta(hours=6)).timestamp() * 1000),
            "subject_id": "555",
        }
    )
    return MercadoLivrePlugin(lambda: adapter)


@pytest.mark.asyncio
async def test_list_orders_totals(settings, clock) -> None:
    api = FakeApiBuilder().with_json(
        "GET",
        f"{API}/orders/search",
        {"results": [_order(1, 100.0), _order(2, 50.5)], "paging": {"total": 42, "offset": 0, "limit": 2}},
    )
    result = await _plugin(api, settings, clock).execute({"op": "list_orders", "limit": 2})
    assert result.data["count"] == 2
    assert result.data["page_total"] == 150.5
    assert result.data["total_available"] == 42
    assert result.data["has_more"] is True


@pytest.mark.asyncio
async def test_single_order_overrides_filters(settings, clock) -> None:
    api = FakeApiBuilder().with_json("GET", f"{API}/orders/99", _order(99, 10.0))
    result = await _plugin(api, settings, clock).execute({"op": "list_orders", "order_id": 99, "status": "paid"})
    assert result.data["order"]["id"] == 99
    assert api.call_count("GET", f"{API}/orders/search") == 0


@pytest.mark.asyncio
async def test_list_items_inventory_and_next_offset(settings, clock) -> None:
    api = (
        FakeApiBuilder()
        .with_json("GET", f"{API}/users/555/items/search", {"results": ["A", "B"], "paging": {"total": 5, "offset": 0, "limit": 2}})
        .with_json("GET", f"{API}/items", [{"code": 200, "body": _item("A", 10.0, 3, 1)}, {"code": 200, "body": _item("B", 2.5, 4, 6)}])
    )
    result = await _plugin(api, settings, clock).execute({"op": "list_items", "limit": 2})
    assert result.data["inventory_value"] == 40.0
    assert result.data["total_sold"] == 7
    assert result.data["next_offset"] == 2


@pytest.mark.asyncio
async def test_limit_over_maximum_rejected(settings, clock) -> None:
    result = await _plugin(FakeApiBuilder(), settings, clock).execute({"op": "list_orders", "limit": 500})
    assert result.error["code"] == "invalid_params"


@pytest.mark.asyncio
async def test_billing_periods(settings, clock) -> None:
    api = FakeApiBuilder().with_json(
        "GET",
        f"{API}/billing/integration/monthly/periods",
        {
            "periods": [
                {"key": "2026-01-01", "group": "ML", "year": 2026, "month": 1, "status": "closed", "total": 80.0},
                {"key": "2026-01-01", "group": "MP", "year": 2026, "month": 1, "status": "closed", "total": 5.0},
            ]
        },
    )
    result = await _plugin(api, settings, clock).execute({"op": "get_billing"})
    assert result.data["count"] == 2
    assert result.data["totals_by_group"] == {"ML": 80.0, "MP": 5.0}
    assert api.requests[0].url.params["user_id"] == "555"


@pytest.mark.asyncio
async def test_rate_limit_exhaustion_reports_retry_after(settings, clock) -> None:
    api = FakeApiBuilder().with_response("GET", f"{API}/users/me", 429, headers={"Retry-After": "120"})
    result = await _plugin(api, settings, clock).execute({"op": "get_user_info"})
    assert result.error["code"] == "rate_limited"
    assert result.error["details"]["retry_after"] == 120.0
    assert api.call_count("GET", f"{API}/users/me") == 3
