"""Tests for the Mercado Livre adapter and client."""

from datetime import timedelta
from urllib.parse import parse_qs, urlsplit

import pytest

from fingate.core.exceptions import HttpError, NotAuthenticatedError, StateMismatchError
from fingate.providers.mercadolivre.auth_adapter import (
    MERCADOLIVRE_API_BASE,
    MERCADOLIVRE_AUTH_URL,
    MERCADOLIVRE_TOKEN_URL,
    MercadoLivreAuthAdapter,
)
from fingate.providers.mercadolivre.client import MercadoLivreClient, summarize_billing, totals_by_group
from fingate.providers.mercadolivre.schemas import MlBillingDetail, MlBillingPeriod
from fingate.testing import FakeApiBuilder, FakePrompter

API = MERCADOLIVRE_API_BASE
TOKEN = {"access_token": "APP_USR-ml", "refresh_token": "TG-ml", "expires_in": 21600, "user_id": 555}


def _item(item_id: str, price: float = 10.0) -> dict:
    return {
        "id": item_id,
        "title": f"Item {item_id}",
        "status": "active",
        "price": price,
        "currency_id": "BRL",
        "available_quantity": 3,
        "sold_quantity": 1,
        "category_id": "MLB1",
        "listing_type_id": "gold_special",
    }


class RedirectPrompter(FakePrompter):
    """Answers the paste prompt with a redirect for the last opened authorization URL."""

    def __init__(self, state: str | None = None):
        super().__init__()
        self._state = state

    async def prompt_text(self, label: str) -> str:
        self.prompts.append(label)
        query = parse_qs(urlsplit(self.opened[-1]).query)
        state = self._state or query["state"][0]
        return f"{query['redirect_uri'][0]}?code=TG-code&state={state}"


def _adapter(api: FakeApiBuilder, settings, clock) -> MercadoLivreAuthAdapter:
    return MercadoLivreAuthAdapter(settings, api.build(), now=clock.now, sleep=clock.sleep)


def _logged_in(api: FakeApiBuilder, settings, clock, subject_id: str | None = "555") -> MercadoLivreAuthAdapter:
    adapter = _adapter(api, settings, clock)
    credential = {
        "access": "APP_USR-ml",
        "refresh": "TG-ml",
        "expires": int((clock.now() + timedelta(hours=6)).timestamp() * 1000),
    }
    if subject_id:
        credential["subject_id"] = subject_id
    adapter.restore_credential(credential)
    return adapter


class TestLogin:
    @pytest.mark.asyncio
    async def test_authorization_code_login(self, settings, clock) -> None:
        api = FakeApiBuilder().with_json("POST", MERCADOLIVRE_TOKEN_URL, TOKEN)
        adapter = _adapter(api, settings, clock)
        prompter = RedirectPrompter()

        result = await adapter.login(prompter)

        assert prompter.opened[0].startswith(MERCADOLIVRE_AUTH_URL)
        assert result["profiles"][0]["profile_id"] == "mercadolivre:555"
        assert result["notes"][0] == "Authenticated as Mercado Livre user 555"
        form = parse_qs(api.requests[0].content.decode())
        assert form["client_id"] == ["ml-client"]
        assert form["client_secret"] == ["ml-secret"]
        assert form["redirect_uri"] == ["http://localhost:8888/callback"]

    @pytest.mark.asyncio
    async def test_forged_state_rejected(self, settings, clock) -> None:
        api = FakeApiBuilder().with_json("POST", MERCADOLIVRE_TOKEN_URL, TOKEN)
        adapter = _adapter(api, settings, clock)
        with pytest.raises(StateMismatchError):
            await adapter.login(RedirectPrompter(state="forged"))
        assert api.requests == []
        assert not adapter.token_manager.is_authenticated


class TestOrders:
    @pytest.mark.asyncio
    async def test_search_uses_subject_as_seller(self, settings, clock) -> None:
        api = FakeApiBuilder().with_json(
            "GET", f"{API}/orders/search", {"results": [], "paging": {"total": 0, "offset": 0, "limit": 50}}
        )
        client = MercadoLivreClient(_logged_in(api, settings, clock))
        await client.search_orders(status="paid", date_from="2026-01-01", date_to="2026-01-31", limit=200)

        params = api.requests[0].url.params
        assert params["seller"] == "555"
        assert params["limit"] == "50"
        assert params["sort"] == "date_desc"
        assert params["order.status"] == "paid"
        assert params["order.date_created.from"] == "2026-01-01T00:00:00.000-00:00"
        assert params["order.date_created.to"] == "2026-01-31T23:59:59.999-00:00"

    @pytest.mark.asyncio
    async def test_seller_falls_back_to_users_me(self, settings, clock) -> None:
        api = (
            FakeApiBuilder()
            .with_json("GET", f"{API}/users/me", {"id": 777, "nickname": "SHOP", "site_id": "MLB"})
            .with_json("GET", f"{API}/orders/search", {"results": [], "paging": {"total": 0, "offset": 0, "limit": 20}})
        )
        client = MercadoLivreClient(_logged_in(api, settings, clock, subject_id=None))
        await client.search_orders()
        assert api.calls("GET", f"{API}/orders/search")[0].url.params["seller"] == "777"

    @pytest.mark.asyncio
    async def test_rate_limit_without_retry_after_waits_a_minute(self, settings, clock, retry_sleep) -> None:
        api = (
            FakeApiBuilder()
            .with_response("GET", f"{API}/users/me", 429)
            .with_json("GET", f"{API}/users/me", {"id": 1, "nickname": "X", "site_id": "MLB"})
        )
        user = await MercadoLivreClient(_logged_in(api, settings, clock)).get_user_info()
        assert user.nickname == "X"
        retry_sleep.assert_awaited_once_with(60.0)

    @pytest.mark.asyncio
    async def test_401_requires_login(self, settings, clock) -> None:
        api = FakeApiBuilder().with_response("GET", f"{API}/users/me", 401)
        adapter = _logged_in(api, settings, clock)
        client = MercadoLivreClient(adapter)
        with pytest.raises(HttpError):
            await client.get_user_info()
        with pytest.raises(NotAuthenticatedError):
            await client.get_user_info()


class TestItems:
    @pytest.mark.asyncio
    async def test_search_then_multiget_in_batches(self, settings, clock) -> None:
        ids = [f"MLB{i}" for i in range(25)]
        api = (
            FakeApiBuilder()
            .with_json("GET", f"{API}/users/555/items/search", {"results": ids, "paging": {"total": 60, "offset": 0, "limit": 25}})
            .with_json("GET", f"{API}/items", [{"code": 200, "body": _item(i)} for i in ids[:20]])
            .with_json("GET", f"{API}/items", [_item(i) for i in ids[20:24]] + [{"code": 404, "body": {"message": "Item not found", "error": "not_found"}}])
        )
        items, paging = await MercadoLivreClient(_logged_in(api, settings, clock)).search_items(status="active", limit=25)

        assert [i.id for i in items] == ids[:24]
        assert paging.has_more
        multiget = api.calls("GET", f"{API}/items")
        assert multiget[0].url.params["ids"] == ",".join(ids[:20])
        assert multiget[1].url.params["ids"] == ",".join(ids[20:])


class TestBilling:
    def test_summarize_billing_groups_by_type(self) -> None:
        details = [
            MlBillingDetail(type="sale_fee", amount=-12.5, currency_id="BRL"),
            MlBillingDetail(type="shipping", amount=-3.0, currency_id="BRL"),
            MlBillingDetail(type="sale_fee", amount=-7.5, currency_id="BRL"),
        ]
        summary = summarize_billing(details)
        assert list(summary["by_type"]) == ["sale_fee", "shipping"]
        assert summary["by_type"]["sale_fee"] == {"count": 2, "total": -20.0}
        assert summary["total"] == -23.0
        assert summary["detail_count"] == 3

    def test_totals_by_group(self) -> None:
        periods = [
            MlBillingPeriod(key="2026-01", group="ML", year=2026, month=1, status="closed", total=10.0),
            MlBillingPeriod(key="2026-01", group="MP", year=2026, month=1, status="closed", total=2.5),
            MlBillingPeriod(key="2026-02", group="ML", year=2026, month=2, status="open"),
        ]
        assert totals_by_group(periods) == {"ML": 10.0, "MP": 2.5}

    @pytest.mark.asyncio
    async def test_billing_details_path(self, settings, clock) -> None:
        url = f"{API}/billing/integration/periods/key/2026-01-01/group/MP/details"
        api = FakeApiBuilder().with_json(
            "GET", url, {"results": [{"type": "sale_fee", "amount": -1.0, "currency_id": "BRL"}]}
        )
        details = await MercadoLivreClient(_logged_in(api, settings, clock)).get_billing_details("2026-01-01", group="MP")
        assert details[0].amount == -1.0
        assert api.requests[0].url.params["limit"] == "12"
