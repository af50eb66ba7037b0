"""Read-only BTG Pactual business API client."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from .auth_adapter import BtgPactualAuthAdapter
from .schemas import BtgAccount, BtgAccountsResponse, BtgBalance, BtgTransactionsPage


class BtgPactualClient:
    def __init__(self, auth: BtgPactualAuthAdapter):
        self._auth = auth
        self._api = auth.api_client()

    async def list_accounts(self) -> list[BtgAccount]:
        token = await self._auth.access_token()
        response = await self._api.request("/accounts", token, BtgAccountsResponse)
        return response.accounts

    async def get_balance(self, account_id: str) -> BtgBalance:
        token = await self._auth.access_token()
        return await self._api.request(f"/balances/{quote(account_id, safe='')}", token, BtgBalance)

    async def list_transactions(
        self,
        account_id: str,
        *,
        start_date: str | None = None,
        end_date: str | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> BtgTransactionsPage:
        """Fetch one page of transactions; pass ``next_cursor`` back for the next page."""
        params: dict[str, Any] = {}
        if start_date:
            params["start_date"] = start_date
        if end_date:
            params["end_date"] = end_date
        if limit:
            params["limit"] = limit
        if cursor:
            params["cursor"] = cursor
        token = await self._auth.access_token()
        return await self._api.request(
            f"/accounts/{quote(account_id, safe='')}/transactions",
            token,
            BtgTransactionsPage,
            params=params or None,
        )
