from __future__ import annotations

from datetime import timedelta
from typing import Any

from ...auth.device_flow import DeviceCodeFlow
from ...auth.oauth_client import OAuthClient
from ...auth.prompter import Prompter
from ...auth.token_manager import Refresher, oauth_refresher
from ..base_auth_adapter import BaseAuthAdapter

BTG_OAUTH_BASE = "https://id.btgpactual.com"
BTG_DEVICE_ENDPOINT = f"{BTG_OAUTH_BASE}/oauth/device/code"
BTG_TOKEN_ENDPOINT = f"{BTG_OAUTH_BASE}/oauth/token"
BTG_API_BASE = "https://api-business.btgpactual.com/v1"
BTG_SCOPE = "accounts:read balances:read transactions:read"


class BtgPactualAuthAdapter(BaseAuthAdapter):
    """BTG Pactual business OAuth adapter.

    Notes:
    - Device authorization grant with PKCE, usable on headless hosts.
    - Client id comes from BTG_CLIENT_ID; there is no client secret.
    - Refresh responses may omit refresh_token; the previous one is kept.
    """

    provider_key = "btg-pactual"
    label = "BTG Pactual"
    api_base_url = BTG_API_BASE
    refresh_buffer = timedelta(minutes=15)

    def _configure(self) -> None:
        (client_id,) = self._settings.require("btg_client_id")
        self._oauth = OAuthClient(
            self.fetch_client(BTG_OAUTH_BASE),
            provider=self.provider_key,
            token_url=BTG_TOKEN_ENDPOINT,
            client_id=client_id,
            device_authorization_url=BTG_DEVICE_ENDPOINT,
        )

    def _refresher(self) -> Refresher:
        return oauth_refresher(self._oauth, self._now)

    def device_flow(self) -> DeviceCodeFlow:
        s = self._settings
        return DeviceCodeFlow(
            self._oauth,
            scope=BTG_SCOPE,
            title="BTG Pactual OAuth",
            default_interval=s.device_poll_default_interval,
            slow_down_factor=s.device_poll_slow_down_factor,
            max_interval=s.device_poll_max_interval,
            sleep=self._sleep,
            now=self._now,
        )

    async def login(self, prompter: Prompter) -> dict[str, Any]:
        record = await self.device_flow().run(prompter)
        self.token_manager.set_token(record)
        return self._profile(["BTG Pactual OAuth complete", "Access is read-only: accounts, balances, transactions"])
