from __future__ import annotations

from typing import Any

from ...auth.authorization_code_flow import AuthorizationCodeFlow
from ...auth.oauth_client import OAuthClient
from ...auth.prompter import Prompter
from ...auth.token_manager import Refresher, oauth_refresher
from ..base_auth_adapter import BaseAuthAdapter

MERCADOLIVRE_API_BASE = "https://api.mercadolibre.com"
MERCADOLIVRE_AUTH_URL = "https://auth.mercadolibre.com/authorization"
MERCADOLIVRE_TOKEN_URL = "https://api.mercadolibre.com/oauth/token"


class MercadoLivreAuthAdapter(BaseAuthAdapter):
    """Mercado Livre OAuth adapter.

    Notes:
    - Authorization-code grant with PKCE (S256) and a random state.
    - Requires MERCADOLIVRE_CLIENT_ID and MERCADOLIVRE_CLIENT_SECRET.
    - The token response's user_id identifies the seller for search endpoints.
    - A 429 without Retry-After waits 60 seconds.
    """

    provider_key = "mercadolivre"
    label = "Mercado Livre"
    api_base_url = MERCADOLIVRE_API_BASE
    rate_limit_delay = 60.0

    def _configure(self) -> None:
        client_id, client_secret = self._settings.require("mercadolivre_client_id", "mercadolivre_client_secret")
        self._redirect_uri = self._settings.mercadolivre_redirect_uri
        self._oauth = OAuthClient(
            self.fetch_client(MERCADOLIVRE_API_BASE),
            provider=self.provider_key,
            token_url=MERCADOLIVRE_TOKEN_URL,
            client_id=client_id,
            client_secret=client_secret,
            authorization_url=MERCADOLIVRE_AUTH_URL,
        )

    def _refresher(self) -> Refresher:
        return oauth_refresher(self._oauth, self._now)

    def authorization_flow(self) -> AuthorizationCodeFlow:
        return AuthorizationCodeFlow(
            self._oauth,
            redirect_uri=self._redirect_uri,
            title="Mercado Livre Authorization",
            now=self._now,
        )

    async def login(self, prompter: Prompter) -> dict[str, Any]:
        record = await self.authorization_flow().run(prompter)
        self.token_manager.set_token(record)
        return self._profile(
            [
                f"Authenticated as Mercado Livre user {record.subject_id}",
                "Token expires in 6 hours and will auto-refresh",
                "Access is read-only",
            ]
        )
