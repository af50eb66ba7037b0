from __future__ import annotations

from typing import Any

from ...auth.prompter import Prompter
from ...core.exceptions import NotAuthenticatedError
from ..base_auth_adapter import BaseAuthAdapter

MERCADOPAGO_API_BASE = "https://api.mercadopago.com"


class MercadoPagoAuthAdapter(BaseAuthAdapter):
    """Mercado Pago adapter backed by a static access token.

    Notes:
    - The token comes from MERCADOPAGO_ACCESS_TOKEN; there is no OAuth flow.
    - An HTTP 401 disables the token until the adapter is rebuilt, since it
      cannot be refreshed.
    """

    provider_key = "mercadopago"
    label = "Mercado Pago"
    api_base_url = MERCADOPAGO_API_BASE

    def _configure(self) -> None:
        (self._access_token,) = self._settings.require("mercadopago_access_token")
        self._revoked = False

    @property
    def environment(self) -> str:
        return self._settings.mercadopago_environment

    async def access_token(self) -> str:
        if self._revoked:
            raise NotAuthenticatedError(
                self.provider_key,
                "access token rejected",
                hint="Token may be expired. Update MERCADOPAGO_ACCESS_TOKEN.",
            )
        return self._access_token

    def api_client(self):
        return self.fetch_client(self.api_base_url, on_unauthorized=self.disconnect)

    def disconnect(self) -> None:
        self._revoked = True

    def status(self) -> dict[str, Any]:
        return {
            "provider": self.provider_key,
            "user_connected": not self._revoked,
            "environment": self.environment,
        }

    async def login(self, prompter: Prompter) -> dict[str, Any]:
        await prompter.note(
            "Mercado Pago uses a static access token. Set MERCADOPAGO_ACCESS_TOKEN and restart.",
            self.label,
        )
        self._revoked = False
        return {"profiles": [], "notes": [f"Using configured {self.environment} access token"]}
