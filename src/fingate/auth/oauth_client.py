"""Token endpoint client shared by the device-code and authorization-code flows.

All calls are form-encoded POSTs sent through ``ResilientFetchClient`` with
retries disabled: authorization codes and rotating refresh tokens are
single-use, so a replayed request could burn a credential.
"""

from __future__ import annotations

from typing import Any

from ..http.fetch_client import ResilientFetchClient
from ..core.logging import get_logger
from .models import DeviceCodeResponse, TokenResponse

logger = get_logger(__name__)

GRANT_DEVICE_CODE = "urn:ietf:params:oauth:grant-type:device_code"
GRANT_AUTHORIZATION_CODE = "authorization_code"
GRANT_REFRESH_TOKEN = "refresh_token"


class OAuthClient:
    """Talks to one provider's OAuth endpoints."""

    def __init__(
        self,
        fetch: ResilientFetchClient,
        *,
        provider: str,
        token_url: str,
        client_id: str,
        client_secret: str | None = None,
        device_authorization_url: str | None = None,
        authorization_url: str | None = None,
    ) -> None:
        self._fetch = fetch
        self.provider = provider
        self.token_url = token_url
        self.client_id = client_id
        self._client_secret = client_secret
        self.device_authorization_url = device_authorization_url
        self.authorization_url = authorization_url

    def _client_form(self, **fields: Any) -> dict[str, str]:
        form = {"client_id": self.client_id}
        if self._client_secret:
            form["client_secret"] = self._client_secret
        form.update({k: str(v) for k, v in fields.items() if v is not None})
        return form

    async def _post_token(self, form: dict[str, str]) -> TokenResponse:
        return await self._fetch.request(
            self.token_url,
            None,
            TokenResponse,
            method="POST",
            form=form,
            retryable=False,
        )

    async def request_device_code(self, *, scope: str | None, code_challenge: str) -> DeviceCodeResponse:
        if not self.device_authorization_url:
            raise ValueError(f"{self.provider} has no device authorization endpoint")
        logger.info("Requesting device code", extra={"provider": self.provider})
        return await self._fetch.request(
            self.device_authorization_url,
            None,
            DeviceCodeResponse,
            method="POST",
            form=self._client_form(
                scope=scope,
                code_challenge=code_challenge,
                code_challenge_method="S256",
            ),
            retryable=False,
        )

    async def exchange_device_code(self, *, device_code: str, code_verifier: str) -> TokenResponse:
        return await self._post_token(
            self._client_form(
                grant_type=GRANT_DEVICE_CODE,
                device_code=device_code,
                code_verifier=code_verifier,
            )
        )

    async def exchange_authorization_code(
        self, *, code: str, code_verifier: str, redirect_uri: str
    ) -> TokenResponse:
        logger.info("Exchanging authorization code", extra={"provider": self.provider})
        return await self._post_token(
            self._client_form(
                grant_type=GRANT_AUTHORIZATION_CODE,
                code=code,
                code_verifier=code_verifier,
                redirect_uri=redirect_uri,
            )
        )

    async def refresh(self, refresh_token: str) -> TokenResponse:
        return await self._post_token(
            self._client_form(grant_type=GRANT_REFRESH_TOKEN, refresh_token=refresh_token)
        )
