"""OAuth 2.0 authorization-code grant with PKCE for headless hosts.

The user opens the authorization URL in any browser and pastes the final
redirect URL back; the flow validates ``state`` before the code is exchanged.
"""

from __future__ import annotations

import hmac
from collections.abc import Callable
from datetime import datetime
from urllib.parse import parse_qs, urlencode, urlsplit

from ..core.exceptions import OAuthFlowError, StateMismatchError
from ..core.logging import get_logger
from .models import OAuthFlowState, TokenRecord, utcnow
from .oauth_client import OAuthClient
from .pkce import generate_pkce, generate_state
from .prompter import Prompter

logger = get_logger(__name__)


class AuthorizationCodeFlow:
    """Drives one provider's redirect-based login."""

    def __init__(
        self,
        oauth: OAuthClient,
        *,
        redirect_uri: str,
        scope: str | None = None,
        title: str | None = None,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        if not oauth.authorization_url:
            raise ValueError(f"{oauth.provider} has no authorization endpoint")
        self._oauth = oauth
        self._redirect_uri = redirect_uri
        self._scope = scope
        self._title = title or f"{oauth.provider} Authorization"
        self._now = now

    @property
    def provider(self) -> str:
        return self._oauth.provider

    def begin(self) -> tuple[str, OAuthFlowState]:
        """Build the authorization URL and the secrets to check the redirect against."""
        pkce = generate_pkce()
        flow_state = OAuthFlowState(
            state=generate_state(),
            code_verifier=pkce.verifier,
            code_challenge=pkce.challenge,
        )
        params = {
            "response_type": "code",
            "client_id": self._oauth.client_id,
            "redirect_uri": self._redirect_uri,
            "state": flow_state.state,
            "code_challenge": flow_state.code_challenge,
            "code_challenge_method": "S256",
        }
        if self._scope:
            params["scope"] = self._scope
        return f"{self._oauth.authorization_url}?{urlencode(params)}", flow_state

    def parse_redirect(self, redirect_url: str, flow_state: OAuthFlowState) -> str:
        """Return the authorization code from a pasted redirect URL.

        Raises:
            OAuthFlowError: The paste is empty, or carries no ``code``.
            StateMismatchError: ``state`` differs from the one issued by ``begin``.
        """
        redirect_url = (redirect_url or "").strip()
        if not redirect_url:
            raise OAuthFlowError(self.provider, "Authorization cancelled")

        query = parse_qs(urlsplit(redirect_url).query)
        if "error" in query:
            description = query.get("error_description", query["error"])[0]
            raise OAuthFlowError(self.provider, description)

        code = (query.get("code") or [""])[0]
        if not code:
            raise OAuthFlowError(self.provider, "No authorization code in redirect URL")

        returned_state = (query.get("state") or [""])[0]
        if not hmac.compare_digest(returned_state.encode(), flow_state.state.encode()):
            logger.warning("OAuth state mismatch on redirect", extra={"provider": self.provider})
            raise StateMismatchError(self.provider)
        return code

    async def exchange(self, redirect_url: str, flow_state: OAuthFlowState) -> TokenRecord:
        """Validate the redirect and trade its code for a token record."""
        code = self.parse_redirect(redirect_url, flow_state)
        payload = await self._oauth.exchange_authorization_code(
            code=code,
            code_verifier=flow_state.code_verifier,
            redirect_uri=self._redirect_uri,
        )
        record = TokenRecord.from_response(payload, self._now())
        logger.info(
            "Authorization code exchanged",
            extra={"provider": self.provider, "subject_id": record.subject_id},
        )
        return record

    async def run(self, prompter: Prompter) -> TokenRecord:
        url, flow_state = self.begin()
        await prompter.note(
            f"Open this URL in your browser:\n\n{url}\n\n"
            "After authorizing, you'll be redirected. Copy the full redirect URL and paste it below.",
            self._title,
        )
        try:
            await prompter.open_url(url)
        except Exception as e:  # noqa: BLE001
            logger.info(
                "Could not open browser; waiting for pasted redirect",
                extra={"provider": self.provider, "reason": type(e).__name__},
            )
        redirect_url = await prompter.prompt_text("Paste the full URL from your browser after authorization:")
        return await self.exchange(redirect_url, flow_state)
