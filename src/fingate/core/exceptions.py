"""Custom exceptions for fingate.

Every failure the access layer produces is a ``FinGateError`` tagged with an
``ErrorKind``. Callers branch on ``kind`` (retry, fail, prompt for
re-authentication) instead of matching message strings.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Closed set of failure classifications."""

    configuration = "configuration"
    auth_required = "auth_required"
    csrf = "csrf"
    oauth_error = "oauth_error"
    expired = "expired"
    timeout = "timeout"
    network = "network"
    rate_limited = "rate_limited"
    server_error = "server_error"
    client_error = "client_error"
    forbidden = "forbidden"
    not_found = "not_found"
    schema_mismatch = "schema_mismatch"
    not_ready = "not_ready"


_RECOVERABLE_KINDS = frozenset(
    {
        ErrorKind.timeout,
        ErrorKind.network,
        ErrorKind.rate_limited,
        ErrorKind.server_error,
        ErrorKind.not_ready,
    }
)


class FinGateError(Exception):
    """Base exception class for fingate."""

    kind: ErrorKind = ErrorKind.client_error
    default_hint: str = "Check the request parameters."

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
        hint: str | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        self.hint = hint
        super().__init__(self.message)

    @property
    def recoverable(self) -> bool:
        """True when retrying later may succeed without user action."""
        return self.kind in _RECOVERABLE_KINDS

    def to_agent_error(self) -> dict[str, Any]:
        """Structured error payload for the tool layer."""
        return {
            "error": self.message,
            "kind": self.kind.value,
            "status": self.status_code,
            "recoverable": self.recoverable,
            "hint": self.hint or self.default_hint,
        }


# Configuration Exceptions
class ConfigurationError(FinGateError):
    """Raised when required client credentials are not configured."""

    kind = ErrorKind.configuration
    default_hint = "Set the missing environment variables and restart."

    def __init__(self, missing: list[str], details: dict[str, Any] | None = None):
        self.missing = list(missing)
        super().__init__(
            message=f"Missing required configuration: {', '.join(self.missing)}",
            error_code="CONFIGURATION_ERROR",
            status_code=500,
            details=details or {"missing": self.missing},
        )


# Authentication Exceptions
class NotAuthenticatedError(FinGateError):
    """Raised when no usable token exists and the user must (re-)authenticate."""

    kind = ErrorKind.auth_required
    default_hint = "Run the provider login flow to authenticate."

    def __init__(self, provider: str, reason: str = "not authenticated", hint: str | None = None):
        self.provider = provider
        super().__init__(
            message=f"{provider}: {reason}",
            error_code="NOT_AUTHENTICATED",
            status_code=401,
            details={"provider": provider},
            hint=hint,
        )


class StateMismatchError(FinGateError):
    """Raised when the OAuth callback state does not match the issued one (possible CSRF)."""

    kind = ErrorKind.csrf
    default_hint = "Restart the authorization flow; do not reuse redirect URLs."

    def __init__(self, provider: str):
        super().__init__(
            message=f"{provider}: state mismatch - possible CSRF attack",
            error_code="OAUTH_STATE_MISMATCH",
            status_code=400,
            details={"provider": provider},
        )


class OAuthFlowError(FinGateError):
    """Raised when an OAuth flow ends with a provider or user-side error."""

    kind = ErrorKind.oauth_error
    default_hint = "Restart the authorization flow."

    def __init__(self, provider: str, reason: str, status_code: int = 400, hint: str | None = None):
        self.provider = provider
        self.reason = reason
        super().__init__(
            message=f"{provider} OAuth failed: {reason}",
            error_code="OAUTH_FLOW_ERROR",
            status_code=status_code,
            details={"provider": provider, "reason": reason},
            hint=hint,
        )


class AuthorizationExpiredError(FinGateError):
    """Raised when a device authorization expires before the user approves it."""

    kind = ErrorKind.expired
    default_hint = "The device code expired. Start the login flow again."

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(
            message=f"{provider} OAuth timed out waiting for authorization",
            error_code="OAUTH_AUTHORIZATION_EXPIRED",
            status_code=408,
            details={"provider": provider},
        )


# Transport Exceptions
class RequestTimeoutError(FinGateError):
    """Raised when a single request exceeds its timeout."""

    kind = ErrorKind.timeout
    default_hint = "The request timed out. Retry shortly."

    def __init__(self, url: str, timeout: float):
        self.url = url
        self.timeout = timeout
        super().__init__(
            message=f"Request to {url} timed out after {timeout:g} seconds",
            error_code="REQUEST_TIMEOUT",
            status_code=504,
            details={"url": url, "timeout": timeout},
        )


class NetworkError(FinGateError):
    """Raised when the transport fails before any HTTP response is received."""

    kind = ErrorKind.network
    default_hint = "Network problem reaching the provider. Retry shortly."

    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(
            message=f"Request to {url} failed: {reason}",
            error_code="NETWORK_ERROR",
            status_code=503,
            details={"url": url, "reason": reason},
        )


class HttpError(FinGateError):
    """Raised when an upstream API returns a non-success HTTP status.

    Attributes:
        status_code: int HTTP status
        url: str request URL
        body: Any parsed body (dict/list/str)
        headers: dict of response headers

    Properties:
        error_category: Semantic category (auth_error, forbidden, rate_limited, etc.)
        is_retryable: True for 429 and 5xx errors
        retry_after: From Retry-After header if present
        provider_message: Best-effort extraction of error message from body
    """

    _KIND_BY_CATEGORY = {
        "auth_error": ErrorKind.auth_required,
        "forbidden": ErrorKind.forbidden,
        "not_found": ErrorKind.not_found,
        "rate_limited": ErrorKind.rate_limited,
        "server_error": ErrorKind.server_error,
    }

    def __init__(
        self,
        status_code: int,
        url: str,
        body: object = None,
        headers: dict | None = None,
        hint: str | None = None,
    ):
        self.url = str(url)
        self.body = body
        self.headers = dict(headers or {})
        super().__init__(
            message=f"HTTP {int(status_code)} calling {self.url}",
            error_code="HTTP_ERROR",
            status_code=int(status_code),
            details={"url": self.url},
            hint=hint,
        )

    @property
    def kind(self) -> ErrorKind:  # type: ignore[override]
        return self._KIND_BY_CATEGORY.get(self.error_category, ErrorKind.client_error)

    @property
    def default_hint(self) -> str:  # type: ignore[override]
        if self.status_code == 401:
            return "Token may be expired. Re-authenticate with the provider."
        if self.status_code == 403:
            return "Permission denied. Check OAuth scopes."
        if self.status_code == 429:
            return "Rate limited. Wait and retry."
        if self.status_code >= 500:
            return "Provider service issue. Retry shortly."
        return "Check the request parameters."

    @property
    def error_category(self) -> str:
        """Semantic error category based on HTTP status code.

        Returns one of:
        - auth_error: 401 Unauthorized
        - forbidden: 403 Forbidden
        - not_found: 404 Not Found
        - gone: 410 Gone
        - rate_limited: 429 Too Many Requests
        - server_error: 5xx errors
        - client_error: other 4xx errors
        """
        if self.status_code == 401:
            return "auth_error"
        elif self.status_code == 403:
            return "forbidden"
        elif self.status_code == 404:
            return "not_found"
        elif self.status_code == 410:
            return "gone"
        elif self.status_code == 429:
            return "rate_limited"
        elif self.status_code >= 500:
            return "server_error"
        else:
            return "client_error"

    @property
    def is_retryable(self) -> bool:
        """True for errors that may succeed on retry (429, 5xx)."""
        return self.status_code == 429 or self.status_code >= 500

    @property
    def retry_after(self) -> float | None:
        """Parse Retry-After header if present. Returns seconds or None.

        Performs case-insensitive header lookup per RFC 7230.
        """
        retry_after = None
        for key, value in self.headers.items():
            if key.lower() == "retry-after":
                retry_after = value
                break

        if not retry_after:
            return None
        try:
            seconds = float(retry_after)
        except (ValueError, TypeError):
            # Could be HTTP-date format; return None for simplicity
            return None
        return seconds if seconds >= 0 else None

    @property
    def provider_message(self) -> str:
        """Best-effort extraction of error message from response body.

        Attempts to extract from common API error formats:
        - {"error": {"message": "..."}}
        - {"error_description": "..."} (OAuth)
        - {"error": "...", "message": "..."}
        - {"message": "..."}
        - Plain string body
        """
        if self.body is None:
            return ""

        if isinstance(self.body, str):
            return self.body[:500]

        if isinstance(self.body, dict):
            error_obj = self.body.get("error")
            if isinstance(error_obj, dict):
                msg = error_obj.get("message")
                if msg:
                    return str(msg)

            for key in ("error_description", "message", "error", "detail"):
                val = self.body.get(key)
                if val and isinstance(val, str):
                    return val

            return str(self.body)[:500]

        return str(self.body)[:500]

    @property
    def provider_error_code(self) -> str | None:
        """Extract provider-specific error code if available.

        Attempts to extract from common API error formats:
        - {"error": "authorization_pending"} (OAuth)
        - {"error": {"code": "..."}}
        - {"code": "..."}
        """
        if not isinstance(self.body, dict):
            return None

        error_obj = self.body.get("error")
        if isinstance(error_obj, str) and error_obj:
            return error_obj
        if isinstance(error_obj, dict):
            code = error_obj.get("code") or error_obj.get("status")
            if code:
                return str(code)

        code = self.body.get("code")
        if code:
            return str(code)

        return None

    def to_agent_error(self) -> dict[str, Any]:
        payload = super().to_agent_error()
        if self.retry_after is not None:
            payload["retry_after"] = self.retry_after
        return payload


class ReportNotReadyError(HttpError):
    """Raised by the raw fetch variant when a generated report is still processing.

    On report download endpoints HTTP 404 means "processing", not "missing".
    """

    def __init__(self, url: str, body: object = None, headers: dict | None = None):
        super().__init__(
            404,
            url,
            body=body,
            headers=headers,
            hint="Report is still processing. Wait 30 seconds and retry.",
        )
        self.message = "Report not ready yet"
        self.error_code = "REPORT_NOT_READY"
        self.args = (self.message,)

    @property
    def kind(self) -> ErrorKind:  # type: ignore[override]
        return ErrorKind.not_ready


# Data contract Exceptions
class SchemaMismatchError(FinGateError):
    """Raised when a response body does not match the expected schema.

    Signals upstream API contract drift. Never retried.
    """

    kind = ErrorKind.schema_mismatch
    default_hint = "API response format changed. Contact support."

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(
            message=f"Invalid API response from {url}: {reason}",
            error_code="SCHEMA_MISMATCH",
            status_code=502,
            details={"url": url, "reason": reason},
        )
