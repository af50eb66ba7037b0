"""OAuth data model: token records, flow state and token-endpoint wire schemas."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(UTC)


class TokenResponse(BaseModel):
    """Success body of an OAuth token endpoint (RFC 6749 section 5.1)."""

    access_token: str = Field(min_length=1)
    token_type: str = "Bearer"
    expires_in: int = Field(gt=0)
    refresh_token: str | None = None
    scope: str | None = None
    user_id: int | str | None = None


class DeviceCodeResponse(BaseModel):
    """Body of a device authorization endpoint (RFC 8628 section 3.2)."""

    device_code: str = Field(min_length=1)
    user_code: str = Field(min_length=1)
    verification_uri: str
    verification_uri_complete: str | None = None
    expires_in: int = Field(gt=0)
    interval: float | None = Field(default=None, gt=0)


@dataclass(frozen=True)
class TokenRecord:
    """An access token with its refresh value and absolute expiry.

    Instances are immutable; a refresh produces a new record.
    """

    access: str
    refresh: str
    expires: datetime
    subject_id: str | None = None

    def __post_init__(self) -> None:
        if self.expires.tzinfo is None:
            raise ValueError("TokenRecord.expires must be timezone-aware")

    @classmethod
    def from_response(
        cls,
        payload: TokenResponse,
        now: datetime,
        previous: TokenRecord | None = None,
    ) -> TokenRecord:
        """Build a record from a token endpoint response received at ``now``.

        A refresh response that omits ``refresh_token`` keeps the previous
        refresh value, and likewise for the subject id.
        """
        refresh = payload.refresh_token or (previous.refresh if previous else "")
        subject = payload.user_id if payload.user_id is not None else (previous.subject_id if previous else None)
        return cls(
            access=payload.access_token,
            refresh=refresh,
            expires=now + timedelta(seconds=payload.expires_in),
            subject_id=str(subject) if subject is not None else None,
        )

    def needs_refresh(self, now: datetime, buffer: timedelta) -> bool:
        return now >= self.expires - buffer

    def to_credential(self) -> dict[str, Any]:
        """Opaque persistence triple; ``expires`` is epoch milliseconds."""
        credential: dict[str, Any] = {
            "access": self.access,
            "refresh": self.refresh,
            "expires": int(self.expires.timestamp() * 1000),
        }
        if self.subject_id is not None:
            credential["subject_id"] = self.subject_id
        return credential

    @classmethod
    def from_credential(cls, credential: Mapping[str, Any]) -> TokenRecord:
        try:
            access = str(credential["access"])
            expires_ms = int(credential["expires"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid stored credential: {e}") from e
        if not access:
            raise ValueError("Invalid stored credential: empty access token")
        subject = credential.get("subject_id")
        return cls(
            access=access,
            refresh=str(credential.get("refresh") or ""),
            expires=datetime.fromtimestamp(expires_ms / 1000, UTC),
            subject_id=str(subject) if subject is not None else None,
        )

    def __repr__(self) -> str:
        return f"TokenRecord(expires={self.expires.isoformat()}, subject_id={self.subject_id!r})"


@dataclass(frozen=True)
class OAuthFlowState:
    """Per-attempt secrets of an authorization-code login."""

    state: str
    code_verifier: str
    code_challenge: str


@dataclass(frozen=True)
class DeviceAuthorizationSession:
    device_code: str
    user_code: str
    verification_url: str
    expires_at: datetime
    poll_interval: float

    @classmethod
    def from_response(cls, payload: DeviceCodeResponse, now: datetime, default_interval: float) -> DeviceAuthorizationSession:
        return cls(
            device_code=payload.device_code,
            user_code=payload.user_code,
            verification_url=payload.verification_uri_complete or payload.verification_uri,
            expires_at=now + timedelta(seconds=payload.expires_in),
            poll_interval=float(payload.interval or default_interval),
        )

    def __repr__(self) -> str:
        return f"DeviceAuthorizationSession(user_code={self.user_code!r}, expires_at={self.expires_at.isoformat()})"
