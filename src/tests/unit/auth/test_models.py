"""Tests for token records and OAuth wire models."""

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from fingate.auth.models import DeviceAuthorizationSession, DeviceCodeResponse, TokenRecord, TokenResponse

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


class TestTokenResponse:
    def test_rejects_empty_access_token(self) -> None:
        with pytest.raises(ValidationError):
            TokenResponse(access_token="", expires_in=3600)

    def test_rejects_non_positive_expiry(self) -> None:
        with pytest.raises(ValidationError):
            TokenResponse(access_token="a", expires_in=0)


class TestTokenRecord:
    def test_from_response_sets_absolute_expiry(self) -> None:
        payload = TokenResponse(access_token="a", refresh_token="r", expires_in=3600, user_id=42)
        record = TokenRecord.from_response(payload, NOW)
        assert record.expires == NOW + timedelta(hours=1)
        assert record.subject_id == "42"

    def test_refresh_keeps_previous_refresh_and_subject(self) -> None:
        previous = TokenRecord(access="old", refresh="r-old", expires=NOW, subject_id="7")
        payload = TokenResponse(access_token="new", expires_in=60)
        record = TokenRecord.from_response(payload, NOW, previous=previous)
        assert record.access == "new"
        assert record.refresh == "r-old"
        assert record.subject_id == "7"

    def test_rotated_refresh_token_replaces_previous(self) -> None:
        previous = TokenRecord(access="old", refresh="r-old", expires=NOW)
        payload = TokenResponse(access_token="new", refresh_token="r-new", expires_in=60)
        assert TokenRecord.from_response(payload, NOW, previous=previous).refresh == "r-new"

    def test_naive_expiry_rejected(self) -> None:
        with pytest.raises(ValueError):
            TokenRecord(access="a", refresh="r", expires=datetime(2026, 1, 1))

    def test_needs_refresh_inside_buffer(self) -> None:
        record = TokenRecord(access="a", refresh="r", expires=NOW + timedelta(minutes=10))
        assert not record.needs_refresh(NOW, timedelta(minutes=5))
        assert record.needs_refresh(NOW, timedelta(minutes=15))

    def test_credential_roundtrip(self) -> None:
        record = TokenRecord(access="a", refresh="r", expires=NOW, subject_id="9")
        credential = record.to_credential()
        assert credential == {"access": "a", "refresh": "r", "expires": int(NOW.timestamp() * 1000), "subject_id": "9"}
        assert TokenRecord.from_credential(credential) == record

    @pytest.mark.parametrize("credential", [{}, {"access": "a"}, {"access": "", "expires": 1}, {"access": "a", "expires": "soon"}])
    def test_bad_credential_rejected(self, credential) -> None:
        with pytest.raises(ValueError):
            TokenRecord.from_credential(credential)

    def test_repr_hides_secrets(self) -> None:
        record = TokenRecord(access="super-secret", refresh="also-secret", expires=NOW)
        assert "secret" not in repr(record)


class TestDeviceAuthorizationSession:
    def test_prefers_complete_verification_uri(self) -> None:
        payload = DeviceCodeResponse(
            device_code="d",
            user_code="ABCD-EFGH",
            verification_uri="https://example.com/device",
            verification_uri_complete="https://example.com/device?user_code=ABCD-EFGH",
            expires_in=600,
        )
        session = DeviceAuthorizationSession.from_response(payload, NOW, default_interval=5)
        assert session.verification_url.endswith("user_code=ABCD-EFGH")
        assert session.expires_at == NOW + timedelta(seconds=600)
        assert session.poll_interval == 5.0

    def test_provider_interval_wins(self) -> None:
        payload = DeviceCodeResponse(
            device_code="d", user_code="u", verification_uri="https://example.com/device", expires_in=600, interval=8
        )
        session = DeviceAuthorizationSession.from_response(payload, NOW, default_interval=5)
        assert session.verification_url == "https://example.com/device"
        assert session.poll_interval == 8.0
