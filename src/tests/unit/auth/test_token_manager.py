"""Tests for token caching, refresh deduplication and invalidation."""

import asyncio
from datetime import timedelta

import pytest

from fingate.auth.models import TokenRecord
from fingate.auth.oauth_client import OAuthClient
from fingate.auth.token_manager import TokenManager, oauth_refresher
from fingate.core.exceptions import ErrorKind, HttpError, NotAuthenticatedError
from fingate.http.fetch_client import ResilientFetchClient
from fingate.testing import FakeApiBuilder

TOKEN_URL = "https://id.example.com/oauth/token"


def _record(clock, *, minutes: float, access: str = "at-old", refresh: str = "rt-old") -> TokenRecord:
    return TokenRecord(access=access, refresh=refresh, expires=clock.now() + timedelta(minutes=minutes), subject_id="7")


def _oauth(api: FakeApiBuilder) -> OAuthClient:
    fetch = ResilientFetchClient(base_url="https://id.example.com", http=api.build(), provider="bank")
    return OAuthClient(fetch, provider="bank", token_url=TOKEN_URL, client_id="client-1")


class TestGetAccessToken:
    @pytest.mark.asyncio
    async def test_no_token(self, clock) -> None:
        manager = TokenManager("bank", None, now=clock.now)
        with pytest.raises(NotAuthenticatedError) as exc_info:
            await manager.get_access_token()
        assert exc_info.value.kind is ErrorKind.auth_required

    @pytest.mark.asyncio
    async def test_fresh_token_makes_no_network_call(self, clock) -> None:
        api = FakeApiBuilder()
        manager = TokenManager("bank", oauth_refresher(_oauth(api), clock.now), now=clock.now)
        manager.set_token(_record(clock, minutes=60))
        assert await manager.get_access_token() == "at-old"
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_refreshes_inside_buffer_and_keeps_refresh_token(self, clock) -> None:
        api = FakeApiBuilder().with_json("POST", TOKEN_URL, {"access_token": "at-new", "expires_in": 3600})
        manager = TokenManager(
            "bank", oauth_refresher(_oauth(api), clock.now), refresh_buffer=timedelta(minutes=15), now=clock.now
        )
        manager.set_token(_record(clock, minutes=10))

        assert await manager.get_access_token() == "at-new"
        credential = manager.export_credential()
        assert credential["refresh"] == "rt-old"
        assert credential["subject_id"] == "7"
        assert b"refresh_token=rt-old" in api.requests[0].content
        assert not manager.refresh_in_flight

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_refresh(self, clock) -> None:
        started = asyncio.Event()
        release = asyncio.Event()
        calls = 0

        async def refresher(current: TokenRecord) -> TokenRecord:
            nonlocal calls
            calls += 1
            started.set()
            await release.wait()
            return _record(clock, minutes=60, access="at-new", refresh=current.refresh)

        manager = TokenManager("bank", refresher, now=clock.now)
        manager.set_token(_record(clock, minutes=1))

        first = asyncio.ensure_future(manager.get_access_token())
        second = asyncio.ensure_future(manager.get_access_token())
        await started.wait()
        assert manager.refresh_in_flight
        release.set()

        assert await asyncio.gather(first, second) == ["at-new", "at-new"]
        assert calls == 1
        assert await manager.get_access_token() == "at-new"
        assert calls == 1

    @pytest.mark.asyncio
    async def test_expired_without_refresh_token(self, clock) -> None:
        manager = TokenManager("bank", lambda record: None, now=clock.now)
        manager.set_token(_record(clock, minutes=-1, refresh=""))
        with pytest.raises(NotAuthenticatedError):
            await manager.get_access_token()
        assert not manager.is_authenticated

    @pytest.mark.asyncio
    async def test_non_refreshable_manager(self, clock) -> None:
        manager = TokenManager("wallet", None, now=clock.now)
        manager.set_token(_record(clock, minutes=-1))
        with pytest.raises(NotAuthenticatedError):
            await manager.get_access_token()

    @pytest.mark.asyncio
    async def test_refresh_failure_clears_token(self, clock) -> None:
        api = FakeApiBuilder().with_response("POST", TOKEN_URL, 400, json_body={"error": "invalid_grant"})
        manager = TokenManager("bank", oauth_refresher(_oauth(api), clock.now), now=clock.now)
        manager.set_token(_record(clock, minutes=1))

        with pytest.raises(NotAuthenticatedError) as exc_info:
            await manager.get_access_token()
        assert isinstance(exc_info.value.__cause__, HttpError)
        assert not manager.is_authenticated
        assert manager.export_credential() is None

        with pytest.raises(NotAuthenticatedError):
            await manager.get_access_token()
        assert api.call_count("POST", TOKEN_URL) == 1

    @pytest.mark.asyncio
    async def test_unexpected_refresh_error_propagates(self, clock) -> None:
        async def refresher(current: TokenRecord) -> TokenRecord:
            raise RuntimeError("bug")

        manager = TokenManager("bank", refresher, now=clock.now)
        manager.set_token(_record(clock, minutes=1))
        with pytest.raises(RuntimeError):
            await manager.get_access_token()
        assert not manager.is_authenticated
        assert not manager.refresh_in_flight


class TestState:
    def test_invalidate(self, clock) -> None:
        manager = TokenManager("bank", None, now=clock.now)
        manager.set_token(_record(clock, minutes=60))
        assert manager.is_authenticated
        assert manager.subject_id == "7"
        manager.invalidate()
        assert not manager.is_authenticated
        assert manager.subject_id is None

    @pytest.mark.asyncio
    async def test_restore_credential(self, clock) -> None:
        source = TokenManager("bank", None, now=clock.now)
        source.set_token(_record(clock, minutes=60, access="at-saved"))
        restored = TokenManager("bank", None, now=clock.now)
        restored.restore_credential(source.export_credential())
        assert await restored.get_access_token() == "at-saved"
