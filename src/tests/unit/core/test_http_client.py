"""Tests for the shared HTTP pool."""

from unittest.mock import patch

import httpx
import pytest

from fingate.core import http_client
from fingate.core.config import Settings


@pytest.fixture
def pool_settings() -> Settings:
    return Settings(_env_file=None, FINGATE_HTTP_TIMEOUT=7.5)


@pytest.fixture
def pool(pool_settings):
    return http_client.SharedHttpPool(pool_settings)


def test_build_http_client(pool_settings) -> None:
    client = http_client.build_http_client(pool_settings)
    assert client.timeout.read == 7.5
    assert client.headers["User-Agent"] == "fingate/0.1.0"
    assert client.headers["Accept"] == "application/json"


def test_pool_defaults_to_process_settings(pool_settings) -> None:
    with patch.object(http_client, "get_settings_instance", return_value=pool_settings) as get_settings:
        http_client.SharedHttpPool()
    get_settings.assert_called_once_with()


class TestSharedHttpPool:
    @pytest.mark.asyncio
    async def test_client_is_reused(self, pool) -> None:
        first = await pool.get_client()
        second = await pool.get_client()
        assert first is second
        assert isinstance(first, httpx.AsyncClient)
        await pool.close()

    @pytest.mark.asyncio
    async def test_close_resets(self, pool) -> None:
        first = await pool.get_client()
        await pool.close()
        assert first.is_closed
        second = await pool.get_client()
        assert second is not first
        await pool.close()

    @pytest.mark.asyncio
    async def test_reopens_client_closed_elsewhere(self, pool) -> None:
        first = await pool.get_client()
        await first.aclose()
        second = await pool.get_client()
        assert second is not first
        assert not second.is_closed
        await pool.close()

    @pytest.mark.asyncio
    async def test_close_without_client_is_noop(self, pool) -> None:
        await pool.close()
