"""
Shared pytest fixtures and path setup for unit tests.
"""

import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

# Add src to sys.path so fingate.* imports work when running pytest from repo root.
PROJECT_SRC = Path(__file__).resolve().parents[2]
if str(PROJECT_SRC) not in sys.path:
    sys.path.insert(0, str(PROJECT_SRC))

import pytest
from hypothesis import HealthCheck
from hypothesis import settings as hypothesis_settings

from fingate.core.config import Settings
from fingate.testing import patch_retry_sleep

# The autouse retry_sleep patch is stateless across examples.
hypothesis_settings.register_profile("fingate", suppress_health_check=[HealthCheck.function_scoped_fixture])
hypothesis_settings.load_profile("fingate")


class FakeClock:
    """Manual clock; ``sleep`` advances time instead of waiting."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2026, 1, 15, 12, 0, tzinfo=UTC)
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)


@pytest.fixture(autouse=True)
def retry_sleep():
    """Retry backoff never waits in unit tests; yields the sleep mock."""
    with patch_retry_sleep() as mock_sleep:
        yield mock_sleep


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """Settings with every provider configured, isolated from the real environment."""
    return Settings(
        _env_file=None,
        BTG_CLIENT_ID="btg-client",
        MERCADOLIVRE_CLIENT_ID="ml-client",
        MERCADOLIVRE_CLIENT_SECRET="ml-secret",
        MERCADOLIVRE_REDIRECT_URI="http://localhost:8888/callback",
        MERCADOPAGO_ACCESS_TOKEN="APP_USR-test-token",
        MERCADOPAGO_ENVIRONMENT="sandbox",
    )
