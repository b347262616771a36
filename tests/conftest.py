"""
Shared pytest fixtures for Armis Centrix tests.

This module provides common fixtures used across the unit tests: mocked
environment variables, a controllable clock, canned Armis responses and a
client wired to all of them.

Usage:
    def test_something(client: ArmisClient, mock_armis: responses.RequestsMock):
        # The access token endpoint is already mocked
        _ = mock_armis.add(responses.GET, f"{BASE_URL}/api/v1/policies/1/", json=...)
"""

from collections.abc import Generator
from datetime import UTC, datetime, timedelta

import pytest
import responses
from _pytest.monkeypatch import MonkeyPatch

from armis_centrix.client import ArmisClient
from armis_centrix.config import Settings, get_settings
from armis_centrix.retry import RetryPolicy

BASE_URL = "https://api.armis.com"
AUTH_URL = f"{BASE_URL}/api/v1/access_token/"
API_KEY = "test-secret-key"
ACCESS_TOKEN = "test-access-token"

# Fixed "now" for every clock-dependent test
START = datetime(2025, 1, 1, 0, 0, 0, tzinfo=UTC)


class FakeClock:
    """Manually advanced clock passed to SessionManager."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)

    def set(self, hour: int, minute: int, second: int = 0) -> None:
        self.now = START.replace(hour=hour, minute=minute, second=second)


def auth_body(
    token: str = ACCESS_TOKEN,
    expiration_utc: str = "2025-01-01T01:00:00Z",
    user_id: int | None = 42,
    success: bool = True,
) -> dict[str, object]:
    """
    Build an access token response body.

    Args:
        token: Access token returned
        expiration_utc: Server-reported expiry
        user_id: Armis user id (omitted when None)
        success: Envelope success flag

    Returns:
        JSON-ready response body
    """
    data: dict[str, object] = {"access_token": token, "expiration_utc": expiration_utc}
    if user_id is not None:
        data["user_id"] = user_id
    return {"success": success, "data": data}


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Make every test load settings from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def mock_env_vars(monkeypatch: MonkeyPatch) -> dict[str, str]:
    """
    Set up mock environment variables for testing.

    Provides every ARMIS_* variable with fake values so Settings can be
    instantiated without real credentials.

    Args:
        monkeypatch: pytest monkeypatch fixture

    Returns:
        Dictionary of environment variable names and values
    """
    env_vars = {
        "ARMIS_API_KEY": API_KEY,
        "ARMIS_API_URL": BASE_URL,
        "ARMIS_API_VERSION": "v1",
        "ARMIS_TIMEOUT_SECONDS": "10",
        "ARMIS_MAX_RETRIES": "2",
        "LOG_LEVEL": "DEBUG",
    }

    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)

    return env_vars


@pytest.fixture
def mock_settings(mock_env_vars: dict[str, str]) -> Settings:
    """
    Provide test Settings instance with fake credentials.

    Args:
        mock_env_vars: Environment variables fixture (used for side effects)

    Returns:
        Configured Settings instance for testing
    """
    _ = mock_env_vars
    return Settings()  # pyright: ignore[reportCallIssue]


# =============================================================================
# Client Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    """Provide a clock frozen at 2025-01-01T00:00:00Z."""
    return FakeClock()


@pytest.fixture
def sleeps() -> list[float]:
    """Collect the backoff waits requested by the client instead of sleeping."""
    return []


@pytest.fixture
def client(clock: FakeClock, sleeps: list[float]) -> Generator[ArmisClient, None, None]:
    """
    Provide an ArmisClient with a fake clock and no real sleeping.

    Yields:
        Client pointed at BASE_URL with a 3-attempt retry policy
    """
    armis = ArmisClient(
        api_key=API_KEY,
        api_url=BASE_URL,
        retry_policy=RetryPolicy(max_attempts=3, initial_backoff=1.0, max_backoff=30.0),
        clock=clock,
        sleep=sleeps.append,
    )
    yield armis
    armis.close()


@pytest.fixture
def mock_armis() -> Generator[responses.RequestsMock, None, None]:
    """
    Provide a mocked Armis API with the access token endpoint registered.

    Uses the responses library to mock HTTP requests to the Armis API.

    Yields:
        Configured responses mock context
    """
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        _ = rsps.add(responses.POST, AUTH_URL, json=auth_body(), status=200)
        yield rsps
