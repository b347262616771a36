"""
Unit tests for configuration module.

Tests cover Settings validation, environment variable parsing, defaults,
and error handling in get_settings.
"""

import pytest
from _pytest.monkeypatch import MonkeyPatch

from armis_centrix.config import Settings, get_settings
from armis_centrix.errors import ConfigurationError


class TestSettingsValidation:
    """Tests for Settings validation."""

    def test_settings_from_env_vars(
        self,
        mock_env_vars: dict[str, str],
    ) -> None:
        """Test that Settings loads from environment variables."""
        # Fixture used for side effects
        _ = mock_env_vars

        settings = Settings()  # pyright: ignore[reportCallIssue]

        assert settings.armis_api_key == "test-secret-key"
        assert settings.armis_api_url == "https://api.armis.com"
        assert settings.armis_timeout_seconds == 10.0
        assert settings.armis_max_retries == 2
        assert settings.log_level == "DEBUG"

    def test_empty_api_key_raises(
        self,
        mock_env_vars: dict[str, str],
        monkeypatch: MonkeyPatch,
    ) -> None:
        """Test that an empty ARMIS_API_KEY raises error."""
        _ = mock_env_vars
        monkeypatch.setenv("ARMIS_API_KEY", "   ")

        with pytest.raises(ConfigurationError) as exc_info:
            _ = Settings()  # pyright: ignore[reportCallIssue]

        assert exc_info.value.config_key == "ARMIS_API_KEY"

    def test_url_without_scheme_raises(
        self,
        mock_env_vars: dict[str, str],
        monkeypatch: MonkeyPatch,
    ) -> None:
        """Test that ARMIS_API_URL must be an http(s) URL."""
        _ = mock_env_vars
        monkeypatch.setenv("ARMIS_API_URL", "api.armis.com")

        with pytest.raises(ConfigurationError) as exc_info:
            _ = Settings()  # pyright: ignore[reportCallIssue]

        assert "ARMIS_API_URL" in str(exc_info.value)

    def test_url_trailing_slash_stripped(
        self,
        mock_env_vars: dict[str, str],
        monkeypatch: MonkeyPatch,
    ) -> None:
        """Test that the base URL is normalized."""
        _ = mock_env_vars
        monkeypatch.setenv("ARMIS_API_URL", "https://tenant.armis.com/")

        settings = Settings()  # pyright: ignore[reportCallIssue]

        assert settings.armis_api_url == "https://tenant.armis.com"

    def test_invalid_log_level_raises(
        self,
        mock_env_vars: dict[str, str],
        monkeypatch: MonkeyPatch,
    ) -> None:
        """Test that invalid LOG_LEVEL raises error."""
        _ = mock_env_vars
        monkeypatch.setenv("LOG_LEVEL", "INVALID")

        with pytest.raises(ConfigurationError) as exc_info:
            _ = Settings()  # pyright: ignore[reportCallIssue]

        assert "LOG_LEVEL" in str(exc_info.value)

    def test_log_level_case_insensitive(
        self,
        mock_env_vars: dict[str, str],
        monkeypatch: MonkeyPatch,
    ) -> None:
        """Test that log level is upper-cased."""
        _ = mock_env_vars
        monkeypatch.setenv("LOG_LEVEL", "warning")

        assert Settings().log_level == "WARNING"  # pyright: ignore[reportCallIssue]


class TestGetSettings:
    """Tests for get_settings cached function."""

    def test_get_settings_caches_result(
        self,
        mock_env_vars: dict[str, str],
    ) -> None:
        """Test that get_settings caches the Settings instance."""
        _ = mock_env_vars

        settings1 = get_settings()
        settings2 = get_settings()

        assert settings1 is settings2

    def test_missing_api_key_wrapped(self, monkeypatch: MonkeyPatch) -> None:
        """Test that a missing required variable becomes a ConfigurationError."""
        monkeypatch.delenv("ARMIS_API_KEY", raising=False)
        monkeypatch.chdir("/")

        with pytest.raises(ConfigurationError) as exc_info:
            _ = get_settings()

        assert "Failed to load configuration" in str(exc_info.value)

    def test_out_of_range_timeout_wrapped(
        self,
        mock_env_vars: dict[str, str],
        monkeypatch: MonkeyPatch,
    ) -> None:
        """Test that range violations are reported as ConfigurationError."""
        _ = mock_env_vars
        monkeypatch.setenv("ARMIS_TIMEOUT_SECONDS", "0")

        with pytest.raises(ConfigurationError):
            _ = get_settings()


class TestSettingsDefaults:
    """Tests for Settings default values."""

    def test_defaults(self, monkeypatch: MonkeyPatch) -> None:
        """Test defaults when only the key is set."""
        for name in ("ARMIS_API_URL", "ARMIS_API_VERSION", "ARMIS_TIMEOUT_SECONDS", "ARMIS_MAX_RETRIES", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("ARMIS_API_KEY", "k")

        # Pass _env_file=None so a local .env cannot override the defaults
        settings = Settings(_env_file=None)  # pyright: ignore[reportCallIssue]

        assert settings.armis_api_url == "https://api.armis.com"
        assert settings.armis_api_version == "v1"
        assert settings.armis_timeout_seconds == 30.0
        assert settings.armis_max_retries == 3
        assert settings.log_level == "INFO"
