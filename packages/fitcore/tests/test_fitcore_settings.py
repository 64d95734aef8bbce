"""
Tests for fitcore settings.
"""

import pytest
from pydantic import ValidationError

from fitcore.settings import Settings, get_settings


class TestSettings:
    """Tests for environment-driven configuration."""

    def test_defaults(self, monkeypatch):
        """Test processor defaults."""
        for name in ("OUTBOX_INTERVAL_SECONDS", "OUTBOX_BATCH_SIZE", "OUTBOX_MAX_RETRY_ATTEMPTS"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)

        assert settings.OUTBOX_INTERVAL_SECONDS == 10.0
        assert settings.OUTBOX_BATCH_SIZE == 50
        assert settings.OUTBOX_MAX_RETRY_ATTEMPTS == 3
        assert settings.OUTBOX_POISON_UNDECODABLE is True
        assert settings.INBOX_PROCESSING_TTL_SECONDS is None

    def test_environment_overrides(self, monkeypatch):
        """Test values are read from the environment."""
        monkeypatch.setenv("OUTBOX_BATCH_SIZE", "7")
        monkeypatch.setenv("OUTBOX_MAX_RETRY_ATTEMPTS", "5")
        monkeypatch.setenv("INBOX_PROCESSING_TTL_SECONDS", "300")

        settings = Settings(_env_file=None)

        assert settings.OUTBOX_BATCH_SIZE == 7
        assert settings.OUTBOX_MAX_RETRY_ATTEMPTS == 5
        assert settings.INBOX_PROCESSING_TTL_SECONDS == 300.0

    @pytest.mark.parametrize(
        "name,value",
        [
            ("OUTBOX_INTERVAL_SECONDS", "0"),
            ("OUTBOX_BATCH_SIZE", "-1"),
            ("OUTBOX_MAX_RETRY_ATTEMPTS", "0"),
            ("OUTBOX_LAST_ERROR_MAX_LENGTH", "0"),
        ],
    )
    def test_rejects_non_positive(self, monkeypatch, name, value):
        """Test invalid processor configuration fails at startup."""
        monkeypatch.setenv(name, value)
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_last_error_length_fits_column(self, monkeypatch):
        """Test the error bound cannot exceed what outbox_messages.last_error stores."""
        monkeypatch.setenv("OUTBOX_LAST_ERROR_MAX_LENGTH", "5000")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

        monkeypatch.setenv("OUTBOX_LAST_ERROR_MAX_LENGTH", "1000")
        assert Settings(_env_file=None).OUTBOX_LAST_ERROR_MAX_LENGTH == 1000

    def test_get_settings_is_cached(self):
        """Test the environment is parsed once."""
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
