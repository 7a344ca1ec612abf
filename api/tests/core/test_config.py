"""Unit tests for core.config module.

Tests cover:
- SR_REDIR__HOST parsing and validation
- docs_enabled flag
- get_settings / clear_settings_cache lru_cache behavior
"""

import pytest
from pydantic import ValidationError

from core.config import Settings, clear_settings_cache, get_settings


@pytest.mark.unit
class TestSettingsHost:
    def test_default_host(self, monkeypatch):
        monkeypatch.delenv("SR_REDIR__HOST", raising=False)
        settings = Settings()

        assert settings.host == "0.0.0.0:8080"
        assert settings.bind_host == "0.0.0.0"
        assert settings.bind_port == 8080

    def test_host_from_environment(self, monkeypatch):
        monkeypatch.setenv("SR_REDIR__HOST", "127.0.0.1:9000")
        settings = Settings()

        assert settings.bind_host == "127.0.0.1"
        assert settings.bind_port == 9000

    def test_ipv6_host(self):
        settings = Settings(host="[::1]:8443")

        assert settings.bind_host == "::1"
        assert settings.bind_port == 8443

    @pytest.mark.parametrize(
        "host", ["localhost", "localhost:", ":8080", "host:http", "host:70000"]
    )
    def test_invalid_host_rejected(self, host):
        with pytest.raises(ValidationError, match="SR_REDIR__HOST"):
            Settings(host=host)


@pytest.mark.unit
class TestSettingsFlags:
    def test_docs_disabled_by_default(self):
        settings = Settings(debug=False, enable_docs=False)

        assert settings.docs_enabled is False

    def test_debug_enables_docs(self):
        assert Settings(debug=True).docs_enabled is True

    def test_enable_docs(self):
        assert Settings(enable_docs=True).docs_enabled is True

    def test_settings_are_frozen(self):
        settings = Settings()

        with pytest.raises(ValidationError):
            settings.host = "127.0.0.1:1"  # type: ignore[misc]


@pytest.mark.unit
class TestGetSettings:
    def test_cached(self):
        assert get_settings() is get_settings()

    def test_clear_cache_picks_up_environment(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("SR_REDIR__HOST", "127.0.0.1:7000")
        clear_settings_cache()

        second = get_settings()

        assert second is not first
        assert second.bind_port == 7000
