"""Exchange settings: defaults, environment overrides, per-exchange copies."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from HttpKit.Exchange import get
from HttpKit.Exchange.errors import ConfigurationError
from HttpKit.Exchange.settings import (
    ExchangeSettings,
    TrustPolicy,
    get_settings,
    invalidate_settings_cache,
)

URL = "http://example.com/"


class TestDefaults:
    def test_defaults(self):
        settings = ExchangeSettings()

        assert settings.buffer_size == 8192
        assert settings.ignore_close_errors is True
        assert settings.uncompress is False
        assert settings.follow_redirects is True
        assert settings.connect_timeout is None
        assert settings.read_timeout is None
        assert settings.proxy_url is None
        assert settings.trust.is_default
        assert settings.default_charset == "UTF-8"

    def test_cached_until_invalidated(self):
        first = get_settings()

        assert get_settings() is first
        invalidate_settings_cache()
        assert get_settings() is not first


class TestEnvironment:
    def test_scalar_override(self, monkeypatch):
        monkeypatch.setenv("HTTPKIT_BUFFER_SIZE", "4096")
        monkeypatch.setenv("HTTPKIT_UNCOMPRESS", "true")
        invalidate_settings_cache()

        assert get_settings().buffer_size == 4096
        assert get_settings().uncompress is True

    def test_nested_trust_override(self, monkeypatch):
        monkeypatch.setenv("HTTPKIT_TRUST__VERIFY_CERTIFICATES", "false")

        settings = ExchangeSettings()

        assert settings.trust.verify_certificates is False
        assert settings.trust.verify_hostname is True
        assert not settings.trust.is_default

    def test_proxy_from_environment(self, monkeypatch):
        monkeypatch.setenv("HTTPKIT_PROXY_HOST", "proxy.local")
        monkeypatch.setenv("HTTPKIT_PROXY_PORT", "3128")

        assert ExchangeSettings().proxy_url == "http://proxy.local:3128"


class TestValidation:
    def test_unknown_charset(self):
        with pytest.raises(ValidationError):
            ExchangeSettings(default_charset="no-such-charset")

    def test_proxy_host_requires_port(self):
        with pytest.raises(ValidationError):
            ExchangeSettings(proxy_host="proxy.local")

    @pytest.mark.parametrize("value", [0, -1])
    def test_buffer_size_must_be_positive(self, value):
        with pytest.raises(ValidationError):
            ExchangeSettings(buffer_size=value)

    def test_trust_policy_is_frozen(self):
        with pytest.raises(ValidationError):
            TrustPolicy().verify_certificates = False


class TestPerExchangeCopies:
    def test_setters_do_not_leak_into_defaults(self):
        request = get(URL).buffer_size(16).uncompress(True).ignore_close_errors(False)

        assert request.settings.buffer_size == 16
        assert request.settings.uncompress is True
        assert get_settings().buffer_size == 8192
        assert get_settings().uncompress is False
        assert get_settings().ignore_close_errors is True

    def test_explicit_settings_are_copied(self):
        shared = ExchangeSettings(buffer_size=64)
        request = get(URL, settings=shared).buffer_size(32)

        assert shared.buffer_size == 64
        assert request.settings.buffer_size == 32

    def test_buffer_size_below_one_rejected(self):
        with pytest.raises(ConfigurationError):
            get(URL).buffer_size(0)
