"""Settings loading and redacted startup config."""

import pytest
from pydantic import ValidationError

from qshop.common.config import load_settings
from qshop.common.startup import startup_config
from qshop.services.payment_bridge.main import STARTUP_KEYS


def test_settings_read_from_environment(monkeypatch):
    """Settings come from environment variables with sandbox defaults."""

    monkeypatch.setenv("MPESA_CONSUMER_KEY", "env-key")
    monkeypatch.setenv("MPESA_CONSUMER_SECRET", "env-secret")
    monkeypatch.setenv("MPESA_PASSKEY", "env-passkey")
    monkeypatch.setenv("MPESA_CALLBACK_URL", "https://cb.test/hook")
    monkeypatch.setenv("MPESA_TOKEN_CACHE_ENABLED", "true")

    settings = load_settings(_env_file=None)

    assert settings.mpesa_consumer_key.get_secret_value() == "env-key"
    assert settings.mpesa_shortcode == "174379"
    assert settings.mpesa_token_cache_enabled is True
    assert settings.token_url == "https://sandbox.safaricom.co.ke/oauth/v1/generate?grant_type=client_credentials"
    assert settings.stk_push_url == "https://sandbox.safaricom.co.ke/mpesa/stkpush/v1/processrequest"


def test_credentials_are_required(monkeypatch):
    """Missing Daraja credentials fail at startup."""

    for name in ["MPESA_CONSUMER_KEY", "MPESA_CONSUMER_SECRET", "MPESA_PASSKEY", "MPESA_CALLBACK_URL"]:
        monkeypatch.delenv(name, raising=False)

    with pytest.raises(ValidationError):
        load_settings(_env_file=None)


def test_allowed_origins_include_frontend_url(settings):
    """FRONTEND_URL is appended to the configured origins."""

    assert settings.allowed_origins == [
        "https://qshopv1.vercel.app",
        "http://localhost:5173",
        "https://shop.test",
    ]


def test_startup_config_redacts_secrets(settings):
    """Secrets never appear in the startup log payload."""

    config = startup_config(settings, STARTUP_KEYS)

    assert config["MPESA_CONSUMER_KEY"] == "<redacted>"
    assert config["MPESA_CONSUMER_SECRET"] == "<redacted>"
    assert config["MPESA_PASSKEY"] == "<redacted>"
    assert config["MPESA_SHORTCODE"] == "174379"
    assert config["MPESA_CALLBACK_URL"] == "https://qshop.test/api/mpesa/callback"
    assert "test-passkey" not in str(config)
