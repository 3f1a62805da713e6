"""Startup-time helpers for safe config logging."""

from pydantic import SecretStr

from qshop.common.config import BridgeSettings
from qshop.common.logging import logger


def _safe_value(name: str, value) -> str:
    """Render one setting with redaction for secrets and secret-like names."""

    if value is None:
        return "<unset>"
    if isinstance(value, SecretStr):
        return "<redacted>" if value.get_secret_value() else "<unset>"
    if any(secret in name.upper() for secret in ["KEY", "SECRET", "PASSWORD", "TOKEN"]):
        return "<redacted>"
    return str(value)


def startup_config(settings: BridgeSettings, keys: list[str]) -> dict[str, str]:
    """Return the selected settings with secrets redacted."""

    config = {"service": settings.service_name}
    for key in keys:
        config[key.upper()] = _safe_value(key, getattr(settings, key, None))
    return config


def log_startup_config(settings: BridgeSettings, keys: list[str]) -> None:
    """Log selected startup config keys for quick troubleshooting."""

    logger.info("startup_config=%s", startup_config(settings, keys))
