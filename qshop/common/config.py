"""Environment-driven settings for the payment bridge.

Settings are loaded once at process startup with `load_settings()` and handed
to the app factory, the bridge service and the gateway client. Nothing reads
the environment after that (see `.env.example`).
"""

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


SANDBOX_BASE_URL = "https://sandbox.safaricom.co.ke"
SANDBOX_SHORTCODE = "174379"


class BridgeSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "payment-bridge"
    environment: str = "development"
    log_level: str = "INFO"

    mpesa_base_url: str = SANDBOX_BASE_URL
    mpesa_consumer_key: SecretStr
    mpesa_consumer_secret: SecretStr
    mpesa_passkey: SecretStr
    mpesa_shortcode: str = SANDBOX_SHORTCODE
    mpesa_callback_url: str
    mpesa_timezone: str = "Africa/Nairobi"
    mpesa_timeout_seconds: float = 30.0
    mpesa_token_cache_enabled: bool = False
    mpesa_token_expiry_margin_seconds: int = 60

    cors_allowed_origins: str = "https://qshopv1.vercel.app,http://localhost:5173"
    frontend_url: str | None = None

    otel_enabled: bool = False
    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def allowed_origins(self) -> list[str]:
        """Configured CORS origins plus `FRONTEND_URL` when set."""

        origins = [origin.strip() for origin in self.cors_allowed_origins.split(",") if origin.strip()]
        if self.frontend_url and self.frontend_url not in origins:
            origins.append(self.frontend_url)
        return origins

    @property
    def token_url(self) -> str:
        return f"{self.mpesa_base_url.rstrip('/')}/oauth/v1/generate?grant_type=client_credentials"

    @property
    def stk_push_url(self) -> str:
        return f"{self.mpesa_base_url.rstrip('/')}/mpesa/stkpush/v1/processrequest"


def load_settings(**overrides) -> BridgeSettings:
    """Build settings from the environment; keyword overrides win."""

    return BridgeSettings(**overrides)
