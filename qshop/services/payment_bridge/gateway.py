"""Daraja HTTP client: token exchange and STK push relay.

Every initiation opens one `httpx.AsyncClient` with an explicit timeout and
makes two sequential calls on it: the token exchange, then the push.
"""

import asyncio
import time
from dataclasses import dataclass

import httpx

from qshop.common.config import BridgeSettings
from qshop.common.contract import PaymentRequest
from qshop.common.errors import (
    INITIATION_FAILED_MESSAGE,
    GatewayAuthError,
    GatewayRejectedError,
    GatewayTransportError,
)
from qshop.common.logging import logger
from qshop.common.metrics import gateway_request_duration_seconds, token_cache_hits_total
from qshop.services.payment_bridge.daraja import build_push_payload, generate_timestamp


def extract_error_message(response: httpx.Response) -> str | None:
    """Return Daraja's `errorMessage` from an error body, if there is one."""

    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("errorMessage")
        if isinstance(message, str) and message:
            return message
    return None


def _response_body(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return response.text


@dataclass
class CachedToken:
    value: str
    expires_at: float

    def usable(self, now: float) -> bool:
        return now < self.expires_at


class AccessTokenProvider:
    """Exchanges consumer key/secret for a bearer token.

    A fresh token is fetched on every call unless
    `mpesa_token_cache_enabled` is set, in which case a token is reused until
    `expires_in` minus the configured margin has elapsed.
    """

    def __init__(self, settings: BridgeSettings, clock=time.monotonic) -> None:
        self.settings = settings
        self._clock = clock
        self._cached: CachedToken | None = None
        self._lock = asyncio.Lock()

    def invalidate(self) -> None:
        self._cached = None

    async def get_token(self, client: httpx.AsyncClient) -> str:
        if not self.settings.mpesa_token_cache_enabled:
            token, _ = await self._fetch(client)
            return token

        async with self._lock:
            now = self._clock()
            if self._cached is not None and self._cached.usable(now):
                token_cache_hits_total.labels(service=self.settings.service_name).inc()
                return self._cached.value
            token, expires_in = await self._fetch(client)
            ttl = expires_in - self.settings.mpesa_token_expiry_margin_seconds
            if ttl > 0:
                self._cached = CachedToken(value=token, expires_at=self._clock() + ttl)
            else:
                self._cached = None
            return token

    async def _fetch(self, client: httpx.AsyncClient) -> tuple[str, int]:
        """One round-trip to the OAuth endpoint; returns (token, expires_in)."""

        auth = httpx.BasicAuth(
            self.settings.mpesa_consumer_key.get_secret_value(),
            self.settings.mpesa_consumer_secret.get_secret_value(),
        )
        try:
            with gateway_request_duration_seconds.labels(
                service=self.settings.service_name,
                endpoint="oauth",
            ).time():
                response = await client.get(self.settings.token_url, auth=auth)
        except httpx.HTTPError as exc:
            logger.error("token_request_failed error=%s", exc)
            raise GatewayAuthError() from exc

        if response.is_error:
            logger.error(
                "token_request_rejected status=%s body=%s",
                response.status_code,
                _response_body(response),
            )
            raise GatewayAuthError(status_code=response.status_code, body=_response_body(response))

        try:
            body = response.json()
        except ValueError as exc:
            logger.error("token_response_not_json status=%s", response.status_code)
            raise GatewayAuthError(status_code=response.status_code, body=response.text) from exc
        token = body.get("access_token") if isinstance(body, dict) else None
        if not isinstance(token, str) or not token:
            logger.error("token_response_missing_access_token")
            raise GatewayAuthError(status_code=response.status_code, body=body)

        try:
            expires_in = int(body.get("expires_in", 0))
        except (TypeError, ValueError):
            expires_in = 0
        return token, expires_in


class MpesaGateway:
    """Relays signed STK push requests to Daraja."""

    def __init__(
        self,
        settings: BridgeSettings,
        transport: httpx.AsyncBaseTransport | None = None,
        tokens: AccessTokenProvider | None = None,
    ) -> None:
        self.settings = settings
        self.tokens = tokens or AccessTokenProvider(settings)
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.mpesa_timeout_seconds, transport=self._transport)

    async def fetch_access_token(self) -> str:
        """Standalone token exchange, outside of a push."""

        async with self._client() as client:
            return await self.tokens.get_token(client)

    async def stk_push(self, request: PaymentRequest, timestamp: str | None = None) -> dict:
        """Send one push request and return Daraja's JSON body unchanged."""

        async with self._client() as client:
            token = await self.tokens.get_token(client)
            timestamp = timestamp or generate_timestamp(tz=self.settings.mpesa_timezone)
            payload = build_push_payload(
                request,
                shortcode=self.settings.mpesa_shortcode,
                passkey=self.settings.mpesa_passkey.get_secret_value(),
                callback_url=self.settings.mpesa_callback_url,
                timestamp=timestamp,
            )
            logger.info(
                "stk_push_request url=%s amount=%s phone=%s account_reference=%s timestamp=%s",
                self.settings.stk_push_url,
                request.amount,
                request.phone_number,
                request.account_reference,
                timestamp,
            )
            try:
                with gateway_request_duration_seconds.labels(
                    service=self.settings.service_name,
                    endpoint="stkpush",
                ).time():
                    response = await client.post(
                        self.settings.stk_push_url,
                        json=payload,
                        headers={"Authorization": f"Bearer {token}"},
                    )
            except httpx.HTTPError as exc:
                logger.error("stk_push_transport_error error=%s", exc)
                raise GatewayTransportError() from exc

        if response.status_code == 401:
            # A revoked token must not be served again from the cache.
            self.tokens.invalidate()
        if response.is_error:
            body = _response_body(response)
            logger.error("stk_push_rejected status=%s body=%s", response.status_code, body)
            raise GatewayRejectedError(
                extract_error_message(response) or INITIATION_FAILED_MESSAGE,
                status_code=response.status_code,
                body=body,
            )
        try:
            return response.json()
        except ValueError as exc:
            logger.error("stk_push_response_not_json status=%s", response.status_code)
            raise GatewayRejectedError(status_code=response.status_code, body=response.text) from exc
