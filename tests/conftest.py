"""Shared fixtures: test settings and an in-memory Daraja double."""

import httpx
import pytest

from qshop.common.config import load_settings


TOKEN_PATH = "/oauth/v1/generate"
PUSH_PATH = "/mpesa/stkpush/v1/processrequest"

ACCEPTED = {
    "MerchantRequestID": "29115-34620561-1",
    "CheckoutRequestID": "ws_CO_191220191020363925",
    "ResponseCode": "0",
    "ResponseDescription": "Success. Request accepted for processing",
    "CustomerMessage": "Success. Request accepted for processing",
}


class FakeDaraja:
    """Answers token and push calls with configurable canned responses."""

    def __init__(self) -> None:
        self.token_status = 200
        self.token_body = {"access_token": "test-token", "expires_in": "3599"}
        self.push_status = 200
        self.push_body = dict(ACCEPTED)
        self.token_error: Exception | None = None
        self.push_error: Exception | None = None
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == TOKEN_PATH:
            if self.token_error is not None:
                raise self.token_error
            return self._respond(self.token_status, self.token_body)
        if request.url.path == PUSH_PATH:
            if self.push_error is not None:
                raise self.push_error
            return self._respond(self.push_status, self.push_body)
        return httpx.Response(404, json={"errorMessage": "not found"})

    @staticmethod
    def _respond(status: int, body) -> httpx.Response:
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, path: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]


@pytest.fixture
def settings():
    return load_settings(
        _env_file=None,
        mpesa_base_url="https://daraja.test",
        mpesa_consumer_key="consumer-key",
        mpesa_consumer_secret="consumer-secret",
        mpesa_passkey="test-passkey",
        mpesa_shortcode="174379",
        mpesa_callback_url="https://qshop.test/api/mpesa/callback",
        mpesa_timeout_seconds=5.0,
        frontend_url="https://shop.test",
    )


@pytest.fixture
def daraja():
    return FakeDaraja()
