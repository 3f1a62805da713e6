"""Client-side M-Pesa payment initiation.

Normalizes what a shopper types into the phone field, checks the amount and
calls the bridge. `PaymentClient.initiate_payment` never raises: every path
ends in a `PaymentOutcome`.
"""

import math
import re
from typing import Any

import httpx
from pydantic import BaseModel

from qshop.common.contract import (
    COUNTRY_CODE,
    DEFAULT_ACCOUNT_REFERENCE,
    SUBSCRIBER_NUMBER_PATTERN,
    TRUNK_PREFIX,
    PaymentRequest,
)
from qshop.common.errors import INVALID_AMOUNT_MESSAGE, MISSING_FIELDS_MESSAGE
from qshop.common.logging import logger

STK_PUSH_PATH = "/api/mpesa/stkpush"
SUCCESS_MESSAGE = "Payment request initiated successfully"
FAILURE_MESSAGE = "Payment initiation failed"
INVALID_PHONE_MESSAGE = "Invalid phone number"

_LEADING_INTEGER = re.compile(r"^\s*([+-]?\d+)")


class PaymentOutcome(BaseModel):
    """`{success, data, message}` on success, `{success, error}` otherwise."""

    success: bool
    data: Any = None
    message: str | None = None
    error: str | None = None

    @classmethod
    def ok(cls, data, message: str = SUCCESS_MESSAGE) -> "PaymentOutcome":
        return cls(success=True, data=data, message=message)

    @classmethod
    def failed(cls, error: str) -> "PaymentOutcome":
        return cls(success=False, error=error)

    def as_dict(self) -> dict:
        if self.success:
            return {"success": True, "data": self.data, "message": self.message}
        return {"success": False, "error": self.error}


def normalize_phone_number(phone_number) -> int:
    """Turn e.g. `"0712 345 678"` or `"+254712345678"` into `254712345678`.

    Numbers with no recognizable prefix get the country code prepended as-is,
    so short or malformed input can still come out invalid.
    """

    cleaned = re.sub(r"\D", "", str(phone_number))
    if cleaned.startswith(TRUNK_PREFIX):
        cleaned = COUNTRY_CODE + cleaned[1:]
    if not cleaned.startswith(COUNTRY_CODE):
        cleaned = COUNTRY_CODE + cleaned
    return int(cleaned)


def parse_amount(amount) -> int | None:
    """Leading-integer parse; None where nothing numeric can be read."""

    if isinstance(amount, bool):
        return None
    if isinstance(amount, int):
        return amount
    if isinstance(amount, float):
        if not math.isfinite(amount):
            return None
        return int(amount)
    match = _LEADING_INTEGER.match(str(amount))
    if match is None:
        return None
    return int(match.group(1))


def _is_missing(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _error_from_response(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return FAILURE_MESSAGE
    if isinstance(body, dict) and isinstance(body.get("error"), str) and body["error"]:
        return body["error"]
    return FAILURE_MESSAGE


class PaymentClient:
    """Calls the bridge's `/api/mpesa/stkpush` on behalf of a shopper."""

    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        timeout: float = 30.0,
        strict_phone: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.strict_phone = strict_phone
        self._transport = transport

    def build_request(self, phone_number, amount, account_reference: str | None = None) -> PaymentRequest:
        """Validate and normalize input; raises ValueError with a user-facing message."""

        if _is_missing(phone_number) or _is_missing(amount):
            raise ValueError(MISSING_FIELDS_MESSAGE)
        normalized = normalize_phone_number(phone_number)
        parsed_amount = parse_amount(amount)
        if parsed_amount is None or parsed_amount <= 0:
            raise ValueError(INVALID_AMOUNT_MESSAGE)
        if self.strict_phone and not re.match(SUBSCRIBER_NUMBER_PATTERN, str(normalized)):
            raise ValueError(INVALID_PHONE_MESSAGE)
        return PaymentRequest(
            phone_number=normalized,
            amount=parsed_amount,
            account_reference=account_reference or DEFAULT_ACCOUNT_REFERENCE,
        )

    async def initiate_payment(
        self,
        phone_number,
        amount,
        account_reference: str = DEFAULT_ACCOUNT_REFERENCE,
    ) -> PaymentOutcome:
        try:
            request = self.build_request(phone_number, amount, account_reference)
        except ValueError as exc:
            logger.warning("payment_input_rejected error=%s", exc)
            return PaymentOutcome.failed(str(exc))

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(f"{self.base_url}{STK_PUSH_PATH}", json=request.to_wire())
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("payment_request_failed error=%s", exc)
            return PaymentOutcome.failed(FAILURE_MESSAGE)

        if response.is_error:
            error = _error_from_response(response)
            logger.error("payment_request_rejected status=%s error=%s", response.status_code, error)
            return PaymentOutcome.failed(error)
        try:
            data = response.json()
        except ValueError:
            data = response.text
        return PaymentOutcome.ok(data)
