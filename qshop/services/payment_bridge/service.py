"""STK push initiation: input checks, then token + push through the gateway."""

from pydantic import ValidationError

from qshop.common.config import BridgeSettings
from qshop.common.contract import DEFAULT_ACCOUNT_REFERENCE, PaymentRequest
from qshop.common.errors import (
    INVALID_AMOUNT_MESSAGE,
    MISSING_FIELDS_MESSAGE,
    PaymentError,
    PaymentValidationError,
)
from qshop.common.logging import checkout_request_id_ctx, logger
from qshop.common.metrics import stk_push_failures_total, stk_push_initiated_total, stk_push_requests_total
from qshop.services.payment_bridge.gateway import MpesaGateway


def parse_payment_request(body) -> PaymentRequest:
    """Validate a raw `/stkpush` body without re-normalizing the phone number."""

    if not isinstance(body, dict):
        raise PaymentValidationError(MISSING_FIELDS_MESSAGE)
    phone_number = body.get("phoneNumber")
    amount = body.get("amount")
    if not phone_number or not amount:
        raise PaymentValidationError(MISSING_FIELDS_MESSAGE)

    try:
        return PaymentRequest.model_validate(
            {
                "phoneNumber": phone_number,
                "amount": amount,
                "accountReference": body.get("accountReference") or DEFAULT_ACCOUNT_REFERENCE,
            }
        )
    except ValidationError as exc:
        fields = {str(error["loc"][0]) for error in exc.errors() if error.get("loc")}
        if "amount" in fields:
            raise PaymentValidationError(INVALID_AMOUNT_MESSAGE) from exc
        if "phoneNumber" in fields:
            raise PaymentValidationError("Invalid phone number") from exc
        raise PaymentValidationError("Invalid account reference") from exc


class PaymentBridgeService:
    """Stateless bridge between the marketplace client and Daraja."""

    def __init__(self, settings: BridgeSettings, gateway: MpesaGateway) -> None:
        self.settings = settings
        self.gateway = gateway

    async def initiate_payment(self, body) -> dict:
        """Validate `body`, push it to the gateway and return the raw response.

        Raises `PaymentValidationError` before any network call for bad input
        and a `GatewayError` subclass when the token or push call fails.
        """

        stk_push_requests_total.labels(service=self.settings.service_name).inc()
        try:
            request = parse_payment_request(body)
            response = await self.gateway.stk_push(request)
        except PaymentError as exc:
            stk_push_failures_total.labels(service=self.settings.service_name, reason=exc.reason).inc()
            logger.warning("stk_push_failed reason=%s error=%s", exc.reason, exc.message)
            raise

        if isinstance(response, dict) and response.get("CheckoutRequestID"):
            checkout_token = checkout_request_id_ctx.set(str(response["CheckoutRequestID"]))
        else:
            checkout_token = None
        stk_push_initiated_total.labels(service=self.settings.service_name).inc()
        try:
            logger.info("stk_push_initiated response=%s", response)
        finally:
            if checkout_token is not None:
                checkout_request_id_ctx.reset(checkout_token)
        return response
