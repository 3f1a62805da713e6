"""Error taxonomy shared by the bridge service and its HTTP surface."""

MISSING_FIELDS_MESSAGE = "Phone number and amount are required"
INVALID_AMOUNT_MESSAGE = "Invalid amount"
INITIATION_FAILED_MESSAGE = "Failed to initiate payment"


class PaymentError(Exception):
    """Base class for failures of one payment initiation."""

    status_code = 500
    reason = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class PaymentValidationError(PaymentError):
    """Client input rejected before any gateway call."""

    status_code = 400
    reason = "validation"


class GatewayError(PaymentError):
    """The gateway could not be used to initiate the payment."""

    reason = "gateway"

    def __init__(self, message: str = INITIATION_FAILED_MESSAGE, status_code: int | None = None, body=None) -> None:
        super().__init__(message)
        self.gateway_status = status_code
        self.body = body


class GatewayAuthError(GatewayError):
    """Token exchange failed; the cause stays server-side."""

    reason = "auth"


class GatewayRejectedError(GatewayError):
    """The push endpoint answered with an error body."""

    reason = "rejected"


class GatewayTransportError(GatewayError):
    """Timeout, DNS or connection failure talking to the gateway."""

    reason = "transport"
