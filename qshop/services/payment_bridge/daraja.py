"""Daraja STK push request construction.

Pure helpers: the timestamp, the per-request password and the push payload
depend only on their arguments so they can be recomputed by the gateway (and
by tests) from the same inputs.
"""

import base64
from datetime import datetime
from zoneinfo import ZoneInfo

from qshop.common.contract import TRANSACTION_DESC, TRANSACTION_TYPE, PaymentRequest


def generate_timestamp(now: datetime | None = None, tz: str = "Africa/Nairobi") -> str:
    """Return `YYYYMMDDHHmmss` for `now` (default: current time) in merchant time.

    Naive datetimes are taken as already being merchant-local.
    """

    if now is None:
        now = datetime.now(ZoneInfo(tz))
    elif now.tzinfo is not None:
        now = now.astimezone(ZoneInfo(tz))
    return f"{now.year:04d}{now.month:02d}{now.day:02d}{now.hour:02d}{now.minute:02d}{now.second:02d}"


def generate_password(shortcode: str, passkey: str, timestamp: str) -> str:
    """Base64 of shortcode + passkey + timestamp, as Daraja recomputes it."""

    return base64.b64encode(f"{shortcode}{passkey}{timestamp}".encode("utf-8")).decode("ascii")


def build_push_payload(
    request: PaymentRequest,
    shortcode: str,
    passkey: str,
    callback_url: str,
    timestamp: str,
) -> dict:
    """Assemble the CustomerPayBillOnline body for the push endpoint."""

    return {
        "BusinessShortCode": shortcode,
        "Password": generate_password(shortcode, passkey, timestamp),
        "Timestamp": timestamp,
        "TransactionType": TRANSACTION_TYPE,
        "Amount": request.amount,
        "PartyA": request.phone_number,
        "PartyB": shortcode,
        "PhoneNumber": request.phone_number,
        "CallBackURL": callback_url,
        "AccountReference": request.account_reference,
        "TransactionDesc": TRANSACTION_DESC,
    }
