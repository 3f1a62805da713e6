"""Initiate one STK push through a running bridge.

Useful for sandbox smoke tests: the phone receives the prompt, the outcome
record is printed as JSON.
"""

import argparse
import asyncio
import json

from qshop.client.payments import PaymentClient
from qshop.common.contract import DEFAULT_ACCOUNT_REFERENCE


async def run(base_url: str, phone: str, amount: str, account_reference: str, strict_phone: bool) -> dict:
    """Send the request and return the outcome as a plain dict."""

    client = PaymentClient(base_url=base_url, strict_phone=strict_phone)
    outcome = await client.initiate_payment(phone, amount, account_reference)
    return outcome.as_dict()


def main() -> None:
    """Parse CLI args, initiate the payment, exit non-zero on failure."""

    parser = argparse.ArgumentParser(description="Send an M-Pesa STK push via the payment bridge.")
    parser.add_argument("--base-url", default="http://localhost:5000")
    parser.add_argument("--phone", required=True, help="Phone number, e.g. 0712345678")
    parser.add_argument("--amount", required=True)
    parser.add_argument("--account-reference", default=DEFAULT_ACCOUNT_REFERENCE)
    parser.add_argument("--permissive-phone", action="store_true", help="Skip the post-normalization shape check")
    args = parser.parse_args()

    outcome = asyncio.run(
        run(args.base_url, args.phone, args.amount, args.account_reference, not args.permissive_phone)
    )
    print(json.dumps(outcome, indent=2))
    if not outcome["success"]:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
