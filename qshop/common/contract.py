"""Request contract shared by the bridge and its clients."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

COUNTRY_CODE = "254"
TRUNK_PREFIX = "0"
DEFAULT_ACCOUNT_REFERENCE = "StudentMarketplace"
TRANSACTION_TYPE = "CustomerPayBillOnline"
TRANSACTION_DESC = "Payment for order"

# Safaricom subscriber numbers: country code plus nine digits.
SUBSCRIBER_NUMBER_PATTERN = rf"^{COUNTRY_CODE}\d{{9}}$"


class PaymentRequest(BaseModel):
    """Body of `POST /api/mpesa/stkpush`."""

    model_config = ConfigDict(populate_by_name=True)

    phone_number: int = Field(alias="phoneNumber", gt=0)
    amount: int = Field(gt=0)
    account_reference: str = Field(default=DEFAULT_ACCOUNT_REFERENCE, alias="accountReference")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)

    @field_validator("phone_number", "amount", mode="before")
    @classmethod
    def reject_booleans(cls, value):
        # JSON true/false would otherwise coerce to 1/0.
        if isinstance(value, bool):
            raise ValueError("must be a number, not a boolean")
        return value
