"""Domain model for decrypted Apple Pay EC_v1 payment data.

The plaintext of an EC_v1 token is a JSON document describing the device
account number, its expiry, the transaction amount and either a 3-D Secure
cryptogram or EMV data. This model represents it once decryption has
succeeded (highly sensitive - PCI scope).
"""

import json
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from applepay_token.domain.exceptions import TokenFormatError


class PaymentDataDetails(BaseModel):
    """Payment-data-type specific fields (3DSecure or EMV)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    online_payment_cryptogram: Optional[str] = Field(None, alias="onlinePaymentCryptogram")
    eci_indicator: Optional[str] = Field(None, alias="eciIndicator")
    emv_data: Optional[str] = Field(None, alias="emvData")
    encrypted_pin_data: Optional[str] = Field(None, alias="encryptedPINData")


class DecryptedPaymentData(BaseModel):
    """Decrypted payment data from an Apple Pay token.

    Attributes:
        application_primary_account_number: Device-specific account number (DPAN)
        application_expiration_date: Expiry as YYMMDD
        currency_code: ISO 4217 numeric currency code
        transaction_amount: Amount in the currency's minor unit
        cardholder_name: Optional cardholder name
        device_manufacturer_identifier: Hex-encoded device manufacturer ID
        payment_data_type: "3DSecure" or "EMV"
        payment_data: Cryptogram or EMV fields
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    application_primary_account_number: str = Field(..., alias="applicationPrimaryAccountNumber")
    application_expiration_date: str = Field(..., alias="applicationExpirationDate")
    currency_code: str = Field(..., alias="currencyCode")
    transaction_amount: int = Field(..., alias="transactionAmount")
    cardholder_name: Optional[str] = Field(None, alias="cardholderName")
    device_manufacturer_identifier: str = Field(..., alias="deviceManufacturerIdentifier")
    payment_data_type: Literal["3DSecure", "EMV"] = Field(..., alias="paymentDataType")
    payment_data: PaymentDataDetails = Field(..., alias="paymentData")

    @field_validator("application_primary_account_number")
    @classmethod
    def _validate_pan(cls, value: str) -> str:
        if not value.isdigit() or not 12 <= len(value) <= 19:
            raise ValueError("applicationPrimaryAccountNumber must be 12-19 digits")
        return value

    @field_validator("application_expiration_date")
    @classmethod
    def _validate_expiration(cls, value: str) -> str:
        if len(value) != 6 or not value.isdigit():
            raise ValueError("applicationExpirationDate must be YYMMDD")
        return value

    @classmethod
    def from_bytes(cls, data: bytes) -> "DecryptedPaymentData":
        """Parse decrypted plaintext.

        Raises:
            TokenFormatError: If data is not valid payment data JSON
        """
        try:
            return cls.model_validate(json.loads(data))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise TokenFormatError(f"Payment data is not valid JSON: {e}") from e
        except ValidationError as e:
            # Field names only; values may contain card data
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise TokenFormatError(f"Invalid payment data fields: {fields}") from None

    @property
    def last4(self) -> str:
        return self.application_primary_account_number[-4:]

    @property
    def masked_pan(self) -> str:
        pan = self.application_primary_account_number
        return "*" * (len(pan) - 4) + pan[-4:]

    @property
    def exp_month(self) -> str:
        return self.application_expiration_date[2:4]

    @property
    def exp_year(self) -> str:
        return "20" + self.application_expiration_date[:2]

    def to_masked_dict(self) -> dict:
        """Serialize with Apple's field names and the account number masked."""
        result = self.model_dump(by_alias=True, exclude_none=True)
        result["applicationPrimaryAccountNumber"] = self.masked_pan
        return result

    def __repr__(self) -> str:
        return (
            f"DecryptedPaymentData(pan={self.masked_pan}, "
            f"type={self.payment_data_type}, amount={self.transaction_amount})"
        )

    __str__ = __repr__
