"""Pydantic models for the Apple Pay payment token JSON envelope.

The envelope is what the merchant's front end receives from Apple Pay:

    {
      "version": "EC_v1",
      "data": "<base64 ciphertext>",
      "signature": "<base64 PKCS #7 detached signature>",
      "header": {
        "ephemeralPublicKey": "<base64 SubjectPublicKeyInfo>",
        "publicKeyHash": "<base64 SHA-256>",
        "transactionId": "<hex>"
      }
    }

Apple Pay JS wraps it as {"paymentData": {...}}; both forms are accepted.
"""

import base64
import binascii
import json
from typing import Any, Optional

from cryptography.hazmat.primitives.asymmetric import ec
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from applepay_token.domain.exceptions import TokenFormatError
from applepay_token.infrastructure.certificates import load_ephemeral_public_key

SUPPORTED_VERSION = "EC_v1"


def _b64decode(value: str, field: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error as e:
        raise TokenFormatError(f"{field} is not valid base64: {e}") from e


class PaymentTokenHeader(BaseModel):
    """Token header (JSON format)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ephemeral_public_key: str = Field(
        ..., alias="ephemeralPublicKey", description="Ephemeral public key (base64 DER)"
    )
    public_key_hash: str = Field(
        ..., alias="publicKeyHash", description="SHA-256 of the merchant certificate key (base64)"
    )
    transaction_id: str = Field(..., alias="transactionId", description="Transaction identifier (hex)")
    application_data: Optional[str] = Field(
        None, alias="applicationData", description="SHA-256 of merchant application data (hex)"
    )


class PaymentTokenEnvelope(BaseModel):
    """Apple Pay payment token (JSON format)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: str = Field(..., description="Token version, only EC_v1 is supported")
    data: str = Field(..., description="Encrypted payment data (base64)")
    signature: str = Field(..., description="Detached signature (base64), not verified")
    header: PaymentTokenHeader

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        if value != SUPPORTED_VERSION:
            raise ValueError(f"Unsupported token version {value!r}, expected {SUPPORTED_VERSION}")
        return value

    @property
    def transaction_id(self) -> str:
        return self.header.transaction_id

    def ciphertext(self) -> bytes:
        """Decode the encrypted payment data (payload plus GCM tag)."""
        return _b64decode(self.data, "data")

    def ephemeral_public_key(self) -> ec.EllipticCurvePublicKey:
        """Parse the ephemeral public key from the header.

        Raises:
            KeyAgreementError: If the key is not a valid EC public key
        """
        return load_ephemeral_public_key(self.header.ephemeral_public_key)

    def public_key_hash(self) -> bytes:
        return _b64decode(self.header.public_key_hash, "header.publicKeyHash")


def parse_payment_token(raw: str | bytes | dict[str, Any]) -> PaymentTokenEnvelope:
    """Parse an Apple Pay payment token.

    Args:
        raw: JSON text/bytes or an already-decoded dict

    Returns:
        PaymentTokenEnvelope

    Raises:
        TokenFormatError: If the token is not a valid EC_v1 envelope
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise TokenFormatError(f"Payment token is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise TokenFormatError("Payment token must be a JSON object")

    if "paymentData" in raw and isinstance(raw["paymentData"], dict):
        raw = raw["paymentData"]

    try:
        return PaymentTokenEnvelope.model_validate(raw)
    except ValidationError as e:
        messages = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise TokenFormatError(f"Invalid payment token: {messages}") from e
