"""Infrastructure layer exports."""

from applepay_token.infrastructure.certificates import (
    get_extension_value,
    load_ephemeral_public_key,
    load_merchant_certificate,
    load_merchant_certificate_file,
    merchant_identifier_from_certificate,
    public_key_hash,
)
from applepay_token.infrastructure.envelope import (
    PaymentTokenEnvelope,
    PaymentTokenHeader,
    parse_payment_token,
)
from applepay_token.infrastructure.keystore import load_merchant_key, load_merchant_key_file
from applepay_token.infrastructure.kms import KMSMerchantKey

__all__ = [
    "get_extension_value",
    "load_ephemeral_public_key",
    "load_merchant_certificate",
    "load_merchant_certificate_file",
    "merchant_identifier_from_certificate",
    "public_key_hash",
    "PaymentTokenEnvelope",
    "PaymentTokenHeader",
    "parse_payment_token",
    "load_merchant_key",
    "load_merchant_key_file",
    "KMSMerchantKey",
]
