"""Apple Pay token decryption domain layer.

This package contains the cryptographic core: merchant identifier
extraction, ECDH key agreement, the Concatenation KDF, AES-GCM decryption
and the pipeline composing them. It performs no I/O.
"""

from applepay_token.domain.encryption import APPLE_PAY_IV, decrypt_with_key, scrubbed
from applepay_token.domain.exceptions import (
    AuthenticationFailureError,
    BufferTooSmallError,
    EncodingError,
    KeyAgreementError,
    KeyDerivationError,
    LengthOverflowError,
    MalformedExtensionError,
    MerchantCertificateError,
    MerchantKeyError,
    PaymentTokenError,
    TokenFormatError,
)
from applepay_token.domain.kdf import ConcatKDF
from applepay_token.domain.key_agreement import (
    MerchantPrivateKey,
    SoftwareMerchantKey,
    compute_shared_secret,
    ephemeral_public_key_from_point,
)
from applepay_token.domain.merchant import (
    KDF_OTHER_INFO_PREFIX,
    MERCHANT_IDENTIFIER_OID,
    build_other_info,
    extract_merchant_identifier,
    merchant_identifier_from_name,
)
from applepay_token.domain.payment_data import DecryptedPaymentData
from applepay_token.domain.services import PaymentTokenDecryptor, decrypt

__all__ = [
    # Exceptions
    "PaymentTokenError",
    "MalformedExtensionError",
    "EncodingError",
    "KeyAgreementError",
    "KeyDerivationError",
    "BufferTooSmallError",
    "LengthOverflowError",
    "AuthenticationFailureError",
    "MerchantCertificateError",
    "MerchantKeyError",
    "TokenFormatError",
    # Merchant identifier
    "MERCHANT_IDENTIFIER_OID",
    "KDF_OTHER_INFO_PREFIX",
    "extract_merchant_identifier",
    "build_other_info",
    "merchant_identifier_from_name",
    # Key agreement
    "MerchantPrivateKey",
    "SoftwareMerchantKey",
    "compute_shared_secret",
    "ephemeral_public_key_from_point",
    # KDF and decryption
    "ConcatKDF",
    "APPLE_PAY_IV",
    "decrypt_with_key",
    "scrubbed",
    # Services
    "decrypt",
    "PaymentTokenDecryptor",
    "DecryptedPaymentData",
]
