"""Apple Pay payment token decryption.

Typical use:

    from applepay_token import PaymentTokenDecryptor, parse_payment_token

    envelope = parse_payment_token(token_json)
    decryptor = PaymentTokenDecryptor(merchant_key, merchant_identifier)
    plaintext = decryptor.decrypt_token(envelope.ciphertext(), envelope.ephemeral_public_key())
"""

from applepay_token.domain import (
    AuthenticationFailureError,
    BufferTooSmallError,
    ConcatKDF,
    DecryptedPaymentData,
    EncodingError,
    KeyAgreementError,
    LengthOverflowError,
    MalformedExtensionError,
    MerchantCertificateError,
    MerchantKeyError,
    MerchantPrivateKey,
    PaymentTokenDecryptor,
    PaymentTokenError,
    SoftwareMerchantKey,
    TokenFormatError,
    decrypt,
    extract_merchant_identifier,
)
from applepay_token.infrastructure import (
    KMSMerchantKey,
    load_merchant_certificate,
    load_merchant_key,
    merchant_identifier_from_certificate,
    parse_payment_token,
)

__version__ = "0.1.0"

__all__ = [
    "decrypt",
    "PaymentTokenDecryptor",
    "ConcatKDF",
    "DecryptedPaymentData",
    "extract_merchant_identifier",
    "MerchantPrivateKey",
    "SoftwareMerchantKey",
    "KMSMerchantKey",
    "load_merchant_certificate",
    "load_merchant_key",
    "merchant_identifier_from_certificate",
    "parse_payment_token",
    "PaymentTokenError",
    "MalformedExtensionError",
    "EncodingError",
    "KeyAgreementError",
    "BufferTooSmallError",
    "LengthOverflowError",
    "AuthenticationFailureError",
    "MerchantCertificateError",
    "MerchantKeyError",
    "TokenFormatError",
]
