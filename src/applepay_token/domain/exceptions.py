"""Custom exceptions for Apple Pay token decryption.

Every error is terminal for the decryption attempt that raised it. The
cryptographic steps are deterministic, so nothing here is retried; the
caller decides whether to re-fetch inputs and run the pipeline again.
"""


class PaymentTokenError(Exception):
    """Base exception for payment token decryption errors."""

    pass


class MalformedExtensionError(PaymentTokenError):
    """Raised when the merchant identifier extension value has the wrong size."""

    pass


class EncodingError(PaymentTokenError):
    """Raised when the merchant identifier body is not ASCII hexadecimal."""

    pass


class KeyAgreementError(PaymentTokenError):
    """
    Raised when ECDH key agreement cannot be performed.

    Examples:
    - Ephemeral key is on a different curve than the merchant key
    - Ephemeral point is not on the curve or is the point at infinity
    - Peer key is not an elliptic-curve key
    """

    pass


class KeyDerivationError(PaymentTokenError):
    """Base exception for Concatenation KDF sizing errors."""

    pass


class BufferTooSmallError(KeyDerivationError):
    """Raised when the output region cannot hold the requested key length."""

    pass


class LengthOverflowError(KeyDerivationError):
    """Raised when the requested length exceeds hLen * (2^32 - 1)."""

    pass


class AuthenticationFailureError(PaymentTokenError):
    """
    Raised when AES-GCM tag verification fails.

    No plaintext is released when this is raised.
    """

    pass


class MerchantCertificateError(PaymentTokenError):
    """Raised when the merchant certificate is unusable for this token."""

    pass


class MerchantKeyError(PaymentTokenError):
    """Raised when the merchant private key cannot be loaded or reached."""

    pass


class TokenFormatError(PaymentTokenError):
    """Raised when the payment token envelope or payload is invalid."""

    pass
