"""Software merchant key loading from PKCS#12 or PEM files.

Merchant keys exported from a keychain arrive as a password-protected
PKCS#12 file holding one key and its certificate. In production the key
should live in an HSM or KMS instead (see infrastructure.kms).
"""

from pathlib import Path
from typing import Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import pkcs12

from applepay_token.domain.exceptions import MerchantKeyError
from applepay_token.domain.key_agreement import SoftwareMerchantKey
from applepay_token.logging_config import get_logger

logger = get_logger(__name__)

PEM_MARKER = b"-----BEGIN"


def _encode_password(password: Optional[str]) -> Optional[bytes]:
    return password.encode("utf-8") if password else None


def load_merchant_key(data: bytes, password: Optional[str] = None) -> SoftwareMerchantKey:
    """Load a merchant EC private key from PKCS#12 or PEM bytes.

    Args:
        data: PKCS#12 archive or PEM private key
        password: Archive/key password, if any

    Returns:
        SoftwareMerchantKey wrapping the private key

    Raises:
        MerchantKeyError: If the data cannot be decoded or holds no EC key
    """
    secret = _encode_password(password)

    try:
        if data.lstrip().startswith(PEM_MARKER):
            private_key = serialization.load_pem_private_key(data, password=secret)
        else:
            private_key, _certificate, _additional = pkcs12.load_key_and_certificates(data, secret)
    except (ValueError, TypeError) as e:
        # Wrong password and malformed data surface the same way
        raise MerchantKeyError(f"Failed to load merchant private key: {type(e).__name__}") from e

    if private_key is None:
        raise MerchantKeyError("Key archive contains no private key")

    if not isinstance(private_key, ec.EllipticCurvePrivateKey):
        raise MerchantKeyError(
            f"Merchant key must be an elliptic-curve key, got {type(private_key).__name__}"
        )

    logger.info("merchant_key_loaded", curve=private_key.curve.name)
    return SoftwareMerchantKey(private_key)


def load_merchant_key_file(path: str | Path, password: Optional[str] = None) -> SoftwareMerchantKey:
    """Load a merchant key (.p12/.pfx/.pem) from disk."""
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise MerchantKeyError(f"Cannot read merchant key {path}: {e}") from e

    return load_merchant_key(data, password)
