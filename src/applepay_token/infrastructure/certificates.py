"""X.509 and public key parsing for merchant certificates and token headers.

These are the collaborators that turn certificate and key encodings into
the structured values the decryption core consumes.
"""

import base64
import binascii
import hashlib
from pathlib import Path

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from applepay_token.domain.exceptions import KeyAgreementError, MerchantCertificateError
from applepay_token.domain.merchant import MERCHANT_IDENTIFIER_OID, extract_merchant_identifier
from applepay_token.logging_config import get_logger

logger = get_logger(__name__)

PEM_MARKER = b"-----BEGIN"
DER_OCTET_STRING = 0x04


def _der_length(length: int) -> bytes:
    if length < 0x80:
        return bytes([length])
    encoded = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([0x80 | len(encoded)]) + encoded


def load_merchant_certificate(data: bytes) -> x509.Certificate:
    """Load a merchant certificate from PEM or DER bytes.

    Raises:
        MerchantCertificateError: If data is not a certificate
    """
    try:
        if data.lstrip().startswith(PEM_MARKER):
            return x509.load_pem_x509_certificate(data)
        return x509.load_der_x509_certificate(data)
    except ValueError as e:
        raise MerchantCertificateError(f"Invalid merchant certificate: {e}") from e


def load_merchant_certificate_file(path: str | Path) -> x509.Certificate:
    """Load a merchant certificate (.cer/.pem) from disk."""
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise MerchantCertificateError(f"Cannot read merchant certificate {path}: {e}") from e

    certificate = load_merchant_certificate(data)
    logger.info("merchant_certificate_loaded", path=str(path), serial=certificate.serial_number)
    return certificate


def get_extension_value(certificate: x509.Certificate, oid: str) -> bytes | None:
    """Look up an extension and return its DER-encoded value.

    The result is the extnValue OCTET STRING including its tag and length,
    the same bytes X.509 libraries return from getExtensionValue.

    Returns:
        DER OCTET STRING bytes, or None if the extension is absent
    """
    try:
        extension = certificate.extensions.get_extension_for_oid(x509.ObjectIdentifier(oid))
    except x509.ExtensionNotFound:
        return None

    if isinstance(extension.value, x509.UnrecognizedExtension):
        extn_value = extension.value.value
    else:
        extn_value = extension.value.public_bytes()
    return bytes([DER_OCTET_STRING]) + _der_length(len(extn_value)) + extn_value


def merchant_identifier_from_certificate(certificate: x509.Certificate) -> bytes:
    """Extract the 32-byte merchant identifier from a merchant certificate.

    Raises:
        MerchantCertificateError: If the merchant identifier extension is absent
        MalformedExtensionError: If the extension value is not 68 bytes
        EncodingError: If the identifier is not hex
    """
    value = get_extension_value(certificate, MERCHANT_IDENTIFIER_OID)
    if value is None:
        raise MerchantCertificateError(
            f"Certificate has no merchant identifier extension ({MERCHANT_IDENTIFIER_OID})"
        )

    return extract_merchant_identifier(value)


def public_key_hash(certificate: x509.Certificate) -> bytes:
    """SHA-256 of the certificate's SubjectPublicKeyInfo (token publicKeyHash)."""
    spki = certificate.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return hashlib.sha256(spki).digest()


def load_ephemeral_public_key(data: bytes | str) -> ec.EllipticCurvePublicKey:
    """Load the token's ephemeral public key.

    Accepts the base64 text found in the token header, PEM, or raw DER
    SubjectPublicKeyInfo.

    Raises:
        KeyAgreementError: If the key is malformed, not EC, or not on its curve
    """
    try:
        if isinstance(data, str):
            der = base64.b64decode(data, validate=True)
            public_key = serialization.load_der_public_key(der)
        elif data.lstrip().startswith(PEM_MARKER):
            public_key = serialization.load_pem_public_key(data)
        else:
            public_key = serialization.load_der_public_key(data)
    except (binascii.Error, ValueError, UnsupportedAlgorithm) as e:
        raise KeyAgreementError(f"Invalid ephemeral public key: {e}") from e

    if not isinstance(public_key, ec.EllipticCurvePublicKey):
        raise KeyAgreementError(
            f"Ephemeral public key must be an elliptic-curve key, got {type(public_key).__name__}"
        )

    return public_key
