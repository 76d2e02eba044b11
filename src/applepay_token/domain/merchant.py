"""Merchant identifier extraction and KDF context construction.

Apple embeds a 32-byte merchant identifier in the merchant's payment
processing certificate under OID 1.2.840.113635.100.6.32. The DER value of
that extension is a 4-byte header followed by the identifier as 64 ASCII
hex characters. The identifier is bound into every derived key through the
Concatenation KDF's OtherInfo.
"""

import binascii
import hashlib

from applepay_token.domain.exceptions import EncodingError, MalformedExtensionError

MERCHANT_IDENTIFIER_OID = "1.2.840.113635.100.6.32"

MERCHANT_IDENTIFIER_LENGTH = 32
EXTENSION_VALUE_LENGTH = 68
EXTENSION_HEADER_LENGTH = 4

KDF_ALGORITHM_ID = b"id-aes256-GCM"
KDF_PARTY_U_INFO = b"Apple"
KDF_OTHER_INFO_PREFIX = bytes([len(KDF_ALGORITHM_ID)]) + KDF_ALGORITHM_ID + KDF_PARTY_U_INFO


def extract_merchant_identifier(extension_value: bytes) -> bytes:
    """Decode the merchant identifier from its certificate extension value.

    Args:
        extension_value: DER-encoded extension value (68 bytes)

    Returns:
        32-byte merchant identifier

    Raises:
        MalformedExtensionError: If the value is not exactly 68 bytes
        EncodingError: If bytes [4, 68) are not ASCII hex digits
    """
    if len(extension_value) != EXTENSION_VALUE_LENGTH:
        raise MalformedExtensionError(
            f"Merchant identifier extension must be {EXTENSION_VALUE_LENGTH} bytes, "
            f"got {len(extension_value)}"
        )

    hex_body = bytes(extension_value[EXTENSION_HEADER_LENGTH:])

    # unhexlify rejects whitespace and non-ASCII, unlike bytes.fromhex
    try:
        return binascii.unhexlify(hex_body)
    except binascii.Error as e:
        raise EncodingError(f"Merchant identifier is not valid hex: {e}") from e


def build_other_info(merchant_identifier: bytes) -> bytes:
    """Build the Concatenation KDF OtherInfo for a merchant.

    Layout: 0x0D || "id-aes256-GCM" || "Apple" || merchant_identifier
    (51 bytes).

    Raises:
        ValueError: If merchant_identifier is not 32 bytes
    """
    if len(merchant_identifier) != MERCHANT_IDENTIFIER_LENGTH:
        raise ValueError(
            f"Merchant identifier must be {MERCHANT_IDENTIFIER_LENGTH} bytes, "
            f"got {len(merchant_identifier)}"
        )

    return KDF_OTHER_INFO_PREFIX + bytes(merchant_identifier)


def merchant_identifier_from_name(merchant_id: str) -> bytes:
    """Compute the merchant identifier Apple derives from a merchant ID string.

    Example:
        >>> len(merchant_identifier_from_name("merchant.com.example.store"))
        32
    """
    if not merchant_id:
        raise ValueError("merchant_id cannot be empty")

    return hashlib.sha256(merchant_id.encode("utf-8")).digest()
