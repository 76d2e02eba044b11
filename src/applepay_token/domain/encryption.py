"""AES-256-GCM authenticated decryption for Apple Pay payment data.

Apple Pay EC_v1 tokens are encrypted with AES-256-GCM under a key derived
fresh for every token, using a fixed all-zero 16-byte IV and no associated
data. The ciphertext carries the 16-byte authentication tag at its end.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from applepay_token.domain.exceptions import AuthenticationFailureError
from applepay_token.logging_config import get_logger

logger = get_logger(__name__)

# Zero IV is safe only because every token has its own derived key
APPLE_PAY_IV = bytes(16)
AES_KEY_LENGTH = 32
GCM_TAG_LENGTH = 16


@contextmanager
def scrubbed(buffer: bytearray) -> Iterator[bytearray]:
    """Yield buffer and overwrite it with zeros on every exit path.

    Python gives no guarantee about copies made by libraries the buffer is
    handed to; this wipes the one copy the caller controls.

    Example:
        >>> with scrubbed(bytearray(b"secret")) as key:
        ...     use(key)
    """
    try:
        yield buffer
    finally:
        buffer[:] = bytes(len(buffer))


def decrypt_with_key(ciphertext: bytes, key: bytes | bytearray) -> bytes:
    """Decrypt and verify an Apple Pay ciphertext in one step.

    Args:
        ciphertext: Encrypted payload followed by the 16-byte GCM tag
        key: 32-byte AES-256 key

    Returns:
        Plaintext bytes, only after the tag has been verified

    Raises:
        ValueError: If key is not 32 bytes
        AuthenticationFailureError: If the tag does not verify

    Security notes:
        - AESGCM verifies the tag before returning any plaintext
        - Nothing about the plaintext is logged, on success or failure
    """
    if len(key) != AES_KEY_LENGTH:
        raise ValueError(f"Decryption key must be {AES_KEY_LENGTH} bytes, got {len(key)}")

    if len(ciphertext) < GCM_TAG_LENGTH:
        logger.error("decryption_failed", reason="ciphertext_shorter_than_tag")
        raise AuthenticationFailureError(
            f"Ciphertext must be at least {GCM_TAG_LENGTH} bytes, got {len(ciphertext)}"
        )

    try:
        plaintext = AESGCM(key).decrypt(APPLE_PAY_IV, ciphertext, None)
    except InvalidTag as e:
        # Don't expose detailed error messages for security
        logger.error("decryption_failed", reason="authentication_tag_mismatch")
        raise AuthenticationFailureError(
            "Failed to decrypt payment data - authentication tag mismatch"
        ) from e

    logger.debug("payment_data_decrypted", ciphertext_length=len(ciphertext))
    return plaintext
