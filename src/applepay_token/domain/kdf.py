"""NIST SP 800-56A single-step Concatenation KDF.

Apple Pay derives its AES-256 key with the hash-based concatenation
construction from SP 800-56A section 5.8.1:

    K(i) = H(counter_i || Z || OtherInfo),  counter_i = i as 4-byte big-endian

for i = 1 .. ceil(L / hLen), concatenated and truncated to L bytes. With
SHA-256 and L = 32 exactly one block is computed.
"""

from cryptography.hazmat.primitives import hashes

from applepay_token.domain.exceptions import BufferTooSmallError, LengthOverflowError
from applepay_token.logging_config import get_logger

logger = get_logger(__name__)

COUNTER_START = 1
MAX_COUNTER = 2**32 - 1


class ConcatKDF:
    """Concatenation KDF bound to a hash algorithm and an OtherInfo string.

    The instance holds no secret state; the shared secret is passed to each
    call, so one instance can serve many derivations and many threads.

    Example:
        >>> kdf = ConcatKDF(hashes.SHA256(), other_info)
        >>> key = bytearray(32)
        >>> kdf.generate_bytes(shared_secret, key)
        32
    """

    def __init__(self, algorithm: hashes.HashAlgorithm, other_info: bytes) -> None:
        self._algorithm = algorithm
        self._other_info = bytes(other_info)

    @property
    def algorithm(self) -> hashes.HashAlgorithm:
        return self._algorithm

    @property
    def digest_size(self) -> int:
        return self._algorithm.digest_size

    @property
    def max_length(self) -> int:
        """Largest output the construction can produce, hLen * (2^32 - 1)."""
        return self.digest_size * MAX_COUNTER

    def block(self, shared_secret: bytes | bytearray, counter: int) -> bytes:
        """Compute a single hash block H(counter || Z || OtherInfo)."""
        if not COUNTER_START <= counter <= MAX_COUNTER:
            raise ValueError(f"Counter must be in [1, 2^32 - 1], got {counter}")

        digest = hashes.Hash(self._algorithm)
        digest.update(counter.to_bytes(4, "big"))
        digest.update(shared_secret)
        digest.update(self._other_info)
        return digest.finalize()

    def generate_bytes(
        self,
        shared_secret: bytes | bytearray,
        out: bytearray,
        offset: int = 0,
        length: int | None = None,
    ) -> int:
        """Fill out[offset:offset + length] with derived key material.

        Args:
            shared_secret: ECDH shared secret Z
            out: Caller-owned output buffer, written in place
            offset: Start position in out
            length: Number of bytes to derive (default: rest of out)

        Returns:
            Number of bytes written

        Raises:
            ValueError: If offset or length is negative
            LengthOverflowError: If length exceeds hLen * (2^32 - 1)
            BufferTooSmallError: If out cannot hold length bytes from offset
        """
        if offset < 0:
            raise ValueError(f"Offset cannot be negative, got {offset}")

        if length is None:
            length = len(out) - offset

        if length < 0:
            raise ValueError(f"Length cannot be negative, got {length}")

        if length > self.max_length:
            raise LengthOverflowError(
                f"Requested {length} bytes exceeds KDF maximum of {self.max_length}"
            )

        if len(out) - offset < length:
            raise BufferTooSmallError(
                f"Output buffer too small: need {length} bytes at offset {offset}, "
                f"have {max(len(out) - offset, 0)}"
            )

        hash_len = self.digest_size
        blocks = -(-length // hash_len)
        position = offset
        remaining = length

        for counter in range(COUNTER_START, COUNTER_START + blocks):
            chunk = self.block(shared_secret, counter)
            take = min(hash_len, remaining)
            out[position:position + take] = chunk[:take]
            position += take
            remaining -= take

        logger.debug("kdf_bytes_generated", length=length, blocks=blocks)
        return length

    def derive(self, shared_secret: bytes | bytearray, length: int) -> bytes:
        """Derive length bytes and return them as an immutable value."""
        if length < 0:
            raise ValueError(f"Length cannot be negative, got {length}")

        if length > self.max_length:
            raise LengthOverflowError(
                f"Requested {length} bytes exceeds KDF maximum of {self.max_length}"
            )

        out = bytearray(length)
        self.generate_bytes(shared_secret, out, 0, length)
        return bytes(out)
