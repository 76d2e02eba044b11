"""Unit tests for the NIST SP 800-56A Concatenation KDF."""

import hashlib
import os
from unittest.mock import patch

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.concatkdf import ConcatKDFHash

from applepay_token.domain import kdf as kdf_module
from applepay_token.domain.exceptions import (
    BufferTooSmallError,
    KeyDerivationError,
    LengthOverflowError,
)
from applepay_token.domain.kdf import ConcatKDF
from applepay_token.domain.merchant import build_other_info

SHARED_SECRET = bytes(range(32))
OTHER_INFO = build_other_info(bytes(range(100, 132)))


class TestConcatKDFOutput:
    """Tests for derived key material."""

    def test_derive_is_deterministic(self) -> None:
        """Test that same inputs produce same output."""
        kdf = ConcatKDF(hashes.SHA256(), OTHER_INFO)

        assert kdf.derive(SHARED_SECRET, 32) == kdf.derive(SHARED_SECRET, 32)

    def test_single_block_matches_manual_hash(self) -> None:
        """Test that L = hLen is H(00000001 || Z || OtherInfo)."""
        kdf = ConcatKDF(hashes.SHA256(), OTHER_INFO)

        expected = hashlib.sha256(b"\x00\x00\x00\x01" + SHARED_SECRET + OTHER_INFO).digest()

        assert kdf.derive(SHARED_SECRET, 32) == expected

    def test_second_block_uses_big_endian_counter_two(self) -> None:
        """Test that the second block is keyed by counter bytes 00 00 00 02."""
        kdf = ConcatKDF(hashes.SHA256(), OTHER_INFO)

        output = kdf.derive(SHARED_SECRET, 64)

        first = hashlib.sha256(b"\x00\x00\x00\x01" + SHARED_SECRET + OTHER_INFO).digest()
        second = hashlib.sha256(b"\x00\x00\x00\x02" + SHARED_SECRET + OTHER_INFO).digest()
        assert output[:32] == first
        assert output[32:] == second

    def test_block_encodes_counter_big_endian(self) -> None:
        """Test that large counters are encoded most significant byte first."""
        kdf = ConcatKDF(hashes.SHA256(), OTHER_INFO)

        expected = hashlib.sha256(b"\x01\x02\x03\x04" + SHARED_SECRET + OTHER_INFO).digest()

        assert kdf.block(SHARED_SECRET, 0x01020304) == expected

    @pytest.mark.parametrize("length", [0, 1, 16, 31, 32, 33, 64, 65, 100])
    def test_output_length_equals_requested_length(self, length: int) -> None:
        """Test that output length always equals L."""
        kdf = ConcatKDF(hashes.SHA256(), OTHER_INFO)

        assert len(kdf.derive(SHARED_SECRET, length)) == length

    def test_truncated_output_is_prefix_of_longer_output(self) -> None:
        """Test that the final block is truncated, not re-derived."""
        kdf = ConcatKDF(hashes.SHA256(), OTHER_INFO)

        assert kdf.derive(SHARED_SECRET, 40) == kdf.derive(SHARED_SECRET, 64)[:40]

    @pytest.mark.parametrize("length", [16, 32, 48, 96])
    def test_matches_cryptography_concat_kdf_hash(self, length: int) -> None:
        """Test agreement with cryptography's ConcatKDFHash."""
        shared_secret = os.urandom(32)
        other_info = os.urandom(51)

        expected = ConcatKDFHash(
            algorithm=hashes.SHA256(), length=length, otherinfo=other_info
        ).derive(shared_secret)

        assert ConcatKDF(hashes.SHA256(), other_info).derive(shared_secret, length) == expected

    def test_supports_other_hash_algorithms(self) -> None:
        """Test that digest size follows the configured hash."""
        kdf = ConcatKDF(hashes.SHA512(), OTHER_INFO)

        expected = hashlib.sha512(b"\x00\x00\x00\x01" + SHARED_SECRET + OTHER_INFO).digest()

        assert kdf.digest_size == 64
        assert kdf.derive(SHARED_SECRET, 64) == expected

    def test_different_other_info_produces_different_keys(self) -> None:
        """Test that OtherInfo binds the key to the merchant."""
        kdf1 = ConcatKDF(hashes.SHA256(), build_other_info(b"\x01" * 32))
        kdf2 = ConcatKDF(hashes.SHA256(), build_other_info(b"\x02" * 32))

        assert kdf1.derive(SHARED_SECRET, 32) != kdf2.derive(SHARED_SECRET, 32)


class TestConcatKDFBlockCount:
    """Tests for the number of hash invocations."""

    def test_one_hash_block_when_length_equals_digest_size(self) -> None:
        """Test that L = hLen computes exactly one block."""
        kdf = ConcatKDF(hashes.SHA256(), OTHER_INFO)

        with patch.object(kdf_module.hashes, "Hash", wraps=hashes.Hash) as hash_spy:
            kdf.derive(SHARED_SECRET, 32)

        assert hash_spy.call_count == 1

    def test_two_hash_blocks_for_one_byte_over_digest_size(self) -> None:
        """Test that L = hLen + 1 computes two blocks."""
        kdf = ConcatKDF(hashes.SHA256(), OTHER_INFO)

        with patch.object(kdf_module.hashes, "Hash", wraps=hashes.Hash) as hash_spy:
            kdf.derive(SHARED_SECRET, 33)

        assert hash_spy.call_count == 2


class TestConcatKDFBuffers:
    """Tests for in-place generation and sizing errors."""

    def test_generate_bytes_writes_at_offset(self) -> None:
        """Test that generation fills only the requested region."""
        kdf = ConcatKDF(hashes.SHA256(), OTHER_INFO)
        out = bytearray(b"\xAA" * 40)

        written = kdf.generate_bytes(SHARED_SECRET, out, offset=4, length=32)

        assert written == 32
        assert out[:4] == b"\xAA" * 4
        assert out[4:36] == kdf.derive(SHARED_SECRET, 32)
        assert out[36:] == b"\xAA" * 4

    def test_generate_bytes_defaults_to_rest_of_buffer(self) -> None:
        """Test that omitting length fills the buffer from offset to end."""
        kdf = ConcatKDF(hashes.SHA256(), OTHER_INFO)
        out = bytearray(32)

        assert kdf.generate_bytes(SHARED_SECRET, out) == 32
        assert bytes(out) == kdf.derive(SHARED_SECRET, 32)

    def test_buffer_too_small_raises_error(self) -> None:
        """Test that a short output region raises BufferTooSmallError."""
        kdf = ConcatKDF(hashes.SHA256(), OTHER_INFO)

        with pytest.raises(BufferTooSmallError, match="Output buffer too small"):
            kdf.generate_bytes(SHARED_SECRET, bytearray(31), length=32)

    def test_buffer_too_small_after_offset_raises_error(self) -> None:
        """Test that the offset counts against available space."""
        kdf = ConcatKDF(hashes.SHA256(), OTHER_INFO)

        with pytest.raises(BufferTooSmallError):
            kdf.generate_bytes(SHARED_SECRET, bytearray(32), offset=1, length=32)

    def test_buffer_untouched_when_too_small(self) -> None:
        """Test that nothing is written before the size check fails."""
        kdf = ConcatKDF(hashes.SHA256(), OTHER_INFO)
        out = bytearray(16)

        with pytest.raises(BufferTooSmallError):
            kdf.generate_bytes(SHARED_SECRET, out, length=32)

        assert out == bytearray(16)

    def test_length_overflow_raises_error(self) -> None:
        """Test that L > hLen * (2^32 - 1) raises LengthOverflowError."""
        kdf = ConcatKDF(hashes.SHA256(), OTHER_INFO)

        with pytest.raises(LengthOverflowError, match="exceeds KDF maximum"):
            kdf.generate_bytes(SHARED_SECRET, bytearray(32), length=kdf.max_length + 1)

    def test_derive_checks_overflow_before_allocating(self) -> None:
        """Test that derive rejects oversized lengths up front."""
        kdf = ConcatKDF(hashes.SHA256(), OTHER_INFO)

        with pytest.raises(LengthOverflowError):
            kdf.derive(SHARED_SECRET, kdf.max_length + 1)

    def test_sizing_errors_share_base_class(self) -> None:
        """Test that KDF sizing errors derive from KeyDerivationError."""
        assert issubclass(BufferTooSmallError, KeyDerivationError)
        assert issubclass(LengthOverflowError, KeyDerivationError)

    def test_max_length_is_digest_size_times_counter_range(self) -> None:
        kdf = ConcatKDF(hashes.SHA256(), OTHER_INFO)

        assert kdf.max_length == 32 * (2**32 - 1)

    def test_negative_length_raises_error(self) -> None:
        kdf = ConcatKDF(hashes.SHA256(), OTHER_INFO)

        with pytest.raises(ValueError, match="Length cannot be negative"):
            kdf.generate_bytes(SHARED_SECRET, bytearray(32), length=-1)

    def test_block_rejects_counter_zero(self) -> None:
        kdf = ConcatKDF(hashes.SHA256(), OTHER_INFO)

        with pytest.raises(ValueError, match="Counter must be"):
            kdf.block(SHARED_SECRET, 0)

    def test_accepts_bytearray_shared_secret(self) -> None:
        """Test that a wipeable bytearray secret gives the same key as bytes."""
        kdf = ConcatKDF(hashes.SHA256(), OTHER_INFO)

        assert kdf.derive(bytearray(SHARED_SECRET), 32) == kdf.derive(SHARED_SECRET, 32)
