"""Domain services for Apple Pay token decryption.

This module composes key agreement, the Concatenation KDF and AES-GCM into
the EC_v1 decryption pipeline. Every intermediate secret lives in a buffer
scoped to a single call and is zeroed before the call returns or raises.
"""

import hmac
from typing import Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec

from applepay_token.domain.encryption import AES_KEY_LENGTH, decrypt_with_key, scrubbed
from applepay_token.domain.exceptions import MerchantCertificateError
from applepay_token.domain.kdf import ConcatKDF
from applepay_token.domain.key_agreement import MerchantPrivateKey, compute_shared_secret
from applepay_token.domain.merchant import build_other_info
from applepay_token.domain.payment_data import DecryptedPaymentData
from applepay_token.logging_config import get_logger

logger = get_logger(__name__)


def decrypt(
    ciphertext: bytes,
    merchant_private_key: MerchantPrivateKey,
    ephemeral_public_key: ec.EllipticCurvePublicKey,
    merchant_identifier: bytes,
) -> bytes:
    """Decrypt Apple Pay EC_v1 payment data.

    Steps:
    1. ECDH between the merchant key and the token's ephemeral key
    2. OtherInfo = 0x0D || "id-aes256-GCM" || "Apple" || merchant_identifier
    3. Concatenation KDF (SHA-256) -> 32-byte AES key
    4. AES-256-GCM decrypt-and-verify with the zero IV

    Args:
        ciphertext: Encrypted payment data with trailing GCM tag
        merchant_private_key: Merchant key capability
        ephemeral_public_key: Ephemeral public key from the token header
        merchant_identifier: 32-byte merchant identifier

    Returns:
        Plaintext payment data bytes

    Raises:
        ValueError: If merchant_identifier is not 32 bytes
        KeyAgreementError: If ECDH fails
        AuthenticationFailureError: If the ciphertext does not authenticate
    """
    other_info = build_other_info(merchant_identifier)

    with scrubbed(compute_shared_secret(merchant_private_key, ephemeral_public_key)) as shared_secret:
        with scrubbed(bytearray(AES_KEY_LENGTH)) as derived_key:
            ConcatKDF(hashes.SHA256(), other_info).generate_bytes(shared_secret, derived_key)
            return decrypt_with_key(ciphertext, derived_key)


class PaymentTokenDecryptor:
    """Domain service for decrypting tokens addressed to one merchant.

    Holds only the merchant's long-lived, read-only material; everything
    derived from a token stays inside decrypt_token, so one instance can be
    shared across threads.

    Business rules implemented:
    - Tokens encrypted for a different merchant certificate are rejected
      before any key agreement (publicKeyHash check)
    - A fresh key is derived for every token
    """

    def __init__(
        self,
        merchant_key: MerchantPrivateKey,
        merchant_identifier: bytes,
        merchant_public_key_hash: Optional[bytes] = None,
    ) -> None:
        """Initialize decryptor.

        Args:
            merchant_key: Merchant key capability (software, HSM or KMS backed)
            merchant_identifier: 32-byte identifier from the merchant certificate
            merchant_public_key_hash: SHA-256 of the merchant certificate's
                SubjectPublicKeyInfo, if known

        Raises:
            ValueError: If merchant_identifier is not 32 bytes
        """
        # Validates the identifier once, up front
        build_other_info(merchant_identifier)

        self.merchant_key = merchant_key
        self.merchant_identifier = bytes(merchant_identifier)
        self.merchant_public_key_hash = merchant_public_key_hash

    def decrypt_token(
        self,
        ciphertext: bytes,
        ephemeral_public_key: ec.EllipticCurvePublicKey,
        public_key_hash: Optional[bytes] = None,
        transaction_id: Optional[str] = None,
    ) -> bytes:
        """Decrypt one token's payment data.

        Raises:
            MerchantCertificateError: If the token was encrypted for another certificate
            KeyAgreementError: If ECDH fails
            AuthenticationFailureError: If the ciphertext does not authenticate
        """
        log = logger.bind(transaction_id=transaction_id)

        if public_key_hash is not None and self.merchant_public_key_hash is not None:
            if not hmac.compare_digest(public_key_hash, self.merchant_public_key_hash):
                log.error("public_key_hash_mismatch")
                raise MerchantCertificateError(
                    "Token publicKeyHash does not match the merchant certificate"
                )

        # Signature verification is not performed by this library
        log.warning("token_signature_not_verified")

        plaintext = decrypt(
            ciphertext,
            self.merchant_key,
            ephemeral_public_key,
            self.merchant_identifier,
        )

        log.info("payment_token_decrypted", plaintext_length=len(plaintext))
        return plaintext

    def decrypt_payment_data(
        self,
        ciphertext: bytes,
        ephemeral_public_key: ec.EllipticCurvePublicKey,
        public_key_hash: Optional[bytes] = None,
        transaction_id: Optional[str] = None,
    ) -> DecryptedPaymentData:
        """Decrypt one token and parse its payment data.

        Raises:
            TokenFormatError: If the plaintext is not EC_v1 payment data
        """
        plaintext = self.decrypt_token(
            ciphertext,
            ephemeral_public_key,
            public_key_hash=public_key_hash,
            transaction_id=transaction_id,
        )
        return DecryptedPaymentData.from_bytes(plaintext)
