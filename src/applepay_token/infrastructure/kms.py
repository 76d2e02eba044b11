"""AWS KMS-backed merchant key for ECDH key agreement.

The merchant's EC private key is created in (or imported into) KMS with
KeyUsage KEY_AGREEMENT. KMS performs the ECDH step through
DeriveSharedSecret, so the private scalar never leaves the key service and
only the shared secret is returned for this one token.
"""

from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from applepay_token.domain.exceptions import KeyAgreementError, MerchantKeyError
from applepay_token.logging_config import get_logger

logger = get_logger(__name__)

# Errors caused by the peer key or the key's usage rather than by KMS itself
KEY_AGREEMENT_ERROR_CODES = frozenset(
    {
        "ValidationException",
        "InvalidKeyUsageException",
        "IncorrectKeyException",
    }
)


class KMSMerchantKey:
    """MerchantPrivateKey implemented with AWS KMS DeriveSharedSecret.

    Security requirements:
    - Private key material stays inside KMS
    - Shared secret is returned to the caller only, never logged or cached
    - Errors are reported without key material
    """

    def __init__(
        self,
        key_id: str,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
    ) -> None:
        """Initialize KMS merchant key.

        Args:
            key_id: AWS KMS key ID or ARN of the merchant's ECC key
            region: AWS region (default: us-east-1)
            endpoint_url: Optional KMS endpoint URL (for LocalStack testing)

        Raises:
            ValueError: If key_id is empty
        """
        if not key_id:
            raise ValueError("key_id cannot be empty")

        self.key_id = key_id
        self.region = region

        client_config: dict[str, Any] = {"region_name": region}
        if endpoint_url:
            client_config["endpoint_url"] = endpoint_url

        self._client = boto3.client("kms", **client_config)
        logger.info("kms_merchant_key_initialized", region=region)

    def agree(self, peer_public_key: ec.EllipticCurvePublicKey) -> bytes:
        """Derive the ECDH shared secret with peer_public_key inside KMS.

        Raises:
            KeyAgreementError: If KMS rejects the peer key or the key usage
            MerchantKeyError: If KMS is unreachable or the key is unavailable
        """
        if not isinstance(peer_public_key, ec.EllipticCurvePublicKey):
            raise KeyAgreementError(
                f"Peer key must be an elliptic-curve public key, got {type(peer_public_key).__name__}"
            )

        peer_spki = peer_public_key.public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

        try:
            response = self._client.derive_shared_secret(
                KeyId=self.key_id,
                KeyAgreementAlgorithm="ECDH",
                PublicKey=peer_spki,
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error("kms_derive_shared_secret_failed", error_code=error_code)
            if error_code in KEY_AGREEMENT_ERROR_CODES:
                raise KeyAgreementError(f"KMS rejected key agreement: {error_code}") from e
            raise MerchantKeyError(f"KMS key agreement failed: {error_code}") from e
        except BotoCoreError as e:
            logger.error("kms_communication_error", error=type(e).__name__)
            raise MerchantKeyError(f"KMS communication error: {str(e)}") from e

        shared_secret = response.get("SharedSecret")
        if not isinstance(shared_secret, bytes):
            raise MerchantKeyError("KMS returned non-bytes shared secret")

        logger.debug("kms_shared_secret_derived", length=len(shared_secret))
        return shared_secret

    def health_check(self) -> bool:
        """Check that KMS is reachable and the key is usable for key agreement.

        Returns:
            True if the key exists and has KEY_AGREEMENT usage, False otherwise
        """
        try:
            metadata = self._client.describe_key(KeyId=self.key_id)["KeyMetadata"]
        except (ClientError, BotoCoreError) as e:
            logger.warning("kms_health_check_failed", error=type(e).__name__)
            return False

        return metadata.get("KeyUsage") == "KEY_AGREEMENT" and metadata.get("Enabled", False)

    def __repr__(self) -> str:
        return f"KMSMerchantKey(key_id={self.key_id!r}, region={self.region!r})"
