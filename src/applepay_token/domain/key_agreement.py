"""Static-ephemeral ECDH key agreement.

The merchant private key is modelled as a capability: anything that can
perform ECDH against a peer point satisfies MerchantPrivateKey. Software
keys and hardware-backed keys (see infrastructure.kms) are interchangeable,
and the core never sees raw scalar material.
"""

from typing import Protocol, runtime_checkable

from cryptography.hazmat.primitives.asymmetric import ec

from applepay_token.domain.exceptions import KeyAgreementError
from applepay_token.logging_config import get_logger

logger = get_logger(__name__)


@runtime_checkable
class MerchantPrivateKey(Protocol):
    """Capability to perform ECDH with the merchant's private key."""

    def agree(self, peer_public_key: ec.EllipticCurvePublicKey) -> bytes:
        """Return the shared secret (big-endian x-coordinate) with peer_public_key.

        Raises:
            KeyAgreementError: If the peer key cannot be used with this key
        """
        ...


class SoftwareMerchantKey:
    """MerchantPrivateKey backed by an in-process cryptography EC key.

    Suitable for development and tests; production merchant keys belong in
    an HSM or KMS.
    """

    def __init__(self, private_key: ec.EllipticCurvePrivateKey) -> None:
        if not isinstance(private_key, ec.EllipticCurvePrivateKey):
            raise KeyAgreementError(
                f"Merchant key must be an elliptic-curve private key, got {type(private_key).__name__}"
            )
        self._private_key = private_key

    @property
    def curve(self) -> ec.EllipticCurve:
        return self._private_key.curve

    def public_key(self) -> ec.EllipticCurvePublicKey:
        return self._private_key.public_key()

    def agree(self, peer_public_key: ec.EllipticCurvePublicKey) -> bytes:
        if not isinstance(peer_public_key, ec.EllipticCurvePublicKey):
            raise KeyAgreementError(
                f"Peer key must be an elliptic-curve public key, got {type(peer_public_key).__name__}"
            )

        if peer_public_key.curve.name != self.curve.name:
            raise KeyAgreementError(
                f"Curve mismatch: merchant key is {self.curve.name}, "
                f"ephemeral key is {peer_public_key.curve.name}"
            )

        try:
            return self._private_key.exchange(ec.ECDH(), peer_public_key)
        except (ValueError, TypeError) as e:
            raise KeyAgreementError(f"ECDH failed: {e}") from e

    def __repr__(self) -> str:
        return f"SoftwareMerchantKey(curve={self.curve.name})"


def shared_secret_length(curve: ec.EllipticCurve) -> int:
    """Byte length of an ECDH shared secret (field element size) on curve."""
    return (curve.key_size + 7) // 8


def compute_shared_secret(
    merchant_key: MerchantPrivateKey,
    ephemeral_public_key: ec.EllipticCurvePublicKey,
) -> bytearray:
    """Run one static-ephemeral ECDH pass.

    Args:
        merchant_key: Merchant key capability
        ephemeral_public_key: Sender's per-token public key

    Returns:
        Shared secret as a mutable buffer; the caller must wipe it

    Raises:
        KeyAgreementError: On incompatible keys or a malformed secret
    """
    if not isinstance(ephemeral_public_key, ec.EllipticCurvePublicKey):
        raise KeyAgreementError(
            f"Ephemeral key must be an elliptic-curve public key, "
            f"got {type(ephemeral_public_key).__name__}"
        )

    try:
        secret = merchant_key.agree(ephemeral_public_key)
    except KeyAgreementError:
        raise
    except (ValueError, TypeError) as e:
        raise KeyAgreementError(f"Key agreement failed: {e}") from e

    expected = shared_secret_length(ephemeral_public_key.curve)
    if len(secret) != expected:
        raise KeyAgreementError(
            f"Shared secret must be {expected} bytes for {ephemeral_public_key.curve.name}, "
            f"got {len(secret)}"
        )

    logger.debug(
        "shared_secret_computed",
        curve=ephemeral_public_key.curve.name,
        length=len(secret),
    )
    return bytearray(secret)


def ephemeral_public_key_from_point(
    curve: ec.EllipticCurve, encoded_point: bytes
) -> ec.EllipticCurvePublicKey:
    """Build a public key from an X9.62 encoded point.

    Raises:
        KeyAgreementError: If the point is not on the curve or is the point at infinity
    """
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(curve, encoded_point)
    except ValueError as e:
        raise KeyAgreementError(f"Invalid ephemeral public key point: {e}") from e
