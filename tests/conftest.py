"""Pytest configuration and shared fixtures for all tests.

This module provides shared test fixtures including:
- Deterministic P-256 merchant and ephemeral key pairs
- A self-signed merchant certificate carrying the merchant identifier extension
- A forward "sealing" pipeline that builds tokens the way Apple Pay does
"""

import base64
import binascii
import datetime
import hashlib
import json

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.concatkdf import ConcatKDFHash
from cryptography.x509.oid import NameOID

from applepay_token.domain.key_agreement import SoftwareMerchantKey
from applepay_token.domain.merchant import (
    MERCHANT_IDENTIFIER_OID,
    build_other_info,
    merchant_identifier_from_name,
)

MERCHANT_ID = "merchant.com.example.store"
MERCHANT_SCALAR = 0x6F3A2C1B9E8D7F60514233241506F7E8D9CABBAC9D8E7F6051423324150607F8
EPHEMERAL_SCALAR = 0x1B2C3D4E5F60718293A4B5C6D7E8F90112233445566778899AABBCCDDEEFF001

SAMPLE_PAYMENT_DATA = {
    "applicationPrimaryAccountNumber": "4109370251004320",
    "applicationExpirationDate": "291231",
    "currencyCode": "840",
    "transactionAmount": 1999,
    "deviceManufacturerIdentifier": "040010030273",
    "paymentDataType": "3DSecure",
    "paymentData": {
        "onlinePaymentCryptogram": "Af9x/QwAA/DjmU65oyc1MAABAAA=",
        "eciIndicator": "5",
    },
}


def seal(
    plaintext: bytes,
    merchant_public_key: ec.EllipticCurvePublicKey,
    merchant_identifier: bytes,
    ephemeral_private_key: ec.EllipticCurvePrivateKey,
) -> bytes:
    """Encrypt plaintext the way the Apple Pay sender does.

    Uses cryptography's own ConcatKDFHash so the decryption side is checked
    against an independent KDF implementation.
    """
    shared_secret = ephemeral_private_key.exchange(ec.ECDH(), merchant_public_key)
    key = ConcatKDFHash(
        algorithm=hashes.SHA256(),
        length=32,
        otherinfo=build_other_info(merchant_identifier),
    ).derive(shared_secret)
    return AESGCM(key).encrypt(bytes(16), plaintext, None)


def extension_value_for(merchant_identifier: bytes) -> bytes:
    """DER extension value as X.509 getExtensionValue returns it (68 bytes)."""
    hex_id = binascii.hexlify(merchant_identifier).upper()
    return b"\x04\x42\x0c\x40" + hex_id


def build_certificate(
    private_key: ec.EllipticCurvePrivateKey,
    merchant_identifier: bytes | None,
) -> x509.Certificate:
    name = x509.Name(
        [
            x509.NameAttribute(NameOID.COMMON_NAME, f"Merchant ID: {MERCHANT_ID}"),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Example Store"),
        ]
    )
    now = datetime.datetime.now(datetime.timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(0x5EED)
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=365))
    )
    if merchant_identifier is not None:
        # extnValue is a UTF8String holding the identifier as hex characters
        hex_id = binascii.hexlify(merchant_identifier).upper()
        utf8_value = b"\x0c" + bytes([len(hex_id)]) + hex_id
        builder = builder.add_extension(
            x509.UnrecognizedExtension(x509.ObjectIdentifier(MERCHANT_IDENTIFIER_OID), utf8_value),
            critical=False,
        )
    return builder.sign(private_key, hashes.SHA256())


def spki_der(public_key: ec.EllipticCurvePublicKey) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@pytest.fixture
def merchant_private_key() -> ec.EllipticCurvePrivateKey:
    """Fixed merchant P-256 private key."""
    return ec.derive_private_key(MERCHANT_SCALAR, ec.SECP256R1())


@pytest.fixture
def merchant_key(merchant_private_key: ec.EllipticCurvePrivateKey) -> SoftwareMerchantKey:
    return SoftwareMerchantKey(merchant_private_key)


@pytest.fixture
def ephemeral_private_key() -> ec.EllipticCurvePrivateKey:
    """Fixed sender ephemeral P-256 private key."""
    return ec.derive_private_key(EPHEMERAL_SCALAR, ec.SECP256R1())


@pytest.fixture
def ephemeral_public_key(ephemeral_private_key: ec.EllipticCurvePrivateKey) -> ec.EllipticCurvePublicKey:
    return ephemeral_private_key.public_key()


@pytest.fixture
def merchant_identifier() -> bytes:
    """32-byte merchant identifier for MERCHANT_ID."""
    return merchant_identifier_from_name(MERCHANT_ID)


@pytest.fixture
def merchant_certificate(
    merchant_private_key: ec.EllipticCurvePrivateKey, merchant_identifier: bytes
) -> x509.Certificate:
    """Self-signed merchant certificate with the merchant identifier extension."""
    return build_certificate(merchant_private_key, merchant_identifier)


@pytest.fixture
def payment_data_bytes() -> bytes:
    return json.dumps(SAMPLE_PAYMENT_DATA).encode("utf-8")


@pytest.fixture
def sealed_payment_data(
    payment_data_bytes: bytes,
    merchant_private_key: ec.EllipticCurvePrivateKey,
    merchant_identifier: bytes,
    ephemeral_private_key: ec.EllipticCurvePrivateKey,
) -> bytes:
    """Ciphertext (with tag) of SAMPLE_PAYMENT_DATA addressed to the merchant."""
    return seal(
        payment_data_bytes,
        merchant_private_key.public_key(),
        merchant_identifier,
        ephemeral_private_key,
    )


@pytest.fixture
def payment_token(
    sealed_payment_data: bytes,
    ephemeral_public_key: ec.EllipticCurvePublicKey,
    merchant_private_key: ec.EllipticCurvePrivateKey,
) -> dict:
    """Apple Pay EC_v1 token JSON (as a dict) carrying sealed_payment_data."""
    merchant_spki = spki_der(merchant_private_key.public_key())
    return {
        "version": "EC_v1",
        "data": base64.b64encode(sealed_payment_data).decode("ascii"),
        "signature": base64.b64encode(b"\x30\x80unverified").decode("ascii"),
        "header": {
            "ephemeralPublicKey": base64.b64encode(spki_der(ephemeral_public_key)).decode("ascii"),
            "publicKeyHash": base64.b64encode(hashlib.sha256(merchant_spki).digest()).decode("ascii"),
            "transactionId": "c1caf5ae72f0039a82bad92b828363734f85bf2f9cadf193d1bad9ddcb60a795",
        },
    }
