"""Command line interface for decrypting Apple Pay payment tokens.

Usage:
    applepay-decrypt TOKEN --certificate merchant.cer --key merchant.p12 --password test
    applepay-decrypt TOKEN --certificate merchant.cer --kms-key-id alias/merchant --parse

TOKEN is a JSON file holding the payment token, or "-" for stdin.
"""

import argparse
import json
import sys
from pathlib import Path

from applepay_token.config import settings
from applepay_token.domain.exceptions import PaymentTokenError, TokenFormatError
from applepay_token.domain.key_agreement import MerchantPrivateKey
from applepay_token.domain.services import PaymentTokenDecryptor
from applepay_token.infrastructure.certificates import (
    load_merchant_certificate_file,
    merchant_identifier_from_certificate,
    public_key_hash,
)
from applepay_token.infrastructure.envelope import parse_payment_token
from applepay_token.infrastructure.keystore import load_merchant_key_file
from applepay_token.infrastructure.kms import KMSMerchantKey
from applepay_token.logging_config import configure_logging, get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_DECRYPTION_FAILED = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="applepay-decrypt",
        description="Decrypt an Apple Pay EC_v1 payment token",
    )
    parser.add_argument("token", help="Payment token JSON file, or - for stdin")
    parser.add_argument(
        "--certificate",
        default=settings.merchant_certificate_path,
        help="Merchant payment processing certificate (DER or PEM)",
    )
    parser.add_argument(
        "--key",
        default=settings.merchant_key_path,
        help="Merchant private key (PKCS#12 or PEM)",
    )
    parser.add_argument(
        "--password",
        default=settings.merchant_key_password,
        help="Merchant key password",
    )
    parser.add_argument(
        "--kms-key-id",
        default=settings.merchant_kms_key_id,
        help="AWS KMS key holding the merchant private key (instead of --key)",
    )
    parser.add_argument(
        "--parse",
        action="store_true",
        help="Parse the payment data and print it with the account number masked",
    )
    parser.add_argument(
        "--log-level",
        default="DEBUG" if settings.debug else settings.log_level,
        help="Logging level",
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON")
    return parser


def _read_token(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    try:
        return Path(source).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise TokenFormatError(f"Cannot read payment token {source}: {e}") from e


def _merchant_key(args: argparse.Namespace) -> MerchantPrivateKey:
    if args.kms_key_id:
        return KMSMerchantKey(
            key_id=args.kms_key_id,
            region=settings.aws_region,
            endpoint_url=settings.kms_endpoint_url,
        )
    return load_merchant_key_file(args.key, args.password)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.certificate:
        parser.error("a merchant certificate is required (--certificate)")
    if not args.key and not args.kms_key_id:
        parser.error("a merchant key is required (--key or --kms-key-id)")

    configure_logging(log_level=args.log_level, format_as_json=args.json_logs)

    try:
        envelope = parse_payment_token(_read_token(args.token))
        certificate = load_merchant_certificate_file(args.certificate)

        decryptor = PaymentTokenDecryptor(
            merchant_key=_merchant_key(args),
            merchant_identifier=merchant_identifier_from_certificate(certificate),
            merchant_public_key_hash=public_key_hash(certificate),
        )

        if args.parse:
            payment_data = decryptor.decrypt_payment_data(
                envelope.ciphertext(),
                envelope.ephemeral_public_key(),
                public_key_hash=envelope.public_key_hash(),
                transaction_id=envelope.transaction_id,
            )
            print(json.dumps(payment_data.to_masked_dict(), indent=2))
        else:
            plaintext = decryptor.decrypt_token(
                envelope.ciphertext(),
                envelope.ephemeral_public_key(),
                public_key_hash=envelope.public_key_hash(),
                transaction_id=envelope.transaction_id,
            )
            try:
                print(plaintext.decode("utf-8"))
            except UnicodeDecodeError as e:
                raise TokenFormatError("Decrypted payment data is not UTF-8 text") from e

    except PaymentTokenError as e:
        logger.error("payment_token_decryption_failed", error=type(e).__name__)
        print(f"error: {type(e).__name__}: {e}", file=sys.stderr)
        return EXIT_DECRYPTION_FAILED

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
