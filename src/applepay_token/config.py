"""Configuration management for the Apple Pay token decryption CLI.

The decryption core takes all of its inputs as arguments; these settings
only tell the command-line entry point where to find merchant material.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables (APPLEPAY_*)."""

    # Application
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    # Merchant material
    merchant_certificate_path: str | None = Field(
        default=None, description="Merchant payment processing certificate (.cer/.pem)"
    )
    merchant_key_path: str | None = Field(
        default=None, description="Merchant private key (.p12/.pem)"
    )
    merchant_key_password: str | None = Field(default=None, description="Merchant key password")

    # AWS KMS (alternative to merchant_key_path)
    merchant_kms_key_id: str | None = Field(
        default=None, description="KMS key ID/ARN of the merchant KEY_AGREEMENT key"
    )
    aws_region: str = Field(default="us-east-1", description="AWS region")
    kms_endpoint_url: str | None = Field(default=None, description="KMS endpoint (for LocalStack)")

    model_config = SettingsConfigDict(
        env_prefix="APPLEPAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
