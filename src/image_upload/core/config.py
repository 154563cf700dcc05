"""Pipeline configuration using Pydantic BaseSettings.

All settings are loaded from environment variables prefixed with
``IMAGE_UPLOAD_``. The loaded ``Settings`` instance is passed explicitly into
pipeline construction; nothing in the pipeline reads the environment at
request time.

Usage:
    from image_upload.core.config import get_settings

    settings = get_settings()
    print(settings.bucket_name)
"""

from functools import lru_cache
from typing import Dict, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

DEFAULT_ACCESS_POLICIES: Dict[str, int] = {
    "read-15m": 15 * 60,
    "read-1h": 60 * 60,
    "read-24h": 24 * 60 * 60,
}


class Settings(BaseSettings):
    """Pipeline settings loaded from environment variables.

    Attributes:
        aws_region: AWS region for every client.
        endpoint_url: Optional endpoint override (LocalStack, MinIO).
        bucket_name: Bucket receiving the uploaded images.
        table_name: DynamoDB table holding the metadata records.
        queue_name: SQS queue notified for asynchronous enrichment.
        access_policy: Name of the policy used to sign access URLs.
        access_policies: Known policies, mapping name to expiry in seconds.
        honor_client_filename: Return the client's filename hint instead of
            the generated id as ``fileName``.
        max_upload_bytes: Largest accepted request body.
        spool_max_bytes: Size above which the upload buffer spills to disk.
        secondary_timeout_seconds: Bound on the record write and notification.
        connect_timeout_seconds: Client connect timeout.
        read_timeout_seconds: Client read timeout.
        log_level: Logging level.
        log_format: Log line format, "structured" or "simple".
    """

    model_config = SettingsConfigDict(
        env_prefix="IMAGE_UPLOAD_",
        env_file=None,
        case_sensitive=False,
        extra="ignore",
        str_strip_whitespace=True,
    )

    # AWS Configuration
    aws_region: str = Field(default="us-east-1", min_length=1)
    endpoint_url: Optional[str] = None

    bucket_name: str = Field(default="image-uploads", min_length=3, max_length=63)
    table_name: str = Field(default="image-metadata", min_length=3)
    queue_name: str = Field(default="image-enrichment", min_length=1)

    # Signed URLs
    access_policy: str = Field(default="read-1h", min_length=1)
    access_policies: Dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_ACCESS_POLICIES)
    )

    honor_client_filename: bool = False

    # Limits and timeouts
    max_upload_bytes: int = Field(default=20 * 1024 * 1024, ge=1)
    spool_max_bytes: int = Field(default=1024 * 1024, ge=0)
    secondary_timeout_seconds: float = Field(default=5.0, gt=0, le=60)
    connect_timeout_seconds: float = Field(default=5.0, gt=0, le=60)
    read_timeout_seconds: float = Field(default=30.0, gt=0, le=300)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="structured")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in allowed:
            raise ValueError(f"log_level must be one of {allowed}, got '{value}'")
        return upper_value

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, value: str) -> str:
        """Validate log format is a known formatter."""
        lower_value = value.lower()
        if lower_value not in ("structured", "simple"):
            raise ValueError(
                f"log_format must be 'structured' or 'simple', got '{value}'"
            )
        return lower_value

    @field_validator("access_policies")
    @classmethod
    def validate_access_policies(cls, value: Dict[str, int]) -> Dict[str, int]:
        """Signed URLs must expire; S3 caps presigned URLs at seven days."""
        for name, expires_in in value.items():
            if not 1 <= expires_in <= 7 * 24 * 60 * 60:
                raise ValueError(
                    f"access policy '{name}' expiry must be between 1s and 7 days"
                )
        return value


def load_settings(**overrides: object) -> Settings:
    """
    Build settings from the environment plus explicit overrides.

    Raises:
        ConfigurationError: If the resulting configuration is invalid.
    """
    try:
        return Settings(**overrides)  # type: ignore[arg-type]
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


@lru_cache
def get_settings() -> Settings:
    """Get the cached settings instance."""
    return load_settings()
