"""Custom exceptions for the image upload pipeline."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, ClassVar, Dict, Optional


class ImageUploadError(Exception):
    """Base exception for all image upload errors."""

    error_code: ClassVar[str] = "UPLOAD_ERROR"
    http_status: ClassVar[int] = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
        }


class ValidationError(ImageUploadError):
    """Error raised when the request carries no usable file."""

    error_code = "VALIDATION_ERROR"
    http_status = HTTPStatus.BAD_REQUEST


class StorageError(ImageUploadError):
    """Error raised when the object could not be durably stored."""

    error_code = "STORAGE_ERROR"
    http_status = HTTPStatus.BAD_REQUEST


class AccessSigningError(ImageUploadError):
    """Error raised when a signed access URL cannot be issued."""

    error_code = "ACCESS_SIGNING_ERROR"
    http_status = HTTPStatus.BAD_REQUEST


class MetadataWriteError(ImageUploadError):
    """Error raised when the metadata record write fails."""

    error_code = "METADATA_WRITE_ERROR"


class NotifyError(ImageUploadError):
    """Error raised when the enrichment notification cannot be enqueued."""

    error_code = "NOTIFY_ERROR"


class ConfigurationError(ImageUploadError):
    """Error raised for invalid configuration options."""

    error_code = "CONFIGURATION_ERROR"
