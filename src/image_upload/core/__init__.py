"""Core components of the image upload pipeline."""

from .config import Settings, get_settings, load_settings
from .exceptions import (
    AccessSigningError,
    ConfigurationError,
    ImageUploadError,
    MetadataWriteError,
    NotifyError,
    StorageError,
    ValidationError,
)
from .image_utils import (
    build_object_key,
    dms_to_decimal,
    extract_exif_metadata,
    extract_extension,
    sanitize_filename,
)
from .logging_config import get_logger, setup_logger
from .models import (
    ExifMetadata,
    ImageRecord,
    NotificationMessage,
    PipelineState,
    StoredObject,
    UploadResult,
)
from .multipart import ExtractedFile, MultipartExtractor

__all__ = [
    "Settings",
    "get_settings",
    "load_settings",
    "ImageUploadError",
    "ValidationError",
    "StorageError",
    "AccessSigningError",
    "MetadataWriteError",
    "NotifyError",
    "ConfigurationError",
    "build_object_key",
    "dms_to_decimal",
    "extract_exif_metadata",
    "extract_extension",
    "sanitize_filename",
    "setup_logger",
    "get_logger",
    "ExifMetadata",
    "ImageRecord",
    "NotificationMessage",
    "PipelineState",
    "StoredObject",
    "UploadResult",
    "ExtractedFile",
    "MultipartExtractor",
]
