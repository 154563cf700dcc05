"""Filename and EXIF utilities for the image upload pipeline."""

import io
import logging
import math
from datetime import datetime
from typing import IO, Any, Optional, Sequence, Tuple, Union

from PIL import ExifTags, Image

from .models import ExifMetadata

logger = logging.getLogger(__name__)

# Strictest portable set: everything Windows rejects in a file name,
# which includes the POSIX separators.
INVALID_FILENAME_CHARS = frozenset(
    ['"', "<", ">", "|", ":", "*", "?", "\\", "/"] + [chr(i) for i in range(32)]
)

EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"
CAPTURE_DATE_FORMAT = "%m%d%Y"
CAPTURE_TIME_FORMAT = "%H%M%S"


def sanitize_filename(file_name: Optional[str]) -> str:
    """
    Strip every character that is invalid in a file name.

    Args:
        file_name: Client-declared file name, possibly empty or None

    Returns:
        The file name without invalid characters
    """
    if not file_name:
        return ""
    return "".join(ch for ch in file_name if ch not in INVALID_FILENAME_CHARS)


def extract_extension(file_name: Optional[str]) -> str:
    """
    Derive a safe extension from a client-declared file name.

    The extension runs from the last "." of the sanitized name to the end,
    separator included. A name without "." has no extension.

    Examples:
        >>> extract_extension("bad:name*.jpg")
        '.jpg'
        >>> extract_extension("README")
        ''
    """
    sanitized = sanitize_filename(file_name)
    index = sanitized.rfind(".")
    if index == -1:
        return ""
    return sanitized[index:]


def build_object_key(record_id: str, extension: str) -> str:
    """Object keys are the record id followed by the client's extension."""
    return f"{record_id}{extension}"


def format_capture_timestamp(value: Union[str, bytes]) -> Tuple[str, str]:
    """
    Convert an EXIF timestamp into capture date and time strings.

    Args:
        value: EXIF timestamp, "YYYY:MM:DD HH:MM:SS"

    Returns:
        Tuple of (MMddyyyy, HHmmss)

    Raises:
        ValueError: If the value is not a valid EXIF timestamp
    """
    if isinstance(value, bytes):
        value = value.decode("ascii")
    captured = datetime.strptime(value.strip("\x00 "), EXIF_DATETIME_FORMAT)
    return (
        captured.strftime(CAPTURE_DATE_FORMAT),
        captured.strftime(CAPTURE_TIME_FORMAT),
    )


def _normalize_ref(ref: Union[str, bytes]) -> str:
    if isinstance(ref, bytes):
        ref = ref.decode("ascii")
    return ref.strip("\x00 ").upper()


def dms_to_decimal(components: Sequence[Any], ref: Union[str, bytes]) -> float:
    """
    Convert degree/minute/second GPS components to signed decimal degrees.

    Args:
        components: [degrees, minutes, seconds], each a number or rational
        ref: Hemisphere reference, "N", "S", "E" or "W"

    Returns:
        Decimal degrees, negative for southern latitudes and western longitudes

    Raises:
        ValueError: If the components or reference are malformed
    """
    if len(components) != 3:
        raise ValueError(f"Expected 3 GPS components, got {len(components)}")

    degrees, minutes, seconds = (float(c) for c in components)
    if not all(math.isfinite(v) for v in (degrees, minutes, seconds)):
        raise ValueError("GPS components must be finite numbers")

    hemisphere = _normalize_ref(ref)
    if hemisphere not in ("N", "S", "E", "W"):
        raise ValueError(f"Unknown GPS reference: {hemisphere!r}")

    decimal = degrees + minutes / 60 + seconds / 3600
    if hemisphere in ("S", "W"):
        decimal = -decimal
    return decimal


def _read_capture_timestamp(exif: Image.Exif) -> Optional[Tuple[str, str]]:
    candidates = (
        exif.get_ifd(ExifTags.IFD.Exif).get(ExifTags.Base.DateTimeOriginal),
        exif.get(ExifTags.Base.DateTime),
    )
    for value in candidates:
        if value is None:
            continue
        try:
            return format_capture_timestamp(value)
        except (TypeError, ValueError) as e:
            logger.debug(f"Skipping malformed EXIF timestamp {value!r}: {e}")
    return None


def _read_gps_position(exif: Image.Exif) -> Optional[Tuple[float, float]]:
    gps = exif.get_ifd(ExifTags.IFD.GPSInfo)
    required = (
        ExifTags.GPS.GPSLatitude,
        ExifTags.GPS.GPSLatitudeRef,
        ExifTags.GPS.GPSLongitude,
        ExifTags.GPS.GPSLongitudeRef,
    )
    # All four tags or nothing
    if not gps or any(gps.get(tag) is None for tag in required):
        return None

    latitude = dms_to_decimal(
        gps[ExifTags.GPS.GPSLatitude], gps[ExifTags.GPS.GPSLatitudeRef]
    )
    longitude = dms_to_decimal(
        gps[ExifTags.GPS.GPSLongitude], gps[ExifTags.GPS.GPSLongitudeRef]
    )
    return latitude, longitude


def extract_exif_metadata(source: Union[bytes, IO[bytes]]) -> ExifMetadata:
    """
    Extract capture timestamp and GPS position from an image.

    Never raises: a missing EXIF block, malformed tags or data that is not an
    image all yield an ExifMetadata with the affected fields unset. The
    timestamp and GPS position are read independently.

    Args:
        source: Image bytes or a seekable binary stream. Streams are rewound
            before returning.

    Returns:
        ExifMetadata with any subset of fields present
    """
    stream = io.BytesIO(source) if isinstance(source, bytes) else source
    metadata = ExifMetadata()

    try:
        stream.seek(0)
        with Image.open(stream) as image:
            exif = image.getexif()

            try:
                timestamp = _read_capture_timestamp(exif)
                if timestamp is not None:
                    metadata.capture_date, metadata.capture_time = timestamp
            except Exception as e:  # noqa: BLE001
                logger.debug(f"Ignoring unreadable EXIF timestamp: {e}")

            try:
                position = _read_gps_position(exif)
                if position is not None:
                    metadata.latitude, metadata.longitude = position
            except Exception as e:  # noqa: BLE001
                logger.debug(f"Ignoring unreadable EXIF GPS block: {e}")

    except Exception as e:  # noqa: BLE001
        logger.debug(f"No EXIF metadata available: {e}")
    finally:
        stream.seek(0)

    return metadata
