"""Shared test fixtures."""

from typing import Any, Dict, Optional, Tuple

import piexif
import pytest

from image_upload.core.config import Settings, get_settings
from image_upload.testing.fakes import create_test_image

# 40°26'46"N 79°58'56"W
PITTSBURGH_GPS = {
    piexif.GPSIFD.GPSLatitudeRef: b"N",
    piexif.GPSIFD.GPSLatitude: ((40, 1), (26, 1), (46, 1)),
    piexif.GPSIFD.GPSLongitudeRef: b"W",
    piexif.GPSIFD.GPSLongitude: ((79, 1), (58, 1), (56, 1)),
}


@pytest.fixture(autouse=True)
def _clear_environment(monkeypatch):
    """Clear environment variables that affect settings."""
    env_vars_to_clear = [
        "IMAGE_UPLOAD_AWS_REGION",
        "IMAGE_UPLOAD_ENDPOINT_URL",
        "IMAGE_UPLOAD_BUCKET_NAME",
        "IMAGE_UPLOAD_TABLE_NAME",
        "IMAGE_UPLOAD_QUEUE_NAME",
        "IMAGE_UPLOAD_ACCESS_POLICY",
        "IMAGE_UPLOAD_ACCESS_POLICIES",
        "IMAGE_UPLOAD_HONOR_CLIENT_FILENAME",
        "IMAGE_UPLOAD_MAX_UPLOAD_BYTES",
        "IMAGE_UPLOAD_LOG_LEVEL",
        "IMAGE_UPLOAD_LOG_FORMAT",
    ]
    for var in env_vars_to_clear:
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings matching the fake environment."""
    return Settings(
        bucket_name="test-uploads",
        table_name="test-table",
        queue_name="image-enrichment",
        secondary_timeout_seconds=2.0,
    )


def make_exif(
    date_time_original: Optional[str] = None,
    date_time: Optional[str] = None,
    gps: Optional[Dict[int, Any]] = None,
) -> bytes:
    """Build a raw EXIF block with piexif."""
    exif_dict: Dict[str, Dict[int, Any]] = {"0th": {}, "Exif": {}, "GPS": {}}
    if date_time is not None:
        exif_dict["0th"][piexif.ImageIFD.DateTime] = date_time
    if date_time_original is not None:
        exif_dict["Exif"][piexif.ExifIFD.DateTimeOriginal] = date_time_original
    if gps is not None:
        exif_dict["GPS"].update(gps)
    return piexif.dump(exif_dict)


@pytest.fixture
def exif_jpeg() -> bytes:
    """JPEG carrying a capture timestamp and a full GPS block."""
    return create_test_image(
        exif=make_exif(date_time_original="2020:03:05 14:07:09", gps=PITTSBURGH_GPS)
    )


@pytest.fixture
def plain_jpeg() -> bytes:
    """JPEG without any EXIF block."""
    return create_test_image()


@pytest.fixture
def gps_components() -> Tuple[int, int, int]:
    return (40, 26, 46)
