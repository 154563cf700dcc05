"""Shared data models for the image upload pipeline."""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

EXIF_CAPTURE_DATE = "exifCaptureDate"
EXIF_CAPTURE_TIME = "exifCaptureTime"
EXIF_LAT_GPS = "exifLatGPS"
EXIF_LONG_GPS = "exifLongGPS"


class PipelineState(str, Enum):
    """States an upload request moves through."""

    RECEIVED = "Received"
    PARSED = "Parsed"
    EXIF_EXTRACTED = "ExifExtracted"
    EXIF_SKIPPED = "ExifSkipped"
    UPLOADED = "Uploaded"
    RECORD_WRITTEN = "RecordWritten"
    RECORD_SKIPPED = "RecordSkipped"
    NOTIFIED = "Notified"
    NOTIFY_SKIPPED = "NotifySkipped"
    SIGNED = "Signed"
    COMPLETED = "Completed"
    REJECTED = "Rejected"
    UPLOAD_FAILED = "UploadFailed"
    SIGNING_FAILED = "SigningFailed"


class ExifMetadata(BaseModel):
    """Capture metadata read from an image's EXIF block."""

    capture_date: Optional[str] = None
    capture_time: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def is_empty(self) -> bool:
        """Check whether no field was found."""
        return not any(
            value is not None
            for value in (
                self.capture_date,
                self.capture_time,
                self.latitude,
                self.longitude,
            )
        )

    def to_object_metadata(self) -> Dict[str, str]:
        """Render the fields as object storage metadata, omitting absent ones."""
        metadata: Dict[str, str] = {}
        if self.capture_date is not None:
            metadata[EXIF_CAPTURE_DATE] = self.capture_date
        if self.capture_time is not None:
            metadata[EXIF_CAPTURE_TIME] = self.capture_time
        if self.latitude is not None:
            metadata[EXIF_LAT_GPS] = str(self.latitude)
        if self.longitude is not None:
            metadata[EXIF_LONG_GPS] = str(self.longitude)
        return metadata


class StoredObject(BaseModel):
    """An object durably written to storage."""

    bucket: str
    key: str
    url: str


class ImageRecord(BaseModel):
    """Metadata document created for downstream enrichment workers."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    media_url: str = Field(alias="mediaUrl")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="createdAt"
    )

    exif_capture_date: Optional[str] = Field(default=None, alias=EXIF_CAPTURE_DATE)
    exif_capture_time: Optional[str] = Field(default=None, alias=EXIF_CAPTURE_TIME)
    exif_lat_gps: Optional[float] = Field(default=None, alias=EXIF_LAT_GPS)
    exif_long_gps: Optional[float] = Field(default=None, alias=EXIF_LONG_GPS)

    # Populated later by the enrichment workers
    ocr_text: Optional[str] = Field(default=None, alias="ocrText")
    has_high_voltage_sign: Optional[bool] = Field(
        default=None, alias="hasHighVoltageSign"
    )
    has_live_electrical_sign: Optional[bool] = Field(
        default=None, alias="hasLiveElectricalSign"
    )
    has_live_wires_sign: Optional[bool] = Field(default=None, alias="hasLiveWiresSign")
    tags: Optional[str] = None
    dominant_colours: Optional[str] = Field(default=None, alias="dominantColours")
    accent_colour: Optional[str] = Field(default=None, alias="accentColour")
    is_on_fire: Optional[bool] = Field(default=None, alias="isOnFire")
    contains_transformer: Optional[bool] = Field(
        default=None, alias="containsTransformer"
    )
    contains_pole: Optional[bool] = Field(default=None, alias="containsPole")

    @classmethod
    def create(
        cls, record_id: str, media_url: str, exif: Optional[ExifMetadata] = None
    ) -> "ImageRecord":
        """Create a fresh record with every enrichment field unset."""
        exif = exif or ExifMetadata()
        return cls(
            id=record_id,
            media_url=media_url,
            exif_capture_date=exif.capture_date,
            exif_capture_time=exif.capture_time,
            exif_lat_gps=exif.latitude,
            exif_long_gps=exif.longitude,
        )

    def to_document(self) -> Dict[str, object]:
        """Serialize the record with its document store field names."""
        return self.model_dump(by_alias=True, mode="json")


class NotificationMessage(BaseModel):
    """Correlation message consumed by the enrichment workers."""

    BlobName: str
    DocumentId: str

    @classmethod
    def for_record(cls, record_id: str) -> "NotificationMessage":
        return cls(BlobName=record_id, DocumentId=record_id)

    def to_json(self) -> str:
        """Serialize to a compact JSON message body."""
        return self.model_dump_json()


class UploadResult(BaseModel):
    """Response returned to the uploading client."""

    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(alias="fileName")
    file_extension: str = Field(alias="fileExtension")
    content_type: str = Field(alias="contentType")
    file_url: str = Field(alias="fileURL")

    def to_response(self) -> Dict[str, str]:
        return self.model_dump(by_alias=True)
