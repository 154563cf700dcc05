"""Image upload pipeline: multipart ingestion, EXIF extraction and durable storage."""

__version__ = "0.1.0"
