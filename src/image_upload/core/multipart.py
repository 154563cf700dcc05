"""Extraction of the uploaded file from a multipart/form-data body."""

from tempfile import SpooledTemporaryFile
from typing import IO, Dict, List, Optional, Tuple

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from .exceptions import ValidationError
from .image_utils import extract_extension

NO_FILE_MESSAGE = "Could not find file to upload"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class ExtractedFile:
    """
    The first file part of a multipart body, fully buffered.

    The bytes live in a spooled temporary file so they can be replayed for
    EXIF parsing and for the upload. Use as a context manager; leaving the
    block releases the buffer.
    """

    def __init__(self, filename: str, content_type: str, file: IO[bytes]):
        self.filename = filename
        self.content_type = content_type
        self.file = file

    @property
    def extension(self) -> str:
        return extract_extension(self.filename)

    @property
    def size(self) -> int:
        position = self.file.tell()
        self.file.seek(0, 2)
        size = self.file.tell()
        self.file.seek(position)
        return size

    @property
    def closed(self) -> bool:
        return self.file.closed

    def read(self) -> bytes:
        """Return the whole content, leaving the stream rewound."""
        self.file.seek(0)
        data = self.file.read()
        self.file.seek(0)
        return data

    def close(self) -> None:
        self.file.close()

    def __enter__(self) -> "ExtractedFile":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class _FirstFileCollector:
    """MultipartParser callbacks that keep only the first file part."""

    def __init__(self, spool_max_bytes: int):
        self._spool_max_bytes = spool_max_bytes
        self._headers: List[Tuple[bytes, bytes]] = []
        self._header_field = b""
        self._header_value = b""
        self._capturing = False
        self.file: Optional[IO[bytes]] = None
        self.filename: Optional[str] = None
        self.content_type: Optional[str] = None
        self.finished = False

    def callbacks(self) -> Dict[str, object]:
        return {
            "on_part_begin": self.on_part_begin,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_headers_finished": self.on_headers_finished,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
            "on_end": self.on_end,
        }

    def on_part_begin(self) -> None:
        self._headers = []
        self._capturing = False

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def on_header_end(self) -> None:
        self._headers.append((self._header_field.lower(), self._header_value))
        self._header_field = b""
        self._header_value = b""

    def on_headers_finished(self) -> None:
        # Additional file parts after the first are ignored
        if self.file is not None:
            return

        headers = dict(self._headers)
        _, disposition = parse_options_header(headers.get(b"content-disposition"))
        filename = disposition.get(b"filename")
        # An empty file input is sent as filename=""
        if not filename:
            return

        self.filename = filename.decode("utf-8", errors="replace")
        content_type = headers.get(b"content-type", b"").decode("latin-1").strip()
        self.content_type = content_type or DEFAULT_CONTENT_TYPE
        self.file = SpooledTemporaryFile(max_size=self._spool_max_bytes)
        self._capturing = True

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        if self._capturing and self.file is not None:
            self.file.write(data[start:end])

    def on_part_end(self) -> None:
        self._capturing = False

    def on_end(self) -> None:
        self.finished = True

    def discard(self) -> None:
        if self.file is not None:
            self.file.close()


class MultipartExtractor:
    """Parses multipart/form-data bodies into an ExtractedFile."""

    def __init__(self, spool_max_bytes: int = 1024 * 1024):
        self._spool_max_bytes = spool_max_bytes

    @staticmethod
    def boundary_for(content_type: Optional[str]) -> bytes:
        """
        Return the multipart boundary declared by a Content-Type header.

        Raises:
            ValidationError: If the content is not multipart/form-data
        """
        mime_type, params = parse_options_header(content_type)
        boundary = params.get(b"boundary")
        if mime_type.lower() != b"multipart/form-data" or not boundary:
            raise ValidationError(
                NO_FILE_MESSAGE, context={"content_type": content_type or ""}
            )
        return boundary

    def extract(self, body: bytes, content_type: Optional[str]) -> ExtractedFile:
        """
        Extract the first file part of a multipart/form-data body.

        Args:
            body: Raw request body
            content_type: Declared Content-Type header of the request

        Returns:
            ExtractedFile owning a rewound buffer with the part's bytes

        Raises:
            ValidationError: If the body is not multipart/form-data, is
                malformed, or carries no file part
        """
        boundary = self.boundary_for(content_type)
        collector = _FirstFileCollector(self._spool_max_bytes)
        parser = MultipartParser(boundary, collector.callbacks())

        try:
            parser.write(body)
            parser.finalize()
        except MultipartParseError as e:
            collector.discard()
            raise ValidationError(f"Malformed multipart body: {e}") from e
        except Exception:
            collector.discard()
            raise

        # finalize() does not check that the closing boundary was seen
        if not collector.finished:
            collector.discard()
            raise ValidationError(
                "Malformed multipart body: message ended before the closing boundary"
            )

        if collector.file is None or collector.filename is None:
            raise ValidationError(NO_FILE_MESSAGE)

        collector.file.seek(0)
        return ExtractedFile(
            filename=collector.filename,
            content_type=collector.content_type or DEFAULT_CONTENT_TYPE,
            file=collector.file,
        )
