"""Protocol definitions for dependency injection and testability."""

from abc import ABC, abstractmethod
from typing import IO, Any, Dict, Optional, Protocol

from .models import ImageRecord, NotificationMessage, StoredObject


class S3ClientProtocol(Protocol):
    """Protocol for the S3 client operations the pipeline uses."""

    def head_bucket(self, Bucket: str) -> Dict[str, Any]:
        """Check that a bucket exists and is reachable."""
        ...

    def create_bucket(self, Bucket: str, **kwargs: Any) -> Dict[str, Any]:
        """Create a bucket."""
        ...

    def put_object(
        self,
        Bucket: str,
        Key: str,
        Body: Any,
        ContentType: str,
        Metadata: Dict[str, str],
    ) -> Dict[str, Any]:
        """Put object to S3."""
        ...

    def generate_presigned_url(
        self, ClientMethod: str, Params: Dict[str, Any], ExpiresIn: int
    ) -> str:
        """Generate a presigned URL for a client method."""
        ...


class DynamoDBTableProtocol(Protocol):
    """Protocol for a DynamoDB ``Table`` resource."""

    def put_item(self, Item: Dict[str, Any], **kwargs: Any) -> Dict[str, Any]:
        """Write an item to the table."""
        ...


class SQSClientProtocol(Protocol):
    """Protocol for the SQS client operations the pipeline uses."""

    def get_queue_url(self, QueueName: str) -> Dict[str, Any]:
        """Resolve a queue name to its URL."""
        ...

    def send_message(self, QueueUrl: str, MessageBody: str) -> Dict[str, Any]:
        """Enqueue a message."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...


class ObjectStore(ABC):
    """Abstract durable object storage."""

    @abstractmethod
    def ensure_container(self) -> None:
        """Create the target container if it does not exist."""
        ...

    @abstractmethod
    def upload(
        self,
        key: str,
        body: IO[bytes],
        content_type: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> StoredObject:
        """Upload bytes under ``key``."""
        ...


class RecordStore(ABC):
    """Abstract document store for metadata records."""

    @abstractmethod
    def create(self, record: ImageRecord) -> None:
        """Create a metadata record."""
        ...


class Notifier(ABC):
    """Abstract notification channel for enrichment workers."""

    @abstractmethod
    def notify(self, message: NotificationMessage) -> None:
        """Publish a correlation message."""
        ...


class UrlSigner(ABC):
    """Abstract issuer of time-bounded access URLs."""

    @abstractmethod
    def sign(self, stored: StoredObject) -> str:
        """Return a signed, read-capable URL for a stored object."""
        ...
