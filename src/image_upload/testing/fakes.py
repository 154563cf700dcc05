"""Fake implementations for testing purposes."""

import io
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from botocore.exceptions import ClientError
from PIL import Image
from urllib3 import encode_multipart_formdata


def _client_error(code: str, message: str, operation_name: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation_name)


class _FailureMode:
    """Shared failure and delay switches for the fake clients."""

    def __init__(self) -> None:
        self.operation_count = 0
        self.should_fail = False
        self.failure_message = "Simulated failure"
        self.failing_operations: Optional[Set[str]] = None
        self.delay_seconds = 0.0

    def set_failure_mode(
        self,
        should_fail: bool,
        message: str = "Simulated failure",
        operations: Optional[Sequence[str]] = None,
    ) -> None:
        """Configure failure mode, optionally for a subset of operations only."""
        self.should_fail = should_fail
        self.failure_message = message
        self.failing_operations = set(operations) if operations else None

    def set_delay(self, seconds: float) -> None:
        """Set artificial delay for testing timeouts."""
        self.delay_seconds = seconds

    def _enter(self, operation: str) -> None:
        self.operation_count += 1

        if self.delay_seconds > 0:
            time.sleep(self.delay_seconds)

        if self.should_fail and (
            self.failing_operations is None or operation in self.failing_operations
        ):
            raise _client_error("InternalError", self.failure_message, operation)


@dataclass
class S3Object:
    """Fake S3 object for testing."""

    key: str
    body: bytes
    content_type: str = "binary/octet-stream"
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.body)


@dataclass
class S3Bucket:
    """Fake S3 bucket for testing."""

    name: str
    objects: Dict[str, S3Object] = field(default_factory=dict)

    def add_object(
        self,
        key: str,
        body: bytes,
        content_type: str = "binary/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        """Add object to bucket."""
        self.objects[key] = S3Object(
            key=key, body=body, content_type=content_type, metadata=metadata or {}
        )

    def get_object(self, key: str) -> Optional[S3Object]:
        """Get object from bucket."""
        return self.objects.get(key)


class FakeS3Client(_FailureMode):
    """Fake S3 client for testing."""

    def __init__(self) -> None:
        super().__init__()
        self.buckets: Dict[str, S3Bucket] = {}
        self.signing_should_fail = False

    def get_bucket(self, name: str) -> Optional[S3Bucket]:
        """Get bucket by name."""
        return self.buckets.get(name)

    def head_bucket(self, Bucket: str) -> Dict[str, Any]:
        self._enter("HeadBucket")
        if Bucket not in self.buckets:
            raise _client_error("404", "Not Found", "HeadBucket")
        return {"ResponseMetadata": {"HTTPStatusCode": 200}}

    def create_bucket(self, Bucket: str, **kwargs: Any) -> Dict[str, Any]:
        self._enter("CreateBucket")
        if Bucket in self.buckets:
            raise _client_error(
                "BucketAlreadyOwnedByYou", "Bucket already exists", "CreateBucket"
            )
        self.buckets[Bucket] = S3Bucket(name=Bucket)
        return {"Location": f"/{Bucket}"}

    def put_object(
        self,
        Bucket: str,
        Key: str,
        Body: Any,
        ContentType: str = "binary/octet-stream",
        Metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Put object to S3."""
        self._enter("PutObject")

        bucket = self.buckets.get(Bucket)
        if not bucket:
            raise _client_error("NoSuchBucket", f"Bucket {Bucket} not found", "PutObject")

        data = Body.read() if hasattr(Body, "read") else Body
        bucket.add_object(Key, data, ContentType, Metadata)

        return {
            "ETag": f'"fake-etag-{Key}"',
            "ResponseMetadata": {"HTTPStatusCode": 200},
        }

    def generate_presigned_url(
        self, ClientMethod: str, Params: Dict[str, Any], ExpiresIn: int = 3600
    ) -> str:
        """Presigning is local in boto3, so it ignores the failure mode."""
        if self.signing_should_fail:
            raise ValueError("Simulated signing failure")
        return (
            f"https://{Params['Bucket']}.s3.fake/{Params['Key']}"
            f"?X-Amz-Expires={ExpiresIn}&X-Amz-Signature=fake"
        )


class FakeDynamoDBTable(_FailureMode):
    """Fake DynamoDB Table resource keyed by ``id``."""

    def __init__(self, name: str = "test-table"):
        super().__init__()
        self.name = name
        self.items: Dict[str, Dict[str, Any]] = {}

    def put_item(self, Item: Dict[str, Any], **kwargs: Any) -> Dict[str, Any]:
        self._enter("PutItem")
        condition = kwargs.get("ConditionExpression")
        if condition == "attribute_not_exists(id)" and Item["id"] in self.items:
            raise _client_error(
                "ConditionalCheckFailedException",
                "The conditional request failed",
                "PutItem",
            )
        self.items[Item["id"]] = dict(Item)
        return {"ResponseMetadata": {"HTTPStatusCode": 200}}


class FakeSQSClient(_FailureMode):
    """Fake SQS client holding messages in memory."""

    def __init__(self) -> None:
        super().__init__()
        self.queues: Dict[str, List[str]] = {}

    def create_queue(self, QueueName: str) -> Dict[str, Any]:
        self.queues.setdefault(QueueName, [])
        return {"QueueUrl": self._url(QueueName)}

    @staticmethod
    def _url(name: str) -> str:
        return f"https://sqs.fake/000000000000/{name}"

    def get_queue_url(self, QueueName: str) -> Dict[str, Any]:
        self._enter("GetQueueUrl")
        if QueueName not in self.queues:
            raise _client_error(
                "AWS.SimpleQueueService.NonExistentQueue",
                "The specified queue does not exist.",
                "GetQueueUrl",
            )
        return {"QueueUrl": self._url(QueueName)}

    def send_message(self, QueueUrl: str, MessageBody: str) -> Dict[str, Any]:
        self._enter("SendMessage")
        name = QueueUrl.rsplit("/", 1)[-1]
        if name not in self.queues:
            raise _client_error(
                "AWS.SimpleQueueService.NonExistentQueue",
                "The specified queue does not exist.",
                "SendMessage",
            )
        self.queues[name].append(MessageBody)
        return {"MessageId": f"fake-{len(self.queues[name])}"}

    def messages(self, queue_name: str) -> List[str]:
        return list(self.queues.get(queue_name, []))


class FakeLogger:
    """Fake logger for testing with support for LogContext."""

    def __init__(self, name: str = "test_logger"):
        self.name = name
        self.logs: List[Dict[str, Any]] = []

    def _log(
        self, level: str, message: str, context: Any = None, **kwargs: Any
    ) -> None:
        log_entry = {
            "level": level,
            "message": message,
            "timestamp": time.time(),
            **kwargs,
        }

        if context is not None:
            if hasattr(context, "correlation_id"):
                log_entry["correlation_id"] = context.correlation_id
            if hasattr(context, "operation"):
                log_entry["operation"] = context.operation
            if hasattr(context, "component"):
                log_entry["component"] = context.component
            if hasattr(context, "metadata"):
                log_entry.update(context.metadata)

        self.logs.append(log_entry)

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        self._log("DEBUG", message, context, **kwargs)

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        self._log("INFO", message, context, **kwargs)

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        self._log("WARNING", message, context, **kwargs)

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        self._log("ERROR", message, context, **kwargs)

    def get_logs(self, level: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get logged messages, optionally filtered by level."""
        if level:
            return [log for log in self.logs if log["level"] == level]
        return self.logs.copy()


def create_test_image(
    width: int = 64, height: int = 48, exif: Optional[bytes] = None
) -> bytes:
    """Create a JPEG in memory, optionally carrying a raw EXIF block."""
    image = Image.new("RGB", (width, height), color="red")

    img_bytes = io.BytesIO()
    if exif is not None:
        image.save(img_bytes, format="JPEG", quality=90, exif=exif)
    else:
        image.save(img_bytes, format="JPEG", quality=90)
    return img_bytes.getvalue()


def build_multipart_body(
    files: Sequence[Tuple[str, str, bytes, str]] = (),
    fields: Optional[Dict[str, str]] = None,
) -> Tuple[bytes, str]:
    """
    Encode a multipart/form-data body.

    Args:
        files: (field name, file name, data, content type) per file part
        fields: Plain form fields

    Returns:
        Tuple of (body, Content-Type header value)
    """
    parts: List[Tuple[str, Any]] = list((fields or {}).items())
    for field_name, file_name, data, content_type in files:
        parts.append((field_name, (file_name, data, content_type)))
    return encode_multipart_formdata(parts)


def setup_test_environment(
    queue_name: str = "image-enrichment",
) -> Tuple[FakeS3Client, FakeDynamoDBTable, FakeSQSClient]:
    """Set up fake S3, DynamoDB and SQS backends; the bucket is left to the pipeline."""
    s3_client = FakeS3Client()
    table = FakeDynamoDBTable()
    sqs_client = FakeSQSClient()
    sqs_client.create_queue(QueueName=queue_name)
    return s3_client, table, sqs_client
