"""Service implementations for the image upload pipeline."""

import time
import uuid
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from decimal import Decimal
from functools import partial
from typing import IO, Any, Callable, Dict, List, Optional
from urllib.parse import quote

from botocore.exceptions import ClientError as BotocoreClientError

from .config import Settings
from .error_handling import (
    describe_error,
    is_bucket_owned_error,
    is_missing_bucket_error,
    with_error_handling,
)
from .exceptions import (
    AccessSigningError,
    ImageUploadError,
    MetadataWriteError,
    NotifyError,
    StorageError,
    ValidationError,
)
from .image_utils import build_object_key, extract_exif_metadata, sanitize_filename
from .models import (
    ExifMetadata,
    ImageRecord,
    NotificationMessage,
    PipelineState,
    StoredObject,
    UploadResult,
)
from .multipart import ExtractedFile, MultipartExtractor
from .observability import LogContext, MetricsCollector, PerformanceMetrics
from .protocols import (
    DynamoDBTableProtocol,
    LoggerProtocol,
    Notifier,
    ObjectStore,
    RecordStore,
    S3ClientProtocol,
    SQSClientProtocol,
    UrlSigner,
)

DEFAULT_REGION = "us-east-1"


def _sanitize_for_dynamodb(obj: Any) -> Any:
    """Convert floats to Decimal for DynamoDB storage."""
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _sanitize_for_dynamodb(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_sanitize_for_dynamodb(item) for item in obj]
    return obj


class S3ObjectStore(ObjectStore):
    """Stores uploaded images in an S3 bucket."""

    def __init__(
        self,
        s3_client: S3ClientProtocol,
        bucket: str,
        logger: LoggerProtocol,
        region: str = DEFAULT_REGION,
        endpoint_url: Optional[str] = None,
    ):
        self._s3_client = s3_client
        self._bucket = bucket
        self._logger = logger
        self._region = region
        self._endpoint_url = endpoint_url

    @property
    def bucket(self) -> str:
        return self._bucket

    def object_url(self, key: str) -> str:
        """Unsigned, path-style URL of an object."""
        base = self._endpoint_url or f"https://s3.{self._region}.amazonaws.com"
        return f"{base.rstrip('/')}/{self._bucket}/{quote(key)}"

    @with_error_handling(StorageError)
    def ensure_container(self) -> None:
        """Create the bucket unless it already exists."""
        try:
            self._s3_client.head_bucket(Bucket=self._bucket)
            return
        except BotocoreClientError as e:
            if not is_missing_bucket_error(e):
                raise

        self._logger.info(f"Creating bucket {self._bucket}")
        kwargs: Dict[str, Any] = {}
        if self._region != DEFAULT_REGION:
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self._region}
        try:
            self._s3_client.create_bucket(Bucket=self._bucket, **kwargs)
        except BotocoreClientError as e:
            # Lost a race with a concurrent request
            if not is_bucket_owned_error(e):
                raise

    @with_error_handling(StorageError)
    def upload(
        self,
        key: str,
        body: IO[bytes],
        content_type: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> StoredObject:
        """Upload bytes with their content type and metadata attached."""
        self._logger.debug(f"Uploading to s3://{self._bucket}/{key}")
        self._s3_client.put_object(
            Bucket=self._bucket,
            Key=key,
            Body=body,
            ContentType=content_type,
            Metadata=metadata or {},
        )
        return StoredObject(bucket=self._bucket, key=key, url=self.object_url(key))


class DynamoDBRecordStore(RecordStore):
    """Creates metadata records in a DynamoDB table keyed by ``id``."""

    def __init__(self, table: DynamoDBTableProtocol):
        self._table = table

    @with_error_handling(MetadataWriteError)
    def create(self, record: ImageRecord) -> None:
        self._table.put_item(
            Item=_sanitize_for_dynamodb(record.to_document()),
            ConditionExpression="attribute_not_exists(id)",
        )


class SQSNotifier(Notifier):
    """Publishes enrichment notifications to an SQS queue."""

    def __init__(self, sqs_client: SQSClientProtocol, queue_name: str):
        self._sqs_client = sqs_client
        self._queue_name = queue_name

    @with_error_handling(NotifyError)
    def notify(self, message: NotificationMessage) -> None:
        queue_url = self._sqs_client.get_queue_url(QueueName=self._queue_name)[
            "QueueUrl"
        ]
        self._sqs_client.send_message(QueueUrl=queue_url, MessageBody=message.to_json())


class S3UrlSigner(UrlSigner):
    """Issues presigned S3 GET URLs under a named access policy."""

    def __init__(
        self,
        s3_client: S3ClientProtocol,
        access_policy: str,
        access_policies: Dict[str, int],
    ):
        self._s3_client = s3_client
        self._access_policy = access_policy
        self._access_policies = access_policies

    @property
    def expires_in(self) -> int:
        """Expiry in seconds of the configured access policy."""
        try:
            return self._access_policies[self._access_policy]
        except KeyError:
            raise AccessSigningError(
                f"Unknown access policy '{self._access_policy}'",
                context={"access_policy": self._access_policy},
            ) from None

    @with_error_handling(AccessSigningError)
    def sign(self, stored: StoredObject) -> str:
        return self._s3_client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": stored.bucket, "Key": stored.key},
            ExpiresIn=self.expires_in,
        )


@dataclass
class PostCommitHook:
    """A best-effort action run after the upload has been committed."""

    name: str
    action: Callable[[], None]


class PostCommitHookRunner:
    """
    Runs post-commit hooks concurrently, each bounded by a timeout.

    Hook failures never propagate. Every hook yields a PerformanceMetrics
    outcome, failed ones are logged at warning level and, when a metrics
    collector is configured, recorded for later inspection.
    """

    def __init__(
        self,
        logger: LoggerProtocol,
        timeout_seconds: float,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._logger = logger
        self._timeout_seconds = timeout_seconds
        self._metrics_collector = metrics_collector

    @staticmethod
    def _attempt(hook: PostCommitHook) -> PerformanceMetrics:
        start_time = time.time()
        try:
            hook.action()
        except Exception as e:  # noqa: BLE001
            return PerformanceMetrics(
                operation=hook.name,
                start_time=start_time,
                end_time=time.time(),
                success=False,
                error_message=describe_error(e),
            )
        return PerformanceMetrics(
            operation=hook.name,
            start_time=start_time,
            end_time=time.time(),
            success=True,
        )

    def run(
        self, hooks: List[PostCommitHook], context: LogContext
    ) -> List[PerformanceMetrics]:
        """Run every hook and return their outcomes in submission order."""
        if not hooks:
            return []

        outcomes: List[PerformanceMetrics] = []
        start_time = time.time()
        deadline = time.monotonic() + self._timeout_seconds
        executor = ThreadPoolExecutor(
            max_workers=len(hooks), thread_name_prefix="post-commit"
        )
        try:
            futures = [(hook, executor.submit(self._attempt, hook)) for hook in hooks]
            for hook, future in futures:
                remaining = max(0.0, deadline - time.monotonic())
                try:
                    outcome = future.result(timeout=remaining)
                except FuturesTimeoutError:
                    outcome = PerformanceMetrics(
                        operation=hook.name,
                        start_time=start_time,
                        end_time=time.time(),
                        success=False,
                        error_message=f"timed out after {self._timeout_seconds}s",
                    )
                outcomes.append(outcome)
        finally:
            # A stalled hook must not hold the response
            executor.shutdown(wait=False, cancel_futures=True)

        for outcome in outcomes:
            if self._metrics_collector is not None:
                self._metrics_collector.record_metric(outcome)
            if not outcome.success:
                self._logger.warning(
                    f"Best-effort {outcome.operation} failed",
                    context.with_operation(outcome.operation),
                    error=outcome.error_message,
                )

        return outcomes


@dataclass
class PipelineRun:
    """Trace of a single upload request through the pipeline."""

    record_id: str
    states: List[PipelineState] = field(
        default_factory=lambda: [PipelineState.RECEIVED]
    )
    object_key: Optional[str] = None
    exif: ExifMetadata = field(default_factory=ExifMetadata)
    hook_outcomes: List[PerformanceMetrics] = field(default_factory=list)
    result: Optional[UploadResult] = None

    @property
    def state(self) -> PipelineState:
        return self.states[-1]

    def advance(self, state: PipelineState) -> None:
        self.states.append(state)

    def outcome_for(self, operation: str) -> Optional[PerformanceMetrics]:
        for outcome in self.hook_outcomes:
            if outcome.operation == operation:
                return outcome
        return None


WRITE_RECORD_HOOK = "write_record"
NOTIFY_HOOK = "notify"


class UploadPipeline:
    """
    Orchestrates a single image upload.

    Parse the multipart body, derive the extension, read EXIF, store the
    object, then run the record write and the notification as best-effort
    hooks, and finally sign an access URL. Storage must succeed before any
    step that references the stored object.
    """

    def __init__(
        self,
        settings: Settings,
        object_store: ObjectStore,
        record_store: RecordStore,
        notifier: Notifier,
        signer: UrlSigner,
        logger: LoggerProtocol,
        extractor: Optional[MultipartExtractor] = None,
        metrics_collector: Optional[MetricsCollector] = None,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self._settings = settings
        self._object_store = object_store
        self._record_store = record_store
        self._notifier = notifier
        self._signer = signer
        self._logger = logger
        self._extractor = extractor or MultipartExtractor(settings.spool_max_bytes)
        self._hook_runner = PostCommitHookRunner(
            logger, settings.secondary_timeout_seconds, metrics_collector
        )
        self._id_factory = id_factory

    def upload(
        self, body: bytes, content_type: Optional[str], file_name: Optional[str] = None
    ) -> UploadResult:
        """Run the pipeline and return the client response."""
        run = self.run(body, content_type, file_name)
        if run.result is None:
            raise ImageUploadError(
                f"Upload finished in state {run.state.value} without a result",
                context={"record_id": run.record_id},
            )
        return run.result

    def run(
        self, body: bytes, content_type: Optional[str], file_name: Optional[str] = None
    ) -> PipelineRun:
        """
        Run the pipeline for one request.

        Args:
            body: Raw multipart/form-data body
            content_type: Declared Content-Type header
            file_name: Optional client file name hint

        Returns:
            The completed PipelineRun, including its UploadResult

        Raises:
            ValidationError: The body holds no usable file
            StorageError: The object could not be stored
            AccessSigningError: The access URL could not be signed
        """
        run = PipelineRun(record_id=self._id_factory())
        log_context = LogContext(
            correlation_id=run.record_id,
            operation="upload",
            component="upload_pipeline",
        )

        try:
            upload_file = self._extract(body, content_type)
        except ValidationError as e:
            run.advance(PipelineState.REJECTED)
            self._logger.warning("Upload rejected", log_context, error=e.message)
            raise

        with upload_file:
            run.advance(PipelineState.PARSED)
            extension = upload_file.extension
            run.object_key = build_object_key(run.record_id, extension)

            run.exif = extract_exif_metadata(upload_file.file)
            run.advance(
                PipelineState.EXIF_SKIPPED
                if run.exif.is_empty()
                else PipelineState.EXIF_EXTRACTED
            )

            try:
                stored = self._store(upload_file, run.object_key, run.exif)
            except StorageError as e:
                run.advance(PipelineState.UPLOAD_FAILED)
                self._logger.error(
                    "Upload failed", log_context, key=run.object_key, error=e.message
                )
                raise
            run.advance(PipelineState.UPLOADED)

        self._run_post_commit_hooks(run, stored, log_context)

        try:
            file_url = self._sign(stored)
        except AccessSigningError as e:
            run.advance(PipelineState.SIGNING_FAILED)
            self._logger.error(
                "Signing failed", log_context, key=stored.key, error=e.message
            )
            raise
        run.advance(PipelineState.SIGNED)

        run.result = UploadResult(
            file_name=self._result_file_name(run.record_id, file_name),
            file_extension=extension,
            content_type=upload_file.content_type,
            file_url=file_url,
        )
        run.advance(PipelineState.COMPLETED)
        self._logger.info(
            "Upload completed",
            log_context,
            key=stored.key,
            states=" > ".join(state.value for state in run.states),
        )
        return run

    @with_error_handling(ValidationError)
    def _extract(self, body: bytes, content_type: Optional[str]) -> ExtractedFile:
        if len(body) > self._settings.max_upload_bytes:
            raise ValidationError(
                f"Upload exceeds {self._settings.max_upload_bytes} bytes",
                context={"size": len(body)},
            )
        return self._extractor.extract(body, content_type)

    @with_error_handling(StorageError)
    def _store(
        self, upload_file: ExtractedFile, key: str, exif: ExifMetadata
    ) -> StoredObject:
        self._object_store.ensure_container()
        upload_file.file.seek(0)
        return self._object_store.upload(
            key,
            upload_file.file,
            upload_file.content_type,
            exif.to_object_metadata(),
        )

    @with_error_handling(AccessSigningError)
    def _sign(self, stored: StoredObject) -> str:
        return self._signer.sign(stored)

    def _run_post_commit_hooks(
        self, run: PipelineRun, stored: StoredObject, log_context: LogContext
    ) -> None:
        record = ImageRecord.create(run.record_id, stored.url, run.exif)
        message = NotificationMessage.for_record(run.record_id)
        hooks = [
            PostCommitHook(WRITE_RECORD_HOOK, partial(self._record_store.create, record)),
            PostCommitHook(NOTIFY_HOOK, partial(self._notifier.notify, message)),
        ]
        run.hook_outcomes = self._hook_runner.run(hooks, log_context)

        record_outcome = run.outcome_for(WRITE_RECORD_HOOK)
        run.advance(
            PipelineState.RECORD_WRITTEN
            if record_outcome is not None and record_outcome.success
            else PipelineState.RECORD_SKIPPED
        )
        notify_outcome = run.outcome_for(NOTIFY_HOOK)
        run.advance(
            PipelineState.NOTIFIED
            if notify_outcome is not None and notify_outcome.success
            else PipelineState.NOTIFY_SKIPPED
        )

    def _result_file_name(self, record_id: str, file_name: Optional[str]) -> str:
        if self._settings.honor_client_filename:
            sanitized = sanitize_filename(file_name)
            if sanitized:
                return sanitized
        return record_id
