"""Factory classes for creating configured service instances."""

from typing import Any, Optional

import boto3
from botocore.config import Config

from .config import Settings, get_settings
from .multipart import MultipartExtractor
from .observability import MetricsCollector, StructuredLogger
from .protocols import (
    DynamoDBTableProtocol,
    LoggerProtocol,
    S3ClientProtocol,
    SQSClientProtocol,
)
from .services import (
    DynamoDBRecordStore,
    S3ObjectStore,
    S3UrlSigner,
    SQSNotifier,
    UploadPipeline,
)


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(
        name: str = "image-upload",
        level: str = "INFO",
        format_type: str = "structured",
    ) -> LoggerProtocol:
        """Create a structured logger instance."""
        return StructuredLogger(name, level=level, format_type=format_type)


class AwsClientFactory:
    """Factory for creating boto3 clients from settings."""

    def __init__(self, settings: Settings):
        self._settings = settings
        self._session = boto3.Session(region_name=settings.aws_region)

    def _client_config(self, **kwargs: Any) -> Config:
        # Each stage makes a single bounded attempt
        return Config(
            connect_timeout=self._settings.connect_timeout_seconds,
            read_timeout=self._settings.read_timeout_seconds,
            retries={"total_max_attempts": 1, "mode": "standard"},
            **kwargs,
        )

    def create_s3_client(self) -> S3ClientProtocol:
        return self._session.client(  # type: ignore[return-value]
            "s3",
            endpoint_url=self._settings.endpoint_url,
            config=self._client_config(signature_version="s3v4"),
        )

    def create_dynamodb_table(self) -> DynamoDBTableProtocol:
        dynamodb = self._session.resource(
            "dynamodb",
            endpoint_url=self._settings.endpoint_url,
            config=self._client_config(),
        )
        return dynamodb.Table(self._settings.table_name)  # type: ignore[return-value]

    def create_sqs_client(self) -> SQSClientProtocol:
        return self._session.client(  # type: ignore[return-value]
            "sqs",
            endpoint_url=self._settings.endpoint_url,
            config=self._client_config(),
        )


class UploadPipelineFactory:
    """Factory for creating the complete upload pipeline."""

    @staticmethod
    def create_pipeline(
        settings: Optional[Settings] = None,
        s3_client: Optional[S3ClientProtocol] = None,
        dynamodb_table: Optional[DynamoDBTableProtocol] = None,
        sqs_client: Optional[SQSClientProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> UploadPipeline:
        """Create a fully configured upload pipeline."""
        if settings is None:
            settings = get_settings()

        # Create default dependencies if not provided
        if s3_client is None or dynamodb_table is None or sqs_client is None:
            clients = AwsClientFactory(settings)
            s3_client = s3_client or clients.create_s3_client()
            dynamodb_table = dynamodb_table or clients.create_dynamodb_table()
            sqs_client = sqs_client or clients.create_sqs_client()

        if logger is None:
            logger = LoggerFactory.create_logger(
                level=settings.log_level, format_type=settings.log_format
            )

        object_store = S3ObjectStore(
            s3_client,
            settings.bucket_name,
            logger,
            region=settings.aws_region,
            endpoint_url=settings.endpoint_url,
        )
        signer = S3UrlSigner(
            s3_client, settings.access_policy, settings.access_policies
        )

        return UploadPipeline(
            settings=settings,
            object_store=object_store,
            record_store=DynamoDBRecordStore(dynamodb_table),
            notifier=SQSNotifier(sqs_client, settings.queue_name),
            signer=signer,
            logger=logger,
            extractor=MultipartExtractor(settings.spool_max_bytes),
            metrics_collector=metrics_collector,
        )
