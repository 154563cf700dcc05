"""Testing utilities and fakes for the image upload pipeline."""

from .fakes import (
    FakeDynamoDBTable,
    FakeLogger,
    FakeS3Client,
    FakeSQSClient,
    S3Bucket,
    S3Object,
    build_multipart_body,
    create_test_image,
    setup_test_environment,
)

__all__ = [
    "FakeS3Client",
    "FakeDynamoDBTable",
    "FakeSQSClient",
    "FakeLogger",
    "S3Object",
    "S3Bucket",
    "build_multipart_body",
    "create_test_image",
    "setup_test_environment",
]
