"""API Gateway (Lambda proxy) adapter for the upload pipeline."""

import base64
import binascii
import json
import logging
from functools import lru_cache
from http import HTTPStatus
from typing import Any, Dict, Optional

from .core.exceptions import ImageUploadError, ValidationError
from .core.factories import UploadPipelineFactory
from .core.services import UploadPipeline

logger = logging.getLogger(__name__)

LambdaResponse = Dict[str, Any]

FILE_NAME_PARAMETER = "fileName"


def create_error_response(
    exception: ImageUploadError, request_id: Optional[str] = None
) -> LambdaResponse:
    """
    Create an API Gateway error response from an exception.

    Args:
        exception: The ImageUploadError to convert
        request_id: Optional request ID for tracing

    Returns:
        Lambda-compatible response dictionary with a problem+json body
    """
    body: Dict[str, Any] = {
        "type": f"about:blank#{exception.error_code.lower()}",
        "title": exception.error_code.replace("_", " ").title(),
        "status": int(exception.http_status),
        "detail": exception.message,
    }
    if request_id:
        body["instance"] = f"/requests/{request_id}"

    return {
        "statusCode": int(exception.http_status),
        "headers": {"Content-Type": "application/problem+json"},
        "body": json.dumps(body),
    }


def create_success_response(status_code: int, body: Dict[str, Any]) -> LambdaResponse:
    """Create an API Gateway success response."""
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def _header(event: Dict[str, Any], name: str) -> Optional[str]:
    """Case-insensitive header lookup; API Gateway preserves client casing."""
    headers = event.get("headers") or {}
    for key, value in headers.items():
        if key.lower() == name.lower():
            return value
    return None


def _decode_body(event: Dict[str, Any]) -> bytes:
    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        try:
            return base64.b64decode(body, validate=True)
        except binascii.Error as e:
            raise ValidationError("Request body is not valid base64") from e
    return body.encode("utf-8") if isinstance(body, str) else body


def _request_id(event: Dict[str, Any]) -> Optional[str]:
    request_context = event.get("requestContext") or {}
    request_id = request_context.get("requestId")
    return request_id if isinstance(request_id, str) else None


@lru_cache
def get_pipeline() -> UploadPipeline:
    """Build the pipeline once per Lambda container."""
    return UploadPipelineFactory.create_pipeline()


def handle_upload(event: Dict[str, Any], pipeline: UploadPipeline) -> LambdaResponse:
    """
    Run the pipeline for an API Gateway proxy event.

    Args:
        event: API Gateway proxy event carrying the multipart body
        pipeline: Configured upload pipeline

    Returns:
        200 with the upload result, or a problem+json error response
    """
    request_id = _request_id(event)
    query = event.get("queryStringParameters") or {}

    try:
        result = pipeline.upload(
            _decode_body(event),
            _header(event, "Content-Type"),
            file_name=query.get(FILE_NAME_PARAMETER),
        )
    except ImageUploadError as error:
        return create_error_response(error, request_id=request_id)
    except Exception:
        logger.exception("Unhandled error while processing upload")
        return create_error_response(
            ImageUploadError("Internal server error"), request_id=request_id
        )

    return create_success_response(HTTPStatus.OK, result.to_response())


def handler(event: Dict[str, Any], context: Any) -> LambdaResponse:
    """Lambda entry point."""
    _ = context
    return handle_upload(event, get_pipeline())
