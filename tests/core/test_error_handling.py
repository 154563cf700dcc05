# tests/core/test_error_handling.py

import pytest
from unittest import mock

from botocore.exceptions import ClientError as BotocoreClientError

from image_upload.core.exceptions import (
    NotifyError,
    StorageError,
    ValidationError,
)
from image_upload.core.error_handling import (
    describe_error,
    is_bucket_owned_error,
    is_missing_bucket_error,
    with_error_handling,
)


def _client_error(code, message="Details"):
    return BotocoreClientError(
        error_response={"Error": {"Code": code, "Message": message}},
        operation_name="AnyOp",
    )


@pytest.fixture
def mock_logger():
    """Mock the logger the decorator resolves per wrapped function."""
    with mock.patch("image_upload.core.error_handling.logging") as mock_logging:
        mock_log_instance = mock.Mock()
        mock_logging.getLogger.return_value = mock_log_instance
        yield mock_log_instance


# --- describe_error ---

def test_describe_error_uses_botocore_code_and_message():
    assert describe_error(_client_error("AccessDenied", "Forbidden")) == (
        "AccessDenied: Forbidden"
    )


def test_describe_error_plain_exception():
    assert describe_error(ValueError("bad value")) == "bad value"


def test_describe_error_without_message_uses_type_name():
    assert describe_error(TimeoutError()) == "TimeoutError"


# --- @with_error_handling ---

def test_with_error_handling_wraps_unexpected_error(mock_logger):
    @with_error_handling(StorageError)
    def put():
        raise _client_error("InternalError", "We encountered an internal error")

    with pytest.raises(StorageError) as excinfo:
        put()

    assert excinfo.value.message == "InternalError: We encountered an internal error"
    assert excinfo.value.context == {"operation": "put", "cause": "ClientError"}
    assert isinstance(excinfo.value.__cause__, BotocoreClientError)
    mock_logger.error.assert_called_once()
    _, kwargs = mock_logger.error.call_args
    assert kwargs.get("exc_info") is True


def test_with_error_handling_passes_domain_errors_through(mock_logger):
    @with_error_handling(StorageError)
    def reject():
        raise ValidationError("Could not find file to upload")

    with pytest.raises(ValidationError):
        reject()

    mock_logger.error.assert_not_called()


def test_with_error_handling_returns_value(mock_logger):
    @with_error_handling(NotifyError)
    def ok(value):
        return value * 2

    assert ok(21) == 42
    mock_logger.error.assert_not_called()


def test_with_error_handling_preserves_metadata():
    @with_error_handling(NotifyError)
    def documented():
        """Docstring survives."""

    assert documented.__name__ == "documented"
    assert documented.__doc__ == "Docstring survives."


# --- bucket error helpers ---

@pytest.mark.parametrize("code", ["404", "NoSuchBucket", "NotFound"])
def test_is_missing_bucket_error(code):
    assert is_missing_bucket_error(_client_error(code))


def test_is_missing_bucket_error_other_codes():
    assert not is_missing_bucket_error(_client_error("403"))
    assert not is_missing_bucket_error(ValueError("404"))


def test_is_bucket_owned_error():
    assert is_bucket_owned_error(_client_error("BucketAlreadyOwnedByYou"))
    assert not is_bucket_owned_error(_client_error("BucketAlreadyExists"))
    assert not is_bucket_owned_error(RuntimeError("BucketAlreadyOwnedByYou"))
