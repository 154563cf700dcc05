# src/image_upload/core/error_handling.py

import functools
import logging
from typing import Any, Callable, Type, TypeVar

from botocore.exceptions import ClientError as BotocoreClientError

from .exceptions import ImageUploadError

F = TypeVar("F", bound=Callable[..., Any])


def describe_error(exc: BaseException) -> str:
    """
    Render an exception as a short human-readable message.

    Botocore client errors carry their error code and message in the
    response payload, which is more useful to a caller than the default
    string representation.
    """
    if isinstance(exc, BotocoreClientError):
        error = exc.response.get("Error", {})
        code = error.get("Code", "Unknown")
        message = error.get("Message") or str(exc)
        return f"{code}: {message}"
    return str(exc) or type(exc).__name__


def with_error_handling(error_cls: Type[ImageUploadError]) -> Callable[[F], F]:
    """
    A decorator to normalize unexpected exceptions raised by a pipeline stage.

    Errors that already belong to the ImageUploadError hierarchy propagate
    unchanged. Anything else is logged and re-raised as ``error_cls`` with the
    original exception chained as its cause.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            logger = logging.getLogger(func.__module__ + "." + func.__qualname__)
            try:
                return func(*args, **kwargs)
            except ImageUploadError:
                raise
            except Exception as e:  # noqa: BLE001
                logger.error(f"Error in '{func.__name__}': {e}", exc_info=True)
                raise error_cls(
                    describe_error(e),
                    context={"operation": func.__name__, "cause": type(e).__name__},
                ) from e

        return wrapper  # type: ignore[return-value]

    return decorator


def is_missing_bucket_error(exc: BaseException) -> bool:
    """Check whether a botocore error reports a bucket that does not exist."""
    if not isinstance(exc, BotocoreClientError):
        return False
    code = str(exc.response.get("Error", {}).get("Code", ""))
    return code in ("404", "NoSuchBucket", "NotFound")


def is_bucket_owned_error(exc: BaseException) -> bool:
    """Check whether a create_bucket failure means the bucket already exists for us."""
    if not isinstance(exc, BotocoreClientError):
        return False
    code = exc.response.get("Error", {}).get("Code", "")
    return code == "BucketAlreadyOwnedByYou"
