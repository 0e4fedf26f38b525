"""
Error Taxonomy
Service exceptions carry an ErrorCode and the HTTP status the API answers
with; ``handle_errors`` wraps best-effort work such as activity logging
"""
import functools
import logging
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    # store (1xxx)
    STORE_READ_ERROR = 1001
    STORE_WRITE_ERROR = 1002

    # caller input (3xxx)
    VALIDATION_ERROR = 3001
    DUPLICATE_ID = 3002
    VERIFICATION_FAILED = 3003

    # lookups (5xxx)
    RESOURCE_NOT_FOUND = 5002

    # deployment (9xxx)
    CONFIGURATION_ERROR = 9001
    UNKNOWN_ERROR = 9999


class CloudburstError(Exception):
    """
    Root of every error the services raise on purpose.

    Subclasses pick a default ``code`` and the ``status_code`` the API
    returns; the response body is always ``to_dict()``.
    """

    status_code = 500
    code = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "error_name": self.error_code.name,
            "details": self.details,
        }


class _CodedError(CloudburstError):
    """Errors whose code is fixed by their class"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, self.code, details)


class ValidationError(_CodedError):
    """Bad input shape or range, raised before anything is written"""
    status_code = 400
    code = ErrorCode.VALIDATION_ERROR


class DuplicateIdError(_CodedError):
    """A node with this id is already registered"""
    status_code = 409
    code = ErrorCode.DUPLICATE_ID


class VerificationError(_CodedError):
    """Read-back after a write did not return what was written"""
    code = ErrorCode.VERIFICATION_FAILED


class ResourceNotFoundError(_CodedError):
    status_code = 404
    code = ErrorCode.RESOURCE_NOT_FOUND


class ConfigurationError(_CodedError):
    code = ErrorCode.CONFIGURATION_ERROR


class StoreError(CloudburstError):
    """Read or write against the realtime store failed"""
    code = ErrorCode.STORE_WRITE_ERROR

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: ErrorCode = ErrorCode.STORE_WRITE_ERROR
    ):
        super().__init__(message, error_code, details)


def handle_errors(default_return=None, log_error: bool = True, raise_on_error: bool = False):
    """
    Run the wrapped call, turning failures into ``default_return``.

    Service errors are logged with their code at ERROR; anything else is
    logged with its traceback. With ``raise_on_error`` the exception still
    propagates after logging.

        @handle_errors(default_return=None)
        def append(self, entry_type, message, ...):
            ...
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if log_error:
                    if isinstance(e, CloudburstError):
                        logger.error(
                            f"{func.__qualname__} failed: {e.message}",
                            extra={"error_code": e.error_code.name, "details": e.details},
                        )
                    else:
                        logger.exception(f"{func.__qualname__} failed unexpectedly: {e}")
                if raise_on_error:
                    raise
                return default_return
        return wrapper
    return decorator
