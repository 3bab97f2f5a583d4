"""
Error taxonomy for the memory layer.
Store failures, malformed stored filters, and API-facing errors with status codes.
"""

from typing import Any, Dict, Optional


class MemlayerError(Exception):
    """Base exception for all memory layer errors."""


class StoreUnavailableError(MemlayerError):
    """Vector or relational backend is unreachable or erroring."""

    def __init__(self, message: str, backend: str = "unknown"):
        super().__init__(message)
        self.backend = backend


class InvalidFilterError(MemlayerError):
    """A stored record carries a malformed filter field (e.g. tag encoding)."""


class AppError(MemlayerError):
    """Structured API error: code, message, status_code, optional details."""

    def __init__(self, code: str, message: str, status_code: int = 500, details: Optional[Any] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body = {
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
        }
        if self.details is not None:
            body["details"] = self.details
        return body


def not_found(message: str = "Resource not found", details: Optional[Any] = None) -> AppError:
    return AppError("NOT_FOUND", message, 404, details)


def bad_request(message: str, details: Optional[Any] = None) -> AppError:
    return AppError("BAD_REQUEST", message, 400, details)


def conflict(message: str, details: Optional[Any] = None) -> AppError:
    return AppError("CONFLICT", message, 409, details)


def internal(message: str = "Internal server error", details: Optional[Any] = None) -> AppError:
    return AppError("INTERNAL_ERROR", message, 500, details)
