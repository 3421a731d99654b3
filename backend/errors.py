"""Error taxonomy shared by the provider, the pipeline and the API.

Every failure that crosses a component boundary is normalized to an
``AppError`` carrying a machine-readable code and a retry hint.
"""

import enum
from typing import Any

import httpx
from sqlalchemy.exc import OperationalError


class ErrorCode(str, enum.Enum):
    """Error kinds and their retry policy."""
    NETWORK_ERROR = "NETWORK_ERROR"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    AUTH_ERROR = "AUTH_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    DB_LOCKED = "DB_LOCKED"
    SYNC_FAILED = "SYNC_FAILED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


RETRYABLE_CODES = frozenset(
    {ErrorCode.NETWORK_ERROR, ErrorCode.QUOTA_EXCEEDED, ErrorCode.DB_LOCKED}
)


class AppError(Exception):
    """Application error with a code, a retry hint and optional details."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        retryable: bool | None = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.retryable = code in RETRYABLE_CODES if retryable is None else retryable
        self.details = details

    @classmethod
    def from_exception(cls, exc: BaseException) -> "AppError":
        """Normalize any exception into an AppError."""
        if isinstance(exc, AppError):
            return exc

        if isinstance(exc, (httpx.TransportError, httpx.TimeoutException)):
            return cls(ErrorCode.NETWORK_ERROR, f"Network error: {exc}", details=str(exc))

        msg = str(exc) or exc.__class__.__name__
        lowered = msg.lower()

        if isinstance(exc, OperationalError) and ("locked" in lowered or "busy" in lowered):
            return cls(ErrorCode.DB_LOCKED, "Database is busy, please retry", details=msg)
        if "401" in lowered or "unauthorized" in lowered or "token" in lowered:
            return cls(ErrorCode.AUTH_ERROR, "Authentication failed", details=msg)
        if "429" in lowered or "quota" in lowered:
            return cls(ErrorCode.QUOTA_EXCEEDED, "API quota exceeded", details=msg)
        if "network" in lowered or "timeout" in lowered or "connection" in lowered:
            return cls(ErrorCode.NETWORK_ERROR, "Network error", details=msg)
        if isinstance(exc, ValueError) or "validation" in lowered or "invalid" in lowered:
            return cls(ErrorCode.VALIDATION_ERROR, msg, retryable=False)

        return cls(ErrorCode.UNKNOWN_ERROR, msg, retryable=False, details=exc.__class__.__name__)

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"<AppError {self.code.value}: {self.message}>"
