"""Application error types and their JSON envelope."""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Machine-readable error codes carried in the ``code`` field."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RATE_LIMITED = "RATE_LIMITED"
    SERVER_ERROR = "SERVER_ERROR"


class AppError(Exception):
    """Base error rendered as ``{"message": ..., "code": ...}``."""

    status_code: int = 500
    default_code: ErrorCode = ErrorCode.SERVER_ERROR

    def __init__(self, message: str, *, code: ErrorCode | None = None, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.errors = errors

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"message": self.message, "code": str(self.code)}
        if self.errors is not None:
            payload["errors"] = self.errors
        return payload


class ValidationError(AppError):
    status_code = 400
    default_code = ErrorCode.VALIDATION_ERROR


class Unauthenticated(AppError):
    status_code = 401
    default_code = ErrorCode.UNAUTHENTICATED


class TokenExpired(Unauthenticated):
    """Access token verified but past its expiry; the client may refresh."""

    default_code = ErrorCode.TOKEN_EXPIRED

    def __init__(self, message: str = "Token expired") -> None:
        super().__init__(message)


class Forbidden(AppError):
    status_code = 403
    default_code = ErrorCode.FORBIDDEN


class NotFoundError(AppError):
    status_code = 404
    default_code = ErrorCode.NOT_FOUND


class ConflictError(AppError):
    """Duplicate unique field. Reported as 400 like other rejected input."""

    status_code = 400
    default_code = ErrorCode.CONFLICT


def format_validation_issues(issues: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Reduce pydantic error dicts to ``{"path", "message"}`` pairs for clients."""
    formatted = []
    for issue in issues:
        loc = [str(part) for part in issue.get("loc", ()) if part not in ("body", "path", "query")]
        formatted.append({"path": loc, "message": issue.get("msg", "Invalid value")})
    return formatted
