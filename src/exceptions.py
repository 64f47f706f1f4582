"""Domain exception hierarchy for structured error responses."""

from __future__ import annotations


class AppException(Exception):
    """Base exception for all domain errors.

    Subclasses set ``code`` and ``status_code`` at the class level; callers
    provide ``message`` and an optional ``details`` list. ``retryable`` tells
    API clients whether repeating the same request may succeed.
    """

    code: str = "APP_ERROR"
    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundException(AppException):
    code = "NOT_FOUND"
    status_code = 404


class ConflictException(AppException):
    code = "CONFLICT"
    status_code = 409


class InvalidStateException(AppException):
    code = "INVALID_STATE"
    status_code = 409


class ValidationException(AppException):
    code = "VALIDATION_ERROR"
    status_code = 422


class UpstreamFailureException(AppException):
    """A courier or other upstream integration rejected or failed the call."""

    code = "UPSTREAM_FAILURE"
    status_code = 502
    retryable = True


class RateLimitException(AppException):
    code = "RATE_LIMITED"
    status_code = 429
    retryable = True
