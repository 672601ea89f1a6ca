"""
Base exception classes for application-wide error handling.

Every domain error raised by the payments app derives from
BaseApplicationError so the webhook view can turn any of them into a
consistent response body and decide between "reject" and "please redeliver".

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input validation failures
    ├── NotFoundError - Record lookup failures
    ├── PermissionDeniedError - Capability violations
    ├── ConflictError - State conflicts (invalid transitions, stale versions)
    └── ExternalServiceError - Processor or database unavailability

Usage:
    from core.exceptions import ConflictError

    raise ConflictError(
        "Payment was modified concurrently",
        error_code="STALE_PAYMENT",
        details={"payment_id": str(payment.id), "expected_version": 3},
    )

    try:
        ...
    except BaseApplicationError as e:
        return JsonResponse(e.to_dict(), status=400)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, versions, states)
        is_retryable: Whether the caller should try the same operation again.
            The webhook endpoint answers retryable errors with 503 so the
            processor redelivers.
    """

    default_error_code: str = "APPLICATION_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            error_code: Machine-readable error code (defaults to class default)
            details: Additional error context
        """
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for an HTTP response body.

        Returns:
            Dict with error, error_code, and (when present) details keys
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Example:
        if amount_cents <= 0:
            raise ValidationError(
                "Amount must be positive",
                details={"amount_cents": amount_cents},
            )
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested record is not found.

    Use for single-record lookups where existence is expected, such as
    loading the payment a webhook event points at.
    """

    default_error_code: str = "NOT_FOUND"


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when a caller lacks the capability for an operation.

    In this project that means client-facing code attempting a write
    reserved for the webhook pipeline.
    """

    default_error_code: str = "PERMISSION_DENIED"


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with the current record state.

    Use for:
    - Invalid state transitions
    - Optimistic locking failures (version mismatch)
    - Immutable fields that are already set

    Note:
        HTTP 409 Conflict is the appropriate status for client-facing callers.
    """

    default_error_code: str = "CONFLICT"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when a dependency outside the process fails.

    Use for:
    - Payment processor API failures
    - Database unavailability or statement timeouts

    Note:
        Log the original error for debugging but don't expose internal
        details to clients. HTTP 503 Service Unavailable is appropriate.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    is_retryable: bool = True
