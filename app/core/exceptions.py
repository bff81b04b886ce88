"""
Base exception classes for application-wide error handling.

Every domain failure raised by the service layer derives from
BaseApplicationError. The API exception handler (core.exception_handler)
maps each family onto an HTTP status, so services never build responses.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Malformed input or shape violations (400)
    ├── NotFoundError - Referenced entity missing (404)
    ├── ConflictError - Operation illegal in the current state (409)
    ├── PersistenceError - Storage failure, retry-safe (500)
    └── ConfigurationError - Server misconfigured (500)

Usage:
    from core.exceptions import ConflictError, NotFoundError

    raise NotFoundError("Account not found", error_code="ACCOUNT_NOT_FOUND")

    raise ConflictError(
        "Debt is already settled",
        error_code="DEBT_ALREADY_SETTLED",
        details={"debt_id": str(debt.id)},
    )
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
        details: Additional error context (ids, field errors, states)
        http_status: Status the API exception handler responds with

    Example:
        try:
            BalanceMutator.apply(effect)
        except NotFoundError as e:
            logger.warning("Balance update rejected", extra=e.details)
            raise
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 400

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
        Convert exception to dictionary for API response.

        Returns:
            Dict with error, error_code, and (when present) details keys

        Example:
            {
                "error": "Account not found",
                "error_code": "ACCOUNT_NOT_FOUND",
                "details": {"account_id": "3f0c..."}
            }
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
    Raised when input is malformed or violates a shape rule.

    Use for:
    - Non-positive amounts
    - Transfers without a destination, or to the source account
    - Attempts to edit immutable fields

    Note:
        DRF serializers still validate field formats. Use this for
        service-layer rules that need more than one field to decide.
    """

    default_error_code: str = "VALIDATION_ERROR"
    http_status: int = 400


class NotFoundError(BaseApplicationError):
    """
    Raised when a referenced entity does not exist.

    Example:
        account = Account.objects.filter(id=account_id).first()
        if account is None:
            raise NotFoundError(
                "Account not found",
                error_code="ACCOUNT_NOT_FOUND",
                details={"account_id": str(account_id)},
            )
    """

    default_error_code: str = "NOT_FOUND"
    http_status: int = 404


class ConflictError(BaseApplicationError):
    """
    Raised when an operation is illegal for the current resource state.

    Use for:
    - Settling an already settled debt
    - Attaching a second debt to a transaction
    - Completing a transaction that is not pending
    - Duplicate names on reference data

    Note:
        HTTP 409 Conflict is the appropriate status for these errors.
    """

    default_error_code: str = "CONFLICT"
    http_status: int = 409


class PersistenceError(BaseApplicationError):
    """
    Raised when the store fails underneath a unit of work.

    The unit of work has been rolled back when this is raised, so the
    caller may retry the whole operation.
    """

    default_error_code: str = "PERSISTENCE_ERROR"
    http_status: int = 500


class ConfigurationError(BaseApplicationError):
    """Raised when required server configuration is missing."""

    default_error_code: str = "SERVER_MISCONFIGURED"
    http_status: int = 500
