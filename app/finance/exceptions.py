"""
Finance-specific exceptions for ledger and reference data operations.

Every class inherits from one of the core exception families, so the API
exception handler maps it to the right HTTP status without extra code.

Exception Hierarchy:
    NotFoundError (404)
    ├── AccountNotFound
    │   └── InactiveAccount
    ├── TransactionNotFound
    ├── TransactionItemNotFound
    ├── DebtNotFound
    ├── CategoryNotFound
    ├── MerchantNotFound
    └── ItemNotFound

    ValidationError (400)
    ├── InvalidTransactionShape - type/account/reference mismatch, bad amount
    ├── SelfTransferError - transfer source equals destination
    └── ImmutableFieldError - edit targets a field fixed at creation

    ConflictError (409)
    ├── DebtAlreadyExists - transaction already carries a debt
    ├── DebtAlreadySettled - settle called twice
    ├── SettledDebtImmutable - delete called on a settled debt
    ├── TransactionNotPending - debt work on a non-pending transaction
    ├── TransactionCompleted - item change refused by recompute policy
    ├── InvalidStateTransitionError - django-fsm refused a transition
    ├── ItemInUse - item still referenced by line items
    └── DuplicateName - case-insensitive name clash on reference data

Usage:
    from finance.exceptions import AccountNotFound, DebtAlreadySettled

    raise AccountNotFound(
        "Account not found",
        details={"account_id": str(account_id)},
    )
"""

from __future__ import annotations

from core.exceptions import ConflictError, NotFoundError, ValidationError

# =============================================================================
# Not Found (404)
# =============================================================================


class AccountNotFound(NotFoundError):
    """
    Raised when an account cannot be found.

    Example:
        account = Account.objects.filter(id=account_id).first()
        if account is None:
            raise AccountNotFound(
                "Account not found",
                details={"account_id": str(account_id)},
            )
    """

    default_error_code: str = "ACCOUNT_NOT_FOUND"


class InactiveAccount(AccountNotFound):
    """
    Raised when a new transaction targets a deactivated account.

    Deactivated accounts keep their history and balance, but they no
    longer accept new transactions, so they read as missing.
    """

    default_error_code: str = "INACTIVE_ACCOUNT"


class TransactionNotFound(NotFoundError):
    """Raised when a transaction is missing or already deleted."""

    default_error_code: str = "TRANSACTION_NOT_FOUND"


class TransactionItemNotFound(NotFoundError):
    default_error_code: str = "TRANSACTION_ITEM_NOT_FOUND"


class DebtNotFound(NotFoundError):
    default_error_code: str = "DEBT_NOT_FOUND"


class CategoryNotFound(NotFoundError):
    default_error_code: str = "CATEGORY_NOT_FOUND"


class MerchantNotFound(NotFoundError):
    default_error_code: str = "MERCHANT_NOT_FOUND"


class ItemNotFound(NotFoundError):
    default_error_code: str = "ITEM_NOT_FOUND"


# =============================================================================
# Validation (400)
# =============================================================================


class InvalidTransactionShape(ValidationError):
    """
    Raised when a transaction's fields do not fit its type.

    Use for:
    - Non-positive amount on create
    - Transfer without a destination account
    - Destination account on an expense or income
    - Category or merchant on a transfer
    """

    default_error_code: str = "INVALID_TRANSACTION_SHAPE"


class SelfTransferError(ValidationError):
    """Raised when a transfer names the same account on both sides."""

    default_error_code: str = "SELF_TRANSFER"


class ImmutableFieldError(ValidationError):
    """
    Raised when an edit tries to change a field fixed at creation.

    Transactions keep amount, type, accounts and status; accounts keep
    their balance. The rejected field names are listed in details.
    """

    default_error_code: str = "IMMUTABLE_FIELD"


# =============================================================================
# Conflict (409)
# =============================================================================


class DebtAlreadyExists(ConflictError):
    """Raised when a transaction already has a debt attached."""

    default_error_code: str = "DEBT_ALREADY_EXISTS"


class DebtAlreadySettled(ConflictError):
    """
    Raised when settling a debt whose settled_at is already set.

    Detected by the conditional settle update matching zero rows, so two
    concurrent settle calls can never both apply the balance effect.
    """

    default_error_code: str = "DEBT_ALREADY_SETTLED"


class SettledDebtImmutable(ConflictError):
    """Raised when deleting a settled debt. Settled debts are history."""

    default_error_code: str = "SETTLED_DEBT_IMMUTABLE"


class TransactionNotPending(ConflictError):
    """Raised when debt work targets a transaction that is not pending."""

    default_error_code: str = "TRANSACTION_NOT_PENDING"


class TransactionCompleted(ConflictError):
    """Raised by the forbid_completed recompute policy."""

    default_error_code: str = "TRANSACTION_COMPLETED"


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a state machine transition is not allowed.

    Wraps django-fsm's TransitionNotAllowed in the standard error format.

    Example:
        from django_fsm import TransitionNotAllowed

        try:
            transaction.complete()
        except TransitionNotAllowed:
            raise InvalidStateTransitionError(
                f"Cannot complete transaction from '{transaction.status}' status",
                details={
                    "current_status": transaction.status,
                    "target_status": "completed",
                    "transition": "complete",
                },
            )
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


class ItemInUse(ConflictError):
    """Raised when deleting an item that line items still reference."""

    default_error_code: str = "ITEM_IN_USE"


class DuplicateName(ConflictError):
    """Raised when a reference-data name clashes case-insensitively."""

    default_error_code: str = "DUPLICATE_NAME"
