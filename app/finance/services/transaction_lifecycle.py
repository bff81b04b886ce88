"""
Transaction lifecycle service: create, edit and delete transactions.

This is the state machine that decides when a transaction's balance
effect is applied or reversed:

    create(status=completed)  -> row written, effect applied
    create(status=pending)    -> row written, no effect
    update(metadata)          -> no effect
    delete(completed)         -> soft delete, effect reversed
    delete(pending)           -> soft delete, unsettled debt removed

Settlement (pending -> completed) lives in DebtSettlementService.

Every operation validates before its first write and runs its writes in
one atomic scope, so a transaction row and its balance effect always
commit or roll back together.

Usage:
    from finance.services import CreateTransactionParams, TransactionLifecycleService

    tx = TransactionLifecycleService.create(
        CreateTransactionParams(
            type=TransactionType.TRANSFER,
            amount=Decimal("300.00"),
            account_id=checking.id,
            to_account_id=savings.id,
        )
    )
    TransactionLifecycleService.delete(tx.id)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from django.db.models import Q

from core.services import BaseService

from finance.exceptions import (
    ImmutableFieldError,
    InvalidTransactionShape,
    SelfTransferError,
    TransactionNotFound,
)
from finance.ledger.services import AccountStore, BalanceMutator
from finance.ledger.types import effect_of, to_money
from finance.models import Debt, Transaction
from finance.services.reference_data import (
    MerchantService,
    get_category,
    get_merchant,
)
from finance.state_machines import TransactionStatus, TransactionType

if TYPE_CHECKING:
    from django.db.models import QuerySet


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Fields fixed at creation; edits naming them are rejected
IMMUTABLE_FIELDS = frozenset(
    [
        "amount",
        "type",
        "account",
        "account_id",
        "to_account",
        "to_account_id",
        "status",
    ]
)

# Fields the metadata edit may change
EDITABLE_FIELDS = ("category_id", "merchant_id", "note", "date")


# =============================================================================
# Parameter Types
# =============================================================================


@dataclass
class CreateTransactionParams:
    """
    Parameters for creating a transaction.

    Attributes:
        type: expense, income or transfer
        amount: Positive amount
        account_id: Source account
        to_account_id: Destination account (transfers only)
        category_id: Optional category (not on transfers)
        merchant_id: Optional merchant (not on transfers)
        note: Free text
        date: When it happened (default now)
        status: completed (default) applies the effect now, pending defers it

    Example:
        params = CreateTransactionParams(
            type=TransactionType.EXPENSE,
            amount=Decimal("200.00"),
            account_id=wallet.id,
            status=TransactionStatus.PENDING,
        )
    """

    type: str
    amount: Decimal
    account_id: uuid.UUID
    to_account_id: uuid.UUID | None = None
    category_id: uuid.UUID | None = None
    merchant_id: uuid.UUID | None = None
    note: str | None = None
    date: datetime | None = None
    status: str = TransactionStatus.COMPLETED


# =============================================================================
# Transaction Lifecycle Service
# =============================================================================


class TransactionLifecycleService(BaseService):
    """
    Creates, edits and deletes transactions.

    All methods are class methods - no instance state is maintained.
    """

    # =========================================================================
    # Lookup
    # =========================================================================

    @staticmethod
    def get(transaction_id: uuid.UUID) -> Transaction:
        """
        Get a live (not deleted) transaction.

        Raises:
            TransactionNotFound: If missing or deleted
        """
        tx = Transaction.objects.filter(id=transaction_id).first()
        if tx is None:
            raise TransactionNotFound(
                "Transaction not found",
                details={"transaction_id": str(transaction_id)},
            )
        return tx

    @staticmethod
    def lock(transaction_id: uuid.UUID) -> Transaction:
        """
        Lock a live transaction row for the current atomic scope.

        Raises:
            TransactionNotFound: If missing or deleted
        """
        tx = (
            Transaction.objects.select_for_update()
            .filter(id=transaction_id)
            .first()
        )
        if tx is None:
            raise TransactionNotFound(
                "Transaction not found",
                details={"transaction_id": str(transaction_id)},
            )
        return tx

    @staticmethod
    def query(
        account_id: uuid.UUID | None = None,
        category_id: uuid.UUID | None = None,
        merchant_id: uuid.UUID | None = None,
        type: str | None = None,
        status: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> QuerySet[Transaction]:
        """
        Live transactions matching the filters, newest first.

        account_id matches either side of a transfer. Date bounds are
        inclusive calendar days in the current timezone.
        """
        queryset = Transaction.objects.select_related(
            "account", "to_account", "category", "merchant"
        )
        if account_id:
            queryset = queryset.filter(Q(account_id=account_id) | Q(to_account_id=account_id))
        if category_id:
            queryset = queryset.filter(category_id=category_id)
        if merchant_id:
            queryset = queryset.filter(merchant_id=merchant_id)
        if type:
            queryset = queryset.filter(type=type)
        if status:
            queryset = queryset.filter(status=status)
        if date_from:
            queryset = queryset.filter(date__date__gte=date_from)
        if date_to:
            queryset = queryset.filter(date__date__lte=date_to)
        return queryset.order_by("-date", "-created_at")

    # =========================================================================
    # Create
    # =========================================================================

    @classmethod
    def create(cls, params: CreateTransactionParams) -> Transaction:
        """
        Create a transaction and, if completed, apply its balance effect.

        Validation order: shape, then references. Nothing is written until
        every check passes.

        Args:
            params: CreateTransactionParams

        Returns:
            The created Transaction

        Raises:
            InvalidTransactionShape: Bad amount or fields that don't fit the type
            SelfTransferError: Transfer to the source account
            AccountNotFound/InactiveAccount: Source or destination unusable
            CategoryNotFound/MerchantNotFound: Missing label reference
        """
        amount = to_money(params.amount)
        cls._check_shape(params, amount)

        AccountStore.get_active(params.account_id, role="account")
        if params.to_account_id is not None:
            AccountStore.get_active(params.to_account_id, role="destination")
        get_category(params.category_id)
        get_merchant(params.merchant_id)

        fields: dict[str, Any] = {
            "type": params.type,
            "amount": amount,
            "account_id": params.account_id,
            "to_account_id": params.to_account_id,
            "category_id": params.category_id,
            "merchant_id": params.merchant_id,
            "note": params.note,
            "status": params.status,
        }
        if params.date is not None:
            fields["date"] = params.date

        completed = params.status == TransactionStatus.COMPLETED
        if completed:
            fields["applied_amount"] = amount

        with cls.atomic():
            tx = Transaction.objects.create(**fields)
            if completed:
                BalanceMutator.apply(effect_of(tx))
                MerchantService.increment_usage(tx.merchant_id)

        logger.info(
            "Transaction created",
            extra={
                "transaction_id": str(tx.id),
                "type": tx.type,
                "amount": str(tx.amount),
                "status": tx.status,
                "account_id": str(tx.account_id),
                "to_account_id": str(tx.to_account_id) if tx.to_account_id else None,
            },
        )
        return tx

    @staticmethod
    def _check_shape(params: CreateTransactionParams, amount: Decimal) -> None:
        if amount <= 0:
            raise InvalidTransactionShape(
                "Amount must be greater than zero",
                details={"amount": str(amount)},
            )
        if params.type not in TransactionType.values:
            raise InvalidTransactionShape(
                "Unknown transaction type",
                details={"type": params.type},
            )
        if params.status not in TransactionStatus.values:
            raise InvalidTransactionShape(
                "Unknown transaction status",
                details={"status": params.status},
            )

        if params.type == TransactionType.TRANSFER:
            if params.to_account_id is None:
                raise InvalidTransactionShape(
                    "Transfer requires a destination account",
                    details={"field": "to_account_id"},
                )
            if params.category_id is not None or params.merchant_id is not None:
                raise InvalidTransactionShape(
                    "Transfers cannot have a category or merchant",
                    details={"type": params.type},
                )
            if str(params.to_account_id) == str(params.account_id):
                raise SelfTransferError(
                    "Cannot transfer to the same account",
                    details={"account_id": str(params.account_id)},
                )
        elif params.to_account_id is not None:
            raise InvalidTransactionShape(
                "Only transfers can have a destination account",
                details={"type": params.type},
            )

    # =========================================================================
    # Update
    # =========================================================================

    @staticmethod
    def ensure_mutable_fields(changes: dict[str, Any]) -> None:
        """
        Reject edits that name a field fixed at creation.

        Raises:
            ImmutableFieldError: Lists the offending fields in details
        """
        rejected = sorted(IMMUTABLE_FIELDS.intersection(changes))
        if rejected:
            raise ImmutableFieldError(
                "Amount, type, accounts and status cannot be changed",
                details={"fields": rejected},
            )

    @classmethod
    def update(cls, transaction_id: uuid.UUID, changes: dict[str, Any]) -> Transaction:
        """
        Edit category, merchant, note or date. Never touches balances.

        Changing the merchant of a completed transaction moves the usage
        counter from the old merchant to the new one.

        Raises:
            ImmutableFieldError: Changes name a field fixed at creation
            TransactionNotFound: Missing or deleted
            InvalidTransactionShape: Category or merchant on a transfer
            CategoryNotFound/MerchantNotFound: Missing label reference
        """
        cls.ensure_mutable_fields(changes)
        changes = {key: value for key, value in changes.items() if key in EDITABLE_FIELDS}

        with cls.atomic():
            tx = cls.lock(transaction_id)

            if tx.is_transfer and (
                changes.get("category_id") is not None
                or changes.get("merchant_id") is not None
            ):
                raise InvalidTransactionShape(
                    "Transfers cannot have a category or merchant",
                    details={"transaction_id": str(tx.id)},
                )
            if "category_id" in changes:
                get_category(changes["category_id"])
            if "merchant_id" in changes:
                get_merchant(changes["merchant_id"])

            old_merchant_id = tx.merchant_id
            for field_name, value in changes.items():
                setattr(tx, field_name, value)

            if changes:
                tx.save(update_fields=[*changes.keys(), "updated_at"])

            merchant_changed = (
                "merchant_id" in changes
                and str(old_merchant_id) != str(tx.merchant_id)
            )
            if merchant_changed and tx.effect_applied:
                MerchantService.decrement_usage(old_merchant_id)
                MerchantService.increment_usage(tx.merchant_id)

        logger.info(
            "Transaction updated",
            extra={
                "transaction_id": str(tx.id),
                "fields": sorted(changes.keys()),
            },
        )
        return tx

    # =========================================================================
    # Delete
    # =========================================================================

    @classmethod
    def delete(cls, transaction_id: uuid.UUID) -> Transaction:
        """
        Soft delete a transaction, reversing its effect if one is applied.

        The reversal uses applied_amount, the amount whose effect is in
        the balances, so create followed by delete leaves balances as they
        were even if line items changed the recorded amount since.

        A pending transaction's unsettled debt is deleted with it.

        Raises:
            TransactionNotFound: Missing or already deleted
        """
        with cls.atomic():
            tx = cls.lock(transaction_id)

            reversed_amount = None
            if tx.effect_applied:
                reversed_amount = tx.applied_amount
                if reversed_amount is None:
                    reversed_amount = tx.amount
                if reversed_amount > 0:
                    BalanceMutator.reverse(effect_of(tx, amount=reversed_amount))
                MerchantService.decrement_usage(tx.merchant_id)
            else:
                Debt.objects.filter(
                    transaction_id=tx.id,
                    settled_at__isnull=True,
                ).delete()

            tx.soft_delete()

        logger.info(
            "Transaction deleted",
            extra={
                "transaction_id": str(tx.id),
                "state": tx.state,
                "reversed_amount": str(reversed_amount) if reversed_amount is not None else None,
            },
        )
        return tx
