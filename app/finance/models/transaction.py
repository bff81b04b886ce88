"""
Transaction and TransactionItem models.

A Transaction moves money into, out of, or between accounts. Whether its
balance effect has been applied is decided by the pair (status,
is_deleted), exposed as the derived ``state``:

    status     is_deleted   state       balance effect
    pending    False        pending     none
    completed  False        completed   applied once
    pending    True         discarded   none (terminal)
    completed  True         reversed    applied then reversed (terminal)

Usage:
    from finance.models import Transaction
    from finance.state_machines import TransactionStatus, TransactionType

    # Writes go through the lifecycle service, never directly
    from finance.services import CreateTransactionParams, TransactionLifecycleService

    tx = TransactionLifecycleService.create(
        CreateTransactionParams(
            type=TransactionType.EXPENSE,
            amount=Decimal("200.00"),
            account_id=wallet.id,
        )
    )
    tx.state  # "completed"

Note:
    ``status`` is a protected django-fsm field. It cannot be assigned on a
    loaded instance and refresh_from_db() cannot reload it; fetch a fresh
    instance (``Transaction.all_objects.get(pk=...)``) instead.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.managers import SoftDeleteManager
from core.model_mixins import SoftDeleteMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel

from finance.state_machines import (
    TransactionState,
    TransactionStatus,
    TransactionType,
)

CENT = Decimal("0.01")


class Transaction(UUIDPrimaryKeyMixin, SoftDeleteMixin, BaseModel):
    """
    A single expense, income or transfer.

    Fields:
        type: expense, income or transfer (fixed at creation)
        amount: Recorded amount; recomputed from line items when present
        applied_amount: Amount whose effect is currently in account balances
            (NULL while no effect is applied)
        account: Source account (fixed at creation)
        to_account: Destination account, transfers only (fixed at creation)
        category/merchant: Optional labels, never on transfers
        note/date: Free metadata
        status: pending or completed (django-fsm, protected)
        is_deleted/deleted_at: Terminal soft delete (SoftDeleteMixin)

    Managers:
        objects: Live transactions only
        all_objects: Including deleted ones
    """

    # ==========================================================================
    # Kind & Amount
    # ==========================================================================

    type = models.CharField(
        max_length=10,
        choices=TransactionType.choices,
        help_text="Transaction kind; selects the balance effect",
    )

    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Recorded amount (positive on create; may reach 0 via items)",
    )

    applied_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        editable=False,
        help_text="Amount currently reflected in account balances",
    )

    # ==========================================================================
    # Accounts
    # ==========================================================================

    account = models.ForeignKey(
        "finance.Account",
        on_delete=models.PROTECT,
        related_name="transactions",
        help_text="Source account",
    )

    to_account = models.ForeignKey(
        "finance.Account",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="incoming_transfers",
        help_text="Destination account (transfers only)",
    )

    # ==========================================================================
    # Labels & Metadata
    # ==========================================================================

    category = models.ForeignKey(
        "finance.Category",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transactions",
    )

    merchant = models.ForeignKey(
        "finance.Merchant",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transactions",
    )

    note = models.CharField(max_length=500, null=True, blank=True)

    date = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="When the transaction happened",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=TransactionStatus.COMPLETED,
        choices=TransactionStatus.choices,
        db_index=True,
        protected=True,  # Only complete() may change it
        help_text="pending until settled, then completed (managed by FSM)",
    )

    objects = SoftDeleteManager()
    all_objects = models.Manager()

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-date"]
        verbose_name = "Transaction"
        verbose_name_plural = "Transactions"
        indexes = [
            models.Index(fields=["account", "date"], name="finance_tx_account_date_idx"),
            models.Index(fields=["status", "is_deleted"], name="finance_tx_status_del_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gte=0),
                name="transaction_amount_non_negative",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(type=TransactionType.TRANSFER, to_account__isnull=False)
                    | (
                        ~models.Q(type=TransactionType.TRANSFER)
                        & models.Q(to_account__isnull=True)
                    )
                ),
                name="transaction_destination_matches_type",
            ),
            models.CheckConstraint(
                condition=~models.Q(account=models.F("to_account")),
                name="transaction_no_self_transfer",
            ),
        ]

    def __str__(self) -> str:
        return f"Transaction({self.id}, {self.type}, {self.amount}, {self.state})"

    @property
    def state(self) -> str:
        """Derived lifecycle state (see module docstring)."""
        if self.is_deleted:
            if self.status == TransactionStatus.COMPLETED:
                return TransactionState.REVERSED
            return TransactionState.DISCARDED
        if self.status == TransactionStatus.COMPLETED:
            return TransactionState.COMPLETED
        return TransactionState.PENDING

    @property
    def effect_applied(self) -> bool:
        """True while the balance effect is reflected in account balances."""
        return self.status == TransactionStatus.COMPLETED and not self.is_deleted

    @property
    def is_transfer(self) -> bool:
        return self.type == TransactionType.TRANSFER

    @transition(
        field=status,
        source=TransactionStatus.PENDING,
        target=TransactionStatus.COMPLETED,
    )
    def complete(self):
        """
        Mark a pending transaction as completed.

        Transition: PENDING -> COMPLETED

        Only debt settlement calls this; it applies the deferred balance
        effect in the same atomic scope.
        """


class TransactionItem(UUIDPrimaryKeyMixin, BaseModel):
    """
    Line item of a transaction: unit price times quantity of one Item.

    Line items are hard-deleted. After every create, update or delete the
    Item Aggregator rewrites the parent transaction's amount to the sum of
    its line totals.
    """

    transaction = models.ForeignKey(
        Transaction,
        on_delete=models.CASCADE,
        related_name="items",
    )

    item = models.ForeignKey(
        "finance.Item",
        on_delete=models.PROTECT,
        related_name="transaction_lines",
    )

    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Unit price",
    )

    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal("1"),
    )

    remarks = models.CharField(max_length=500, null=True, blank=True)

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Transaction Item"
        verbose_name_plural = "Transaction Items"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="transaction_item_amount_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="transaction_item_quantity_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"TransactionItem({self.item_id}, {self.amount} x {self.quantity})"

    @property
    def line_total(self) -> Decimal:
        """
        amount x quantity, rounded half-up to cents, for display.

        The transaction amount is recomputed from the exact products, not
        from these rounded values.
        """
        return (Decimal(self.amount) * Decimal(self.quantity)).quantize(
            CENT, rounding=ROUND_HALF_UP
        )
