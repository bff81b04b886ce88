"""
Item aggregator: keeps a transaction's amount equal to its line items.

After every line item create, update or delete the parent transaction's
amount is rewritten to the sum of amount x quantity over its items, in the
same atomic scope as the item write. Removing the last item yields 0.

What happens to balances when the transaction's effect is already applied
is chosen by ``settings.LEDGER_ITEM_RECOMPUTE_POLICY``:

    preserve          amount changes, balances don't (default)
    forbid_completed  item changes on completed transactions are refused
    rebalance         the balance mutator applies the difference

Pending transactions never trigger balance work: their effect is applied
at settlement with whatever the amount is then.

Usage:
    from finance.services import ItemAggregatorService

    line = ItemAggregatorService.add_item(
        tx.id, item_id=milk.id, amount=Decimal("30"), quantity=Decimal("2")
    )
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.db.models import QuerySet

from core.exceptions import ConfigurationError, ValidationError
from core.services import BaseService

from finance.exceptions import (
    InvalidTransactionShape,
    TransactionCompleted,
    TransactionItemNotFound,
    TransactionNotFound,
)
from finance.ledger.services import BalanceMutator
from finance.ledger.types import effect_of, to_money
from finance.models import Transaction, TransactionItem
from finance.services.reference_data import ItemService
from finance.state_machines import RecomputePolicy

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

# Largest value Transaction.amount (14 digits, 2 places) can hold
MAX_AMOUNT = Decimal("999999999999.99")


def line_items_total(items: Iterable[TransactionItem]) -> Decimal:
    """
    Sum of amount x quantity over the lines, rounded half-up to cents once.

    Lines are not rounded individually, so the total is the exact sum of the
    products up to the final rounding.
    """
    exact = sum(
        (Decimal(item.amount) * Decimal(item.quantity) for item in items),
        Decimal("0"),
    )
    return to_money(exact)


class ItemAggregatorService(BaseService):
    """
    Line item mutations plus the recompute that follows each of them.

    All methods are class methods - no instance state is maintained.
    """

    @staticmethod
    def policy() -> RecomputePolicy:
        """
        Configured recompute policy.

        Raises:
            ConfigurationError: If the setting holds an unknown value
        """
        value = getattr(settings, "LEDGER_ITEM_RECOMPUTE_POLICY", RecomputePolicy.PRESERVE)
        try:
            return RecomputePolicy(value)
        except ValueError as exc:
            raise ConfigurationError(
                "Server misconfigured",
                details={"setting": "LEDGER_ITEM_RECOMPUTE_POLICY", "value": value},
            ) from exc

    @staticmethod
    def query(transaction_id: uuid.UUID) -> QuerySet[TransactionItem]:
        """Line items of a live transaction, oldest first."""
        if not Transaction.objects.filter(id=transaction_id).exists():
            raise TransactionNotFound(
                "Transaction not found",
                details={"transaction_id": str(transaction_id)},
            )
        return (
            TransactionItem.objects.filter(transaction_id=transaction_id)
            .select_related("item__category")
            .order_by("created_at")
        )

    # =========================================================================
    # Recompute
    # =========================================================================

    @classmethod
    def recompute(cls, transaction_id: uuid.UUID) -> Transaction:
        """
        Rewrite a transaction's amount from its line items.

        Runs inside the caller's atomic scope when nested. Under the
        rebalance policy a completed transaction also gets the effect of
        (new - applied) applied, or its inverse when negative.

        Returns:
            The transaction with its new amount
        """
        with cls.atomic():
            tx = cls._lock_transaction(transaction_id)
            old_amount = tx.amount
            new_amount = line_items_total(
                TransactionItem.objects.filter(transaction_id=tx.id)
            )
            if new_amount > MAX_AMOUNT:
                logger.warning(
                    "Line items total exceeds storable amount",
                    extra={"transaction_id": str(tx.id), "new_amount": str(new_amount)},
                )
                raise InvalidTransactionShape(
                    "Line items total is too large",
                    details={
                        "transaction_id": str(tx.id),
                        "max_amount": str(MAX_AMOUNT),
                    },
                )

            tx.amount = new_amount
            update_fields = ["amount", "updated_at"]

            difference = ZERO
            if tx.effect_applied and cls.policy() == RecomputePolicy.REBALANCE:
                applied = tx.applied_amount if tx.applied_amount is not None else old_amount
                difference = new_amount - applied
                if difference > 0:
                    BalanceMutator.apply(effect_of(tx, amount=difference))
                elif difference < 0:
                    BalanceMutator.reverse(effect_of(tx, amount=-difference))
                tx.applied_amount = new_amount
                update_fields.append("applied_amount")

            tx.save(update_fields=update_fields)

        logger.info(
            "Transaction amount recomputed",
            extra={
                "transaction_id": str(tx.id),
                "old_amount": str(old_amount),
                "new_amount": str(new_amount),
                "rebalanced": str(difference),
            },
        )
        return tx

    # =========================================================================
    # Line Item Mutations
    # =========================================================================

    @classmethod
    def add_item(
        cls,
        transaction_id: uuid.UUID,
        item_id: uuid.UUID | None = None,
        amount: Decimal = ZERO,
        quantity: Decimal = Decimal("1"),
        remarks: str | None = None,
        item_name: str | None = None,
    ) -> TransactionItem:
        """
        Add a line item and recompute the transaction amount.

        The item is given by item_id, or by item_name, which is matched
        case-insensitively and created when new. A new item is only written
        once the transaction and the policy have accepted the line.

        Raises:
            TransactionNotFound: Transaction missing or deleted
            ItemNotFound: Item missing
            TransactionCompleted: Refused by the forbid_completed policy
            InvalidTransactionShape: Total exceeds the storable amount
        """
        if item_id is None and not item_name:
            raise ValidationError(
                "Either item_id or item_name is required",
                details={"fields": ["item_id", "item_name"]},
            )
        if item_id is not None:
            ItemService.get(item_id)

        with cls.atomic():
            tx = cls._lock_transaction(transaction_id)
            cls._check_policy(tx)
            if item_id is None:
                item, _ = ItemService.get_or_create(name=item_name)
                item_id = item.id
            line = TransactionItem.objects.create(
                transaction=tx,
                item_id=item_id,
                amount=to_money(amount),
                quantity=quantity,
                remarks=remarks,
            )
            cls.recompute(tx.id)

        logger.info(
            "Transaction item added",
            extra={"transaction_item_id": str(line.id), "transaction_id": str(tx.id)},
        )
        return line

    @classmethod
    def update_item(
        cls,
        transaction_item_id: uuid.UUID,
        changes: dict[str, Any],
    ) -> TransactionItem:
        """
        Change amount, quantity or remarks of a line item, then recompute.

        Raises:
            TransactionItemNotFound: Line item missing
            TransactionNotFound: Its transaction is deleted
            TransactionCompleted: Refused by the forbid_completed policy
        """
        changes = {
            key: value
            for key, value in changes.items()
            if key in ("amount", "quantity", "remarks")
        }
        if "amount" in changes:
            changes["amount"] = to_money(changes["amount"])

        with cls.atomic():
            line = cls._get_line(transaction_item_id)
            tx = cls._lock_transaction(line.transaction_id)
            cls._check_policy(tx)

            for field_name, value in changes.items():
                setattr(line, field_name, value)
            if changes:
                line.save(update_fields=[*changes.keys(), "updated_at"])
            cls.recompute(tx.id)

        return line

    @classmethod
    def delete_item(cls, transaction_item_id: uuid.UUID) -> Transaction:
        """
        Hard delete a line item, then recompute.

        Returns:
            The parent transaction with its new amount

        Raises:
            TransactionItemNotFound: Line item missing
            TransactionNotFound: Its transaction is deleted
            TransactionCompleted: Refused by the forbid_completed policy
        """
        with cls.atomic():
            line = cls._get_line(transaction_item_id)
            tx = cls._lock_transaction(line.transaction_id)
            cls._check_policy(tx)
            line.delete()
            tx = cls.recompute(tx.id)

        logger.info(
            "Transaction item deleted",
            extra={
                "transaction_item_id": str(transaction_item_id),
                "transaction_id": str(tx.id),
            },
        )
        return tx

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _lock_transaction(transaction_id: uuid.UUID) -> Transaction:
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
    def _get_line(transaction_item_id: uuid.UUID) -> TransactionItem:
        line = TransactionItem.objects.filter(id=transaction_item_id).first()
        if line is None:
            raise TransactionItemNotFound(
                "Transaction item not found",
                details={"transaction_item_id": str(transaction_item_id)},
            )
        return line

    @classmethod
    def _check_policy(cls, tx: Transaction) -> None:
        if tx.effect_applied and cls.policy() == RecomputePolicy.FORBID_COMPLETED:
            logger.warning(
                "Item change refused on completed transaction",
                extra={"transaction_id": str(tx.id)},
            )
            raise TransactionCompleted(
                "Items of a completed transaction cannot be changed",
                details={"transaction_id": str(tx.id)},
            )
