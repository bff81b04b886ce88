"""
Debt settlement service: attach, settle and delete debts.

A debt defers a pending transaction's balance effect until the IOU is
resolved. Settling is the only way a transaction goes from pending to
completed.

Settle Flow:
    1. Conditional UPDATE sets settled_at WHERE settled_at IS NULL
       (zero rows -> not found or already settled)
    2. Lock the linked transaction row; it must be pending and live
    3. complete() the transaction (django-fsm) and record applied_amount
    4. Apply the type-mapped balance effect with the current amount
    5. Count the transaction against its merchant

All five steps share one atomic scope. Two concurrent settles of the same
debt race on step 1; the loser matches zero rows and the effect is applied
once.

Usage:
    from finance.services import DebtSettlementService

    debt = DebtSettlementService.attach(tx.id, person_name="Asha", direction="i_owe")
    DebtSettlementService.settle(debt.id)
"""

from __future__ import annotations

import logging
import uuid

from django.db import IntegrityError, transaction
from django.db.models import QuerySet
from django.utils import timezone
from django_fsm import TransitionNotAllowed

from core.services import BaseService

from finance.exceptions import (
    DebtAlreadyExists,
    DebtAlreadySettled,
    DebtNotFound,
    InvalidStateTransitionError,
    SettledDebtImmutable,
    TransactionNotFound,
    TransactionNotPending,
)
from finance.ledger.services import BalanceMutator
from finance.ledger.types import effect_of
from finance.models import Debt, Transaction
from finance.services.reference_data import MerchantService
from finance.state_machines import TransactionStatus

logger = logging.getLogger(__name__)


class DebtSettlementService(BaseService):
    """
    Service for the debt side of the transaction lifecycle.

    All methods are class methods - no instance state is maintained.
    """

    @staticmethod
    def get(debt_id: uuid.UUID) -> Debt:
        debt = Debt.objects.select_related("transaction__account").filter(id=debt_id).first()
        if debt is None:
            raise DebtNotFound(
                "Debt not found",
                details={"debt_id": str(debt_id)},
            )
        return debt

    @staticmethod
    def query(settled: bool = False) -> QuerySet[Debt]:
        """Debts filtered by settlement, newest first."""
        return (
            Debt.objects.select_related("transaction__account")
            .filter(settled_at__isnull=not settled)
            .order_by("-created_at")
        )

    # =========================================================================
    # Attach
    # =========================================================================

    @classmethod
    def attach(
        cls,
        transaction_id: uuid.UUID,
        person_name: str,
        direction: str,
    ) -> Debt:
        """
        Attach a debt to a pending transaction.

        The direction is descriptive only; the eventual balance effect
        follows the transaction's own type.

        Raises:
            TransactionNotFound: Transaction missing or deleted
            TransactionNotPending: Transaction already completed
            DebtAlreadyExists: Transaction already has a debt
        """
        with cls.atomic():
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
            if tx.status != TransactionStatus.PENDING:
                raise TransactionNotPending(
                    "Debts can only be attached to pending transactions",
                    details={
                        "transaction_id": str(tx.id),
                        "current_status": tx.status,
                    },
                )
            if Debt.objects.filter(transaction_id=tx.id).exists():
                raise DebtAlreadyExists(
                    "Transaction already has a debt",
                    details={"transaction_id": str(tx.id)},
                )

            try:
                with transaction.atomic():
                    debt = Debt.objects.create(
                        transaction=tx,
                        person_name=person_name,
                        direction=direction,
                    )
            except IntegrityError as exc:
                raise DebtAlreadyExists(
                    "Transaction already has a debt",
                    details={"transaction_id": str(tx.id)},
                ) from exc

        logger.info(
            "Debt attached",
            extra={
                "debt_id": str(debt.id),
                "transaction_id": str(tx.id),
                "direction": direction,
            },
        )
        return debt

    # =========================================================================
    # Settle
    # =========================================================================

    @classmethod
    def settle(cls, debt_id: uuid.UUID) -> Debt:
        """
        Settle a debt and apply its transaction's deferred effect.

        The effect uses the transaction's account and amount at settlement
        time, so line item changes made while pending are honoured.

        Raises:
            DebtNotFound: Debt doesn't exist
            DebtAlreadySettled: settled_at already set
            TransactionNotPending: Linked transaction deleted or not pending
        """
        now = timezone.now()

        with cls.atomic():
            claimed = Debt.objects.filter(
                id=debt_id,
                settled_at__isnull=True,
            ).update(settled_at=now, updated_at=now)

            if claimed == 0:
                if not Debt.objects.filter(id=debt_id).exists():
                    raise DebtNotFound(
                        "Debt not found",
                        details={"debt_id": str(debt_id)},
                    )
                raise DebtAlreadySettled(
                    "Debt is already settled",
                    details={"debt_id": str(debt_id)},
                )

            debt = Debt.objects.get(id=debt_id)
            tx = Transaction.all_objects.select_for_update().get(id=debt.transaction_id)

            if tx.is_deleted or tx.status != TransactionStatus.PENDING:
                raise TransactionNotPending(
                    "Linked transaction is not pending",
                    details={
                        "debt_id": str(debt_id),
                        "transaction_id": str(tx.id),
                        "state": tx.state,
                    },
                )

            try:
                tx.complete()
            except TransitionNotAllowed as exc:
                raise InvalidStateTransitionError(
                    f"Cannot complete transaction from '{tx.status}' status",
                    details={
                        "current_status": tx.status,
                        "target_status": TransactionStatus.COMPLETED,
                        "transition": "complete",
                    },
                ) from exc

            tx.applied_amount = tx.amount
            tx.save(update_fields=["status", "applied_amount", "updated_at"])

            if tx.amount > 0:
                BalanceMutator.apply(effect_of(tx))
            MerchantService.increment_usage(tx.merchant_id)

        debt.transaction = tx

        logger.info(
            "Debt settled",
            extra={
                "debt_id": str(debt.id),
                "transaction_id": str(tx.id),
                "type": tx.type,
                "amount": str(tx.amount),
                "account_id": str(tx.account_id),
            },
        )
        return debt

    # =========================================================================
    # Delete
    # =========================================================================

    @classmethod
    def delete(cls, debt_id: uuid.UUID) -> None:
        """
        Delete an unsettled debt and discard its pending transaction.

        No balance work happens: a pending transaction never had an
        effect applied.

        Raises:
            DebtNotFound: Debt doesn't exist
            SettledDebtImmutable: Debt is settled
            TransactionNotPending: Linked transaction has an effect applied
        """
        with cls.atomic():
            debt = Debt.objects.select_for_update().filter(id=debt_id).first()
            if debt is None:
                raise DebtNotFound(
                    "Debt not found",
                    details={"debt_id": str(debt_id)},
                )
            if debt.is_settled:
                raise SettledDebtImmutable(
                    "Settled debts cannot be deleted",
                    details={"debt_id": str(debt_id)},
                )

            tx = Transaction.all_objects.select_for_update().get(id=debt.transaction_id)
            if tx.effect_applied:
                raise TransactionNotPending(
                    "Linked transaction is already completed",
                    details={"debt_id": str(debt_id), "transaction_id": str(tx.id)},
                )

            debt.delete()
            tx.soft_delete()

        logger.info(
            "Debt deleted",
            extra={"debt_id": str(debt_id), "transaction_id": str(tx.id)},
        )
