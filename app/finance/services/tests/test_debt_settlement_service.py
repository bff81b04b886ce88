"""
Tests for DebtSettlementService.

A debt holds back a pending transaction's effect until settlement.
Settlement must apply that effect exactly once.
"""

import uuid
from decimal import Decimal

import pytest

from finance.exceptions import (
    DebtAlreadyExists,
    DebtAlreadySettled,
    DebtNotFound,
    SettledDebtImmutable,
    TransactionNotFound,
    TransactionNotPending,
)
from finance.models import Debt, Merchant
from finance.services import (
    CreateTransactionParams,
    DebtSettlementService,
    ItemAggregatorService,
    TransactionLifecycleService,
)
from finance.state_machines import (
    DebtDirection,
    TransactionState,
    TransactionStatus,
    TransactionType,
)


@pytest.fixture
def pending_expense(wallet):
    """Pending 1.00 expense on the wallet."""
    return TransactionLifecycleService.create(
        CreateTransactionParams(
            type=TransactionType.EXPENSE,
            amount=Decimal("1.00"),
            account_id=wallet.id,
            status=TransactionStatus.PENDING,
        )
    )


@pytest.fixture
def debt(pending_expense):
    return DebtSettlementService.attach(
        pending_expense.id, person_name="Asha", direction=DebtDirection.I_OWE
    )


class TestAttach:
    """Tests for DebtSettlementService.attach()."""

    def test_attach_to_pending(self, pending_expense):
        debt = DebtSettlementService.attach(
            pending_expense.id, person_name="Ravi", direction=DebtDirection.THEY_OWE
        )

        assert debt.transaction_id == pending_expense.id
        assert debt.settled_at is None
        assert debt.is_settled is False

    def test_attach_to_completed_rejected(self, wallet):
        tx = TransactionLifecycleService.create(
            CreateTransactionParams(
                type=TransactionType.EXPENSE,
                amount=Decimal("5.00"),
                account_id=wallet.id,
            )
        )

        with pytest.raises(TransactionNotPending):
            DebtSettlementService.attach(tx.id, "Asha", DebtDirection.I_OWE)

    def test_second_debt_rejected(self, debt):
        with pytest.raises(DebtAlreadyExists) as exc_info:
            DebtSettlementService.attach(debt.transaction_id, "Ravi", DebtDirection.I_OWE)

        assert exc_info.value.http_status == 409

    def test_attach_to_deleted_transaction(self, pending_expense):
        TransactionLifecycleService.delete(pending_expense.id)

        with pytest.raises(TransactionNotFound):
            DebtSettlementService.attach(pending_expense.id, "Asha", DebtDirection.I_OWE)

    def test_attach_to_missing_transaction(self, db):
        with pytest.raises(TransactionNotFound):
            DebtSettlementService.attach(uuid.uuid4(), "Asha", DebtDirection.I_OWE)


class TestSettle:
    """Tests for DebtSettlementService.settle()."""

    def test_settle_applies_effect_once(self, debt, wallet, balance_of, fetch_transaction):
        settled = DebtSettlementService.settle(debt.id)

        assert settled.settled_at is not None
        assert balance_of(wallet) == Decimal("999.00")
        tx = fetch_transaction(debt.transaction_id)
        assert tx.status == TransactionStatus.COMPLETED
        assert tx.state == TransactionState.COMPLETED
        assert tx.applied_amount == Decimal("1.00")

    def test_settle_twice_rejected(self, debt, wallet, balance_of):
        """
        A second settle is a conflict and changes nothing.

        Why it matters: double-applying a deferred expense would silently
        take money from the account twice.
        """
        DebtSettlementService.settle(debt.id)

        with pytest.raises(DebtAlreadySettled) as exc_info:
            DebtSettlementService.settle(debt.id)

        assert exc_info.value.error_code == "DEBT_ALREADY_SETTLED"
        assert balance_of(wallet) == Decimal("999.00")

    def test_settle_missing_debt(self, db):
        with pytest.raises(DebtNotFound):
            DebtSettlementService.settle(uuid.uuid4())

    def test_direction_does_not_change_effect(self, pending_expense, wallet, balance_of):
        """they_owe on an expense still debits the account."""
        debt = DebtSettlementService.attach(
            pending_expense.id, "Ravi", DebtDirection.THEY_OWE
        )

        DebtSettlementService.settle(debt.id)

        assert balance_of(wallet) == Decimal("999.00")

    def test_settle_transfer_moves_money(self, wallet, savings, balance_of):
        tx = TransactionLifecycleService.create(
            CreateTransactionParams(
                type=TransactionType.TRANSFER,
                amount=Decimal("250.00"),
                account_id=wallet.id,
                to_account_id=savings.id,
                status=TransactionStatus.PENDING,
            )
        )
        debt = DebtSettlementService.attach(tx.id, "Asha", DebtDirection.I_OWE)

        DebtSettlementService.settle(debt.id)

        assert balance_of(wallet) == Decimal("750.00")
        assert balance_of(savings) == Decimal("250.00")

    def test_settle_uses_amount_at_settlement(self, debt, wallet, item, balance_of):
        """Line items added while pending change what settlement applies."""
        ItemAggregatorService.add_item(
            debt.transaction_id, item.id, amount=Decimal("30.00"), quantity=Decimal("2")
        )

        DebtSettlementService.settle(debt.id)

        assert balance_of(wallet) == Decimal("940.00")

    def test_settle_counts_merchant(self, wallet, merchant):
        tx = TransactionLifecycleService.create(
            CreateTransactionParams(
                type=TransactionType.EXPENSE,
                amount=Decimal("10.00"),
                account_id=wallet.id,
                merchant_id=merchant.id,
                status=TransactionStatus.PENDING,
            )
        )
        debt = DebtSettlementService.attach(tx.id, "Asha", DebtDirection.I_OWE)

        DebtSettlementService.settle(debt.id)

        assert Merchant.objects.get(pk=merchant.pk).transaction_count == 1

    def test_settle_then_delete_restores_balance(self, debt, wallet, balance_of):
        DebtSettlementService.settle(debt.id)

        TransactionLifecycleService.delete(debt.transaction_id)

        assert balance_of(wallet) == Decimal("1000.00")


class TestDelete:
    """Tests for DebtSettlementService.delete()."""

    def test_delete_discards_pending_transaction(self, debt, wallet, balance_of, fetch_transaction):
        DebtSettlementService.delete(debt.id)

        assert not Debt.objects.filter(pk=debt.pk).exists()
        assert fetch_transaction(debt.transaction_id).state == TransactionState.DISCARDED
        assert balance_of(wallet) == Decimal("1000.00")

    def test_delete_settled_rejected(self, debt):
        DebtSettlementService.settle(debt.id)

        with pytest.raises(SettledDebtImmutable):
            DebtSettlementService.delete(debt.id)

        assert Debt.objects.filter(pk=debt.pk).exists()

    def test_delete_missing(self, db):
        with pytest.raises(DebtNotFound):
            DebtSettlementService.delete(uuid.uuid4())


class TestQuery:
    def test_filters_by_settlement(self, debt, wallet):
        other_tx = TransactionLifecycleService.create(
            CreateTransactionParams(
                type=TransactionType.INCOME,
                amount=Decimal("20.00"),
                account_id=wallet.id,
                status=TransactionStatus.PENDING,
            )
        )
        other = DebtSettlementService.attach(other_tx.id, "Ravi", DebtDirection.THEY_OWE)
        DebtSettlementService.settle(other.id)

        active_ids = list(DebtSettlementService.query().values_list("id", flat=True))
        settled_ids = list(
            DebtSettlementService.query(settled=True).values_list("id", flat=True)
        )

        assert active_ids == [debt.id]
        assert settled_ids == [other.id]
