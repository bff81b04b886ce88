"""
Tests for ItemAggregatorService.

The transaction amount must equal the sum of amount x quantity after every
item change, and the configured recompute policy decides whether balances
follow.
"""

import uuid
from decimal import Decimal

import pytest

from core.exceptions import ConfigurationError, ValidationError
from finance.exceptions import (
    InvalidTransactionShape,
    ItemNotFound,
    TransactionCompleted,
    TransactionItemNotFound,
    TransactionNotFound,
)
from finance.models import Item, TransactionItem
from finance.services import (
    CreateTransactionParams,
    ItemAggregatorService,
    TransactionLifecycleService,
)
from finance.services.item_aggregator import line_items_total
from finance.state_machines import RecomputePolicy, TransactionStatus, TransactionType
from finance.tests.factories import ItemFactory, TransactionItemFactory


def create_expense(account, amount="100.00", status=TransactionStatus.COMPLETED):
    return TransactionLifecycleService.create(
        CreateTransactionParams(
            type=TransactionType.EXPENSE,
            amount=Decimal(amount),
            account_id=account.id,
            status=status,
        )
    )


@pytest.fixture
def policy(settings):
    """Switch LEDGER_ITEM_RECOMPUTE_POLICY for one test."""

    def _set(value):
        settings.LEDGER_ITEM_RECOMPUTE_POLICY = value

    return _set


class TestLineItemsTotal:
    def test_rounds_the_sum_half_up(self, db):
        lines = [
            TransactionItem(amount=Decimal("0.35"), quantity=Decimal("1.5")),  # 0.525
            TransactionItem(amount=Decimal("10.00"), quantity=Decimal("2")),
        ]

        assert line_items_total(lines) == Decimal("20.53")

    def test_lines_are_not_rounded_before_summing(self, db):
        """Two half-cent lines make one cent, not two."""
        lines = [
            TransactionItem(amount=Decimal("0.01"), quantity=Decimal("0.5")),
            TransactionItem(amount=Decimal("0.01"), quantity=Decimal("0.5")),
        ]

        assert line_items_total(lines) == Decimal("0.01")

    def test_empty_is_zero(self):
        assert line_items_total([]) == Decimal("0.00")


class TestRecompute:
    """Amount recomputation, independent of policy."""

    def test_add_item_sets_amount(self, wallet, item, fetch_transaction):
        tx = create_expense(wallet, status=TransactionStatus.PENDING)

        ItemAggregatorService.add_item(tx.id, item.id, amount=Decimal("30.00"), quantity=Decimal("2"))
        ItemAggregatorService.add_item(tx.id, ItemFactory().id, amount=Decimal("5.50"))

        assert fetch_transaction(tx).amount == Decimal("65.50")

    def test_fractional_quantities_sum_exactly(self, wallet, item, fetch_transaction):
        tx = create_expense(wallet, status=TransactionStatus.PENDING)

        for _ in range(3):
            ItemAggregatorService.add_item(
                tx.id, item.id, amount=Decimal("0.33"), quantity=Decimal("0.505")
            )

        # 3 x 0.16665 = 0.49995; per-line rounding would give 0.51
        assert fetch_transaction(tx).amount == Decimal("0.50")

    def test_update_item_recomputes(self, wallet, item, fetch_transaction):
        tx = create_expense(wallet, status=TransactionStatus.PENDING)
        line = ItemAggregatorService.add_item(tx.id, item.id, amount=Decimal("30.00"))

        ItemAggregatorService.update_item(line.id, {"quantity": Decimal("3")})

        assert fetch_transaction(tx).amount == Decimal("90.00")

    def test_update_ignores_other_fields(self, wallet, item):
        tx = create_expense(wallet, status=TransactionStatus.PENDING)
        line = ItemAggregatorService.add_item(tx.id, item.id, amount=Decimal("30.00"))
        other = ItemFactory()

        ItemAggregatorService.update_item(line.id, {"item_id": other.id, "remarks": "2L"})

        line = TransactionItem.objects.get(pk=line.pk)
        assert line.item_id == item.id
        assert line.remarks == "2L"

    def test_deleting_last_item_yields_zero(self, wallet, item, fetch_transaction):
        tx = create_expense(wallet, status=TransactionStatus.PENDING)
        line = ItemAggregatorService.add_item(tx.id, item.id, amount=Decimal("30.00"))

        result = ItemAggregatorService.delete_item(line.id)

        assert result.amount == Decimal("0.00")
        assert fetch_transaction(tx).amount == Decimal("0.00")

    def test_missing_item_rejected(self, wallet):
        tx = create_expense(wallet, status=TransactionStatus.PENDING)

        with pytest.raises(ItemNotFound):
            ItemAggregatorService.add_item(tx.id, uuid.uuid4(), amount=Decimal("1.00"))

    def test_add_by_name_creates_item(self, wallet, fetch_transaction):
        tx = create_expense(wallet, status=TransactionStatus.PENDING)

        line = ItemAggregatorService.add_item(tx.id, item_name="Bread", amount=Decimal("2.50"))

        assert line.item.name == "Bread"
        assert fetch_transaction(tx).amount == Decimal("2.50")

    def test_add_by_name_reuses_item(self, wallet, item):
        tx = create_expense(wallet, status=TransactionStatus.PENDING)

        line = ItemAggregatorService.add_item(tx.id, item_name="MILK", amount=Decimal("2.50"))

        assert line.item_id == item.id
        assert Item.objects.count() == 1

    def test_add_by_name_on_missing_transaction_writes_nothing(self, db):
        with pytest.raises(TransactionNotFound):
            ItemAggregatorService.add_item(uuid.uuid4(), item_name="Ghost", amount=Decimal("5.00"))

        assert not Item.objects.filter(name="Ghost").exists()

    def test_add_without_item_rejected(self, wallet):
        tx = create_expense(wallet, status=TransactionStatus.PENDING)

        with pytest.raises(ValidationError):
            ItemAggregatorService.add_item(tx.id, amount=Decimal("5.00"))

    def test_total_beyond_storable_amount_rejected(self, wallet, item, fetch_transaction):
        tx = create_expense(wallet, status=TransactionStatus.PENDING)

        with pytest.raises(InvalidTransactionShape):
            ItemAggregatorService.add_item(
                tx.id, item.id, amount=Decimal("999999999999.99"), quantity=Decimal("2")
            )

        assert fetch_transaction(tx).amount == Decimal("100.00")
        assert not TransactionItem.objects.filter(transaction_id=tx.id).exists()

    def test_missing_line_rejected(self, db):
        with pytest.raises(TransactionItemNotFound):
            ItemAggregatorService.delete_item(uuid.uuid4())

    def test_deleted_transaction_rejected(self, wallet, item):
        tx = create_expense(wallet, status=TransactionStatus.PENDING)
        TransactionLifecycleService.delete(tx.id)

        with pytest.raises(TransactionNotFound):
            ItemAggregatorService.add_item(tx.id, item.id, amount=Decimal("1.00"))

    def test_query_orders_by_creation(self, wallet):
        tx = create_expense(wallet, status=TransactionStatus.PENDING)
        first = TransactionItemFactory(transaction=tx)
        second = TransactionItemFactory(transaction=tx)

        ids = list(ItemAggregatorService.query(tx.id).values_list("id", flat=True))

        assert ids == [first.id, second.id]

    def test_pending_item_change_never_touches_balance(self, wallet, item, balance_of, policy):
        policy(RecomputePolicy.REBALANCE)
        tx = create_expense(wallet, status=TransactionStatus.PENDING)

        ItemAggregatorService.add_item(tx.id, item.id, amount=Decimal("30.00"))

        assert balance_of(wallet) == Decimal("1000.00")


class TestPreservePolicy:
    def test_amount_changes_balance_does_not(self, wallet, item, balance_of, fetch_transaction, policy):
        policy(RecomputePolicy.PRESERVE)
        tx = create_expense(wallet, amount="100.00")

        ItemAggregatorService.add_item(tx.id, item.id, amount=Decimal("40.00"))

        assert fetch_transaction(tx).amount == Decimal("40.00")
        assert balance_of(wallet) == Decimal("900.00")

    def test_delete_still_reverses_applied_amount(self, wallet, item, balance_of, policy):
        """
        Deleting after a preserved recompute restores the original balance.

        Why it matters: the reversal follows what was applied, not the
        recorded amount, so create then delete stays an identity.
        """
        policy(RecomputePolicy.PRESERVE)
        tx = create_expense(wallet, amount="100.00")
        ItemAggregatorService.add_item(tx.id, item.id, amount=Decimal("40.00"))

        TransactionLifecycleService.delete(tx.id)

        assert balance_of(wallet) == Decimal("1000.00")


class TestForbidCompletedPolicy:
    def test_completed_transaction_rejected(self, wallet, item, balance_of, fetch_transaction, policy):
        policy(RecomputePolicy.FORBID_COMPLETED)
        tx = create_expense(wallet, amount="100.00")

        with pytest.raises(TransactionCompleted) as exc_info:
            ItemAggregatorService.add_item(tx.id, item.id, amount=Decimal("40.00"))

        assert exc_info.value.http_status == 409
        assert fetch_transaction(tx).amount == Decimal("100.00")
        assert not TransactionItem.objects.filter(transaction_id=tx.id).exists()
        assert balance_of(wallet) == Decimal("900.00")

    def test_refused_add_by_name_creates_no_item(self, wallet, policy):
        policy(RecomputePolicy.FORBID_COMPLETED)
        tx = create_expense(wallet, amount="100.00")

        with pytest.raises(TransactionCompleted):
            ItemAggregatorService.add_item(tx.id, item_name="Ghost", amount=Decimal("5.00"))

        assert not Item.objects.filter(name="Ghost").exists()

    def test_pending_transaction_allowed(self, wallet, item, fetch_transaction, policy):
        policy(RecomputePolicy.FORBID_COMPLETED)
        tx = create_expense(wallet, status=TransactionStatus.PENDING)

        ItemAggregatorService.add_item(tx.id, item.id, amount=Decimal("40.00"))

        assert fetch_transaction(tx).amount == Decimal("40.00")


class TestRebalancePolicy:
    def test_decrease_gives_money_back(self, wallet, item, balance_of, fetch_transaction, policy):
        policy(RecomputePolicy.REBALANCE)
        tx = create_expense(wallet, amount="100.00")

        ItemAggregatorService.add_item(tx.id, item.id, amount=Decimal("40.00"))

        fresh = fetch_transaction(tx)
        assert fresh.amount == Decimal("40.00")
        assert fresh.applied_amount == Decimal("40.00")
        assert balance_of(wallet) == Decimal("960.00")

    def test_increase_takes_more(self, wallet, item, balance_of, policy):
        policy(RecomputePolicy.REBALANCE)
        tx = create_expense(wallet, amount="10.00")

        ItemAggregatorService.add_item(tx.id, item.id, amount=Decimal("25.00"))

        assert balance_of(wallet) == Decimal("975.00")

    def test_income_follows_type(self, wallet, item, balance_of, policy):
        policy(RecomputePolicy.REBALANCE)
        tx = TransactionLifecycleService.create(
            CreateTransactionParams(
                type=TransactionType.INCOME,
                amount=Decimal("100.00"),
                account_id=wallet.id,
            )
        )

        ItemAggregatorService.add_item(tx.id, item.id, amount=Decimal("150.00"))

        assert balance_of(wallet) == Decimal("1150.00")

    def test_delete_after_rebalance_restores(self, wallet, item, balance_of, policy):
        policy(RecomputePolicy.REBALANCE)
        tx = create_expense(wallet, amount="100.00")
        line = ItemAggregatorService.add_item(tx.id, item.id, amount=Decimal("40.00"))
        ItemAggregatorService.delete_item(line.id)

        TransactionLifecycleService.delete(tx.id)

        assert balance_of(wallet) == Decimal("1000.00")


class TestPolicySetting:
    def test_unknown_value_is_configuration_error(self, wallet, item, policy):
        policy("sometimes")
        tx = create_expense(wallet)

        with pytest.raises(ConfigurationError) as exc_info:
            ItemAggregatorService.add_item(tx.id, item.id, amount=Decimal("1.00"))

        assert exc_info.value.error_code == "SERVER_MISCONFIGURED"
