"""
Pytest fixtures for finance tests.

Shared by finance/tests, finance/ledger/tests and finance/services/tests.

Sections:
    - Account Fixtures: Funded and empty accounts
    - Reference Fixtures: Category, merchant and item
    - Helpers: Re-reading transactions and balances
"""

from decimal import Decimal

import pytest

from finance.models import Account, Transaction
from finance.tests.factories import (
    AccountFactory,
    CategoryFactory,
    ItemFactory,
    MerchantFactory,
)

# ==========================================================================
# Account Fixtures
# ==========================================================================


@pytest.fixture
def wallet(db):
    """Cash account opened with 1000.00."""
    return AccountFactory(name="Wallet", type="cash", balance=Decimal("1000.00"))


@pytest.fixture
def savings(db):
    """Empty bank account, the usual transfer destination."""
    return AccountFactory(name="Savings", type="bank", balance=Decimal("0.00"))


@pytest.fixture
def inactive_account(db):
    return AccountFactory(name="Closed", is_active=False, balance=Decimal("50.00"))


# ==========================================================================
# Reference Fixtures
# ==========================================================================


@pytest.fixture
def category(db):
    return CategoryFactory(name="Groceries")


@pytest.fixture
def merchant(db):
    return MerchantFactory(name="Corner Store")


@pytest.fixture
def item(db):
    return ItemFactory(name="Milk")


# ==========================================================================
# Helpers
# ==========================================================================


@pytest.fixture
def balance_of():
    """Current balance of an account, read from the database."""

    def _balance_of(account) -> Decimal:
        return Account.objects.get(pk=account.pk).balance

    return _balance_of


@pytest.fixture
def fetch_transaction():
    """
    Fresh Transaction instance, deleted or not.

    status is a protected FSM field, so refresh_from_db() cannot reload
    it; tests re-fetch instead.
    """

    def _fetch(tx_or_id) -> Transaction:
        pk = getattr(tx_or_id, "pk", tx_or_id)
        return Transaction.all_objects.get(pk=pk)

    return _fetch
