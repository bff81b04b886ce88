"""
Finance domain models.

This module contains all finance-related models:
- Account: Money container with a ledger-owned balance
- Category, Merchant, Item: Reference data labelling transactions
- Transaction: Expense, income or transfer with a django-fsm status
- TransactionItem: Line items whose totals drive a transaction's amount
- Debt: IOU deferring a pending transaction's balance effect
"""

from finance.models.account import Account
from finance.models.debt import Debt
from finance.models.reference import Category, Item, Merchant
from finance.models.transaction import Transaction, TransactionItem

__all__ = [
    "Account",
    "Category",
    "Debt",
    "Item",
    "Merchant",
    "Transaction",
    "TransactionItem",
]
