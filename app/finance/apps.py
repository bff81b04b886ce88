"""
Finance app configuration.

This app provides the ledger:
- Accounts and their balances
- Transactions with a pending/completed lifecycle
- Debts that defer a transaction's balance effect
- Line items that determine a transaction's amount
"""

from django.apps import AppConfig


class FinanceConfig(AppConfig):
    """Configuration for the finance application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "finance"
    verbose_name = "Finance"
