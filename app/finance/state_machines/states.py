"""
State and choice enums for finance models.

These are Django TextChoices for database storage and admin integration.

State Machines Overview:

Transaction status (stored, django-fsm):
    pending → completed (settle; the only transition)

Transaction lifecycle state (derived from status + is_deleted):
    pending    - status=pending, live; no balance effect applied
    completed  - status=completed, live; balance effect applied once
    discarded  - deleted while pending; nothing to reverse
    reversed   - deleted after completion; balance effect reversed

    pending   → completed   (settle)
    pending   → discarded   (delete)
    completed → reversed    (delete)
    discarded, reversed: terminal
"""

from django.db import models


class AccountType(models.TextChoices):
    """Kinds of money containers a user keeps."""

    CASH = "cash", "Cash"
    BANK = "bank", "Bank"
    WALLET = "wallet", "Wallet"


class TransactionType(models.TextChoices):
    """
    Transaction kinds, each mapped to exactly one balance effect.

    EXPENSE  -> Debit(account)
    INCOME   -> Credit(account)
    TRANSFER -> Move(account -> to_account)
    """

    EXPENSE = "expense", "Expense"
    INCOME = "income", "Income"
    TRANSFER = "transfer", "Transfer"


class TransactionStatus(models.TextChoices):
    """
    Stored status of a transaction.

    Terminal state: COMPLETED

    State Flow:
        PENDING -> COMPLETED (debt settlement)
    """

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"


class TransactionState(models.TextChoices):
    """
    Derived lifecycle state combining status and the soft-delete flag.

    Terminal states: DISCARDED, REVERSED
    """

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    DISCARDED = "discarded", "Discarded"
    REVERSED = "reversed", "Reversed"


class DebtDirection(models.TextChoices):
    """Who owes whom. Descriptive only; never changes the balance effect."""

    I_OWE = "i_owe", "I owe"
    THEY_OWE = "they_owe", "They owe"


class CategoryType(models.TextChoices):
    """Which transaction kinds a category is meant for."""

    EXPENSE = "expense", "Expense"
    INCOME = "income", "Income"
    BOTH = "both", "Both"


class RecomputePolicy(models.TextChoices):
    """
    What item changes do to a transaction whose effect is already applied.

    PRESERVE         - recompute the amount, leave balances untouched
    FORBID_COMPLETED - reject item changes on completed transactions
    REBALANCE        - apply the amount difference to balances
    """

    PRESERVE = "preserve", "Preserve"
    FORBID_COMPLETED = "forbid_completed", "Forbid on completed"
    REBALANCE = "rebalance", "Rebalance"


class AnalyticsPeriod(models.TextChoices):
    """Reporting windows for analytics rollups."""

    DAY = "day", "Day"
    WEEK = "week", "Week"
    MONTH = "month", "Month"
    YEAR = "year", "Year"
