"""
Account model: a money container with a running balance.

The balance column is owned by the ledger. Only the Account Store
(finance.ledger.services.AccountStore) writes it after creation, and only
through an atomic ``balance = balance + delta`` UPDATE.

Usage:
    from finance.models import Account
    from finance.state_machines import AccountType

    wallet = Account.objects.create(
        name="Wallet",
        type=AccountType.CASH,
        balance=Decimal("1000.00"),
    )

    Account.objects.active()  # Accounts that accept new transactions
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from finance.state_machines import AccountType


def default_currency() -> str:
    """Currency assigned to new accounts (DEFAULT_CURRENCY setting)."""
    return getattr(settings, "DEFAULT_CURRENCY", "INR")


class AccountQuerySet(models.QuerySet):
    def active(self) -> AccountQuerySet:
        return self.filter(is_active=True)


class Account(UUIDPrimaryKeyMixin, BaseModel):
    """
    A cash, bank or wallet account.

    Fields:
        name: Display name (1-50 characters)
        type: cash, bank or wallet
        balance: Current balance; any sign is allowed (overdrafts happen)
        currency: Display currency code, no conversion is ever performed
        color: Optional UI color
        is_active: False once the account is deactivated (soft delete)

    Note:
        Deactivated accounts keep their rows and balance. Existing
        transactions can still be deleted (and reversed) against them,
        but new transactions cannot target them.
    """

    name = models.CharField(
        max_length=50,
        help_text="Display name of the account",
    )

    type = models.CharField(
        max_length=10,
        choices=AccountType.choices,
        help_text="Account kind (cash, bank, wallet)",
    )

    balance = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Current balance, mutated only by the balance mutator",
    )

    currency = models.CharField(
        max_length=10,
        default=default_currency,
        help_text="Currency code (display only)",
    )

    color = models.CharField(
        max_length=20,
        null=True,
        blank=True,
        help_text="UI color, e.g. '#22c55e'",
    )

    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="False once the account has been deactivated",
    )

    objects = AccountQuerySet.as_manager()

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Account"
        verbose_name_plural = "Accounts"

    def __str__(self) -> str:
        return f"{self.name} ({self.type}, {self.balance} {self.currency})"
