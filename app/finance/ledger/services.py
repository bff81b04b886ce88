"""
Ledger service layer: the only code that writes account balances.

Components:
    AccountStore: Reads accounts and applies one signed delta to one balance
    BalanceMutator: Applies a Credit, Debit or Move atomically

Every balance write is a single ``UPDATE ... SET balance = balance + %s``,
so the database serialises concurrent writers on the row lock taken by the
UPDATE itself. The mutator additionally locks all touched rows in primary
key order before writing, so two opposite Moves between the same pair of
accounts can never deadlock.

Usage:
    from finance.ledger.services import BalanceMutator
    from finance.ledger.types import Debit

    with BalanceMutator.atomic():
        BalanceMutator.apply(Debit(account_id=wallet.id, amount=Decimal("200.00")))

The mutator never inspects transaction state; callers (the transaction
lifecycle, debt settlement and the item aggregator) decide when an effect
is applied or reversed.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db.models import F
from django.utils import timezone

from core.services import BaseService

from finance.exceptions import AccountNotFound, InactiveAccount
from finance.models import Account

if TYPE_CHECKING:
    from finance.ledger.types import BalanceEffect


class AccountStore:
    """
    Account reads plus the single balance mutation primitive.

    All methods are static - no instance state is maintained.
    """

    @staticmethod
    def get(account_id: uuid.UUID) -> Account:
        """
        Get account by ID, active or not.

        Raises:
            AccountNotFound: If account doesn't exist
        """
        try:
            return Account.objects.get(id=account_id)
        except Account.DoesNotExist:
            raise AccountNotFound(
                "Account not found",
                details={"account_id": str(account_id)},
            )

    @staticmethod
    def get_active(account_id: uuid.UUID, role: str = "account") -> Account:
        """
        Get an account that can take new transactions.

        Args:
            account_id: UUID of the account
            role: Name used in the error message ("account", "destination")

        Raises:
            AccountNotFound: If account doesn't exist
            InactiveAccount: If account has been deactivated
        """
        account = Account.objects.filter(id=account_id).first()
        if account is None:
            raise AccountNotFound(
                f"{role.capitalize()} not found",
                details={"account_id": str(account_id), "role": role},
            )
        if not account.is_active:
            raise InactiveAccount(
                f"{role.capitalize()} is inactive",
                details={"account_id": str(account_id), "role": role},
            )
        return account

    @staticmethod
    def apply_delta(account_id: uuid.UUID, delta: Decimal) -> Account:
        """
        Add a signed delta to an account balance.

        Runs inside the caller's transaction scope. The resulting sign is
        not validated; negative balances are allowed.

        Args:
            account_id: UUID of the account
            delta: Signed amount to add

        Returns:
            The account with its new balance

        Raises:
            AccountNotFound: If account doesn't exist
        """
        updated = Account.objects.filter(id=account_id).update(
            balance=F("balance") + delta,
            updated_at=timezone.now(),
        )
        if updated == 0:
            raise AccountNotFound(
                "Account not found",
                details={"account_id": str(account_id)},
            )
        return Account.objects.get(id=account_id)


class BalanceMutator(BaseService):
    """
    Applies balance effects atomically.

    A Move's two deltas run in one atomic scope: either both balances
    change or neither does. Nested inside a caller's scope, the effect
    commits or rolls back with the caller.
    """

    @classmethod
    def apply(cls, effect: BalanceEffect) -> dict[uuid.UUID, Account]:
        """
        Apply a Credit, Debit or Move.

        Args:
            effect: The effect to apply

        Returns:
            Dict of account id -> account with its updated balance

        Raises:
            AccountNotFound: If any account is missing (nothing is written)
        """
        deltas = effect.deltas()
        account_ids = sorted({account_id for account_id, _ in deltas}, key=str)
        results: dict[uuid.UUID, Account] = {}

        with cls.atomic():
            # Lock in a consistent order to prevent deadlocks between
            # concurrent moves touching the same pair of accounts
            locked = {
                str(pk)
                for pk in Account.objects.select_for_update()
                .filter(id__in=account_ids)
                .order_by("id")
                .values_list("id", flat=True)
            }
            for account_id in account_ids:
                if str(account_id) not in locked:
                    raise AccountNotFound(
                        "Account not found",
                        details={"account_id": str(account_id)},
                    )

            for account_id, delta in deltas:
                results[account_id] = AccountStore.apply_delta(account_id, delta)

        cls.get_logger().info(
            "Balance effect applied",
            extra={
                "effect": effect.kind,
                "amount": str(effect.amount),
                "account_ids": [str(account_id) for account_id in account_ids],
            },
        )
        return results

    @classmethod
    def reverse(cls, effect: BalanceEffect) -> dict[uuid.UUID, Account]:
        """Apply the algebraic inverse of an effect."""
        return cls.apply(effect.inverse())
