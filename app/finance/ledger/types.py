"""
Balance effects: the value types the balance mutator applies.

Every change to account balances is one of three effects:

    Credit(account_id, amount)             balance += amount
    Debit(account_id, amount)              balance -= amount
    Move(from_account_id, to_account_id,   Debit(from) then Credit(to)
         amount)

Each effect knows its algebraic inverse (Credit <-> Debit, Move with the
roles swapped) and its per-account signed deltas. Transaction types map
onto effects through ``effect_for``:

    expense  -> Debit(account)
    income   -> Credit(account)
    transfer -> Move(account, to_account)

Usage:
    from finance.ledger.types import effect_for, to_money

    effect = effect_for(
        TransactionType.TRANSFER,
        account_id=checking.id,
        amount=to_money("300"),
        to_account_id=savings.id,
    )
    effect.deltas()     # [(checking.id, Decimal("-300.00")), (savings.id, Decimal("300.00"))]
    effect.inverse()    # Move(savings.id -> checking.id, 300.00)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Union

from finance.state_machines import TransactionType

if TYPE_CHECKING:
    from finance.models import Transaction

CENT = Decimal("0.01")


def to_money(value: Decimal | int | str) -> Decimal:
    """
    Normalise a value to a two-place Decimal, rounding half-up.

    Floats are refused; money never passes through binary floating point.

    Raises:
        TypeError: If value is a float
    """
    if isinstance(value, float):
        raise TypeError("Money values must not be floats")
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _check_amount(amount: Decimal) -> None:
    if amount <= 0:
        raise ValueError("Effect amount must be positive")


@dataclass(frozen=True)
class Credit:
    """Increase one account's balance."""

    account_id: uuid.UUID
    amount: Decimal

    kind = "credit"

    def __post_init__(self) -> None:
        _check_amount(self.amount)

    def inverse(self) -> Debit:
        return Debit(account_id=self.account_id, amount=self.amount)

    def deltas(self) -> list[tuple[uuid.UUID, Decimal]]:
        return [(self.account_id, self.amount)]


@dataclass(frozen=True)
class Debit:
    """Decrease one account's balance. The result may go negative."""

    account_id: uuid.UUID
    amount: Decimal

    kind = "debit"

    def __post_init__(self) -> None:
        _check_amount(self.amount)

    def inverse(self) -> Credit:
        return Credit(account_id=self.account_id, amount=self.amount)

    def deltas(self) -> list[tuple[uuid.UUID, Decimal]]:
        return [(self.account_id, -self.amount)]


@dataclass(frozen=True)
class Move:
    """
    Debit one account and credit another by the same amount.

    Both deltas are applied in one atomic scope by the balance mutator;
    no reader ever sees only one side updated.
    """

    from_account_id: uuid.UUID
    to_account_id: uuid.UUID
    amount: Decimal

    kind = "move"

    def __post_init__(self) -> None:
        _check_amount(self.amount)
        if self.from_account_id == self.to_account_id:
            raise ValueError("Move requires two different accounts")

    def inverse(self) -> Move:
        return Move(
            from_account_id=self.to_account_id,
            to_account_id=self.from_account_id,
            amount=self.amount,
        )

    def deltas(self) -> list[tuple[uuid.UUID, Decimal]]:
        return [
            (self.from_account_id, -self.amount),
            (self.to_account_id, self.amount),
        ]


BalanceEffect = Union[Credit, Debit, Move]


def effect_for(
    transaction_type: TransactionType | str,
    account_id: uuid.UUID,
    amount: Decimal,
    to_account_id: uuid.UUID | None = None,
) -> BalanceEffect:
    """
    Map a transaction type onto the balance effect it applies.

    Args:
        transaction_type: expense, income or transfer
        account_id: Source account
        amount: Positive amount
        to_account_id: Destination account (transfers only)

    Returns:
        Debit for expense, Credit for income, Move for transfer

    Raises:
        ValueError: Unknown type, or a transfer without a destination
    """
    if transaction_type == TransactionType.EXPENSE:
        return Debit(account_id=account_id, amount=amount)
    if transaction_type == TransactionType.INCOME:
        return Credit(account_id=account_id, amount=amount)
    if transaction_type == TransactionType.TRANSFER:
        if to_account_id is None:
            raise ValueError("Transfer effect requires a destination account")
        return Move(
            from_account_id=account_id,
            to_account_id=to_account_id,
            amount=amount,
        )
    raise ValueError(f"Unknown transaction type: {transaction_type!r}")


def effect_of(transaction: Transaction, amount: Decimal | None = None) -> BalanceEffect:
    """
    Balance effect of a transaction row.

    Args:
        transaction: The transaction
        amount: Override for the amount (defaults to transaction.amount)
    """
    return effect_for(
        transaction.type,
        account_id=transaction.account_id,
        amount=transaction.amount if amount is None else amount,
        to_account_id=transaction.to_account_id,
    )
