"""
Ledger core: balance effects and the services that apply them.

Modules:
    types: Credit, Debit, Move effects and the type -> effect mapping
    services: AccountStore (single delta primitive) and BalanceMutator

Usage:
    from finance.ledger.services import BalanceMutator
    from finance.ledger.types import effect_of

    BalanceMutator.apply(effect_of(transaction))
    BalanceMutator.reverse(effect_of(transaction))

Note:
    Services are not imported here to avoid AppRegistryNotReady errors;
    they depend on finance.models.
"""

from finance.ledger.types import (
    BalanceEffect,
    Credit,
    Debit,
    Move,
    effect_for,
    effect_of,
    to_money,
)

__all__ = [
    "BalanceEffect",
    "Credit",
    "Debit",
    "Move",
    "effect_for",
    "effect_of",
    "to_money",
]
