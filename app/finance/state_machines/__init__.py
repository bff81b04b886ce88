"""
State machine enums for finance models.

This module defines the state and choice enums used by finance models,
including the django-fsm managed transaction status.
"""

from finance.state_machines.states import (
    AccountType,
    AnalyticsPeriod,
    CategoryType,
    DebtDirection,
    RecomputePolicy,
    TransactionState,
    TransactionStatus,
    TransactionType,
)

__all__ = [
    "AccountType",
    "AnalyticsPeriod",
    "CategoryType",
    "DebtDirection",
    "RecomputePolicy",
    "TransactionState",
    "TransactionStatus",
    "TransactionType",
]
