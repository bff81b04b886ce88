"""
Finance services: the ledger's write paths plus reference data and analytics.

This module provides:
- TransactionLifecycleService: Create, edit and delete transactions
- DebtSettlementService: Attach, settle and delete debts
- ItemAggregatorService: Line item changes and amount recompute
- AccountService, CategoryService, MerchantService, ItemService: Reference data
- AnalyticsService: Read-only rollups

Usage:
    from finance.services import CreateTransactionParams, TransactionLifecycleService

    tx = TransactionLifecycleService.create(
        CreateTransactionParams(
            type=TransactionType.EXPENSE,
            amount=Decimal("1.00"),
            account_id=wallet.id,
            status=TransactionStatus.PENDING,
        )
    )

    # Defer its effect until the IOU is resolved
    from finance.services import DebtSettlementService

    debt = DebtSettlementService.attach(tx.id, person_name="X", direction="i_owe")
    DebtSettlementService.settle(debt.id)
"""

from finance.services.analytics import AnalyticsService
from finance.services.debt_settlement import DebtSettlementService
from finance.services.item_aggregator import ItemAggregatorService
from finance.services.reference_data import (
    AccountService,
    CategoryService,
    ItemService,
    MerchantService,
)
from finance.services.transaction_lifecycle import (
    CreateTransactionParams,
    TransactionLifecycleService,
)

__all__ = [
    "AccountService",
    "AnalyticsService",
    "CategoryService",
    "CreateTransactionParams",
    "DebtSettlementService",
    "ItemAggregatorService",
    "ItemService",
    "MerchantService",
    "TransactionLifecycleService",
]
