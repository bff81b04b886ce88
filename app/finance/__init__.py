"""
Finance app: the ledger consistency engine.

Subpackages:
    models: Account, Transaction, TransactionItem, Debt and reference data
    ledger: Balance effects and the mutator that applies them
    services: Lifecycle, settlement, item aggregation, reference data, analytics
    state_machines: Status and type choices
"""
