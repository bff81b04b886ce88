"""
Debt model: an IOU that defers a pending transaction's balance effect.

A Debt is attached to exactly one pending transaction. Settling it
completes the transaction and applies the deferred effect; until then the
transaction contributes nothing to account balances.

Lifecycle:
    active (settled_at is NULL) -> settled (settled_at set, immutable)
    active -> deleted (hard delete; its transaction is discarded)
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from finance.state_machines import DebtDirection


class Debt(UUIDPrimaryKeyMixin, BaseModel):
    """
    Deferred settlement record for a pending transaction.

    Fields:
        transaction: The pending transaction (one debt per transaction)
        person_name: Counterparty
        direction: i_owe or they_owe (descriptive only)
        settled_at: When settled; NULL while active

    Note:
        settled_at is written only by the conditional settle UPDATE
        (``WHERE settled_at IS NULL``) in DebtSettlementService.
    """

    transaction = models.OneToOneField(
        "finance.Transaction",
        on_delete=models.PROTECT,
        related_name="debt",
    )

    person_name = models.CharField(max_length=100)

    direction = models.CharField(
        max_length=10,
        choices=DebtDirection.choices,
    )

    settled_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="When the debt was settled (NULL = active)",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Debt"
        verbose_name_plural = "Debts"

    def __str__(self) -> str:
        state = "settled" if self.is_settled else "active"
        return f"Debt({self.person_name}, {self.direction}, {state})"

    @property
    def is_settled(self) -> bool:
        return self.settled_at is not None
