"""
Abstract timestamped base for every ledger table.

BaseModel carries no finance rules; accounts, transactions, debts and
reference data all inherit it so audit queries can rely on created_at and
updated_at being present everywhere.

Usage:
    from core.models import BaseModel
    from core.model_mixins import SoftDeleteMixin, UUIDPrimaryKeyMixin

    class Category(BaseModel):
        name = models.CharField(max_length=30)

    class Transaction(UUIDPrimaryKeyMixin, SoftDeleteMixin, BaseModel):
        amount = models.DecimalField(max_digits=14, decimal_places=2)

Note:
    Mixins go before BaseModel in the bases list.
"""

from __future__ import annotations

from django.db import models


class BaseModel(models.Model):
    """
    created_at / updated_at for all finance models.

    Subclasses usually override Meta.ordering (accounts list oldest first,
    transactions by date).
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this record was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when this record was last modified",
    )

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(id={self.pk})"
