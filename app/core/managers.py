"""
Managers for soft-deleted models.

Transaction is the only soft-deleted table. Its default manager hides
deleted rows so every read path (lists, analytics, line item lookups)
sees live transactions only; ``all_objects`` is a plain Manager for
audits and for re-fetching a row after it was deleted.

Usage:
    from core.managers import SoftDeleteManager

    class Transaction(SoftDeleteMixin, BaseModel):
        objects = SoftDeleteManager()
        all_objects = models.Manager()

    Transaction.objects.all()          # live
    Transaction.objects.deleted()      # discarded or reversed
    Transaction.objects.with_deleted() # both

Note:
    A queryset delete() only flips the flag. It never reverses balance
    effects; ledger deletes go through TransactionLifecycleService.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone


class SoftDeleteQuerySet(models.QuerySet):
    """QuerySet whose delete() marks rows instead of removing them."""

    def delete(self) -> tuple[int, dict[str, int]]:
        """
        Mark every live row in the queryset deleted with one UPDATE.

        Returns:
            (count, {model_label: count}), the same shape as Django's delete()
        """
        count = self.filter(is_deleted=False).update(
            is_deleted=True, deleted_at=timezone.now()
        )
        return count, {self.model._meta.label: count}

    def hard_delete(self) -> tuple[int, dict[str, int]]:
        """Remove the rows for real. Irreversible."""
        return super().delete()

    def deleted(self) -> SoftDeleteQuerySet:
        return self.filter(is_deleted=True)

    def active(self) -> SoftDeleteQuerySet:
        return self.filter(is_deleted=False)


class SoftDeleteManager(models.Manager):
    """
    Default manager that excludes soft-deleted rows.

    Pair it with a plain ``models.Manager`` so deleted rows stay reachable.
    """

    def _base(self) -> SoftDeleteQuerySet:
        return SoftDeleteQuerySet(self.model, using=self._db)

    def get_queryset(self) -> SoftDeleteQuerySet:
        return self._base().filter(is_deleted=False)

    def deleted(self) -> SoftDeleteQuerySet:
        return self._base().filter(is_deleted=True)

    def with_deleted(self) -> SoftDeleteQuerySet:
        return self._base()
