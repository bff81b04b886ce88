"""
Abstract model mixins shared by the finance models.

Available Mixins:
    UUIDPrimaryKeyMixin: UUID primary key on every ledger entity
    SoftDeleteMixin: is_deleted / deleted_at for transactions

Usage:
    from core.models import BaseModel
    from core.model_mixins import SoftDeleteMixin, UUIDPrimaryKeyMixin

    class Transaction(UUIDPrimaryKeyMixin, SoftDeleteMixin, BaseModel):
        objects = SoftDeleteManager()
        all_objects = models.Manager()

Note:
    SoftDeleteMixin expects SoftDeleteManager as the default manager
    (see core.managers).
"""

from __future__ import annotations

import uuid

from django.db import models
from django.utils import timezone


class UUIDPrimaryKeyMixin(models.Model):
    """
    UUID primary key.

    Accounts, transactions, debts and reference data are all addressed by
    UUID in the API, so identifiers never reveal record counts.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True


class SoftDeleteMixin(models.Model):
    """
    One-way soft delete.

    A deleted row keeps its data and stays readable through
    ``all_objects``. There is no restore: for a transaction, deleted is a
    terminal state (discarded or reversed).

    Fields:
        is_deleted: Set once by soft_delete()
        deleted_at: When it was set
    """

    is_deleted = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether this record has been soft deleted",
    )
    deleted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Timestamp when this record was soft deleted",
    )

    class Meta:
        abstract = True

    def soft_delete(self) -> None:
        """
        Flag the row deleted. A second call is a no-op.

        Example:
            tx.soft_delete()
            assert tx.is_deleted is True
        """
        if self.is_deleted:
            return

        self.is_deleted = True
        self.deleted_at = timezone.now()
        self.save(update_fields=self._soft_delete_fields())

    def hard_delete(self) -> None:
        """Remove the row for real. Irreversible."""
        super().delete()

    def _soft_delete_fields(self) -> list[str]:
        fields = ["is_deleted", "deleted_at"]
        # BaseModel subclasses also track updated_at
        if any(f.name == "updated_at" for f in self._meta.get_fields()):
            fields.append("updated_at")
        return fields
