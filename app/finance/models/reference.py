"""
Reference data models: Category, Merchant and Item.

These rows label transactions and line items. They never hold money; the
only ledger-driven column is Merchant.transaction_count, a usage counter
maintained by the transaction lifecycle.

Names are unique case-insensitively (functional unique constraints on
Lower(name)), so "Groceries" and "groceries" cannot coexist.
"""

from __future__ import annotations

from django.db import models
from django.db.models.functions import Lower

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from finance.state_machines import CategoryType


class Category(UUIDPrimaryKeyMixin, BaseModel):
    """
    Spending or income category.

    Deleting a category leaves its transactions uncategorised
    (category set to NULL).
    """

    name = models.CharField(max_length=30)
    icon = models.CharField(max_length=50, null=True, blank=True)
    color = models.CharField(max_length=20, null=True, blank=True)
    type = models.CharField(
        max_length=10,
        choices=CategoryType.choices,
        default=CategoryType.BOTH,
        help_text="Transaction kinds this category applies to",
    )

    class Meta:
        ordering = ["name"]
        verbose_name = "Category"
        verbose_name_plural = "Categories"
        constraints = [
            models.UniqueConstraint(
                Lower("name"),
                name="category_name_ci_unique",
            ),
        ]

    def __str__(self) -> str:
        return self.name


class Merchant(UUIDPrimaryKeyMixin, BaseModel):
    """
    Where money was spent or received.

    Fields:
        name: Merchant name (1-100 characters)
        default_category: Category suggested for new transactions
        transaction_count: Live completed transactions naming this merchant

    Note:
        transaction_count is only ever changed with F() expressions by
        MerchantService and is floored at zero.
    """

    name = models.CharField(max_length=100)
    default_category = models.ForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="default_for_merchants",
    )
    transaction_count = models.PositiveIntegerField(
        default=0,
        help_text="Usage counter maintained by the transaction lifecycle",
    )

    class Meta:
        ordering = ["-transaction_count", "name"]
        verbose_name = "Merchant"
        verbose_name_plural = "Merchants"
        constraints = [
            models.UniqueConstraint(
                Lower("name"),
                name="merchant_name_ci_unique",
            ),
        ]

    def __str__(self) -> str:
        return self.name


class Item(UUIDPrimaryKeyMixin, BaseModel):
    """A thing that can be bought, referenced by transaction line items."""

    name = models.CharField(max_length=255)
    category = models.ForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="items",
    )

    class Meta:
        ordering = ["name"]
        verbose_name = "Item"
        verbose_name_plural = "Items"
        constraints = [
            models.UniqueConstraint(
                Lower("name"),
                name="item_name_ci_unique",
            ),
        ]

    def __str__(self) -> str:
        return self.name
