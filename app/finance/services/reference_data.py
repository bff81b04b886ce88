"""
Services for reference data: accounts, categories, merchants and items.

These are thin collaborators of the ledger. They own naming rules
(case-insensitive uniqueness), the account opening balance, and the
merchant usage counter. None of them writes an account balance after
creation.

Usage:
    from finance.services import AccountService, ItemService, MerchantService

    account = AccountService.create(name="Wallet", type="cash", balance=Decimal("1000"))
    item, created = ItemService.get_or_create(name="Milk")
    MerchantService.increment_usage(merchant.id)
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction
from django.db.models import F

from core.services import BaseService

from finance.exceptions import (
    AccountNotFound,
    CategoryNotFound,
    DuplicateName,
    ImmutableFieldError,
    ItemInUse,
    ItemNotFound,
    MerchantNotFound,
)
from finance.ledger.types import to_money
from finance.models import Account, Category, Item, Merchant, TransactionItem

if TYPE_CHECKING:
    from typing import Any

    from django.db.models import Model


# Account fields that only the ledger may change after creation
ACCOUNT_IMMUTABLE_FIELDS = frozenset(["balance", "id", "is_active"])


def _ensure_unique_name(
    model: type[Model],
    name: str,
    exclude_id: uuid.UUID | None = None,
) -> None:
    """
    Reject a name that already exists case-insensitively.

    Raises:
        DuplicateName: If another row of the model has the same name
    """
    queryset = model.objects.filter(name__iexact=name)
    if exclude_id is not None:
        queryset = queryset.exclude(id=exclude_id)
    if queryset.exists():
        label = str(model._meta.verbose_name).capitalize()
        raise DuplicateName(
            f"{label} with this name already exists",
            details={"name": name},
        )


def _save_unique(instance: Model, **save_kwargs: Any) -> None:
    """Save, turning a lost race on the unique name index into DuplicateName."""
    try:
        with transaction.atomic():
            instance.save(**save_kwargs)
    except IntegrityError as exc:
        raise DuplicateName(
            f"{str(instance._meta.verbose_name).capitalize()} with this name already exists",
            details={"name": getattr(instance, "name", None)},
        ) from exc


def get_category(category_id: uuid.UUID | None) -> Category | None:
    if category_id is None:
        return None
    category = Category.objects.filter(id=category_id).first()
    if category is None:
        raise CategoryNotFound(
            "Category not found",
            details={"category_id": str(category_id)},
        )
    return category


def get_merchant(merchant_id: uuid.UUID | None) -> Merchant | None:
    if merchant_id is None:
        return None
    merchant = Merchant.objects.filter(id=merchant_id).first()
    if merchant is None:
        raise MerchantNotFound(
            "Merchant not found",
            details={"merchant_id": str(merchant_id)},
        )
    return merchant


# =============================================================================
# Accounts
# =============================================================================


class AccountService(BaseService):
    """Account CRUD. The opening balance is the only direct balance write."""

    @classmethod
    def get(cls, account_id: uuid.UUID) -> Account:
        """
        Get an active account.

        Raises:
            AccountNotFound: If missing or deactivated
        """
        account = Account.objects.active().filter(id=account_id).first()
        if account is None:
            raise AccountNotFound(
                "Account not found",
                details={"account_id": str(account_id)},
            )
        return account

    @classmethod
    def create(
        cls,
        name: str,
        type: str,
        balance: Decimal | int | str = Decimal("0"),
        currency: str | None = None,
        color: str | None = None,
    ) -> Account:
        """
        Create an account with an opening balance.

        Args:
            name: Display name
            type: cash, bank or wallet
            balance: Opening balance (default 0)
            currency: Currency code (default DEFAULT_CURRENCY)
            color: Optional UI color
        """
        fields: dict[str, Any] = {
            "name": name,
            "type": type,
            "balance": to_money(balance),
            "color": color,
        }
        if currency:
            fields["currency"] = currency

        with cls.atomic():
            account = Account.objects.create(**fields)

        cls.get_logger().info(
            "Account created",
            extra={
                "account_id": str(account.id),
                "opening_balance": str(account.balance),
            },
        )
        return account

    @staticmethod
    def ensure_mutable_fields(changes: dict[str, Any]) -> None:
        """Reject changes that name the balance or other ledger-owned fields."""
        rejected = sorted(ACCOUNT_IMMUTABLE_FIELDS.intersection(changes))
        if rejected:
            raise ImmutableFieldError(
                "Account balance can only change through transactions",
                details={"fields": rejected},
            )

    @classmethod
    def update(cls, account_id: uuid.UUID, changes: dict[str, Any]) -> Account:
        """
        Update name, type, currency or color.

        Raises:
            ImmutableFieldError: If changes touch the balance
            AccountNotFound: If missing or deactivated
        """
        cls.ensure_mutable_fields(changes)

        with cls.atomic():
            account = cls.get(account_id)
            for field_name, value in changes.items():
                setattr(account, field_name, value)
            account.save(update_fields=[*changes.keys(), "updated_at"])

        return account

    @classmethod
    def deactivate(cls, account_id: uuid.UUID) -> Account:
        """
        Soft delete an account (is_active=False).

        Existing transactions and the balance are kept.
        """
        with cls.atomic():
            account = cls.get(account_id)
            account.is_active = False
            account.save(update_fields=["is_active", "updated_at"])

        cls.get_logger().info(
            "Account deactivated",
            extra={"account_id": str(account_id)},
        )
        return account


# =============================================================================
# Categories
# =============================================================================


class CategoryService(BaseService):
    """Category CRUD with case-insensitive unique names."""

    @classmethod
    def create(cls, **fields: Any) -> Category:
        _ensure_unique_name(Category, fields["name"])
        category = Category(**fields)
        with cls.atomic():
            _save_unique(category)
        return category

    @classmethod
    def update(cls, category_id: uuid.UUID, changes: dict[str, Any]) -> Category:
        category = get_category(category_id)
        if "name" in changes:
            _ensure_unique_name(Category, changes["name"], exclude_id=category.id)
        for field_name, value in changes.items():
            setattr(category, field_name, value)
        with cls.atomic():
            _save_unique(category, update_fields=[*changes.keys(), "updated_at"])
        return category

    @classmethod
    def delete(cls, category_id: uuid.UUID) -> None:
        """Hard delete; transactions, merchants and items keep a NULL category."""
        category = get_category(category_id)
        with cls.atomic():
            category.delete()
        cls.get_logger().info(
            "Category deleted",
            extra={"category_id": str(category_id)},
        )


# =============================================================================
# Merchants
# =============================================================================


class MerchantService(BaseService):
    """
    Merchant CRUD plus the usage counter.

    The counter tracks live completed transactions naming the merchant.
    It is only ever changed with F() expressions and never drops below 0.
    """

    @classmethod
    def create(cls, **fields: Any) -> Merchant:
        _ensure_unique_name(Merchant, fields["name"])
        get_category(fields.get("default_category_id"))
        merchant = Merchant(**fields)
        with cls.atomic():
            _save_unique(merchant)
        return merchant

    @classmethod
    def update(cls, merchant_id: uuid.UUID, changes: dict[str, Any]) -> Merchant:
        merchant = get_merchant(merchant_id)
        if "name" in changes:
            _ensure_unique_name(Merchant, changes["name"], exclude_id=merchant.id)
        if "default_category_id" in changes:
            get_category(changes["default_category_id"])
        for field_name, value in changes.items():
            setattr(merchant, field_name, value)
        with cls.atomic():
            _save_unique(merchant, update_fields=[*changes.keys(), "updated_at"])
        return merchant

    @classmethod
    def delete(cls, merchant_id: uuid.UUID) -> None:
        """Hard delete; transactions keep a NULL merchant."""
        merchant = get_merchant(merchant_id)
        with cls.atomic():
            merchant.delete()

    @staticmethod
    def increment_usage(merchant_id: uuid.UUID | None) -> None:
        if merchant_id is None:
            return
        Merchant.objects.filter(id=merchant_id).update(
            transaction_count=F("transaction_count") + 1
        )

    @staticmethod
    def decrement_usage(merchant_id: uuid.UUID | None) -> None:
        """Decrement the counter, floored at zero."""
        if merchant_id is None:
            return
        Merchant.objects.filter(id=merchant_id, transaction_count__gt=0).update(
            transaction_count=F("transaction_count") - 1
        )


# =============================================================================
# Items
# =============================================================================


class ItemService(BaseService):
    """Items are matched by case-insensitive name."""

    @classmethod
    def get(cls, item_id: uuid.UUID) -> Item:
        item = Item.objects.filter(id=item_id).first()
        if item is None:
            raise ItemNotFound(
                "Item not found",
                details={"item_id": str(item_id)},
            )
        return item

    @classmethod
    def get_or_create(
        cls,
        name: str,
        category_id: uuid.UUID | None = None,
    ) -> tuple[Item, bool]:
        """
        Return the item with this name, creating it if needed.

        Returns:
            Tuple of (item, created)
        """
        existing = Item.objects.filter(name__iexact=name).first()
        if existing is not None:
            return existing, False

        get_category(category_id)
        item = Item(name=name, category_id=category_id)
        try:
            with cls.atomic():
                _save_unique(item)
        except DuplicateName:
            # Another request created it first
            return Item.objects.get(name__iexact=name), False
        return item, True

    @classmethod
    def update(cls, item_id: uuid.UUID, changes: dict[str, Any]) -> Item:
        item = cls.get(item_id)
        if "name" in changes:
            _ensure_unique_name(Item, changes["name"], exclude_id=item.id)
        if "category_id" in changes:
            get_category(changes["category_id"])
        for field_name, value in changes.items():
            setattr(item, field_name, value)
        with cls.atomic():
            _save_unique(item, update_fields=[*changes.keys(), "updated_at"])
        return item

    @classmethod
    def delete(cls, item_id: uuid.UUID) -> None:
        """
        Delete an unused item.

        Raises:
            ItemInUse: If any line item references it
        """
        item = cls.get(item_id)
        if TransactionItem.objects.filter(item=item).exists():
            raise ItemInUse(
                "Cannot delete an item that is used in transactions",
                details={"item_id": str(item_id)},
            )
        with cls.atomic():
            item.delete()
