"""
Serializers for the finance API.

Serializer Hierarchy:
    AccountSerializer: Account read shape
    AccountCreateSerializer / AccountUpdateSerializer: Account writes

    CategorySerializer, MerchantSerializer, ItemSerializer: Reference data

    TransactionSerializer: Transaction with joined account/category/merchant names
    TransactionCreateSerializer: Create input (type, amount, accounts, status)
    TransactionUpdateSerializer: Metadata-only edit input
    TransactionFilterSerializer: List query parameters

    TransactionItemSerializer: Line item with item and category names
    TransactionItemCreateSerializer / TransactionItemUpdateSerializer

    DebtSerializer: Debt with its transaction's amount, note, date and account
    DebtCreateSerializer: Attach input

    Analytics*Serializer: Read-only analytics responses

Design Decisions:
    - Read and write serializers are separate; writes go through services
    - Money fields are DecimalFields rendered as strings
    - Immutable fields are rejected by the services, not silently dropped
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from finance.models import (
    Account,
    Category,
    Debt,
    Item,
    Merchant,
    Transaction,
    TransactionItem,
)
from finance.state_machines import (
    AccountType,
    AnalyticsPeriod,
    CategoryType,
    DebtDirection,
    TransactionStatus,
    TransactionType,
)


def money_field(**kwargs) -> serializers.DecimalField:
    return serializers.DecimalField(max_digits=14, decimal_places=2, **kwargs)


# =============================================================================
# Account Serializers
# =============================================================================


class AccountSerializer(serializers.ModelSerializer):
    class Meta:
        model = Account
        fields = [
            "id",
            "name",
            "type",
            "balance",
            "currency",
            "color",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AccountCreateSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=1, max_length=50)
    type = serializers.ChoiceField(choices=AccountType.choices)
    balance = money_field(required=False, default=Decimal("0.00"), help_text="Opening balance")
    currency = serializers.CharField(max_length=10, required=False)
    color = serializers.CharField(max_length=20, required=False, allow_null=True, allow_blank=True)


class AccountUpdateSerializer(serializers.Serializer):
    """Partial update of display fields. The balance is not accepted."""

    name = serializers.CharField(min_length=1, max_length=50, required=False)
    type = serializers.ChoiceField(choices=AccountType.choices, required=False)
    currency = serializers.CharField(max_length=10, required=False)
    color = serializers.CharField(max_length=20, required=False, allow_null=True, allow_blank=True)


# =============================================================================
# Reference Data Serializers
# =============================================================================


class CategorySerializer(serializers.ModelSerializer):
    name = serializers.CharField(min_length=1, max_length=30)
    type = serializers.ChoiceField(choices=CategoryType.choices, default=CategoryType.BOTH)

    class Meta:
        model = Category
        fields = ["id", "name", "icon", "color", "type", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]


class MerchantSerializer(serializers.ModelSerializer):
    name = serializers.CharField(min_length=1, max_length=100)
    default_category_id = serializers.UUIDField(required=False, allow_null=True)
    default_category_name = serializers.CharField(
        source="default_category.name",
        read_only=True,
        allow_null=True,
    )

    class Meta:
        model = Merchant
        fields = [
            "id",
            "name",
            "default_category_id",
            "default_category_name",
            "transaction_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "transaction_count", "created_at", "updated_at"]


class ItemSerializer(serializers.ModelSerializer):
    """
    Item with usage statistics.

    usage_count and last_price come from list annotations; a freshly
    created item reports 0 and null.
    """

    name = serializers.CharField(min_length=1, max_length=255)
    category_id = serializers.UUIDField(required=False, allow_null=True)
    category_name = serializers.CharField(source="category.name", read_only=True, allow_null=True)
    usage_count = serializers.SerializerMethodField()
    last_price = serializers.SerializerMethodField()

    class Meta:
        model = Item
        fields = [
            "id",
            "name",
            "category_id",
            "category_name",
            "usage_count",
            "last_price",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def get_usage_count(self, obj: Item) -> int:
        return getattr(obj, "usage_count", 0) or 0

    def get_last_price(self, obj: Item) -> str | None:
        last_price = getattr(obj, "last_price", None)
        if last_price is None:
            return None
        return money_field().to_representation(last_price)


# =============================================================================
# Transaction Serializers
# =============================================================================


class TransactionSerializer(serializers.ModelSerializer):
    """
    Transaction read shape.

    ``state`` is the derived lifecycle state (pending, completed,
    discarded, reversed) next to the raw status and is_deleted columns.
    """

    account_id = serializers.UUIDField(read_only=True)
    to_account_id = serializers.UUIDField(read_only=True, allow_null=True)
    category_id = serializers.UUIDField(read_only=True, allow_null=True)
    merchant_id = serializers.UUIDField(read_only=True, allow_null=True)

    account_name = serializers.CharField(source="account.name", read_only=True)
    account_type = serializers.CharField(source="account.type", read_only=True)
    account_color = serializers.CharField(source="account.color", read_only=True, allow_null=True)
    to_account_name = serializers.CharField(source="to_account.name", read_only=True, allow_null=True)
    category_name = serializers.CharField(source="category.name", read_only=True, allow_null=True)
    category_icon = serializers.CharField(source="category.icon", read_only=True, allow_null=True)
    category_color = serializers.CharField(source="category.color", read_only=True, allow_null=True)
    merchant_name = serializers.CharField(source="merchant.name", read_only=True, allow_null=True)
    state = serializers.CharField(read_only=True)

    class Meta:
        model = Transaction
        fields = [
            "id",
            "type",
            "amount",
            "account_id",
            "to_account_id",
            "category_id",
            "merchant_id",
            "note",
            "date",
            "status",
            "state",
            "is_deleted",
            "account_name",
            "account_type",
            "account_color",
            "to_account_name",
            "category_name",
            "category_icon",
            "category_color",
            "merchant_name",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class TransactionCreateSerializer(serializers.Serializer):
    """
    Create input.

    Cross-field rules (destination only on transfers, no self transfer,
    positive amount) are enforced by the lifecycle service so they carry
    their own error codes.
    """

    type = serializers.ChoiceField(choices=TransactionType.choices)
    amount = money_field()
    account_id = serializers.UUIDField()
    to_account_id = serializers.UUIDField(required=False, allow_null=True)
    category_id = serializers.UUIDField(required=False, allow_null=True)
    merchant_id = serializers.UUIDField(required=False, allow_null=True)
    note = serializers.CharField(max_length=500, required=False, allow_null=True, allow_blank=True)
    date = serializers.DateTimeField(required=False)
    status = serializers.ChoiceField(
        choices=TransactionStatus.choices,
        default=TransactionStatus.COMPLETED,
    )


class TransactionUpdateSerializer(serializers.Serializer):
    category_id = serializers.UUIDField(required=False, allow_null=True)
    merchant_id = serializers.UUIDField(required=False, allow_null=True)
    note = serializers.CharField(max_length=500, required=False, allow_null=True, allow_blank=True)
    date = serializers.DateTimeField(required=False)


class TransactionFilterSerializer(serializers.Serializer):
    """
    List query parameters.

    The ``from`` and ``to`` query parameters map onto date_from/date_to.
    """

    account_id = serializers.UUIDField(required=False)
    category_id = serializers.UUIDField(required=False)
    merchant_id = serializers.UUIDField(required=False)
    type = serializers.ChoiceField(choices=TransactionType.choices, required=False)
    status = serializers.ChoiceField(choices=TransactionStatus.choices, required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    limit = serializers.IntegerField(min_value=1, max_value=100, default=50)
    offset = serializers.IntegerField(min_value=0, default=0)

    @classmethod
    def from_query_params(cls, query_params) -> TransactionFilterSerializer:
        data = {key: value for key, value in query_params.items() if key not in ("from", "to")}
        if query_params.get("from"):
            data["date_from"] = query_params["from"]
        if query_params.get("to"):
            data["date_to"] = query_params["to"]
        return cls(data=data)


# =============================================================================
# Transaction Item Serializers
# =============================================================================


class TransactionItemSerializer(serializers.ModelSerializer):
    transaction_id = serializers.UUIDField(read_only=True)
    item_id = serializers.UUIDField(read_only=True)
    item_name = serializers.CharField(source="item.name", read_only=True)
    category_id = serializers.UUIDField(source="item.category_id", read_only=True, allow_null=True)
    category_name = serializers.CharField(source="item.category.name", read_only=True, allow_null=True)
    category_icon = serializers.CharField(source="item.category.icon", read_only=True, allow_null=True)
    category_color = serializers.CharField(source="item.category.color", read_only=True, allow_null=True)
    line_total = money_field(read_only=True)

    class Meta:
        model = TransactionItem
        fields = [
            "id",
            "transaction_id",
            "item_id",
            "item_name",
            "category_id",
            "category_name",
            "category_icon",
            "category_color",
            "amount",
            "quantity",
            "line_total",
            "remarks",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class TransactionItemCreateSerializer(serializers.Serializer):
    """
    Add a line item by item_id, or by item_name (matched or created).
    """

    item_id = serializers.UUIDField(required=False)
    item_name = serializers.CharField(max_length=255, required=False)
    amount = money_field(min_value=Decimal("0.01"))
    quantity = serializers.DecimalField(
        max_digits=12,
        decimal_places=3,
        min_value=Decimal("0.001"),
        default=Decimal("1"),
    )
    remarks = serializers.CharField(max_length=500, required=False, allow_null=True, allow_blank=True)

    def validate(self, attrs):
        if not attrs.get("item_id") and not attrs.get("item_name"):
            raise serializers.ValidationError("Either item_id or item_name is required")
        return attrs


class TransactionItemUpdateSerializer(serializers.Serializer):
    amount = money_field(min_value=Decimal("0.01"), required=False)
    quantity = serializers.DecimalField(
        max_digits=12,
        decimal_places=3,
        min_value=Decimal("0.001"),
        required=False,
    )
    remarks = serializers.CharField(max_length=500, required=False, allow_null=True, allow_blank=True)


# =============================================================================
# Debt Serializers
# =============================================================================


class DebtSerializer(serializers.ModelSerializer):
    transaction_id = serializers.UUIDField(read_only=True)
    is_settled = serializers.BooleanField(read_only=True)
    type = serializers.CharField(source="transaction.type", read_only=True)
    amount = money_field(source="transaction.amount", read_only=True)
    note = serializers.CharField(source="transaction.note", read_only=True, allow_null=True)
    date = serializers.DateTimeField(source="transaction.date", read_only=True)
    account_id = serializers.UUIDField(source="transaction.account_id", read_only=True)
    account_name = serializers.CharField(source="transaction.account.name", read_only=True)

    class Meta:
        model = Debt
        fields = [
            "id",
            "transaction_id",
            "person_name",
            "direction",
            "settled_at",
            "is_settled",
            "type",
            "amount",
            "note",
            "date",
            "account_id",
            "account_name",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class DebtCreateSerializer(serializers.Serializer):
    transaction_id = serializers.UUIDField()
    person_name = serializers.CharField(min_length=1, max_length=100)
    direction = serializers.ChoiceField(choices=DebtDirection.choices)


class DebtFilterSerializer(serializers.Serializer):
    settled = serializers.BooleanField(default=False)


# =============================================================================
# Analytics Serializers
# =============================================================================


class AnalyticsQuerySerializer(serializers.Serializer):
    period = serializers.ChoiceField(choices=AnalyticsPeriod.choices, default=AnalyticsPeriod.MONTH)
    account_id = serializers.UUIDField(required=False)


class AnalyticsSummarySerializer(serializers.Serializer):
    period = serializers.CharField()
    total_income = money_field()
    total_expenses = money_field()
    net_change = money_field()
    transaction_count = serializers.IntegerField()
    total_balance = money_field()


class CategoryBreakdownSerializer(serializers.Serializer):
    category_id = serializers.UUIDField(allow_null=True)
    category_name = serializers.CharField(allow_null=True)
    category_icon = serializers.CharField(allow_null=True)
    category_color = serializers.CharField(allow_null=True)
    total = money_field()
    transaction_count = serializers.IntegerField()
    percentage = serializers.IntegerField()


class AnalyticsByCategorySerializer(serializers.Serializer):
    period = serializers.CharField()
    total = money_field()
    categories = CategoryBreakdownSerializer(many=True)


class MerchantBreakdownSerializer(serializers.Serializer):
    merchant_id = serializers.UUIDField()
    merchant_name = serializers.CharField()
    total = money_field()
    transaction_count = serializers.IntegerField()


class AnalyticsByMerchantSerializer(serializers.Serializer):
    period = serializers.CharField()
    merchants = MerchantBreakdownSerializer(many=True)


class TrendBucketSerializer(serializers.Serializer):
    bucket = serializers.DateTimeField()
    expenses = money_field()
    income = money_field()
    net = money_field()


class AnalyticsTrendsSerializer(serializers.Serializer):
    period = serializers.CharField()
    trends = TrendBucketSerializer(many=True)
