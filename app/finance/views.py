"""
ViewSets for the finance API.

This module provides REST API endpoints for the ledger:
- AccountViewSet, CategoryViewSet, MerchantViewSet, ItemViewSet: Reference data
- TransactionViewSet: Transaction lifecycle plus its line items
- TransactionItemViewSet: Line item edits and removal
- DebtViewSet: Attach, settle and delete debts
- AnalyticsViewSet: Read-only rollups

URL Structure:
    /api/accounts/                       GET, POST
    /api/accounts/{id}/                  GET, PATCH, DELETE
    /api/categories/ merchants/ items/   same shape
    /api/transactions/                   GET, POST
    /api/transactions/{id}/              GET, PATCH, DELETE
    /api/transactions/{id}/items/        GET, POST
    /api/transaction-items/{id}/         PATCH, DELETE
    /api/debts/                          GET, POST
    /api/debts/{id}/                     GET, DELETE
    /api/debts/{id}/settle/              PATCH, POST
    /api/analytics/{summary,by-category,by-merchant,trends}/  GET

Design Decisions:
    - Views parse input with serializers and delegate every write to a service
    - Services raise domain errors; core.exception_handler renders them
    - Deletes and settle answer 200 with a message body
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.db.models import Count, OuterRef, Subquery
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)
from rest_framework import status, viewsets
from rest_framework.response import Response

from finance.models import Account, Category, Item, Merchant, TransactionItem
from finance.serializers import (
    AccountCreateSerializer,
    AccountSerializer,
    AccountUpdateSerializer,
    AnalyticsByCategorySerializer,
    AnalyticsByMerchantSerializer,
    AnalyticsQuerySerializer,
    AnalyticsSummarySerializer,
    AnalyticsTrendsSerializer,
    CategorySerializer,
    DebtCreateSerializer,
    DebtFilterSerializer,
    DebtSerializer,
    ItemSerializer,
    MerchantSerializer,
    TransactionCreateSerializer,
    TransactionFilterSerializer,
    TransactionItemCreateSerializer,
    TransactionItemSerializer,
    TransactionItemUpdateSerializer,
    TransactionSerializer,
    TransactionUpdateSerializer,
)
from finance.services import (
    AccountService,
    AnalyticsService,
    CategoryService,
    CreateTransactionParams,
    DebtSettlementService,
    ItemAggregatorService,
    ItemService,
    MerchantService,
    TransactionLifecycleService,
)
from finance.services.reference_data import get_category, get_merchant

logger = logging.getLogger(__name__)

UUID_PATTERN = "[0-9a-fA-F-]{36}"


def message(text: str, **extra) -> Response:
    return Response({"message": text, **extra}, status=status.HTTP_200_OK)


# =============================================================================
# Accounts
# =============================================================================


@extend_schema_view(
    list=extend_schema(
        operation_id="list_accounts",
        summary="List active accounts",
        responses=AccountSerializer(many=True),
        tags=["Accounts"],
    ),
    create=extend_schema(
        operation_id="create_account",
        summary="Create account",
        request=AccountCreateSerializer,
        responses={201: AccountSerializer},
        tags=["Accounts"],
    ),
    retrieve=extend_schema(
        operation_id="get_account",
        summary="Get account",
        responses=AccountSerializer,
        tags=["Accounts"],
    ),
    partial_update=extend_schema(
        operation_id="update_account",
        summary="Update account",
        description="Name, type, currency and color only. A balance key is rejected.",
        request=AccountUpdateSerializer,
        responses=AccountSerializer,
        tags=["Accounts"],
    ),
    destroy=extend_schema(
        operation_id="delete_account",
        summary="Deactivate account",
        tags=["Accounts"],
    ),
)
class AccountViewSet(viewsets.ViewSet):
    """
    Account CRUD.

    The balance is set once at creation; afterwards only ledger
    operations change it. Delete deactivates the account.
    """

    lookup_value_regex = UUID_PATTERN

    def list(self, request):
        accounts = Account.objects.active().order_by("created_at")
        return Response(AccountSerializer(accounts, many=True).data)

    def create(self, request):
        serializer = AccountCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        account = AccountService.create(**serializer.validated_data)
        return Response(AccountSerializer(account).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        return Response(AccountSerializer(AccountService.get(pk)).data)

    def partial_update(self, request, pk=None):
        serializer = AccountUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        AccountService.ensure_mutable_fields(request.data)
        account = AccountService.update(pk, dict(serializer.validated_data))
        return Response(AccountSerializer(account).data)

    def destroy(self, request, pk=None):
        AccountService.deactivate(pk)
        return message("Account deleted")


# =============================================================================
# Categories
# =============================================================================


@extend_schema_view(
    list=extend_schema(operation_id="list_categories", summary="List categories", tags=["Categories"]),
    create=extend_schema(operation_id="create_category", summary="Create category", tags=["Categories"]),
    retrieve=extend_schema(operation_id="get_category", summary="Get category", tags=["Categories"]),
    partial_update=extend_schema(operation_id="update_category", summary="Update category", tags=["Categories"]),
    destroy=extend_schema(operation_id="delete_category", summary="Delete category", tags=["Categories"]),
)
class CategoryViewSet(viewsets.GenericViewSet):
    serializer_class = CategorySerializer
    lookup_value_regex = UUID_PATTERN
    queryset = Category.objects.all()

    def list(self, request):
        return Response(self.get_serializer(Category.objects.order_by("name"), many=True).data)

    def create(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        category = CategoryService.create(**serializer.validated_data)
        return Response(self.get_serializer(category).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        return Response(self.get_serializer(get_category(pk)).data)

    def partial_update(self, request, pk=None):
        serializer = self.get_serializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        category = CategoryService.update(pk, dict(serializer.validated_data))
        return Response(self.get_serializer(category).data)

    def destroy(self, request, pk=None):
        CategoryService.delete(pk)
        return message("Category deleted")


# =============================================================================
# Merchants
# =============================================================================


@extend_schema_view(
    list=extend_schema(
        operation_id="list_merchants",
        summary="List merchants",
        description="Most used first. regular=true keeps merchants at or above the regular threshold.",
        parameters=[
            OpenApiParameter(
                name="regular",
                type=OpenApiTypes.BOOL,
                location=OpenApiParameter.QUERY,
                required=False,
            ),
        ],
        tags=["Merchants"],
    ),
    create=extend_schema(operation_id="create_merchant", summary="Create merchant", tags=["Merchants"]),
    retrieve=extend_schema(operation_id="get_merchant", summary="Get merchant", tags=["Merchants"]),
    partial_update=extend_schema(operation_id="update_merchant", summary="Update merchant", tags=["Merchants"]),
    destroy=extend_schema(operation_id="delete_merchant", summary="Delete merchant", tags=["Merchants"]),
)
class MerchantViewSet(viewsets.GenericViewSet):
    serializer_class = MerchantSerializer
    lookup_value_regex = UUID_PATTERN
    queryset = Merchant.objects.all()

    def list(self, request):
        merchants = Merchant.objects.select_related("default_category").order_by(
            "-transaction_count", "name"
        )
        if request.query_params.get("regular", "").lower() in ("true", "1"):
            merchants = merchants.filter(
                transaction_count__gte=settings.MERCHANT_REGULAR_THRESHOLD
            )
        return Response(self.get_serializer(merchants, many=True).data)

    def create(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        merchant = MerchantService.create(**serializer.validated_data)
        return Response(self.get_serializer(merchant).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        return Response(self.get_serializer(get_merchant(pk)).data)

    def partial_update(self, request, pk=None):
        serializer = self.get_serializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        merchant = MerchantService.update(pk, dict(serializer.validated_data))
        return Response(self.get_serializer(merchant).data)

    def destroy(self, request, pk=None):
        MerchantService.delete(pk)
        return message("Merchant deleted")


# =============================================================================
# Items
# =============================================================================


@extend_schema_view(
    list=extend_schema(
        operation_id="list_items",
        summary="List items",
        description="Most used first, with the last price paid.",
        parameters=[
            OpenApiParameter(
                name="search",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                description="Case-insensitive name fragment",
                required=False,
            ),
        ],
        tags=["Items"],
    ),
    create=extend_schema(
        operation_id="create_item",
        summary="Get or create item",
        description="Returns 200 with the existing item when the name matches case-insensitively.",
        responses={200: ItemSerializer, 201: ItemSerializer},
        tags=["Items"],
    ),
    retrieve=extend_schema(operation_id="get_item", summary="Get item", tags=["Items"]),
    partial_update=extend_schema(operation_id="update_item", summary="Update item", tags=["Items"]),
    destroy=extend_schema(
        operation_id="delete_item",
        summary="Delete item",
        responses={200: OpenApiResponse(description="Deleted"), 409: OpenApiResponse(description="Item in use")},
        tags=["Items"],
    ),
)
class ItemViewSet(viewsets.GenericViewSet):
    serializer_class = ItemSerializer
    lookup_value_regex = UUID_PATTERN
    queryset = Item.objects.all()

    def list(self, request):
        last_price = (
            TransactionItem.objects.filter(item_id=OuterRef("pk"))
            .order_by("-created_at")
            .values("amount")[:1]
        )
        items = (
            Item.objects.select_related("category")
            .annotate(
                usage_count=Count("transaction_lines"),
                last_price=Subquery(last_price),
            )
            .order_by("-usage_count", "name")
        )
        search = request.query_params.get("search")
        if search:
            items = items.filter(name__icontains=search)
        return Response(self.get_serializer(items, many=True).data)

    def create(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item, created = ItemService.get_or_create(
            name=serializer.validated_data["name"],
            category_id=serializer.validated_data.get("category_id"),
        )
        return Response(
            self.get_serializer(item).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def retrieve(self, request, pk=None):
        return Response(self.get_serializer(ItemService.get(pk)).data)

    def partial_update(self, request, pk=None):
        serializer = self.get_serializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        item = ItemService.update(pk, dict(serializer.validated_data))
        return Response(self.get_serializer(item).data)

    def destroy(self, request, pk=None):
        ItemService.delete(pk)
        return message("Item deleted")


# =============================================================================
# Transactions
# =============================================================================


@extend_schema_view(
    list=extend_schema(
        operation_id="list_transactions",
        summary="List transactions",
        parameters=[
            OpenApiParameter(name="account_id", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="category_id", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="merchant_id", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="type", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="from", type=OpenApiTypes.DATE, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="to", type=OpenApiTypes.DATE, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="limit", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="offset", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY),
        ],
        responses=TransactionSerializer(many=True),
        tags=["Transactions"],
    ),
    create=extend_schema(
        operation_id="create_transaction",
        summary="Create transaction",
        description="A completed transaction applies its balance effect immediately; a pending one defers it.",
        request=TransactionCreateSerializer,
        responses={201: TransactionSerializer},
        tags=["Transactions"],
    ),
    retrieve=extend_schema(
        operation_id="get_transaction",
        summary="Get transaction",
        responses=TransactionSerializer,
        tags=["Transactions"],
    ),
    partial_update=extend_schema(
        operation_id="update_transaction",
        summary="Update transaction metadata",
        description="Category, merchant, note and date only.",
        request=TransactionUpdateSerializer,
        responses=TransactionSerializer,
        tags=["Transactions"],
    ),
    destroy=extend_schema(
        operation_id="delete_transaction",
        summary="Delete transaction",
        description="Soft delete; a completed transaction's balance effect is reversed.",
        tags=["Transactions"],
    ),
)
class TransactionViewSet(viewsets.ViewSet):
    """
    Transaction lifecycle endpoints.

    list:
        Live transactions, newest first, filtered and sliced.

    create:
        Validate, persist and (for completed) apply the balance effect.

    partial_update:
        Metadata edit. Amount, type, accounts and status are rejected.

    destroy:
        Soft delete with reversal when the effect was applied.

    items:
        GET lists line items; POST adds one and recomputes the amount.
    """

    def list(self, request):
        serializer = TransactionFilterSerializer.from_query_params(request.query_params)
        serializer.is_valid(raise_exception=True)
        filters = dict(serializer.validated_data)
        limit = filters.pop("limit")
        offset = filters.pop("offset")

        transactions = TransactionLifecycleService.query(**filters)[offset : offset + limit]
        return Response(TransactionSerializer(transactions, many=True).data)

    def create(self, request):
        serializer = TransactionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tx = TransactionLifecycleService.create(
            CreateTransactionParams(**serializer.validated_data)
        )
        tx = TransactionLifecycleService.query().get(id=tx.id)
        return Response(TransactionSerializer(tx).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        TransactionLifecycleService.get(pk)
        tx = TransactionLifecycleService.query().get(id=pk)
        return Response(TransactionSerializer(tx).data)

    def partial_update(self, request, pk=None):
        serializer = TransactionUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        TransactionLifecycleService.ensure_mutable_fields(request.data)
        TransactionLifecycleService.update(pk, dict(serializer.validated_data))
        tx = TransactionLifecycleService.query().get(id=pk)
        return Response(TransactionSerializer(tx).data)

    def destroy(self, request, pk=None):
        TransactionLifecycleService.delete(pk)
        return message("Transaction deleted")

    @extend_schema(
        operation_id="transaction_items",
        summary="List or add line items",
        request=TransactionItemCreateSerializer,
        responses={200: TransactionItemSerializer(many=True), 201: TransactionItemSerializer},
        tags=["Transaction Items"],
    )
    def items(self, request, pk=None):
        if request.method == "GET":
            lines = ItemAggregatorService.query(pk)
            return Response(TransactionItemSerializer(lines, many=True).data)

        serializer = TransactionItemCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        line = ItemAggregatorService.add_item(
            pk,
            item_id=data.get("item_id"),
            item_name=data.get("item_name"),
            amount=data["amount"],
            quantity=data["quantity"],
            remarks=data.get("remarks"),
        )
        line = ItemAggregatorService.query(pk).get(id=line.id)
        return Response(TransactionItemSerializer(line).data, status=status.HTTP_201_CREATED)


@extend_schema_view(
    partial_update=extend_schema(
        operation_id="update_transaction_item",
        summary="Update line item",
        request=TransactionItemUpdateSerializer,
        responses=TransactionItemSerializer,
        tags=["Transaction Items"],
    ),
    destroy=extend_schema(
        operation_id="delete_transaction_item",
        summary="Delete line item",
        tags=["Transaction Items"],
    ),
)
class TransactionItemViewSet(viewsets.ViewSet):
    """Edits and removals of single line items; both recompute the amount."""

    def partial_update(self, request, pk=None):
        serializer = TransactionItemUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        line = ItemAggregatorService.update_item(pk, dict(serializer.validated_data))
        line = ItemAggregatorService.query(line.transaction_id).get(id=line.id)
        return Response(TransactionItemSerializer(line).data)

    def destroy(self, request, pk=None):
        tx = ItemAggregatorService.delete_item(pk)
        return message(
            "Transaction item deleted",
            transaction_id=str(tx.id),
            transaction_amount=f"{tx.amount:.2f}",
        )


# =============================================================================
# Debts
# =============================================================================


@extend_schema_view(
    list=extend_schema(
        operation_id="list_debts",
        summary="List debts",
        parameters=[
            OpenApiParameter(
                name="settled",
                type=OpenApiTypes.BOOL,
                location=OpenApiParameter.QUERY,
                description="true for settled debts (default: active ones)",
            ),
        ],
        responses=DebtSerializer(many=True),
        tags=["Debts"],
    ),
    create=extend_schema(
        operation_id="attach_debt",
        summary="Attach debt to a pending transaction",
        request=DebtCreateSerializer,
        responses={201: DebtSerializer},
        tags=["Debts"],
    ),
    retrieve=extend_schema(
        operation_id="get_debt",
        summary="Get debt",
        responses=DebtSerializer,
        tags=["Debts"],
    ),
    destroy=extend_schema(
        operation_id="delete_debt",
        summary="Delete unsettled debt",
        description="Discards the linked pending transaction. Settled debts cannot be deleted.",
        tags=["Debts"],
    ),
)
class DebtViewSet(viewsets.ViewSet):
    """
    Debt endpoints.

    settle:
        Completes the linked transaction and applies its deferred effect.
        Exposed on both PATCH and POST.
    """

    def list(self, request):
        serializer = DebtFilterSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        debts = DebtSettlementService.query(settled=serializer.validated_data["settled"])
        return Response(DebtSerializer(debts, many=True).data)

    def create(self, request):
        serializer = DebtCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        debt = DebtSettlementService.attach(**serializer.validated_data)
        debt = DebtSettlementService.get(debt.id)
        return Response(DebtSerializer(debt).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        return Response(DebtSerializer(DebtSettlementService.get(pk)).data)

    def destroy(self, request, pk=None):
        DebtSettlementService.delete(pk)
        return message("Debt deleted")

    @extend_schema(
        operation_id="settle_debt",
        summary="Settle debt",
        request=None,
        responses={
            200: OpenApiResponse(description="Settled"),
            404: OpenApiResponse(description="Debt not found"),
            409: OpenApiResponse(description="Debt already settled"),
        },
        tags=["Debts"],
    )
    def settle(self, request, pk=None):
        debt = DebtSettlementService.settle(pk)
        debt = DebtSettlementService.get(debt.id)
        return message("Debt settled", debt=DebtSerializer(debt).data)


# =============================================================================
# Analytics
# =============================================================================


def _analytics_schema(operation_id: str, summary: str, response) -> dict:
    return {
        "operation_id": operation_id,
        "summary": summary,
        "parameters": [
            OpenApiParameter(name="period", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY,
                             enum=["day", "week", "month", "year"]),
            OpenApiParameter(name="account_id", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY),
        ],
        "responses": response,
        "tags": ["Analytics"],
    }


class AnalyticsViewSet(viewsets.ViewSet):
    """Read-only rollups over completed, live transactions."""

    def _query(self, request) -> dict:
        serializer = AnalyticsQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        return dict(serializer.validated_data)

    @extend_schema(**_analytics_schema("analytics_summary", "Income, expenses and balance", AnalyticsSummarySerializer))
    def summary(self, request):
        return Response(AnalyticsSummarySerializer(AnalyticsService.summary(**self._query(request))).data)

    @extend_schema(**_analytics_schema("analytics_by_category", "Expenses by category", AnalyticsByCategorySerializer))
    def by_category(self, request):
        return Response(AnalyticsByCategorySerializer(AnalyticsService.by_category(**self._query(request))).data)

    @extend_schema(**_analytics_schema("analytics_by_merchant", "Top merchants by expense", AnalyticsByMerchantSerializer))
    def by_merchant(self, request):
        return Response(AnalyticsByMerchantSerializer(AnalyticsService.by_merchant(**self._query(request))).data)

    @extend_schema(**_analytics_schema("analytics_trends", "Income and expenses over time", AnalyticsTrendsSerializer))
    def trends(self, request):
        return Response(AnalyticsTrendsSerializer(AnalyticsService.trends(**self._query(request))).data)
