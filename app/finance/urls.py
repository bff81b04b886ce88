"""
URL configuration for the finance API.

URL Structure:
    Reference data (router):
        /accounts/, /categories/, /merchants/, /items/   GET, POST
        /<resource>/{id}/                               GET, PATCH, DELETE

    Transactions:
        /transactions/                  GET, POST
        /transactions/{id}/             GET, PATCH, DELETE
        /transactions/{id}/items/       GET, POST
        /transaction-items/{id}/        PATCH, DELETE

    Debts:
        /debts/                         GET, POST
        /debts/{id}/                    GET, DELETE
        /debts/{id}/settle/             PATCH, POST

    Analytics:
        /analytics/summary/             GET
        /analytics/by-category/         GET
        /analytics/by-merchant/         GET
        /analytics/trends/              GET

All URLs are prefixed with /api/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from finance.views import (
    AccountViewSet,
    AnalyticsViewSet,
    CategoryViewSet,
    DebtViewSet,
    ItemViewSet,
    MerchantViewSet,
    TransactionItemViewSet,
    TransactionViewSet,
)

router = DefaultRouter()
router.register(r"accounts", AccountViewSet, basename="account")
router.register(r"categories", CategoryViewSet, basename="category")
router.register(r"merchants", MerchantViewSet, basename="merchant")
router.register(r"items", ItemViewSet, basename="item")

app_name = "finance"

urlpatterns = [
    path("", include(router.urls)),
    # Transactions
    path(
        "transactions/",
        TransactionViewSet.as_view({"get": "list", "post": "create"}),
        name="transaction-list",
    ),
    path(
        "transactions/<uuid:pk>/",
        TransactionViewSet.as_view(
            {"get": "retrieve", "patch": "partial_update", "delete": "destroy"}
        ),
        name="transaction-detail",
    ),
    path(
        "transactions/<uuid:pk>/items/",
        TransactionViewSet.as_view({"get": "items", "post": "items"}),
        name="transaction-items",
    ),
    path(
        "transaction-items/<uuid:pk>/",
        TransactionItemViewSet.as_view({"patch": "partial_update", "delete": "destroy"}),
        name="transaction-item-detail",
    ),
    # Debts
    path(
        "debts/",
        DebtViewSet.as_view({"get": "list", "post": "create"}),
        name="debt-list",
    ),
    path(
        "debts/<uuid:pk>/",
        DebtViewSet.as_view({"get": "retrieve", "delete": "destroy"}),
        name="debt-detail",
    ),
    path(
        "debts/<uuid:pk>/settle/",
        DebtViewSet.as_view({"patch": "settle", "post": "settle"}),
        name="debt-settle",
    ),
    # Analytics
    path(
        "analytics/summary/",
        AnalyticsViewSet.as_view({"get": "summary"}),
        name="analytics-summary",
    ),
    path(
        "analytics/by-category/",
        AnalyticsViewSet.as_view({"get": "by_category"}),
        name="analytics-by-category",
    ),
    path(
        "analytics/by-merchant/",
        AnalyticsViewSet.as_view({"get": "by_merchant"}),
        name="analytics-by-merchant",
    ),
    path(
        "analytics/trends/",
        AnalyticsViewSet.as_view({"get": "trends"}),
        name="analytics-trends",
    ),
]
