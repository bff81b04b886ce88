"""
URL configuration for balanceflow.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (public)
    /api/schema/                   - OpenAPI schema (public)
    /api/docs/                     - Swagger UI (public)
    /api/                          - Finance endpoints (X-App-Token required)
        accounts/, categories/, merchants/, items/
        transactions/              - Transaction list/create
        transactions/{id}/         - Transaction detail/update/delete
        transactions/{id}/items/   - Line item list/add
        transaction-items/{id}/    - Line item update/delete
        debts/                     - Debt list/attach
        debts/{id}/                - Debt detail/delete
        debts/{id}/settle/         - Settle debt
        analytics/                 - summary, by-category, by-merchant, trends

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework.permissions import AllowAny

from core.views import health_check

# Schema and docs stay reachable without the app token
public_docs = {"authentication_classes": [], "permission_classes": [AllowAny]}

urlpatterns = [
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # Documentation
    path("api/schema/", SpectacularAPIView.as_view(**public_docs), name="schema"),
    path(
        "api/docs/",
        SpectacularSwaggerView.as_view(url_name="schema", **public_docs),
        name="docs",
    ),
    # Finance API
    path("api/", include("finance.urls")),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Balanceflow Admin"
admin.site.site_title = "Balanceflow"
admin.site.index_title = "Ledger administration"
