"""
Finance admin configuration.

Balances, transaction status and applied amounts are read-only here: they
change only through the ledger services, never through admin edits.
"""

from django.contrib import admin

from finance.models import (
    Account,
    Category,
    Debt,
    Item,
    Merchant,
    Transaction,
    TransactionItem,
)


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ["name", "type", "balance", "currency", "is_active", "created_at"]
    list_filter = ["type", "is_active", "currency"]
    search_fields = ["id", "name"]
    readonly_fields = ["id", "balance", "created_at", "updated_at"]
    ordering = ["created_at"]


class TransactionItemInline(admin.TabularInline):
    model = TransactionItem
    extra = 0
    fields = ["item", "amount", "quantity", "remarks"]
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """
    Read-mostly view of transactions.

    Only note and date may be edited; everything that affects balances is
    read-only, and deletion goes through the API so effects are reversed.
    """

    list_display = [
        "id",
        "type",
        "amount",
        "account",
        "to_account",
        "status",
        "is_deleted",
        "date",
    ]
    list_filter = ["type", "status", "is_deleted"]
    search_fields = ["id", "note", "account__name", "merchant__name"]
    readonly_fields = [
        "id",
        "type",
        "amount",
        "applied_amount",
        "account",
        "to_account",
        "status",
        "is_deleted",
        "deleted_at",
        "created_at",
        "updated_at",
    ]
    ordering = ["-date"]
    inlines = [TransactionItemInline]

    fieldsets = (
        (None, {"fields": ("id", "type", "amount", "applied_amount", "status")}),
        ("Accounts", {"fields": ("account", "to_account")}),
        ("Labels", {"fields": ("category", "merchant", "note", "date")}),
        (
            "Timestamps",
            {
                "fields": ("is_deleted", "deleted_at", "created_at", "updated_at"),
                "classes": ("collapse",),
            },
        ),
    )

    def get_queryset(self, request):
        return Transaction.all_objects.select_related("account", "to_account")

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Debt)
class DebtAdmin(admin.ModelAdmin):
    list_display = ["person_name", "direction", "transaction", "settled_at", "created_at"]
    list_filter = ["direction", "settled_at"]
    search_fields = ["id", "person_name"]
    readonly_fields = ["id", "transaction", "settled_at", "created_at", "updated_at"]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ["name", "type", "icon", "color"]
    list_filter = ["type"]
    search_fields = ["name"]


@admin.register(Merchant)
class MerchantAdmin(admin.ModelAdmin):
    list_display = ["name", "default_category", "transaction_count"]
    search_fields = ["name"]
    readonly_fields = ["transaction_count"]


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ["name", "category", "created_at"]
    search_fields = ["name"]
