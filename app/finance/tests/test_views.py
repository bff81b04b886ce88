"""
Tests for the finance API views.

Tests cover:
- Token authentication on every endpoint
- Account CRUD and the read-only balance
- Transaction create, edit, delete and filters
- Line items, debts and analytics endpoints
- Error envelope and status codes
"""

import uuid
from decimal import Decimal

import pytest
from rest_framework import status

from finance.models import Account, Debt, Item, Merchant
from finance.services import (
    CreateTransactionParams,
    DebtSettlementService,
    TransactionLifecycleService,
)
from finance.state_machines import DebtDirection, TransactionStatus, TransactionType
from finance.tests.factories import CategoryFactory, MerchantFactory, TransactionItemFactory


def create_transaction(account, amount="200.00", **kwargs):
    kwargs.setdefault("type", TransactionType.EXPENSE)
    return TransactionLifecycleService.create(
        CreateTransactionParams(amount=Decimal(amount), account_id=account.id, **kwargs)
    )


# =============================================================================
# Authentication
# =============================================================================


@pytest.mark.django_db
class TestAuthentication:
    def test_missing_token_rejected(self, anon_client):
        response = anon_client.get("/api/accounts/")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data["error_code"] == "NOT_AUTHENTICATED"

    def test_wrong_token_rejected(self, anon_client):
        anon_client.credentials(HTTP_X_APP_TOKEN="not-the-secret")

        response = anon_client.get("/api/transactions/")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data["error_code"] == "AUTHENTICATION_FAILED"

    def test_valid_token_accepted(self, api_client):
        response = api_client.get("/api/accounts/")

        assert response.status_code == status.HTTP_200_OK


# =============================================================================
# Accounts
# =============================================================================


@pytest.mark.django_db
class TestAccountEndpoints:
    def test_create_account(self, api_client):
        response = api_client.post(
            "/api/accounts/",
            {"name": "Wallet", "type": "cash", "balance": "1000.00"},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["balance"] == "1000.00"
        assert response.data["is_active"] is True

    def test_invalid_type_rejected(self, api_client):
        response = api_client.post(
            "/api/accounts/",
            {"name": "Wallet", "type": "crypto"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "VALIDATION_ERROR"
        assert "type" in response.data["details"]

    def test_balance_is_not_editable(self, api_client, wallet, balance_of):
        """
        PATCH with a balance key is rejected outright.

        Why it matters: balances must only ever reflect ledger operations,
        never a direct write.
        """
        response = api_client.patch(
            f"/api/accounts/{wallet.id}/",
            {"balance": "5.00", "name": "Pocket"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "IMMUTABLE_FIELD"
        assert balance_of(wallet) == Decimal("1000.00")
        assert Account.objects.get(pk=wallet.pk).name == "Wallet"

    def test_patch_with_list_body_rejected(self, api_client, wallet):
        response = api_client.patch(
            f"/api/accounts/{wallet.id}/", [{"balance": "5.00"}], format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_rename(self, api_client, wallet):
        response = api_client.patch(
            f"/api/accounts/{wallet.id}/", {"name": "Pocket"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["name"] == "Pocket"

    def test_delete_deactivates(self, api_client, wallet):
        response = api_client.delete(f"/api/accounts/{wallet.id}/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"message": "Account deleted"}
        assert Account.objects.get(pk=wallet.pk).is_active is False
        listed = api_client.get("/api/accounts/").data
        assert [row["id"] for row in listed] == []

    def test_missing_account_404(self, api_client, db):
        response = api_client.get(f"/api/accounts/{uuid.uuid4()}/")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "ACCOUNT_NOT_FOUND"

    def test_malformed_id_400(self, api_client, db):
        response = api_client.get(f"/api/accounts/{'-' * 36}/")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "VALIDATION_ERROR"


# =============================================================================
# Reference data
# =============================================================================


@pytest.mark.django_db
class TestReferenceEndpoints:
    def test_duplicate_category_conflict(self, api_client, category):
        response = api_client.post(
            "/api/categories/", {"name": "GROCERIES"}, format="json"
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "DUPLICATE_NAME"

    def test_regular_merchants(self, api_client, settings):
        settings.MERCHANT_REGULAR_THRESHOLD = 3
        MerchantFactory(name="Daily Bakery", transaction_count=5)
        MerchantFactory(name="Once Only", transaction_count=1)

        response = api_client.get("/api/merchants/", {"regular": "true"})

        assert [row["name"] for row in response.data] == ["Daily Bakery"]

    def test_item_get_or_create(self, api_client, db):
        first = api_client.post("/api/items/", {"name": "Eggs"}, format="json")
        second = api_client.post("/api/items/", {"name": "eggs"}, format="json")

        assert first.status_code == status.HTTP_201_CREATED
        assert second.status_code == status.HTTP_200_OK
        assert second.data["id"] == first.data["id"]

    def test_item_list_usage_and_last_price(self, api_client, item):
        TransactionItemFactory(item=item, amount=Decimal("12.50"))

        response = api_client.get("/api/items/", {"search": "mil"})

        assert len(response.data) == 1
        assert response.data[0]["usage_count"] == 1
        assert response.data[0]["last_price"] == "12.50"

    def test_item_in_use_conflict(self, api_client, item):
        TransactionItemFactory(item=item)

        response = api_client.delete(f"/api/items/{item.id}/")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "ITEM_IN_USE"


# =============================================================================
# Transactions
# =============================================================================


@pytest.mark.django_db
class TestTransactionEndpoints:
    def test_create_expense(self, api_client, wallet, balance_of):
        response = api_client.post(
            "/api/transactions/",
            {"type": "expense", "amount": "200.00", "account_id": str(wallet.id)},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["amount"] == "200.00"
        assert response.data["status"] == "completed"
        assert response.data["account_name"] == "Wallet"
        assert balance_of(wallet) == Decimal("800.00")

    def test_zero_amount_rejected(self, api_client, wallet):
        response = api_client.post(
            "/api/transactions/",
            {"type": "expense", "amount": "0", "account_id": str(wallet.id)},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_TRANSACTION_SHAPE"

    def test_self_transfer_rejected(self, api_client, wallet):
        response = api_client.post(
            "/api/transactions/",
            {
                "type": "transfer",
                "amount": "10.00",
                "account_id": str(wallet.id),
                "to_account_id": str(wallet.id),
            },
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "SELF_TRANSFER"

    def test_missing_account_404(self, api_client, db):
        response = api_client.post(
            "/api/transactions/",
            {"type": "expense", "amount": "5.00", "account_id": str(uuid.uuid4())},
            format="json",
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "ACCOUNT_NOT_FOUND"

    def test_patch_with_list_body_rejected(self, api_client, wallet):
        tx = create_transaction(wallet)

        response = api_client.patch(
            f"/api/transactions/{tx.id}/", [{"note": "x"}], format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "VALIDATION_ERROR"

    def test_patch_amount_rejected(self, api_client, wallet, balance_of):
        tx = create_transaction(wallet)

        response = api_client.patch(
            f"/api/transactions/{tx.id}/", {"amount": "1.00"}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "IMMUTABLE_FIELD"
        assert balance_of(wallet) == Decimal("800.00")

    def test_patch_note(self, api_client, wallet):
        tx = create_transaction(wallet)

        response = api_client.patch(
            f"/api/transactions/{tx.id}/", {"note": "rent"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["note"] == "rent"

    def test_delete_then_get_404(self, api_client, wallet, balance_of):
        tx = create_transaction(wallet)

        deleted = api_client.delete(f"/api/transactions/{tx.id}/")
        fetched = api_client.get(f"/api/transactions/{tx.id}/")

        assert deleted.data == {"message": "Transaction deleted"}
        assert fetched.status_code == status.HTTP_404_NOT_FOUND
        assert fetched.data["error_code"] == "TRANSACTION_NOT_FOUND"
        assert balance_of(wallet) == Decimal("1000.00")

    def test_list_filters_and_limit(self, api_client, wallet, savings):
        food = CategoryFactory(name="Food")
        create_transaction(wallet, "10.00", category_id=food.id)
        create_transaction(wallet, "20.00")
        create_transaction(savings, "30.00", type=TransactionType.INCOME)

        by_category = api_client.get("/api/transactions/", {"category_id": str(food.id)})
        by_type = api_client.get("/api/transactions/", {"type": "income"})
        limited = api_client.get("/api/transactions/", {"limit": 2})

        assert [row["amount"] for row in by_category.data] == ["10.00"]
        assert [row["amount"] for row in by_type.data] == ["30.00"]
        assert len(limited.data) == 2

    def test_limit_out_of_range(self, api_client, db):
        response = api_client.get("/api/transactions/", {"limit": 500})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "VALIDATION_ERROR"


# =============================================================================
# Line items
# =============================================================================


@pytest.mark.django_db
class TestTransactionItemEndpoints:
    def test_add_by_name_recomputes_amount(self, api_client, wallet):
        tx = create_transaction(wallet, status=TransactionStatus.PENDING)

        response = api_client.post(
            f"/api/transactions/{tx.id}/items/",
            {"item_name": "Bread", "amount": "30.00", "quantity": "2"},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["item_name"] == "Bread"
        assert response.data["line_total"] == "60.00"
        detail = api_client.get(f"/api/transactions/{tx.id}/")
        assert detail.data["amount"] == "60.00"

    def test_add_requires_item(self, api_client, wallet):
        tx = create_transaction(wallet, status=TransactionStatus.PENDING)

        response = api_client.post(
            f"/api/transactions/{tx.id}/items/", {"amount": "30.00"}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_update_and_delete_line(self, api_client, wallet, item):
        tx = create_transaction(wallet, status=TransactionStatus.PENDING)
        added = api_client.post(
            f"/api/transactions/{tx.id}/items/",
            {"item_id": str(item.id), "amount": "10.00"},
            format="json",
        )
        line_id = added.data["id"]

        updated = api_client.patch(
            f"/api/transaction-items/{line_id}/", {"quantity": "3"}, format="json"
        )
        deleted = api_client.delete(f"/api/transaction-items/{line_id}/")

        assert updated.data["line_total"] == "30.00"
        assert deleted.data["message"] == "Transaction item deleted"
        assert deleted.data["transaction_amount"] == "0.00"

    def test_add_by_name_to_missing_transaction_leaves_no_item(self, api_client, db):
        before = Item.objects.count()

        response = api_client.post(
            f"/api/transactions/{uuid.uuid4()}/items/",
            {"item_name": "Ghost", "amount": "5.00"},
            format="json",
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert Item.objects.count() == before

    def test_add_by_name_refused_on_completed_leaves_no_item(self, api_client, wallet, settings):
        settings.LEDGER_ITEM_RECOMPUTE_POLICY = "forbid_completed"
        tx = create_transaction(wallet)
        before = Item.objects.count()

        response = api_client.post(
            f"/api/transactions/{tx.id}/items/",
            {"item_name": "Ghost", "amount": "5.00"},
            format="json",
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "TRANSACTION_COMPLETED"
        assert Item.objects.count() == before

    def test_fractional_lines_sum_exactly(self, api_client, wallet):
        tx = create_transaction(wallet, status=TransactionStatus.PENDING)

        for _ in range(2):
            api_client.post(
                f"/api/transactions/{tx.id}/items/",
                {"item_name": "Stamp", "amount": "0.01", "quantity": "0.5"},
                format="json",
            )

        detail = api_client.get(f"/api/transactions/{tx.id}/")
        assert detail.data["amount"] == "0.01"

    def test_list_items_of_missing_transaction(self, api_client, db):
        response = api_client.get(f"/api/transactions/{uuid.uuid4()}/items/")

        assert response.status_code == status.HTTP_404_NOT_FOUND


# =============================================================================
# Debts
# =============================================================================


@pytest.mark.django_db
class TestDebtEndpoints:
    @pytest.fixture
    def pending(self, wallet):
        return create_transaction(wallet, "1.00", status=TransactionStatus.PENDING)

    def test_attach_and_settle(self, api_client, pending, wallet, balance_of):
        attached = api_client.post(
            "/api/debts/",
            {"transaction_id": str(pending.id), "person_name": "Asha", "direction": "i_owe"},
            format="json",
        )
        settled = api_client.post(f"/api/debts/{attached.data['id']}/settle/")

        assert attached.status_code == status.HTTP_201_CREATED
        assert attached.data["is_settled"] is False
        assert settled.status_code == status.HTTP_200_OK
        assert settled.data["message"] == "Debt settled"
        assert settled.data["debt"]["is_settled"] is True
        assert balance_of(wallet) == Decimal("999.00")

    def test_settle_with_patch(self, api_client, pending):
        debt = DebtSettlementService.attach(pending.id, "Asha", DebtDirection.I_OWE)

        response = api_client.patch(f"/api/debts/{debt.id}/settle/")

        assert response.status_code == status.HTTP_200_OK

    def test_settle_twice_conflict(self, api_client, pending, wallet, balance_of):
        debt = DebtSettlementService.attach(pending.id, "Asha", DebtDirection.I_OWE)
        api_client.post(f"/api/debts/{debt.id}/settle/")

        response = api_client.post(f"/api/debts/{debt.id}/settle/")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "DEBT_ALREADY_SETTLED"
        assert balance_of(wallet) == Decimal("999.00")

    def test_attach_to_completed_conflict(self, api_client, wallet):
        tx = create_transaction(wallet)

        response = api_client.post(
            "/api/debts/",
            {"transaction_id": str(tx.id), "person_name": "Asha", "direction": "i_owe"},
            format="json",
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "TRANSACTION_NOT_PENDING"

    def test_delete_settled_conflict(self, api_client, pending):
        debt = DebtSettlementService.attach(pending.id, "Asha", DebtDirection.I_OWE)
        DebtSettlementService.settle(debt.id)

        response = api_client.delete(f"/api/debts/{debt.id}/")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert Debt.objects.filter(pk=debt.pk).exists()

    def test_list_defaults_to_active(self, api_client, pending):
        debt = DebtSettlementService.attach(pending.id, "Asha", DebtDirection.I_OWE)

        active = api_client.get("/api/debts/")
        settled = api_client.get("/api/debts/", {"settled": "true"})

        assert [row["id"] for row in active.data] == [str(debt.id)]
        assert settled.data == []


# =============================================================================
# Analytics
# =============================================================================


@pytest.mark.django_db
class TestAnalyticsEndpoints:
    def test_summary(self, api_client, wallet):
        create_transaction(wallet, "200.00")
        create_transaction(wallet, "50.00", type=TransactionType.INCOME)

        response = api_client.get("/api/analytics/summary/", {"period": "day"})

        assert response.status_code == status.HTTP_200_OK
        assert response.data["total_expenses"] == "200.00"
        assert response.data["total_income"] == "50.00"
        assert response.data["net_change"] == "-150.00"
        assert response.data["total_balance"] == "850.00"

    def test_unknown_period_rejected(self, api_client, db):
        response = api_client.get("/api/analytics/summary/", {"period": "decade"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_by_merchant(self, api_client, wallet, merchant):
        create_transaction(wallet, "20.00", merchant_id=merchant.id)

        response = api_client.get("/api/analytics/by-merchant/", {"period": "day"})

        assert response.data["merchants"][0]["merchant_name"] == "Corner Store"
        assert Merchant.objects.get(pk=merchant.pk).transaction_count == 1

    def test_trends(self, api_client, wallet):
        create_transaction(wallet, "20.00")

        response = api_client.get("/api/analytics/trends/", {"period": "month"})

        assert response.data["trends"][0]["expenses"] == "20.00"
