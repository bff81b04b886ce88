"""
Read-only analytics over completed, live transactions.

Nothing here writes. Every query counts only rows whose balance effect is
applied (status=completed, is_deleted=False) inside a period window that
ends now:

    day    start of today
    week   now - 7 days
    month  first day of the current month
    year   first day of the current year

Usage:
    from finance.services import AnalyticsService

    summary = AnalyticsService.summary(period="month")
    summary["net_change"]
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from django.db.models import Count, DecimalField, Q, Sum, Value
from django.db.models.functions import Coalesce, TruncDay, TruncHour, TruncMonth
from django.utils import timezone

from core.services import BaseService

from finance.models import Account, Transaction
from finance.state_machines import AnalyticsPeriod, TransactionStatus, TransactionType

ZERO = Decimal("0.00")
TOP_MERCHANTS = 10

_MONEY = DecimalField(max_digits=14, decimal_places=2)

TRUNC_BY_PERIOD = {
    AnalyticsPeriod.DAY: TruncHour,
    AnalyticsPeriod.WEEK: TruncDay,
    AnalyticsPeriod.MONTH: TruncDay,
    AnalyticsPeriod.YEAR: TruncMonth,
}


def _money_sum(expression: str = "amount", **filters: Any) -> Coalesce:
    condition = Q(**filters) if filters else None
    return Coalesce(Sum(expression, filter=condition), Value(ZERO), output_field=_MONEY)


def percentage(part: Decimal, whole: Decimal) -> int:
    """Integer percentage rounded half-up; 0 when whole is 0."""
    if not whole:
        return 0
    return int((Decimal(part) * 100 / Decimal(whole)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class AnalyticsService(BaseService):
    """Aggregations for the dashboard. Never mutates ledger state."""

    @staticmethod
    def window(period: str, now: datetime | None = None) -> tuple[datetime, datetime]:
        """
        [start, end] of a period, in the current timezone.

        Raises:
            ValueError: Unknown period
        """
        period = AnalyticsPeriod(period)
        now = timezone.localtime(now or timezone.now())
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)

        if period == AnalyticsPeriod.DAY:
            start = today
        elif period == AnalyticsPeriod.WEEK:
            start = now - timedelta(days=7)
        elif period == AnalyticsPeriod.MONTH:
            start = today.replace(day=1)
        else:
            start = today.replace(month=1, day=1)
        return start, now

    @classmethod
    def _base(cls, period: str, account_id: uuid.UUID | None):
        start, end = cls.window(period)
        queryset = Transaction.objects.filter(
            status=TransactionStatus.COMPLETED,
            date__gte=start,
            date__lte=end,
        )
        if account_id:
            queryset = queryset.filter(account_id=account_id)
        return queryset

    @classmethod
    def summary(cls, period: str = AnalyticsPeriod.MONTH, account_id: uuid.UUID | None = None) -> dict[str, Any]:
        totals = cls._base(period, account_id).aggregate(
            total_income=_money_sum(type=TransactionType.INCOME),
            total_expenses=_money_sum(type=TransactionType.EXPENSE),
            transaction_count=Count("id", filter=~Q(type=TransactionType.TRANSFER)),
        )

        accounts = Account.objects.active()
        if account_id:
            accounts = Account.objects.filter(id=account_id)
        total_balance = accounts.aggregate(
            total=Coalesce(Sum("balance"), Value(ZERO), output_field=_MONEY)
        )["total"]

        return {
            "period": period,
            "total_income": totals["total_income"],
            "total_expenses": totals["total_expenses"],
            "net_change": totals["total_income"] - totals["total_expenses"],
            "transaction_count": totals["transaction_count"],
            "total_balance": total_balance,
        }

    @classmethod
    def by_category(cls, period: str = AnalyticsPeriod.MONTH, account_id: uuid.UUID | None = None) -> dict[str, Any]:
        """Expense totals per category, largest first, with percentages."""
        rows = list(
            cls._base(period, account_id)
            .filter(type=TransactionType.EXPENSE)
            .values("category_id", "category__name", "category__icon", "category__color")
            .annotate(total=_money_sum(), transaction_count=Count("id"))
            .order_by("-total")
        )
        grand_total = sum((row["total"] for row in rows), ZERO)

        categories = [
            {
                "category_id": row["category_id"],
                "category_name": row["category__name"],
                "category_icon": row["category__icon"],
                "category_color": row["category__color"],
                "total": row["total"],
                "transaction_count": row["transaction_count"],
                "percentage": percentage(row["total"], grand_total),
            }
            for row in rows
        ]
        return {"period": period, "total": grand_total, "categories": categories}

    @classmethod
    def by_merchant(cls, period: str = AnalyticsPeriod.MONTH, account_id: uuid.UUID | None = None) -> dict[str, Any]:
        """Top merchants by expense total."""
        rows = (
            cls._base(period, account_id)
            .filter(type=TransactionType.EXPENSE, merchant__isnull=False)
            .values("merchant_id", "merchant__name")
            .annotate(total=_money_sum(), transaction_count=Count("id"))
            .order_by("-total", "merchant__name")[:TOP_MERCHANTS]
        )
        merchants = [
            {
                "merchant_id": row["merchant_id"],
                "merchant_name": row["merchant__name"],
                "total": row["total"],
                "transaction_count": row["transaction_count"],
            }
            for row in rows
        ]
        return {"period": period, "merchants": merchants}

    @classmethod
    def trends(cls, period: str = AnalyticsPeriod.MONTH, account_id: uuid.UUID | None = None) -> dict[str, Any]:
        """Income and expenses per bucket: hour, day or month by period."""
        trunc = TRUNC_BY_PERIOD[AnalyticsPeriod(period)]
        rows = (
            cls._base(period, account_id)
            .exclude(type=TransactionType.TRANSFER)
            .annotate(bucket=trunc("date"))
            .values("bucket")
            .annotate(
                expenses=_money_sum(type=TransactionType.EXPENSE),
                income=_money_sum(type=TransactionType.INCOME),
            )
            .order_by("bucket")
        )
        buckets = [
            {
                "bucket": row["bucket"],
                "expenses": row["expenses"],
                "income": row["income"],
                "net": row["income"] - row["expenses"],
            }
            for row in rows
        ]
        return {"period": period, "trends": buckets}
