"""Assemble the dashboard, analytics, report and profile views."""
from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date, datetime
from typing import Any, Callable, Hashable, Sequence, TypeVar

from expenser.domain.categories.schemas import Category
from expenser.domain.categories.services import describe_category
from expenser.domain.transactions.schemas import Transaction
from expenser.domain.users.schemas import Identity

from .analytics import (
    TransactionFilter,
    average_daily_spending,
    category_breakdown,
    compute_totals,
    filter_transactions,
    percentage,
    periodic_trend,
    resolve_time_range,
    top_spending_days,
    weekday_pattern,
)

logger = logging.getLogger(__name__)

RECENT_TRANSACTIONS = 5
DEFAULT_TIME_RANGE = "3months"

T = TypeVar("T")


class SummaryCache:
    """Bounded LRU of derived views.

    Keys start with the uid and the store version, so any mutation of a
    user's transactions makes their previous entries unreachable.
    """

    def __init__(self, max_entries: int = 256) -> None:
        self._max_entries = max_entries
        self._entries: OrderedDict[Hashable, Any] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get_or_build(self, key: Hashable, builder: Callable[[], T]) -> T:
        if key in self._entries:
            self._entries.move_to_end(key)
            self.hits += 1
            return self._entries[key]

        self.misses += 1
        value = builder()
        if self._max_entries > 0:
            self._entries[key] = value
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)
        return value

    def invalidate(self, uid: str) -> None:
        for key in [key for key in self._entries if isinstance(key, tuple) and key and key[0] == uid]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def with_category_display(transaction: Transaction, categories: Sequence[Category]) -> dict[str, Any]:
    display = describe_category(transaction.category, categories)
    return {
        **transaction.model_dump(by_alias=True),
        "categoryColor": display["color"],
        "categoryIcon": display["icon"],
    }


def default_report_range(today: date) -> tuple[date, date]:
    """First day of the current month through today."""
    return today.replace(day=1), today


def build_report_summary(transactions: Sequence[Transaction], categories: Sequence[Category]) -> dict[str, Any]:
    totals = compute_totals(transactions)
    return {
        "totalIncome": totals["income"],
        "totalExpenses": totals["expense"],
        "netAmount": totals["net"],
        "transactionCount": totals["count"],
        "categoryBreakdown": category_breakdown(transactions, categories),
    }


def build_dashboard(
    transactions: Sequence[Transaction],
    categories: Sequence[Category],
    today: date,
) -> dict[str, Any]:
    totals = compute_totals(transactions)
    balance = totals["net"]

    recent = sorted(transactions, key=lambda t: t.created_at, reverse=True)[:RECENT_TRANSACTIONS]
    monthly = [
        {
            "month": row["start"].strftime("%b"),
            "period": row["period"],
            "income": row["income"],
            "expenses": row["expense"],
        }
        for row in periodic_trend(transactions, "month")
    ]
    distribution = [
        {"name": row["name"], "value": row["total"], "color": row["color"]}
        for row in category_breakdown(transactions, categories)
    ]
    this_month = sum(1 for t in transactions if t.date.year == today.year and t.date.month == today.month)

    return {
        "totals": {
            "balance": balance,
            "income": totals["income"],
            "expenses": totals["expense"],
            "balancePct": percentage(balance, totals["income"]),
        },
        "recentTransactions": [with_category_display(t, categories) for t in recent],
        "monthlyOverview": monthly,
        "categoryDistribution": distribution,
        "thisMonthCount": this_month,
    }


def build_analytics(
    transactions: Sequence[Transaction],
    categories: Sequence[Category],
    today: date,
    *,
    time_range: str = DEFAULT_TIME_RANGE,
    category: str = "all",
) -> dict[str, Any]:
    start = resolve_time_range(time_range, today)
    selected = () if category == "all" else (category,)
    filtered = filter_transactions(transactions, TransactionFilter(start=start, categories=selected))

    totals = compute_totals(filtered)
    breakdown = category_breakdown(filtered, categories)
    top_category = breakdown[0] if breakdown else None

    return {
        "timeRange": time_range,
        "category": category,
        "start": start,
        "totals": totals,
        "netBalance": totals["net"],
        "averageDailySpending": average_daily_spending(filtered, today),
        "expenseCount": sum(1 for t in filtered if t.type == "expense"),
        "topCategory": (
            {"name": top_category["name"], "total": top_category["total"]} if top_category else None
        ),
        "trend": periodic_trend(filtered, "month"),
        "categoryBreakdown": breakdown,
        "weekdayPattern": weekday_pattern(filtered),
        "topSpendingDays": top_spending_days(filtered),
    }


def build_profile_stats(identity: Identity, transactions: Sequence[Transaction], today: date) -> dict[str, Any]:
    totals = compute_totals(transactions)
    return {
        "totalTransactions": totals["count"],
        "totalIncome": totals["income"],
        "totalExpenses": totals["expense"],
        "accountAgeDays": account_age_days(identity.created_at, today),
    }


def account_age_days(created_at: str, today: date) -> int:
    if not created_at:
        return 0
    try:
        created = datetime.fromisoformat(created_at.replace("Z", "+00:00")).date()
    except ValueError:
        logger.debug("Unparseable account creation time %r", created_at)
        return 0
    return max(0, (today - created).days)


__all__ = [
    "DEFAULT_TIME_RANGE",
    "SummaryCache",
    "account_age_days",
    "build_analytics",
    "build_dashboard",
    "build_profile_stats",
    "build_report_summary",
    "default_report_range",
    "with_category_display",
]
