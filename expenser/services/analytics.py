"""Pure aggregation helpers over a list of transactions.

Nothing here touches storage: every function takes the transactions (and
categories) it needs and returns fresh values. Empty input gives zero
totals and empty lists, and every ratio with an empty denominator is 0.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Iterable, Literal, Sequence

from expenser.domain.categories.schemas import Category
from expenser.domain.transactions.schemas import Transaction

ZERO = Decimal("0")
TOP_SPENDING_DAYS = 5
WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

TimeRange = Literal["1month", "3months", "6months", "1year", "all"]
TIME_RANGE_MONTHS: dict[str, int | None] = {
    "1month": 1,
    "3months": 3,
    "6months": 6,
    "1year": 12,
    "all": None,
}

Period = Literal["month", "day"]


@dataclass(frozen=True, slots=True)
class TransactionFilter:
    """Date range, category and kind filter. Hashable so it can key a cache."""

    start: date | None = None
    end: date | None = None
    categories: tuple[str, ...] = ()
    include_income: bool = True
    include_expenses: bool = True
    search: str = ""

    def matches(self, transaction: Transaction) -> bool:
        if self.start is not None and transaction.date < self.start:
            return False
        if self.end is not None and transaction.date > self.end:
            return False
        if self.categories and transaction.category not in self.categories:
            return False
        if transaction.type == "income" and not self.include_income:
            return False
        if transaction.type == "expense" and not self.include_expenses:
            return False
        if self.search:
            needle = self.search.lower()
            if needle not in transaction.description.lower() and needle not in transaction.category.lower():
                return False
        return True


def _shift_months(value: date, months: int) -> date:
    month_index = value.month - 1 - months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    # clamp to the last day of the target month
    next_month = date(year + (month == 12), month % 12 + 1, 1)
    last_day = (next_month - timedelta(days=1)).day
    return date(year, month, min(value.day, last_day))


def resolve_time_range(time_range: str, today: date) -> date | None:
    """Return the first day covered by a preset, or None for all time."""
    if time_range not in TIME_RANGE_MONTHS:
        raise ValueError(f"Unknown time range '{time_range}'")
    months = TIME_RANGE_MONTHS[time_range]
    if months is None:
        return None
    return _shift_months(today, months)


def filter_transactions(
    transactions: Iterable[Transaction],
    transaction_filter: TransactionFilter | None = None,
) -> list[Transaction]:
    if transaction_filter is None:
        return list(transactions)
    return [t for t in transactions if transaction_filter.matches(t)]


def _sum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def percentage(part: Decimal, whole: Decimal) -> float:
    """``part`` as a percentage of ``whole``; 0 when ``whole`` is 0."""
    if not whole:
        return 0.0
    return float(part / whole * 100)


def compute_totals(transactions: Sequence[Transaction]) -> dict[str, Any]:
    income = _sum(t.amount for t in transactions if t.type == "income")
    expense = _sum(t.amount for t in transactions if t.type == "expense")
    return {
        "income": income,
        "expense": expense,
        "net": income - expense,
        "count": len(transactions),
    }


def _period_start(value: date, period: Period) -> date:
    if period == "month":
        return value.replace(day=1)
    return value


def _period_label(start: date, period: Period) -> str:
    if period == "month":
        return start.strftime("%b %Y")
    return start.isoformat()


def periodic_trend(transactions: Sequence[Transaction], period: Period = "month") -> list[dict[str, Any]]:
    """Income, expense and net per calendar month (or day), oldest first."""
    if period not in ("month", "day"):
        raise ValueError("period must be 'month' or 'day'")

    buckets: dict[date, dict[str, Decimal]] = defaultdict(lambda: {"income": ZERO, "expense": ZERO})
    for transaction in transactions:
        bucket = buckets[_period_start(transaction.date, period)]
        bucket[transaction.type] += transaction.amount

    rows = []
    for start in sorted(buckets):
        bucket = buckets[start]
        rows.append(
            {
                "period": _period_label(start, period),
                "start": start,
                "income": bucket["income"],
                "expense": bucket["expense"],
                "net": bucket["income"] - bucket["expense"],
            }
        )
    return rows


def category_breakdown(
    transactions: Sequence[Transaction],
    categories: Sequence[Category],
) -> list[dict[str, Any]]:
    """Expense totals per known category, largest first.

    Percentages are relative to the total of all expenses in
    ``transactions``, so expenses filed under an unknown category make the
    rows sum to less than 100.
    """
    expenses = [t for t in transactions if t.type == "expense"]
    grand_total = _sum(t.amount for t in expenses)

    per_category: dict[str, list[Decimal]] = defaultdict(list)
    for transaction in expenses:
        per_category[transaction.category].append(transaction.amount)

    rows = []
    for category in categories:
        amounts = per_category.get(category.name, [])
        total = _sum(amounts)
        if total <= 0:
            continue
        count = len(amounts)
        rows.append(
            {
                "name": category.name,
                "color": category.color,
                "icon": category.icon,
                "total": total,
                "count": count,
                "average": total / count if count else ZERO,
                "percentage": percentage(total, grand_total),
            }
        )

    rows.sort(key=lambda row: row["total"], reverse=True)
    return rows


def weekday_pattern(transactions: Sequence[Transaction]) -> list[dict[str, Any]]:
    """Expense sum and count for each weekday, Sunday first."""
    totals = [ZERO] * 7
    counts = [0] * 7
    for transaction in transactions:
        if transaction.type != "expense":
            continue
        # date.weekday() is Monday=0; shift so Sunday=0
        index = (transaction.date.weekday() + 1) % 7
        totals[index] += transaction.amount
        counts[index] += 1

    return [
        {"day": name[:3], "name": name, "amount": totals[index], "count": counts[index]}
        for index, name in enumerate(WEEKDAY_NAMES)
    ]


def top_spending_days(transactions: Sequence[Transaction], limit: int = TOP_SPENDING_DAYS) -> list[dict[str, Any]]:
    """Dates with the highest summed expenses."""
    days: dict[date, dict[str, Any]] = {}
    for transaction in transactions:
        if transaction.type != "expense":
            continue
        day = days.get(transaction.date)
        if day is None:
            days[transaction.date] = {
                "date": transaction.date,
                "amount": transaction.amount,
                "count": 1,
                "description": transaction.description,
            }
        else:
            day["amount"] += transaction.amount
            day["count"] += 1

    ranked = sorted(days.values(), key=lambda day: day["amount"], reverse=True)
    return ranked[: max(limit, 0)]


def average_daily_spending(transactions: Sequence[Transaction], today: date) -> Decimal:
    """Expenses spread over the calendar days from the earliest transaction through today, both included."""
    if not transactions:
        return ZERO
    expense = _sum(t.amount for t in transactions if t.type == "expense")
    earliest = min(t.date for t in transactions)
    days = max(1, (today - earliest).days + 1)
    return expense / days


__all__ = [
    "TIME_RANGE_MONTHS",
    "TOP_SPENDING_DAYS",
    "TransactionFilter",
    "average_daily_spending",
    "category_breakdown",
    "compute_totals",
    "filter_transactions",
    "percentage",
    "periodic_trend",
    "resolve_time_range",
    "top_spending_days",
    "weekday_pattern",
]
