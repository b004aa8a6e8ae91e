"""
Pure aggregation helpers shared by the stores and the report builder.

Both functions take any sequence of expenses and never touch storage, so the
in-memory and DynamoDB backends reuse them for their group-by queries.
"""
from __future__ import annotations

import datetime as dt
from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from app.models.expense import Expense
from app.models.report import CategoryTotal, MonthlyTotal

MONTHS_OF_HISTORY = 6


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def month_bounds(year: int, month: int) -> Tuple[dt.date, dt.date]:
    """Return the first day of the month and the first day of the next one."""
    start = dt.date(year, month, 1)
    if month == 12:
        return start, dt.date(year + 1, 1, 1)
    return start, dt.date(year, month + 1, 1)


def category_totals(expenses: Iterable[Expense]) -> List[CategoryTotal]:
    # dicts keep insertion order, and sorted() is stable, so ties stay first-seen
    totals: Dict[str, float] = defaultdict(float)
    for exp in expenses:
        totals[exp.category] += float(exp.amount)

    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [CategoryTotal(category=cat, total=total) for cat, total in ranked]


def monthly_totals(expenses: Iterable[Expense], limit: int = MONTHS_OF_HISTORY) -> List[MonthlyTotal]:
    totals: Dict[str, float] = defaultdict(float)
    for exp in expenses:
        totals[exp.month_key] += float(exp.amount)

    recent = sorted(totals, reverse=True)[:limit]
    return [MonthlyTotal(month=key, total=totals[key]) for key in recent]
