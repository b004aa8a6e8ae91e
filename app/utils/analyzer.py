from __future__ import annotations

import statistics
from typing import List, Optional, Sequence

from app.models.expense import Expense
from app.models.report import Anomaly, CategoryTotal, MonthlyTotal

# Fixed monthly budget used for the over-budget flag
BUDGET_LIMIT = 5000.0


class FinanceAnalyzer:
    """
    Heuristic insights over pre-aggregated expense data.

    The prediction is a first-difference extrapolation of the two latest
    months, so a single outlier month dominates it. The outlier check is a
    plain multiple of the mean. No smoothing, no confidence bounds.
    """

    def __init__(
        self,
        concentration_share: float = 0.5,
        anomaly_multiplier: float = 2.0,
    ) -> None:
        self._concentration_share = concentration_share
        self._anomaly_multiplier = anomaly_multiplier

    def predict_next_month(self, monthly_totals: Sequence[MonthlyTotal]) -> float:
        """
        Extrapolate next month's spend from the trend between the latest two
        months. Expects most-recent-first ordering; returns 0 with fewer than
        two months of history.
        """
        if len(monthly_totals) < 2:
            return 0.0

        recent = monthly_totals[0].total
        previous = monthly_totals[1].total
        trend = recent - previous
        return max(0.0, recent + trend)

    def concentration_recommendation(self, category_totals: Sequence[CategoryTotal]) -> Optional[str]:
        if not category_totals:
            return None

        total = sum(cat.total for cat in category_totals)
        if total <= 0:
            return None

        highest = category_totals[0]
        share = highest.total / total
        if share > self._concentration_share:
            return f"Consider reducing {highest.category} spending ({share * 100:.1f}% of total)"
        return None

    def detect_anomalies(self, expenses: Sequence[Expense]) -> List[Anomaly]:
        """Flag expenses above a multiple of the mean amount, keeping input order."""
        if not expenses:
            return []

        average = statistics.fmean(float(exp.amount) for exp in expenses)
        threshold = average * self._anomaly_multiplier

        return [
            Anomaly(date=exp.date, amount=exp.amount, description=exp.description)
            for exp in expenses
            if float(exp.amount) > threshold
        ]

    @staticmethod
    def monthly_total(expenses: Sequence[Expense]) -> float:
        return round(sum(float(exp.amount) for exp in expenses), 2)

    @staticmethod
    def is_over_budget(total_spending: float, budget_limit: float = BUDGET_LIMIT) -> bool:
        return total_spending > budget_limit
