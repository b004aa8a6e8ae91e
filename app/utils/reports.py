"""
Report and insight assembly.

Both payloads are built from the same three store reads: the month's
expenses, the month's category totals and the recent monthly totals. The
reads are independent, so a write landing between them can show up in one
aggregate and not another. Any store failure aborts the whole payload.
"""
import logging
from typing import List, NamedTuple, Optional

from app.db.base import ExpenseStore
from app.models.expense import Expense
from app.models.report import CategoryTotal, Insights, MonthlyTotal, Predictions, Report
from app.utils.analyzer import BUDGET_LIMIT, FinanceAnalyzer

logger = logging.getLogger(__name__)


class PeriodData(NamedTuple):
    expenses: List[Expense]
    category_totals: List[CategoryTotal]
    monthly_totals: List[MonthlyTotal]


class ReportBuilder:
    def __init__(self, store: ExpenseStore, analyzer: Optional[FinanceAnalyzer] = None) -> None:
        self._store = store
        self._analyzer = analyzer or FinanceAnalyzer()

    def fetch_period(self, year: int, month: int) -> PeriodData:
        return PeriodData(
            expenses=self._store.query_by_month(year, month),
            category_totals=self._store.group_sum_by_category(year, month),
            monthly_totals=self._store.group_sum_by_month(),
        )

    def build_report(self, year: int, month: int) -> Report:
        data = self.fetch_period(year, month)
        total_spending = self._analyzer.monthly_total(data.expenses)
        logger.info(f"Report for {year}-{month:02d}: {len(data.expenses)} expenses, total={total_spending}")

        return Report(
            expenses=data.expenses,
            category_totals=data.category_totals,
            monthly_totals=data.monthly_totals,
            total_spending=total_spending,
            is_over_budget=self._analyzer.is_over_budget(total_spending, BUDGET_LIMIT),
            budget_limit=BUDGET_LIMIT,
        )

    def build_insights(self, year: int, month: int) -> Insights:
        data = self.fetch_period(year, month)
        recommendation = self._analyzer.concentration_recommendation(data.category_totals)

        return Insights(
            predictions=Predictions(next_month=self._analyzer.predict_next_month(data.monthly_totals)),
            recommendations=[recommendation] if recommendation else [],
            anomalies=self._analyzer.detect_anomalies(data.expenses),
        )
