import itertools
import threading
from typing import List

from app.db.base import ExpenseStore
from app.models.expense import Expense, ExpenseCreate
from app.models.report import CategoryTotal, MonthlyTotal
from app.utils import aggregator


class MemoryExpenseStore(ExpenseStore):
    """Process-local store, used in tests and for throwaway local runs."""

    backend = "memory"

    def __init__(self) -> None:
        self._expenses: List[Expense] = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def insert(self, expense: ExpenseCreate) -> Expense:
        with self._lock:
            stored = Expense(id=next(self._ids), **expense.model_dump())
            self._expenses.append(stored)
        return stored

    def _snapshot(self) -> List[Expense]:
        with self._lock:
            return list(self._expenses)

    @staticmethod
    def _newest_first(expenses: List[Expense]) -> List[Expense]:
        # Same date: later insert first, like ORDER BY date DESC, id DESC
        return sorted(expenses, key=lambda exp: (exp.date, exp.id), reverse=True)

    def _in_month(self, year: int, month: int) -> List[Expense]:
        start, end = aggregator.month_bounds(year, month)
        return [exp for exp in self._snapshot() if start <= exp.date < end]

    def list_all(self) -> List[Expense]:
        return self._newest_first(self._snapshot())

    def query_by_month(self, year: int, month: int) -> List[Expense]:
        return self._newest_first(self._in_month(year, month))

    def group_sum_by_category(self, year: int, month: int) -> List[CategoryTotal]:
        return aggregator.category_totals(self._in_month(year, month))

    def group_sum_by_month(self, limit: int = aggregator.MONTHS_OF_HISTORY) -> List[MonthlyTotal]:
        return aggregator.monthly_totals(self._snapshot(), limit=limit)

    def count(self) -> int:
        with self._lock:
            return len(self._expenses)
