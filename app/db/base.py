"""
Expense store interface.

Every backend (SQL via SQLAlchemy, DynamoDB, in-memory) implements this
class. The backend is picked once at startup by ``app.db.factory.create_store``
and handed to routes through FastAPI dependencies.
"""
from abc import ABC, abstractmethod
from typing import List

from app.models.expense import Expense, ExpenseCreate
from app.models.report import CategoryTotal, MonthlyTotal
from app.utils.aggregator import MONTHS_OF_HISTORY


class StoreError(Exception):
    """Raised when the backing store cannot be reached or a query fails."""


class ExpenseStore(ABC):
    backend: str = "unknown"

    @abstractmethod
    def insert(self, expense: ExpenseCreate) -> Expense:
        """Persist a new expense and return it with its assigned id."""

    @abstractmethod
    def list_all(self) -> List[Expense]:
        """All expenses, newest date first."""

    @abstractmethod
    def query_by_month(self, year: int, month: int) -> List[Expense]:
        """Expenses dated within the given month, newest date first."""

    @abstractmethod
    def group_sum_by_category(self, year: int, month: int) -> List[CategoryTotal]:
        """Per-category sums for the month, largest total first."""

    @abstractmethod
    def group_sum_by_month(self, limit: int = MONTHS_OF_HISTORY) -> List[MonthlyTotal]:
        """Per-month sums, most recent month first, at most ``limit`` entries."""

    @abstractmethod
    def count(self) -> int:
        """Number of stored expenses."""

    def ping(self) -> bool:
        """Cheap connectivity check used by the status endpoint."""
        self.count()
        return True

    def close(self) -> None:
        pass
