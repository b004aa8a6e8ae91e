"""
SQLAlchemy-backed expense store.

One implementation covers SQLite, MySQL and PostgreSQL; the dialect comes
from the URL. Only the year-month formatting differs between them.
"""
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Union

from sqlalchemy import Column, Date, Float, Integer, String, Text, create_engine, func, select
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.db.base import ExpenseStore, StoreError
from app.models.expense import Expense, ExpenseCreate
from app.models.report import CategoryTotal, MonthlyTotal
from app.utils.aggregator import MONTHS_OF_HISTORY, month_bounds

logger = logging.getLogger(__name__)

Base = declarative_base()


class ExpenseRow(Base):
    __tablename__ = "expenses"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    date = Column(Date, nullable=False, index=True)
    category = Column(String(100), nullable=False)
    amount = Column(Float, nullable=False)
    description = Column(Text, nullable=True)


def _month_expression(dialect: str, column):
    if dialect == "postgresql":
        return func.to_char(column, "YYYY-MM")
    if dialect == "mysql":
        return func.date_format(column, "%Y-%m")
    return func.strftime("%Y-%m", column)


def _to_expense(row: ExpenseRow) -> Expense:
    return Expense(
        id=row.id,
        date=row.date,
        category=row.category,
        amount=float(row.amount),
        description=row.description or "",
    )


class SqlExpenseStore(ExpenseStore):
    def __init__(self, url: Union[str, URL]) -> None:
        url = make_url(url)
        self.backend = url.get_backend_name()

        connect_args = {}
        if self.backend == "sqlite":
            # FastAPI runs sync handlers in a threadpool
            connect_args["check_same_thread"] = False
            if url.database and url.database != ":memory:":
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        try:
            self._engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)
            Base.metadata.create_all(bind=self._engine)
        except (SQLAlchemyError, ImportError) as e:
            raise StoreError(f"Could not open {self.backend} database: {e}") from e

        self._session_factory = sessionmaker(bind=self._engine, autocommit=False, autoflush=False)
        self._month = _month_expression(self.backend, ExpenseRow.date)
        logger.info(f"Connected to {self.backend.upper()} database")

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"{operation} failed: {e}")
            raise StoreError(f"{operation} failed") from e
        finally:
            session.close()

    def insert(self, expense: ExpenseCreate) -> Expense:
        with self._session("insert") as session:
            row = ExpenseRow(**expense.model_dump())
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_expense(row)

    def list_all(self) -> List[Expense]:
        with self._session("list_all") as session:
            rows = session.scalars(
                select(ExpenseRow).order_by(ExpenseRow.date.desc(), ExpenseRow.id.desc())
            ).all()
            return [_to_expense(row) for row in rows]

    def query_by_month(self, year: int, month: int) -> List[Expense]:
        start, end = month_bounds(year, month)
        with self._session("query_by_month") as session:
            rows = session.scalars(
                select(ExpenseRow)
                .where(ExpenseRow.date >= start, ExpenseRow.date < end)
                .order_by(ExpenseRow.date.desc(), ExpenseRow.id.desc())
            ).all()
            return [_to_expense(row) for row in rows]

    def group_sum_by_category(self, year: int, month: int) -> List[CategoryTotal]:
        start, end = month_bounds(year, month)
        total = func.sum(ExpenseRow.amount).label("total")
        stmt = (
            select(ExpenseRow.category, total)
            .where(ExpenseRow.date >= start, ExpenseRow.date < end)
            .group_by(ExpenseRow.category)
            # ties broken by whichever category was recorded first
            .order_by(total.desc(), func.min(ExpenseRow.id))
        )
        with self._session("group_sum_by_category") as session:
            return [
                CategoryTotal(category=category, total=float(amount))
                for category, amount in session.execute(stmt).all()
            ]

    def group_sum_by_month(self, limit: int = MONTHS_OF_HISTORY) -> List[MonthlyTotal]:
        month = self._month.label("month")
        stmt = (
            select(month, func.sum(ExpenseRow.amount).label("total"))
            .group_by(month)
            .order_by(month.desc())
            .limit(limit)
        )
        with self._session("group_sum_by_month") as session:
            return [
                MonthlyTotal(month=key, total=float(amount))
                for key, amount in session.execute(stmt).all()
            ]

    def count(self) -> int:
        with self._session("count") as session:
            return session.scalar(select(func.count()).select_from(ExpenseRow)) or 0

    def close(self) -> None:
        self._engine.dispose()
        logger.info("Database connection closed")
