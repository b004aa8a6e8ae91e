import datetime as dt
import logging

from app.core.config import Settings
from app.db.base import ExpenseStore, StoreError
from app.models.expense import ExpenseCreate

logger = logging.getLogger(__name__)

SQL_BACKENDS = ("sqlite", "mysql", "postgresql")

SAMPLE_EXPENSES = [
    ExpenseCreate(date=dt.date(2024, 1, 15), category="Food", amount=1200, description="Grocery shopping"),
    ExpenseCreate(date=dt.date(2024, 1, 16), category="Travel", amount=800, description="Uber rides"),
    ExpenseCreate(date=dt.date(2024, 1, 17), category="Shopping", amount=2500, description="New clothes"),
    ExpenseCreate(date=dt.date(2024, 1, 18), category="Food", amount=600, description="Restaurant dinner"),
    ExpenseCreate(date=dt.date(2024, 1, 19), category="Other", amount=300, description="Movie tickets"),
]


def _build_store(db_type: str, settings: Settings) -> ExpenseStore:
    if db_type in SQL_BACKENDS:
        from app.db.sql import SqlExpenseStore

        return SqlExpenseStore(settings.sql_url(db_type))
    if db_type == "dynamodb":
        from app.db.dynamo import DynamoExpenseStore

        return DynamoExpenseStore(
            table_name=settings.DYNAMO_EXPENSES_TABLE,
            region=settings.DYNAMO_REGION,
            partition=settings.DYNAMO_PARTITION,
        )
    if db_type == "memory":
        from app.db.memory import MemoryExpenseStore

        return MemoryExpenseStore()
    raise ValueError(f"Unsupported database type: {db_type}")


def create_store(settings: Settings) -> ExpenseStore:
    """
    Build the expense store selected by ``DB_TYPE``.

    A backend that cannot be reached at startup falls back to SQLite;
    an unknown ``DB_TYPE`` is a configuration error and is raised.
    """
    db_type = settings.DB_TYPE.lower()
    try:
        store = _build_store(db_type, settings)
        store.ping()
    except StoreError as e:
        if db_type == "sqlite":
            raise
        logger.error(f"Database initialization failed: {e}")
        logger.info("Falling back to SQLite...")
        store = _build_store("sqlite", settings)

    logger.info(f"Using {store.backend} expense store")
    if settings.SEED_SAMPLE_DATA:
        seed_sample_data(store)
    return store


def seed_sample_data(store: ExpenseStore) -> int:
    """Insert the demo expenses into an empty store. Returns how many were added."""
    if store.count() > 0:
        return 0

    logger.info("Inserting sample data...")
    for expense in SAMPLE_EXPENSES:
        store.insert(expense)
    logger.info("Sample data inserted successfully")
    return len(SAMPLE_EXPENSES)
