from datetime import date

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.db.memory import MemoryExpenseStore
from app.main import create_app
from app.models.expense import ExpenseCreate
from app.utils.cloud_sync import CloudSyncService


def add(store, day, category, amount, description=""):
    return store.insert(ExpenseCreate(date=day, category=category, amount=amount, description=description))


@pytest.fixture
def store():
    return MemoryExpenseStore()


@pytest.fixture
def populated_store(store):
    add(store, date(2025, 9, 10), "Food", 300)
    add(store, date(2025, 10, 5), "Food", 400)
    add(store, date(2025, 10, 6), "Travel", 100)
    add(store, date(2025, 11, 1), "Food", 100, "Groceries")
    add(store, date(2025, 11, 2), "Food", 100, "Lunch")
    add(store, date(2025, 11, 3), "Travel", 100, "Bus pass")
    add(store, date(2025, 11, 4), "Shopping", 1000, "Laptop")
    return store


@pytest.fixture
def client(store):
    settings = Settings(DB_TYPE="memory", SEED_SAMPLE_DATA=False, CLOUD_SYNC_ENABLED=False)
    app = create_app(settings=settings, store=store, cloud_sync=CloudSyncService(None))
    with TestClient(app) as test_client:
        yield test_client
