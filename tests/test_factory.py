from unittest.mock import patch

import pytest

from app.core.config import Settings
from app.db import factory
from app.db.base import StoreError
from app.db.factory import SAMPLE_EXPENSES, create_store, seed_sample_data
from app.db.memory import MemoryExpenseStore


def test_memory_backend_seeds_sample_data():
    store = create_store(Settings(DB_TYPE="memory", SEED_SAMPLE_DATA=True))
    assert isinstance(store, MemoryExpenseStore)
    assert store.count() == len(SAMPLE_EXPENSES)
    assert [t.category for t in store.group_sum_by_category(2024, 1)] == ["Shopping", "Food", "Travel", "Other"]


def test_seed_skips_non_empty_store():
    store = MemoryExpenseStore()
    assert seed_sample_data(store) == 5
    assert seed_sample_data(store) == 0
    assert store.count() == 5


def test_sqlite_backend(tmp_path):
    settings = Settings(DB_TYPE="sqlite", SQLITE_PATH=str(tmp_path / "expenses.db"), SEED_SAMPLE_DATA=False)
    store = create_store(settings)
    assert store.backend == "sqlite"
    assert store.count() == 0
    store.close()


def test_unreachable_backend_falls_back_to_sqlite(tmp_path):
    settings = Settings(DB_TYPE="postgresql", SQLITE_PATH=str(tmp_path / "fallback.db"), SEED_SAMPLE_DATA=False)
    real_build = factory._build_store

    def build(db_type, settings):
        if db_type == "postgresql":
            raise StoreError("Could not open postgresql database")
        return real_build(db_type, settings)

    with patch("app.db.factory._build_store", side_effect=build):
        store = create_store(settings)
    assert store.backend == "sqlite"
    store.close()


def test_unknown_backend_is_rejected():
    with pytest.raises(ValueError):
        create_store(Settings(DB_TYPE="oracle"))


def test_sql_url_per_backend():
    settings = Settings(MYSQL_HOST="db", PG_HOST="pg", PG_PASSWORD="secret")
    assert settings.sql_url("mysql").drivername == "mysql+pymysql"
    assert settings.sql_url("mysql").host == "db"
    assert settings.sql_url("postgresql").password == "secret"
    assert settings.sql_url("sqlite").database == settings.SQLITE_PATH
    with pytest.raises(ValueError):
        settings.sql_url("dynamodb")
