from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App settings
    PROJECT_NAME: str = "SmartExpenseTracker"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")
    CORS_ORIGINS: List[str] = Field(default=["http://localhost:3000", "http://localhost:8000"])

    # Storage backend: sqlite, mysql, postgresql, dynamodb, memory
    DB_TYPE: str = Field(default="sqlite")
    SEED_SAMPLE_DATA: bool = Field(default=True)

    # SQLite
    SQLITE_PATH: str = Field(default="data/expenses.db")

    # MySQL
    MYSQL_HOST: str = "localhost"
    MYSQL_PORT: int = 3306
    MYSQL_USER: str = "root"
    MYSQL_PASSWORD: str = ""
    MYSQL_DATABASE: str = "expense_tracker"

    # PostgreSQL
    PG_HOST: str = "localhost"
    PG_PORT: int = 5432
    PG_USER: str = "postgres"
    PG_PASSWORD: str = ""
    PG_DATABASE: str = "expense_tracker"

    # DynamoDB
    DYNAMO_REGION: str = Field(default="eu-west-1")
    DYNAMO_EXPENSES_TABLE: str = Field(default="smart-expense-expenses")
    DYNAMO_PARTITION: str = Field(default="default")

    # Cloud sync (inert unless enabled)
    CLOUD_SYNC_ENABLED: bool = Field(default=False)
    CLOUD_SYNC_PROVIDER: str = Field(default="firebase")
    CLOUD_SYNC_INTERVAL_SECONDS: int = 5 * 60  # 5 minutes
    CLOUD_SYNC_MAX_PENDING: int = 1000
    FIREBASE_PROJECT_ID: str = ""
    FIREBASE_TOKEN: str = ""
    S3_BUCKET_NAME: str = ""
    S3_REGION: str = Field(default="eu-west-1")

    def sql_url(self, db_type: Optional[str] = None) -> URL:
        """Build the SQLAlchemy URL for one of the SQL backends."""
        db_type = (db_type or self.DB_TYPE).lower()
        if db_type == "sqlite":
            return URL.create("sqlite", database=self.SQLITE_PATH)
        if db_type == "mysql":
            return URL.create(
                "mysql+pymysql",
                username=self.MYSQL_USER,
                password=self.MYSQL_PASSWORD or None,
                host=self.MYSQL_HOST,
                port=self.MYSQL_PORT,
                database=self.MYSQL_DATABASE,
            )
        if db_type == "postgresql":
            return URL.create(
                "postgresql+psycopg2",
                username=self.PG_USER,
                password=self.PG_PASSWORD or None,
                host=self.PG_HOST,
                port=self.PG_PORT,
                database=self.PG_DATABASE,
            )
        raise ValueError(f"Not a SQL database type: {db_type}")


settings = Settings()
