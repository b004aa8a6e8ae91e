from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import Settings, settings as default_settings
from app.db.base import ExpenseStore
from app.db.factory import create_store
from app.routers import expenses, health, reports, sync
from app.utils.cloud_sync import CloudSyncService, create_cloud_sync
from app.utils.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[ExpenseStore] = None,
    cloud_sync: Optional[CloudSyncService] = None,
) -> FastAPI:
    """
    Build the API. The store and sync service are created at startup from
    settings unless passed in (tests hand in their own).
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: open the store once and start the sync job if enabled
        app.state.store = store or create_store(settings)
        app.state.cloud_sync = cloud_sync or create_cloud_sync(settings)
        app.state.scheduler = start_scheduler(app.state.cloud_sync)
        yield
        # Shutdown
        logger.info("Shutting down...")
        stop_scheduler(app.state.scheduler)
        app.state.store.close()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        debug=settings.DEBUG,
        lifespan=lifespan
    )

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        max_age=3600,
    )

    # Root endpoint
    @app.get("/")
    def root():
        return {"message": f"Welcome to {settings.PROJECT_NAME} API"}

    # Register routers
    app.include_router(health.router, prefix=f"{settings.API_PREFIX}", tags=["Health"])  # /api/health
    app.include_router(expenses.router, prefix=f"{settings.API_PREFIX}", tags=["Expenses"])
    app.include_router(reports.router, prefix=f"{settings.API_PREFIX}", tags=["Reports"])
    app.include_router(sync.router, prefix=f"{settings.API_PREFIX}/sync", tags=["Cloud Sync"])
    return app


logging.basicConfig(
    level=default_settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()
