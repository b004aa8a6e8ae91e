"""
Health Check Router
Liveness endpoint plus a status check of the store and cloud sync
"""
import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Request

from app.core.dependencies import get_cloud_sync, get_store
from app.db.base import ExpenseStore, StoreError
from app.utils.cloud_sync import CloudSyncService
from app.utils.scheduler import get_scheduler_status

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
def health_check(request: Request):
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "OK",
        "message": f"{request.app.title} API running",
        "timestamp": datetime.utcnow().isoformat()
    }


@router.get("/status")
def services_status(
    request: Request,
    store: ExpenseStore = Depends(get_store),
    cloud_sync: CloudSyncService = Depends(get_cloud_sync),
):
    """
    Check connectivity of the expense store and report cloud sync state.
    """
    store_status = {
        "backend": store.backend,
        "connected": False,
        "error": None
    }
    try:
        store_status["connected"] = store.ping()
        store_status["expenses"] = store.count()
    except StoreError as e:
        store_status["error"] = str(e)
        logger.error(f"Store check failed: {str(e)}")

    return {
        "timestamp": datetime.utcnow().isoformat(),
        "services": {
            "store": store_status,
            "cloud_sync": cloud_sync.get_sync_status(),
            "scheduler": get_scheduler_status(request.app.state.scheduler),
        },
        "overall_status": "healthy" if store_status["connected"] else "degraded",
    }
