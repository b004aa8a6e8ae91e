"""
Cloud Sync Router
Manual controls for the optional cloud backup
"""
import logging
from typing import Dict

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from app.core.dependencies import get_cloud_sync, get_store
from app.db.base import ExpenseStore, StoreError
from app.utils.cloud_sync import CloudSyncService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/status")
def sync_status(cloud_sync: CloudSyncService = Depends(get_cloud_sync)) -> Dict:
    return cloud_sync.get_sync_status()


@router.post("/test")
def test_sync_connection(cloud_sync: CloudSyncService = Depends(get_cloud_sync)) -> Dict:
    return cloud_sync.test_connection()


@router.post("/all", status_code=202)
def sync_all_expenses(
    background_tasks: BackgroundTasks,
    store: ExpenseStore = Depends(get_store),
    cloud_sync: CloudSyncService = Depends(get_cloud_sync),
) -> Dict:
    """Queue a bulk upload of every stored expense."""
    if not cloud_sync.enabled:
        raise HTTPException(status_code=409, detail="Cloud sync is disabled")

    try:
        expenses = store.list_all()
    except StoreError as e:
        logger.error(f"Failed to load expenses for bulk sync: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch expenses")

    background_tasks.add_task(cloud_sync.sync_all_expenses, expenses)
    return {"message": "Bulk sync scheduled", "expenses": len(expenses)}


@router.get("/pull")
def pull_from_cloud(cloud_sync: CloudSyncService = Depends(get_cloud_sync)) -> Dict:
    return cloud_sync.sync_from_cloud()
