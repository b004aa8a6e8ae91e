import logging
from typing import Dict, List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from app.core.dependencies import get_cloud_sync, get_store
from app.db.base import ExpenseStore, StoreError
from app.models.expense import Expense, ExpenseCreate
from app.utils.cloud_sync import CloudSyncService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/add-expense", status_code=status.HTTP_201_CREATED)
def add_expense(
    expense: ExpenseCreate,
    background_tasks: BackgroundTasks,
    store: ExpenseStore = Depends(get_store),
    cloud_sync: CloudSyncService = Depends(get_cloud_sync),
) -> Dict:
    try:
        saved = store.insert(expense)
    except StoreError as e:
        logger.error(f"Failed to add expense: {e}")
        raise HTTPException(status_code=500, detail="Failed to add expense")

    logger.info(f"Expense {saved.id} added: {saved.category} {saved.amount} on {saved.date}")
    if cloud_sync.enabled:
        background_tasks.add_task(cloud_sync.sync_expense, saved, "create")

    return {"message": "Expense added", "expense": saved}


@router.get("/expenses", response_model=List[Expense])
def list_expenses(store: ExpenseStore = Depends(get_store)):
    """All expenses, newest first."""
    try:
        return store.list_all()
    except StoreError as e:
        logger.error(f"Failed to fetch expenses: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch expenses")
