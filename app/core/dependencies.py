from fastapi import Depends, Request

from app.db.base import ExpenseStore
from app.utils.cloud_sync import CloudSyncService
from app.utils.reports import ReportBuilder


def get_store(request: Request) -> ExpenseStore:
    return request.app.state.store


def get_cloud_sync(request: Request) -> CloudSyncService:
    return request.app.state.cloud_sync


def get_report_builder(store: ExpenseStore = Depends(get_store)) -> ReportBuilder:
    return ReportBuilder(store)
