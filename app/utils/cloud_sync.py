"""
Cloud Sync Service
Optional backup of expense data to Firebase (Firestore REST) or AWS S3.

Sync is inert unless CLOUD_SYNC_ENABLED is set. Request handlers only ever
schedule it as a background task; failed pushes are queued and retried by
the periodic job in app.utils.scheduler.
"""
import json
import logging
import threading
import time
import uuid
from collections import deque
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import Settings
from app.models.expense import Expense

logger = logging.getLogger(__name__)

SYNC_VERSION = "1.0"
SYNC_ERRORS = (httpx.HTTPError, ClientError, BotoCoreError)
MAX_PENDING = 1000


def _sync_id() -> str:
    # millisecond timestamps repeat when the pending queue is flushed
    return f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


class SyncProvider(ABC):
    name: str = "unknown"

    @abstractmethod
    def push(self, payload: Dict[str, Any]) -> Any:
        """Upload one sync payload."""

    @abstractmethod
    def pull(self) -> List[Any]:
        """List what has been synced so far."""


class FirebaseSyncProvider(SyncProvider):
    name = "firebase"

    def __init__(self, project_id: str, token: str, client: Optional[httpx.Client] = None) -> None:
        self._token = token
        self._client = client or httpx.Client(timeout=10.0)
        self.base_url = (
            f"https://firestore.googleapis.com/v1/projects/{project_id}/databases/(default)/documents"
        )

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json", "Authorization": f"Bearer {self._token}"}

    def push(self, payload: Dict[str, Any]) -> Any:
        document_id = f"expense_sync_{_sync_id()}"
        document = {
            "fields": {
                "timestamp": {"stringValue": payload["timestamp"]},
                "operation": {"stringValue": payload["operation"]},
                "data": {"stringValue": json.dumps(payload["data"], default=str)},
                "version": {"stringValue": payload["version"]},
            }
        }
        response = self._client.patch(
            f"{self.base_url}/expense_sync/{document_id}", json=document, headers=self._headers()
        )
        response.raise_for_status()
        return response.json()

    def pull(self) -> List[Any]:
        response = self._client.get(f"{self.base_url}/expense_sync", headers=self._headers())
        response.raise_for_status()
        return response.json().get("documents", [])


class S3SyncProvider(SyncProvider):
    name = "aws"
    prefix = "expense-sync/"

    def __init__(self, bucket: str, region: str, client=None) -> None:
        self._bucket = bucket
        self._s3 = client or boto3.client("s3", region_name=region)

    def push(self, payload: Dict[str, Any]) -> Any:
        key = f"{self.prefix}{_sync_id()}.json"
        self._s3.put_object(
            Bucket=self._bucket,
            Key=key,
            Body=json.dumps(payload, default=str).encode("utf-8"),
            ContentType="application/json",
        )
        return {"key": key}

    def pull(self) -> List[Any]:
        response = self._s3.list_objects_v2(Bucket=self._bucket, Prefix=self.prefix)
        return [obj["Key"] for obj in response.get("Contents", [])]


class CloudSyncService:
    def __init__(
        self,
        provider: Optional[SyncProvider] = None,
        interval_seconds: int = 300,
        max_pending: int = MAX_PENDING,
    ) -> None:
        self.provider = provider
        self.interval_seconds = interval_seconds
        self.last_sync_time: Optional[datetime] = None
        self.is_online = True
        self._pending: Deque[Dict[str, Any]] = deque(maxlen=max_pending)
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.provider is not None

    def _queue(self, payload: Dict[str, Any]) -> None:
        """Append to the retry queue; caller holds the lock. A full queue drops its oldest entry."""
        if len(self._pending) == self._pending.maxlen:
            dropped = self._pending[0]
            logger.warning(
                f"Pending sync queue full ({self._pending.maxlen}), dropping "
                f"{dropped['operation']} change from {dropped['timestamp']}"
            )
        self._pending.append(payload)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def _push(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            result = self.provider.push(payload)
        except SYNC_ERRORS as e:
            logger.error(f"Cloud sync failed: {e}")
            with self._lock:
                self.is_online = False
                self._queue(payload)
            return {"success": False, "error": str(e)}

        with self._lock:
            self.last_sync_time = datetime.utcnow()
        logger.info(f"Cloud sync successful: {payload['operation']}")
        return {"success": True, "result": result}

    def sync_to_cloud(self, data: Any, operation: str = "update") -> Dict[str, Any]:
        if not self.enabled:
            return {"success": False, "message": "Cloud sync disabled"}

        payload = {
            "timestamp": datetime.utcnow().isoformat(),
            "operation": operation,
            "data": data,
            "version": SYNC_VERSION,
        }
        with self._lock:
            if not self.is_online:
                self._queue(payload)
                return {"success": False, "message": "Cloud sync offline, change queued"}
        return self._push(payload)

    def sync_expense(self, expense: Expense, operation: str = "create") -> Dict[str, Any]:
        return self.sync_to_cloud(expense.model_dump(mode="json"), operation)

    def sync_all_expenses(self, expenses: List[Expense]) -> Dict[str, Any]:
        return self.sync_to_cloud([exp.model_dump(mode="json") for exp in expenses], "bulk_update")

    def sync_from_cloud(self) -> Dict[str, Any]:
        if not self.enabled or not self.is_online:
            return {"success": False, "message": "Cloud sync disabled or offline"}

        try:
            data = self.provider.pull()
        except SYNC_ERRORS as e:
            logger.error(f"Cloud sync from {self.provider.name} failed: {e}")
            return {"success": False, "error": str(e)}

        logger.info("Cloud data retrieved successfully")
        return {"success": True, "data": data}

    def sync_pending_changes(self) -> int:
        """
        Periodic job body. While offline it only flips back online so the
        next run retries; while online it re-pushes queued payloads.
        Returns the number of payloads pushed successfully.
        """
        if not self.enabled:
            return 0

        with self._lock:
            if not self.is_online:
                self.is_online = True
                return 0
            pending = list(self._pending)
            self._pending.clear()

        if pending:
            logger.info(f"Syncing {len(pending)} pending changes...")

        synced = 0
        for index, payload in enumerate(pending):
            if not self._push(payload)["success"]:
                # _push queued the failed payload; keep the rest behind it
                with self._lock:
                    for remaining in pending[index + 1:]:
                        self._queue(remaining)
                break
            synced += 1
        return synced

    def get_sync_status(self) -> Dict[str, Any]:
        next_sync_in = self.interval_seconds
        if self.last_sync_time:
            elapsed = (datetime.utcnow() - self.last_sync_time).total_seconds()
            next_sync_in = max(0, int(self.interval_seconds - elapsed))

        return {
            "enabled": self.enabled,
            "provider": self.provider.name if self.provider else None,
            "is_online": self.is_online,
            "last_sync_time": self.last_sync_time.isoformat() if self.last_sync_time else None,
            "pending_changes": self.pending_count,
            "next_sync_in": next_sync_in,
        }

    def test_connection(self) -> Dict[str, Any]:
        if not self.enabled:
            return {"success": False, "message": "Cloud sync is disabled"}

        now = datetime.utcnow().isoformat()
        payload = {"timestamp": now, "operation": "test", "data": {"test": True}, "version": SYNC_VERSION}
        try:
            result = self.provider.push(payload)
        except SYNC_ERRORS as e:
            logger.error(f"Cloud sync connection test failed: {e}")
            with self._lock:
                self.is_online = False
            return {"success": False, "error": str(e)}

        with self._lock:
            self.is_online = True
        return {"success": True, "result": result}


def create_cloud_sync(settings: Settings) -> CloudSyncService:
    """Build the sync service; any missing configuration leaves it disabled."""
    interval = settings.CLOUD_SYNC_INTERVAL_SECONDS
    if not settings.CLOUD_SYNC_ENABLED:
        return CloudSyncService(None, interval)

    provider_name = settings.CLOUD_SYNC_PROVIDER.lower()
    if provider_name == "firebase":
        if not settings.FIREBASE_PROJECT_ID or not settings.FIREBASE_TOKEN:
            logger.warning("Firebase configuration incomplete. Cloud sync disabled.")
            return CloudSyncService(None, interval)
        provider = FirebaseSyncProvider(settings.FIREBASE_PROJECT_ID, settings.FIREBASE_TOKEN)
    elif provider_name == "aws":
        if not settings.S3_BUCKET_NAME:
            logger.warning("AWS configuration incomplete. Cloud sync disabled.")
            return CloudSyncService(None, interval)
        provider = S3SyncProvider(settings.S3_BUCKET_NAME, settings.S3_REGION)
    else:
        logger.warning(f"Unknown cloud provider: {provider_name}")
        return CloudSyncService(None, interval)

    logger.info(f"Cloud sync enabled with provider {provider.name}")
    return CloudSyncService(provider, interval, settings.CLOUD_SYNC_MAX_PENDING)
