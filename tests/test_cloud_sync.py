from datetime import date
from unittest.mock import MagicMock, patch

import httpx
from botocore.exceptions import ClientError

from app.core.config import Settings
from app.models.expense import Expense
from app.utils.cloud_sync import (
    CloudSyncService,
    FirebaseSyncProvider,
    S3SyncProvider,
    create_cloud_sync,
)
from app.utils.scheduler import pending_changes_job, start_scheduler

expense = Expense(id=7, date=date(2025, 11, 3), category="Food", amount=42.0, description="Dinner")


def failing_provider():
    provider = MagicMock()
    provider.name = "aws"
    provider.push.side_effect = ClientError({"Error": {"Code": "500", "Message": "down"}}, "PutObject")
    return provider


def test_disabled_by_default():
    sync = create_cloud_sync(Settings())
    assert sync.enabled is False
    assert sync.sync_expense(expense)["success"] is False
    assert start_scheduler(sync) is None


def test_incomplete_config_disables_sync():
    assert create_cloud_sync(Settings(CLOUD_SYNC_ENABLED=True, CLOUD_SYNC_PROVIDER="firebase")).enabled is False
    assert create_cloud_sync(Settings(CLOUD_SYNC_ENABLED=True, CLOUD_SYNC_PROVIDER="aws")).enabled is False
    assert create_cloud_sync(Settings(CLOUD_SYNC_ENABLED=True, CLOUD_SYNC_PROVIDER="dropbox")).enabled is False


def test_sync_expense_wraps_payload():
    provider = MagicMock()
    provider.push.return_value = {"ok": True}
    sync = CloudSyncService(provider)

    result = sync.sync_expense(expense)
    assert result == {"success": True, "result": {"ok": True}}

    payload = provider.push.call_args.args[0]
    assert payload["operation"] == "create"
    assert payload["version"] == "1.0"
    assert payload["data"]["date"] == "2025-11-03"
    assert sync.last_sync_time is not None


def test_failed_push_goes_offline_and_queues():
    sync = CloudSyncService(failing_provider())

    result = sync.sync_expense(expense)
    assert result["success"] is False
    assert sync.is_online is False
    assert sync.pending_count == 1

    # while offline, changes are queued without calling the provider
    sync.sync_all_expenses([expense])
    assert sync.pending_count == 2
    assert sync.provider.push.call_count == 1


def test_pending_changes_retry_after_reconnect():
    provider = failing_provider()
    sync = CloudSyncService(provider)
    sync.sync_expense(expense)
    sync.sync_expense(expense, "update")

    # first tick only brings the service back online
    assert pending_changes_job(sync) == 0
    assert sync.is_online is True

    provider.push.side_effect = None
    provider.push.return_value = {}
    assert pending_changes_job(sync) == 2
    assert sync.pending_count == 0
    assert [c.args[0]["operation"] for c in provider.push.call_args_list[-2:]] == ["create", "update"]


def test_status_and_connection_test():
    sync = CloudSyncService(failing_provider(), interval_seconds=60)
    assert sync.test_connection()["success"] is False
    status = sync.get_sync_status()
    assert status["enabled"] is True
    assert status["provider"] == "aws"
    assert status["is_online"] is False
    assert status["next_sync_in"] == 60
    # a failed connection test is not queued
    assert status["pending_changes"] == 0


def test_firebase_provider_patches_document():
    client = MagicMock()
    client.patch.return_value = httpx.Response(200, json={"name": "doc"}, request=httpx.Request("PATCH", "https://x"))
    provider = FirebaseSyncProvider("demo-project", "token", client=client)

    assert provider.push({"timestamp": "t", "operation": "create", "data": {"a": 1}, "version": "1.0"}) == {"name": "doc"}
    url = client.patch.call_args.args[0]
    assert url.startswith("https://firestore.googleapis.com/v1/projects/demo-project/")
    assert "/expense_sync/expense_sync_" in url
    assert client.patch.call_args.kwargs["headers"]["Authorization"] == "Bearer token"


def test_firebase_http_error_is_reported():
    client = MagicMock()
    client.patch.return_value = httpx.Response(403, request=httpx.Request("PATCH", "https://x"))
    sync = CloudSyncService(FirebaseSyncProvider("demo-project", "token", client=client))

    assert sync.sync_expense(expense)["success"] is False
    assert sync.pending_count == 1


def test_s3_provider_puts_and_lists():
    s3 = MagicMock()
    s3.list_objects_v2.return_value = {"Contents": [{"Key": "expense-sync/1.json"}]}
    provider = S3SyncProvider("bucket", "eu-west-1", client=s3)

    result = provider.push({"operation": "create"})
    assert result["key"].startswith("expense-sync/")
    assert s3.put_object.call_args.kwargs["Bucket"] == "bucket"

    sync = CloudSyncService(provider)
    assert sync.sync_from_cloud() == {"success": True, "data": ["expense-sync/1.json"]}


def test_flushed_payloads_get_distinct_keys():
    s3 = MagicMock()
    s3.put_object.side_effect = ClientError({"Error": {"Code": "500", "Message": "down"}}, "PutObject")
    sync = CloudSyncService(S3SyncProvider("bucket", "eu-west-1", client=s3))
    for _ in range(5):
        sync.sync_expense(expense)
    assert sync.pending_count == 5

    assert pending_changes_job(sync) == 0
    s3.put_object.side_effect = None
    with patch("app.utils.cloud_sync.time") as clock:
        # every push lands in the same millisecond
        clock.time.return_value = 1762160400.5
        assert pending_changes_job(sync) == 5

    keys = [c.kwargs["Key"] for c in s3.put_object.call_args_list[-5:]]
    assert len(set(keys)) == 5
    assert all(key.startswith("expense-sync/1762160400500_") for key in keys)


def test_firebase_document_ids_are_unique():
    client = MagicMock()
    client.patch.return_value = httpx.Response(200, json={}, request=httpx.Request("PATCH", "https://x"))
    provider = FirebaseSyncProvider("demo-project", "token", client=client)
    payload = {"timestamp": "t", "operation": "create", "data": {}, "version": "1.0"}

    with patch("app.utils.cloud_sync.time") as clock:
        clock.time.return_value = 1762160400.5
        provider.push(payload)
        provider.push(payload)

    urls = [c.args[0] for c in client.patch.call_args_list]
    assert urls[0] != urls[1]


def test_pending_queue_is_bounded():
    sync = CloudSyncService(failing_provider(), max_pending=3)
    for operation in ["create", "update", "delete", "bulk_update", "create"]:
        sync.sync_expense(expense, operation)

    assert sync.pending_count == 3
    assert [p["operation"] for p in sync._pending] == ["delete", "bulk_update", "create"]


def test_max_pending_comes_from_settings():
    settings = Settings(
        CLOUD_SYNC_ENABLED=True, CLOUD_SYNC_PROVIDER="aws", S3_BUCKET_NAME="bucket", CLOUD_SYNC_MAX_PENDING=2
    )
    assert create_cloud_sync(settings)._pending.maxlen == 2


def test_connection_test_restores_online_state():
    provider = failing_provider()
    sync = CloudSyncService(provider)
    sync.sync_expense(expense)
    assert sync.is_online is False

    provider.push.side_effect = None
    provider.push.return_value = {"ok": True}
    assert sync.test_connection() == {"success": True, "result": {"ok": True}}
    assert sync.is_online is True
    assert sync.pending_count == 1
