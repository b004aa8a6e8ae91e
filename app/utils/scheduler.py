"""
Scheduler Service
Runs the periodic cloud sync retry job using APScheduler
"""
import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.utils.cloud_sync import CloudSyncService

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "cloud_sync_pending_changes"


def pending_changes_job(cloud_sync: CloudSyncService) -> int:
    """Job function that flushes queued cloud sync payloads"""
    synced = cloud_sync.sync_pending_changes()
    if synced:
        logger.info(f"Periodic sync pushed {synced} pending changes")
    return synced


def start_scheduler(cloud_sync: CloudSyncService) -> Optional[BackgroundScheduler]:
    """Start the background scheduler; nothing is scheduled while sync is disabled"""
    if not cloud_sync.enabled:
        logger.info("Cloud sync disabled, scheduler not started")
        return None

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        pending_changes_job,
        args=[cloud_sync],
        trigger=IntervalTrigger(seconds=cloud_sync.interval_seconds),
        id=SYNC_JOB_ID,
        name="Cloud sync - pending changes",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(f"Scheduler started, syncing every {cloud_sync.interval_seconds}s")
    return scheduler


def stop_scheduler(scheduler: Optional[BackgroundScheduler]) -> None:
    """Stop the background scheduler"""
    if scheduler is not None and scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")


def get_scheduler_status(scheduler: Optional[BackgroundScheduler]) -> dict:
    """Get current scheduler status"""
    if scheduler is None:
        return {"running": False, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": str(job.next_run_time) if job.next_run_time else None
        })

    return {
        "running": scheduler.running,
        "jobs": jobs
    }
