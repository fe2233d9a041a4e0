# decentscore/services/jobs.py
"""
Persistent refresh queue.

Requests only insert ``Job`` rows; the periodic drain claims a small batch by
(priority desc, created_at asc) and runs each through the locked refresh.
"""
import logging
from datetime import timedelta
from typing import Iterable, List, Optional

from flask import current_app

from decentscore.errors import JobStateError, RefreshInProgressError
from decentscore.models import db
from decentscore.models.asset import Asset
from decentscore.models.job import (
    JOB_DONE,
    JOB_ERROR,
    JOB_QUEUED,
    JOB_REFRESH_ASSET,
    JOB_RUNNING,
    JOB_TERMINAL,
    Job,
)
from decentscore.models.refresh_lock import REFRESH_CLASSES
from decentscore.services import refresh_lock, store
from decentscore.services.refresh import run_refresh
from decentscore.utils import utcnow

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 100
BACKFILL_PRIORITY = 200
DEFAULT_PROCESSING_SECONDS = 60


def _queue_order():
    return (Job.priority.desc(), Job.created_at.asc(), Job.id.asc())


def _active_jobs_for(asset_id: int, refresh_class: Optional[str] = None) -> List[Job]:
    jobs = (
        Job.query.filter(Job.type == JOB_REFRESH_ASSET, Job.status.in_((JOB_QUEUED, JOB_RUNNING)))
        .order_by(Job.created_at.asc(), Job.id.asc())
        .all()
    )
    out = []
    for j in jobs:
        params = j.params or {}
        if params.get("asset_id") != asset_id:
            continue
        if refresh_class and params.get("refresh_class", "full") != refresh_class:
            continue
        out.append(j)
    return out


def _reclaim_if_stale(job: Job) -> bool:
    """
    A job left ``running`` past the lock stale threshold lost its worker; it is
    closed as an error so the asset can be queued again.
    """
    if job.status != JOB_RUNNING:
        return False
    stale_after = timedelta(seconds=current_app.config.get("REFRESH_LOCK_STALE_SECONDS", 300))
    if job.started_at is not None and utcnow() - job.started_at < stale_after:
        return False
    logger.warning("stale running job closed", extra={"job_id": job.id, "asset_id": (job.params or {}).get("asset_id")})
    mark_error(job, "stale")
    return True


def enqueue_refresh(chain_id, address: str, refresh_class: str = "full",
                    priority: int = DEFAULT_PRIORITY) -> Job:
    """
    Queue a refresh for an asset (created as pending if unknown).

    Raises ``RefreshInProgressError`` while a lock is held; returns the existing
    queued/running job instead of inserting a duplicate.
    """
    if refresh_class not in REFRESH_CLASSES:
        raise ValueError(f"Unknown refresh class: {refresh_class}")

    asset = store.ensure_asset(chain_id, address)
    if refresh_lock.is_locked(asset.id, refresh_class):
        raise RefreshInProgressError(asset.id, refresh_class)

    existing = [j for j in _active_jobs_for(asset.id, refresh_class) if not _reclaim_if_stale(j)]
    if existing:
        return existing[0]

    now = utcnow()
    job = Job(
        type=JOB_REFRESH_ASSET,
        params={"asset_id": asset.id, "refresh_class": refresh_class},
        status=JOB_QUEUED,
        priority=priority,
        created_at=now,
        updated_at=now,
    )
    db.session.add(job)
    db.session.commit()
    logger.info("refresh queued", extra={"asset_id": asset.id, "refresh_class": refresh_class, "job_id": job.id})
    return job


def enqueue_backfill(chain_id, addresses: Iterable[str]) -> dict:
    """Bulk full refreshes at backfill priority; busy assets are skipped."""
    enqueued, skipped = [], []
    for address in addresses:
        try:
            job = enqueue_refresh(chain_id, address, "full", priority=BACKFILL_PRIORITY)
        except RefreshInProgressError:
            skipped.append(address)
            continue
        enqueued.append(job.id)
    return {"enqueued": len(enqueued), "job_ids": enqueued, "skipped": skipped}


def list_queued(limit: int = 50) -> List[Job]:
    return Job.query.filter_by(status=JOB_QUEUED).order_by(*_queue_order()).limit(limit).all()


def _transition(job: Job, status: str, error: str = None, result: dict = None) -> Job:
    if job.status in JOB_TERMINAL:
        raise JobStateError(f"Job {job.id} is already {job.status}")
    now = utcnow()
    job.status = status
    job.updated_at = now
    if status in JOB_TERMINAL:
        job.finished_at = now
    if error is not None:
        job.error = error
    if result is not None:
        job.result = result
    db.session.commit()
    return job


def mark_done(job: Job, result: dict = None) -> Job:
    return _transition(job, JOB_DONE, result=result)


def mark_error(job: Job, error: str) -> Job:
    return _transition(job, JOB_ERROR, error=error)


def _claim(job: Job) -> bool:
    """queued -> running, only if nobody claimed it first."""
    now = utcnow()
    claimed = (
        Job.query.filter_by(id=job.id, status=JOB_QUEUED)
        .update({"status": JOB_RUNNING, "started_at": now, "updated_at": now}, synchronize_session=False)
    )
    db.session.commit()
    if claimed:
        db.session.refresh(job)
    return bool(claimed)


def process_job(job: Job, orchestrator=None) -> Job:
    params = job.params or {}
    asset = db.session.get(Asset, params.get("asset_id"))
    if job.type != JOB_REFRESH_ASSET:
        return mark_error(job, f"Unknown job type: {job.type}")
    if asset is None:
        return mark_error(job, "Asset not found")

    try:
        result = run_refresh(
            asset.chain_id,
            asset.address,
            params.get("refresh_class", "full"),
            owner=f"job:{job.id}",
            orchestrator=orchestrator,
        )
    except RefreshInProgressError as e:
        return mark_error(job, str(e))
    except Exception as e:
        logger.exception("job failed", extra={"job_id": job.id, "asset_id": asset.id})
        db.session.rollback()
        return mark_error(job, str(e) or e.__class__.__name__)
    return mark_done(job, result)


def drain_queue(batch_size: Optional[int] = None, orchestrator=None) -> dict:
    """Process up to ``batch_size`` queued jobs sequentially."""
    if batch_size is None:
        batch_size = current_app.config.get("QUEUE_BATCH_SIZE", 5)
    summary = {"processed": 0, "done": 0, "error": 0}
    for job in list_queued(limit=batch_size):
        if not _claim(job):
            continue
        job = process_job(job, orchestrator)
        summary["processed"] += 1
        summary[job.status] += 1
    if summary["processed"]:
        logger.info("queue drained: %s", summary)
    return summary


def get_job(job_id: int) -> Optional[Job]:
    return db.session.get(Job, job_id)


def list_jobs(status: Optional[str] = None, limit: int = 20) -> List[Job]:
    q = Job.query
    if status:
        q = q.filter_by(status=status)
    return q.order_by(Job.created_at.desc(), Job.id.desc()).limit(limit).all()


def job_status_for_asset(asset_id: int) -> dict:
    """Current job for the asset and its 1-indexed queue position (0 when running)."""
    jobs = _active_jobs_for(asset_id)
    if not jobs:
        return {"status": "idle", "job": None, "queue_position": None}

    running = [j for j in jobs if j.status == JOB_RUNNING]
    if running:
        return {"status": JOB_RUNNING, "job": running[0].to_dict(), "queue_position": 0}

    job = jobs[0]
    queued_ids = [
        row.id for row in
        db.session.query(Job.id).filter(Job.status == JOB_QUEUED).order_by(*_queue_order()).all()
    ]
    return {
        "status": JOB_QUEUED,
        "job": job.to_dict(),
        "queue_position": queued_ids.index(job.id) + 1,
    }


def queue_stats() -> dict:
    """Queue depth and average processing time over the last 10 finished jobs."""
    depth = Job.query.filter_by(status=JOB_QUEUED).count()
    recent = (
        Job.query.filter(Job.status == JOB_DONE, Job.started_at.isnot(None), Job.finished_at.isnot(None))
        .order_by(Job.finished_at.desc())
        .limit(10)
        .all()
    )
    durations = [(j.finished_at - j.started_at).total_seconds() for j in recent]
    avg = sum(durations) / len(durations) if durations else DEFAULT_PROCESSING_SECONDS
    return {"total_queued": depth, "avg_processing_time_seconds": round(avg)}


def job_stats() -> dict:
    """Status counts over the 100 most recent jobs, plus the 5 newest."""
    recent = Job.query.order_by(Job.created_at.desc(), Job.id.desc()).limit(100).all()
    stats = {"total": len(recent)}
    for status in (JOB_QUEUED, JOB_RUNNING, JOB_DONE, JOB_ERROR):
        stats[status] = sum(1 for j in recent if j.status == status)
    stats["recent"] = [
        {
            "id": j.id,
            "type": j.type,
            "status": j.status,
            "created_at": j.to_dict()["created_at"],
            "finished_at": j.to_dict()["finished_at"],
            "error": j.error,
        }
        for j in recent[:5]
    ]
    return stats
