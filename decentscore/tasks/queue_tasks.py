# decentscore/tasks/queue_tasks.py
import logging

from celery import shared_task

from decentscore.errors import RefreshInProgressError
from decentscore.services import jobs, refresh_lock
from decentscore.services.refresh import run_refresh

logger = logging.getLogger(__name__)


@shared_task(name="queue.drain")
def drain():
    """Beat tick: process the next batch of queued refresh jobs."""
    return jobs.drain_queue()


@shared_task(name="locks.sweep")
def sweep_locks():
    """Beat tick: delete terminal refresh locks past retention."""
    return {"deleted": refresh_lock.sweep()}


@shared_task(name="asset.refresh")
def refresh_asset(chain_id: str, address: str, refresh_class: str = "full"):
    """Direct locked refresh, for operators; contention is reported, not retried."""
    try:
        return run_refresh(chain_id, address, refresh_class, owner="celery")
    except RefreshInProgressError as e:
        logger.info("refresh skipped: %s", e)
        return {"ok": False, "error": str(e)}
