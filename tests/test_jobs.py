from datetime import timedelta

import pytest

from decentscore.errors import JobStateError, RefreshInProgressError
from decentscore.models import db
from decentscore.models.job import JOB_DONE, JOB_ERROR, JOB_QUEUED
from decentscore.services import jobs, refresh_lock, store

from factories import AAVE, UNI, make_orchestrator


def test_enqueue_returns_existing_job(app):
    first = jobs.enqueue_refresh("eip155:1", UNI)
    again = jobs.enqueue_refresh("eip155:1", UNI)
    assert first.id == again.id
    assert first.status == JOB_QUEUED
    assert first.priority == jobs.DEFAULT_PRIORITY
    # otra clase es otro job
    assert jobs.enqueue_refresh("eip155:1", UNI, "volatile").id != first.id


def test_enqueue_replaces_abandoned_running_job(app):
    dead = jobs.enqueue_refresh(1, UNI)
    assert jobs._claim(dead)
    dead.started_at = dead.started_at - timedelta(hours=6)
    db.session.commit()

    fresh = jobs.enqueue_refresh(1, UNI)
    assert fresh.id != dead.id
    assert fresh.status == JOB_QUEUED
    assert jobs.get_job(dead.id).status == JOB_ERROR
    assert jobs.get_job(dead.id).error == "stale"

    summary = jobs.drain_queue(batch_size=5, orchestrator=make_orchestrator())
    assert summary == {"processed": 1, "done": 1, "error": 0}


def test_enqueue_keeps_recent_running_job(app):
    running = jobs.enqueue_refresh(1, UNI)
    assert jobs._claim(running)
    assert jobs.enqueue_refresh(1, UNI).id == running.id


def test_enqueue_rejected_while_locked(app):
    asset = store.ensure_asset(1, UNI)
    refresh_lock.acquire(asset.id, "full")
    with pytest.raises(RefreshInProgressError):
        jobs.enqueue_refresh(1, UNI)


def test_enqueue_unknown_class(app):
    with pytest.raises(ValueError):
        jobs.enqueue_refresh(1, UNI, "hourly")


def test_backfill_skips_busy_assets(app):
    busy = store.ensure_asset(1, AAVE)
    refresh_lock.acquire(busy.id, "full")
    out = jobs.enqueue_backfill(1, [UNI, AAVE])
    assert out["enqueued"] == 1
    assert out["skipped"] == [AAVE]
    assert jobs.get_job(out["job_ids"][0]).priority == jobs.BACKFILL_PRIORITY


def test_queue_order_priority_then_age(app):
    low = jobs.enqueue_refresh(1, UNI)
    high = jobs.enqueue_refresh(1, AAVE, priority=jobs.BACKFILL_PRIORITY)
    assert [j.id for j in jobs.list_queued()] == [high.id, low.id]


def test_drain_processes_jobs(app):
    job = jobs.enqueue_refresh(1, UNI)
    summary = jobs.drain_queue(batch_size=5, orchestrator=make_orchestrator())
    assert summary == {"processed": 1, "done": 1, "error": 0}

    job = jobs.get_job(job.id)
    assert job.status == JOB_DONE
    assert job.result["score_id"]
    assert job.started_at is not None and job.finished_at is not None
    assert jobs.list_queued() == []


def test_drain_respects_batch_size(app):
    jobs.enqueue_refresh(1, UNI)
    jobs.enqueue_refresh(1, AAVE)
    summary = jobs.drain_queue(batch_size=1, orchestrator=make_orchestrator())
    assert summary["processed"] == 1
    assert len(jobs.list_queued()) == 1


def test_failed_refresh_marks_job_error(app):
    class Exploding:
        def ingest(self, *args):
            raise RuntimeError("rpc exploded")

    job = jobs.enqueue_refresh(1, UNI)
    summary = jobs.drain_queue(orchestrator=Exploding())
    assert summary["error"] == 1
    job = jobs.get_job(job.id)
    assert job.status == JOB_ERROR
    assert job.error == "rpc exploded"


def test_terminal_jobs_are_immutable(app):
    job = jobs.enqueue_refresh(1, UNI)
    jobs.mark_done(job, {"ok": True})
    with pytest.raises(JobStateError):
        jobs.mark_error(job, "late failure")


def test_job_status_for_asset(app):
    other = jobs.enqueue_refresh(1, AAVE, priority=jobs.BACKFILL_PRIORITY)
    job = jobs.enqueue_refresh(1, UNI)
    status = jobs.job_status_for_asset(job.asset_id)
    assert status["status"] == JOB_QUEUED
    assert status["queue_position"] == 2
    assert jobs.job_status_for_asset(9999)["status"] == "idle"
    assert other.asset_id != job.asset_id


def test_queue_stats_default_and_average(app):
    stats = jobs.queue_stats()
    assert stats == {"total_queued": 0, "avg_processing_time_seconds": jobs.DEFAULT_PROCESSING_SECONDS}

    job = jobs.enqueue_refresh(1, UNI)
    jobs.mark_done(job)
    job.started_at = job.finished_at - timedelta(seconds=30)
    db.session.commit()
    assert jobs.queue_stats()["avg_processing_time_seconds"] == 30


def test_job_stats_counts(app):
    jobs.enqueue_refresh(1, UNI)
    done = jobs.enqueue_refresh(1, AAVE)
    jobs.mark_error(done, "boom")
    stats = jobs.job_stats()
    assert stats["total"] == 2
    assert stats["queued"] == 1
    assert stats["error"] == 1
    assert len(stats["recent"]) == 2
