from decentscore.tasks.celery_app import celery
from decentscore.tasks import queue_tasks


def test_beat_schedule():
    schedule = celery.conf.beat_schedule
    assert schedule["drain-refresh-queue"]["task"] == "queue.drain"
    assert schedule["drain-refresh-queue"]["schedule"] == 60.0
    assert schedule["sweep-refresh-locks"]["task"] == "locks.sweep"


def test_drain_task_with_empty_queue(app):
    assert queue_tasks.drain() == {"processed": 0, "done": 0, "error": 0}


def test_sweep_task(app):
    assert queue_tasks.sweep_locks() == {"deleted": 0}
