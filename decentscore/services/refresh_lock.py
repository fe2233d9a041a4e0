# decentscore/services/refresh_lock.py
"""
Single-flight lock per (asset, refresh class).

State machine: absent -> in_progress -> completed | failed. A fresh
in_progress lock rejects new acquisitions; one older than the stale threshold
is marked failed and replaced.
"""
import logging
from datetime import timedelta
from typing import Dict, Optional

from flask import current_app
from prometheus_client import Counter
from sqlalchemy.exc import IntegrityError

from decentscore.errors import RefreshInProgressError
from decentscore.models import db
from decentscore.models.refresh_lock import (
    LOCK_COMPLETED,
    LOCK_FAILED,
    LOCK_IN_PROGRESS,
    LOCK_TERMINAL,
    REFRESH_CLASSES,
    RefreshLock,
)
from decentscore.utils import utcnow

logger = logging.getLogger(__name__)

LOCK_CONTENTION = Counter(
    "decentscore_lock_contention_total",
    "Refresh lock acquisitions rejected because a refresh is in progress",
    ["refresh_class"],
)
STALE_LOCKS = Counter(
    "decentscore_stale_locks_reclaimed_total",
    "In-progress refresh locks reclaimed after the stale threshold",
)


def _stale_after() -> timedelta:
    return timedelta(seconds=current_app.config.get("REFRESH_LOCK_STALE_SECONDS", 300))


def current_lock(asset_id: int, refresh_class: str) -> Optional[RefreshLock]:
    return RefreshLock.query.filter_by(
        asset_id=asset_id, refresh_class=refresh_class, status=LOCK_IN_PROGRESS
    ).first()


def is_locked(asset_id: int, refresh_class: str) -> bool:
    """True when a non-stale in_progress lock exists."""
    lock = current_lock(asset_id, refresh_class)
    return lock is not None and utcnow() - lock.acquired_at < _stale_after()


def acquire(asset_id: int, refresh_class: str = "full", owner: str = "system") -> RefreshLock:
    if refresh_class not in REFRESH_CLASSES:
        raise ValueError(f"Unknown refresh class: {refresh_class}")

    now = utcnow()
    existing = current_lock(asset_id, refresh_class)
    if existing is not None:
        if now - existing.acquired_at < _stale_after():
            LOCK_CONTENTION.labels(refresh_class=refresh_class).inc()
            logger.info(
                "refresh lock busy",
                extra={"asset_id": asset_id, "refresh_class": refresh_class},
            )
            raise RefreshInProgressError(asset_id, refresh_class)
        existing.status = LOCK_FAILED
        existing.released_at = now
        STALE_LOCKS.inc()
        logger.warning(
            "stale refresh lock reclaimed (lock id=%s)", existing.id,
            extra={"asset_id": asset_id, "refresh_class": refresh_class},
        )
        db.session.flush()

    lock = RefreshLock(
        asset_id=asset_id,
        refresh_class=refresh_class,
        owner=owner,
        status=LOCK_IN_PROGRESS,
        acquired_at=now,
    )
    db.session.add(lock)
    try:
        db.session.commit()
    except IntegrityError:
        # el indice unico parcial detecto una carrera entre dos workers
        db.session.rollback()
        LOCK_CONTENTION.labels(refresh_class=refresh_class).inc()
        raise RefreshInProgressError(asset_id, refresh_class)
    return lock


def release(lock: RefreshLock, success: bool) -> RefreshLock:
    """Move the lock to its terminal state. Releasing twice is a no-op."""
    if lock.status in LOCK_TERMINAL:
        return lock
    lock.status = LOCK_COMPLETED if success else LOCK_FAILED
    lock.released_at = utcnow()
    db.session.commit()
    return lock


def sweep(retention_seconds: Optional[int] = None) -> int:
    """Delete terminal locks older than the retention window."""
    if retention_seconds is None:
        retention_seconds = current_app.config.get("REFRESH_LOCK_RETENTION_SECONDS", 3600)
    cutoff = utcnow() - timedelta(seconds=retention_seconds)
    deleted = (
        RefreshLock.query.filter(
            RefreshLock.status.in_(LOCK_TERMINAL),
            RefreshLock.acquired_at < cutoff,
        ).delete(synchronize_session=False)
    )
    db.session.commit()
    if deleted:
        logger.info("swept %s terminal refresh locks", deleted)
    return deleted


def lock_state(asset_id: int) -> Dict[str, Optional[dict]]:
    """Per-class view for queue-status polling."""
    out = {}
    stale_after = _stale_after()
    now = utcnow()
    for cls in REFRESH_CLASSES:
        lock = current_lock(asset_id, cls)
        if lock is None:
            out[cls] = None
            continue
        data = lock.to_dict()
        data["stale"] = now - lock.acquired_at >= stale_after
        out[cls] = data
    return out
