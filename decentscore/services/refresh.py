# decentscore/services/refresh.py
"""Locked entry point: every production ingestion goes through ``run_refresh``."""
import logging

from decentscore.models import db
from decentscore.models.refresh_lock import RefreshHistory
from decentscore.services import refresh_lock, store
from decentscore.services.orchestrator import get_orchestrator
from decentscore.utils import utcnow

logger = logging.getLogger(__name__)


def _record_history(asset_id: int, refresh_class: str, started_at, success: bool,
                    error: str = None, provider_calls: int = 0) -> None:
    db.session.add(RefreshHistory(
        asset_id=asset_id,
        refresh_class=refresh_class,
        started_at=started_at,
        completed_at=utcnow(),
        success=success,
        error=error,
        provider_calls=provider_calls,
    ))
    db.session.commit()


def run_refresh(chain_id, address: str, refresh_class: str = "full", owner: str = "system",
                orchestrator=None) -> dict:
    """
    Acquire the (asset, class) lock, ingest, release.

    Raises ``RefreshInProgressError`` when another refresh holds the lock.
    Ingestion errors release the lock as failed and propagate.
    """
    orchestrator = orchestrator or get_orchestrator()
    asset = store.ensure_asset(chain_id, address)
    asset_id = asset.id
    lock = refresh_lock.acquire(asset_id, refresh_class, owner)
    started_at = utcnow()
    extra = {"asset_id": asset_id, "refresh_class": refresh_class}

    try:
        result = orchestrator.ingest(asset.chain_id, asset.address, refresh_class)
    except Exception as e:
        db.session.rollback()
        refresh_lock.release(lock, success=False)
        _record_history(asset_id, refresh_class, started_at, False, error=str(e))
        logger.error("refresh failed: %s", e, extra=extra)
        raise

    refresh_lock.release(lock, success=True)
    _record_history(asset_id, refresh_class, started_at, True, provider_calls=result.get("provider_calls", 0))
    return result


def refresh_history(asset_id: int, limit: int = 20):
    return (
        RefreshHistory.query.filter_by(asset_id=asset_id)
        .order_by(RefreshHistory.started_at.desc(), RefreshHistory.id.desc())
        .limit(limit)
        .all()
    )
