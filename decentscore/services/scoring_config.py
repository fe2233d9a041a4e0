# decentscore/services/scoring_config.py
import logging
from typing import Dict, Mapping

from flask import current_app

from decentscore.models import db
from decentscore.models.scoring_config import ScoringConfig
from decentscore.services.composer import DEFAULT_WEIGHTS, SCORE_KEYS

logger = logging.getLogger(__name__)


def get_active_config():
    return (
        ScoringConfig.query.filter_by(active=True)
        .order_by(ScoringConfig.created_at.desc(), ScoringConfig.id.desc())
        .first()
    )


def get_active_weights() -> Dict[str, float]:
    """Active weight set from the DB, else ``SCORE_WEIGHTS`` from config."""
    cfg = get_active_config()
    if cfg:
        return {k: float(cfg.weights.get(k, 0.0)) for k in SCORE_KEYS}
    configured = current_app.config.get("SCORE_WEIGHTS") or DEFAULT_WEIGHTS
    return {k: float(configured.get(k, 0.0)) for k in SCORE_KEYS}


def validate_weights(weights: Mapping[str, float]) -> Dict[str, float]:
    unknown = set(weights) - set(SCORE_KEYS)
    if unknown:
        raise ValueError(f"Unknown categories: {sorted(unknown)}")
    missing = [k for k in SCORE_KEYS if k not in weights]
    if missing:
        raise ValueError(f"Missing categories: {missing}")
    out = {}
    for k in SCORE_KEYS:
        try:
            v = float(weights[k])
        except (TypeError, ValueError):
            raise ValueError(f"Weight for '{k}' must be a number")
        if v < 0:
            raise ValueError(f"Weight for '{k}' must be >= 0")
        out[k] = v
    if sum(out.values()) <= 0:
        raise ValueError("Weights must not all be zero")
    return out


def set_active_weights(weights: Mapping[str, float], version: str = None) -> ScoringConfig:
    """Deactivate the current set and store a new active version."""
    clean = validate_weights(weights)
    ScoringConfig.query.filter_by(active=True).update({"active": False})
    cfg = ScoringConfig(
        weights=clean,
        version=version or current_app.config.get("CALC_VERSION", "0.4.0"),
        active=True,
    )
    db.session.add(cfg)
    db.session.commit()
    logger.info("scoring weights updated (config id=%s)", cfg.id)
    return cfg
