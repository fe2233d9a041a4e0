# decentscore/services/composer.py
from typing import Dict, Mapping, Optional, Tuple

from decentscore.utils import clamp

SCORE_KEYS = (
    "ownership",
    "controlRisk",
    "liquidity",
    "governance",
    "chainLevel",
    "codeAssurance",
)

DEFAULT_WEIGHTS = {
    "ownership": 0.30,
    "controlRisk": 0.30,
    "liquidity": 0.15,
    "governance": 0.15,
    "chainLevel": 0.05,
    "codeAssurance": 0.05,
}


def total_score(
    sub_scores: Mapping[str, float],
    weights: Optional[Mapping[str, float]] = None,
    confidence: Optional[Mapping[str, float]] = None,
) -> Tuple[float, Dict[str, float]]:
    """
    Confidence-weighted total.

    Each configured weight is scaled by the category confidence and the result is
    renormalized, so low-confidence categories hand their share to the rest.
    Returns ``(total, weights)`` where ``weights`` are the persisted, normalized ones.
    """
    raw = dict(DEFAULT_WEIGHTS)
    raw.update(weights or {})
    conf = {k: 1.0 for k in SCORE_KEYS}
    conf.update(confidence or {})

    adjusted = {k: clamp(raw[k] * clamp(conf[k], 0, 1), 0, 1) for k in SCORE_KEYS}
    adjusted_sum = sum(adjusted.values())
    if adjusted_sum <= 0:
        adjusted = {k: raw[k] for k in SCORE_KEYS}
        adjusted_sum = sum(adjusted.values())

    denom = adjusted_sum if adjusted_sum > 0 else 1
    normalized = {k: round(adjusted[k] / denom, 4) for k in SCORE_KEYS}

    total = sum(sub_scores[k] * normalized[k] for k in SCORE_KEYS)
    return clamp(round(total, 2)), normalized
