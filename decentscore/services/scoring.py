# decentscore/services/scoring.py
from typing import Mapping, Optional

from decentscore.services.composer import total_score
from decentscore.services.confidence import compute_confidence
from decentscore.services.evidence import EvidenceBundle
from decentscore.services.subscores import compute_subscores


def score_bundle(bundle: EvidenceBundle, weights: Mapping[str, float], now: Optional[float] = None) -> dict:
    """Sub-scores, confidence and the composed total for one evidence bundle."""
    sub = compute_subscores(bundle, now)
    confidence = compute_confidence(bundle, now)
    total, normalized = total_score(sub, weights, confidence)
    return {
        "sub_scores": sub,
        "confidence": confidence,
        "weights": normalized,
        "total": total,
    }
