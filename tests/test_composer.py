import random

import pytest

from decentscore.services.composer import DEFAULT_WEIGHTS, SCORE_KEYS, total_score
from decentscore.services.evidence import EvidenceBundle
from decentscore.services.scoring import score_bundle


def flat(value):
    return {k: value for k in SCORE_KEYS}


def test_default_weights_sum_to_one():
    assert sum(DEFAULT_WEIGHTS.values()) == pytest.approx(1.0)


def test_uniform_subscores_give_same_total():
    total, weights = total_score(flat(50.0), DEFAULT_WEIGHTS, flat(0.7))
    assert total == 50.0
    assert sum(weights.values()) == pytest.approx(1.0, abs=1e-3)


def test_zero_confidence_hands_weight_to_other_categories():
    conf = flat(1.0)
    conf["governance"] = 0.0
    sub = flat(80.0)
    sub["governance"] = 0.0
    total, weights = total_score(sub, DEFAULT_WEIGHTS, conf)
    assert weights["governance"] == 0.0
    assert total == pytest.approx(80.0, abs=0.05)


def test_all_zero_confidence_falls_back_to_raw_weights():
    total, weights = total_score(flat(40.0), DEFAULT_WEIGHTS, flat(0.0))
    assert weights == {k: round(v, 4) for k, v in DEFAULT_WEIGHTS.items()}
    assert total == 40.0


def test_total_in_range():
    total, _ = total_score(flat(100.0), {"ownership": 5.0}, flat(1.0))
    assert 0 <= total <= 100


def test_score_bundle_shape():
    out = score_bundle(EvidenceBundle(), DEFAULT_WEIGHTS)
    assert set(out) == {"sub_scores", "confidence", "weights", "total"}
    assert set(out["sub_scores"]) == set(SCORE_KEYS)
    assert 0 <= out["total"] <= 100


def test_weights_sum_to_one_for_mixed_confidence_and_weights():
    rng = random.Random(7)
    weight_sets = [
        DEFAULT_WEIGHTS,
        {"ownership": 5.0},
        {"liquidity": 0.0, "governance": 0.0},
        {k: 1.0 for k in SCORE_KEYS},
        {"ownership": 0.05, "controlRisk": 0.05, "chainLevel": 0.6, "codeAssurance": 0.25},
    ]
    for weights in weight_sets:
        for _ in range(20):
            conf = {k: rng.uniform(0.2, 1.0) for k in SCORE_KEYS}
            sub = {k: rng.uniform(0.0, 100.0) for k in SCORE_KEYS}
            total, normalized = total_score(sub, weights, conf)
            assert abs(sum(normalized.values()) - 1) <= 0.001
            assert 0 <= total <= 100
