import pytest

from decentscore.services.distribution import (
    composition,
    free_float,
    gini,
    hhi,
    holder_metrics,
    nakamoto,
    top_pct,
    variance,
)


def test_gini_is_zero_for_single_holder_and_equal_split():
    assert gini([100]) == 0.0
    assert gini([50, 50]) == 0.0
    assert gini([]) == 0.0
    assert gini([0, 0]) == 0.0


def test_gini_grows_with_concentration():
    assert gini([90, 5, 5]) > gini([40, 30, 30]) > gini([34, 33, 33])


def test_gini_ignores_zero_shares():
    assert gini([50, 50, 0, 0]) == 0.0


def test_hhi_bounds():
    assert hhi([100]) == 10000
    assert hhi([50, 50]) == 5000
    assert hhi([]) == 0


def test_nakamoto_counts_leading_holders_to_half():
    assert nakamoto([60, 10, 10, 5, 5, 5, 5]) == 1
    assert nakamoto([30, 25, 20]) == 2
    assert nakamoto([50]) == 1
    # nunca cruza el 50%: todos los holders de la muestra
    assert nakamoto([10, 10, 10]) == 3


def test_top_pct():
    shares = [40, 30, 20, 10]
    assert top_pct(shares, 1) == 40
    assert top_pct(shares, 3) == 90
    assert top_pct(shares, 10) == 100
    assert top_pct(shares, 0) == 0


def test_free_float_integer_arithmetic():
    supply = 10 ** 30 + 7
    assert free_float(1000, 40.0) == 600
    assert free_float(supply, 0) == supply
    assert free_float(supply, 100) == 0
    assert isinstance(free_float(supply, 12.34), int)


def test_composition_splits_contract_and_eoa():
    out = composition([40, 30, 20], [True, False, False])
    assert out == {"coverage_pct": 90, "contract_share_pct": 40, "eoa_share_pct": 50}


def test_holder_metrics_keys():
    m = holder_metrics([40, 30, 20], [True, False, False])
    assert m["top1_pct"] == 40
    assert m["top3_pct"] == 90
    assert m["nakamoto"] == 2
    assert m["hhi"] == 2900
    assert 0 < m["gini"] < 1


def test_variance_population():
    assert variance([]) == 0.0
    assert variance([50, 70]) == pytest.approx(100.0)
