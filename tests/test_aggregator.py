from decentscore.services.aggregator import (
    DATA_CONFLICT,
    SINGLE_SOURCE,
    aggregate_holders,
    consensus_status,
)
from decentscore.services.evidence import Absent, Failed, Ok

from factories import holders


def test_no_successful_source_returns_none():
    assert aggregate_holders([]) is None
    assert aggregate_holders([Failed("ethplorer", "boom"), Absent("covalent")]) is None


def test_single_source_is_tagged():
    ev = aggregate_holders([Ok("ethplorer", holders()), Failed("covalent", "timeout")])
    assert ev.consensus_status == SINGLE_SOURCE
    assert ev.contributing_sources == ["ethplorer"]
    assert ev.top10_pct == 50.0


def test_two_sources_agree():
    a = holders("ethplorer", top10=50.0, hhi=1000.0)
    b = holders("covalent", top10=51.0, hhi=1010.0)
    assert consensus_status([a, b]) == "2 sources agree"


def test_hhi_spread_alone_is_a_conflict():
    # top10 variance 4 passes, hhi variance 625 does not
    a = holders("ethplorer", top10=40.0, hhi=1200.0)
    b = holders("covalent", top10=44.0, hhi=1250.0)
    assert consensus_status([a, b]) == DATA_CONFLICT


def test_two_sources_conflict():
    a = holders("ethplorer", top10=50.0)
    b = holders("covalent", top10=70.0)
    assert consensus_status([a, b]) == DATA_CONFLICT
    assert consensus_status([holders(top10=20.0), holders("covalent", top10=60.0)]) == DATA_CONFLICT


def test_merge_is_coverage_weighted():
    a = holders("ethplorer", top10=50.0, coverage=60.0, nakamoto=3, sample=20, block=10)
    b = holders("covalent", top10=70.0, coverage=40.0, nakamoto=5, sample=30, block=12)
    ev = aggregate_holders([Ok("ethplorer", a), Ok("covalent", b)])

    assert ev.top10_pct == 58.0
    assert ev.nakamoto == 5
    assert ev.sample_size == 25
    assert ev.observed_at_block == 12
    assert ev.contributing_sources == ["ethplorer", "covalent"]
    # plantilla: la fuente con mayor cobertura
    assert ev.source_name == "ethplorer"
    assert ev.consensus_status == DATA_CONFLICT


def test_merged_scalars_stay_within_source_range():
    a = holders("ethplorer", top10=45.0, hhi=900.0, coverage=80.0)
    b = holders("covalent", top10=47.0, hhi=950.0, coverage=20.0)
    ev = aggregate_holders([Ok("ethplorer", a), Ok("covalent", b)])
    assert 45.0 <= ev.top10_pct <= 47.0
    assert 900.0 <= ev.hhi <= 950.0


def test_zero_coverage_uses_equal_weights():
    a = holders("ethplorer", top10=40.0, coverage=0.0)
    b = holders("covalent", top10=60.0, coverage=0.0)
    ev = aggregate_holders([Ok("ethplorer", a), Ok("covalent", b)])
    assert ev.top10_pct == 50.0
