import pytest

from decentscore.errors import RefreshInProgressError, UnsupportedChainError
from decentscore.models import db
from decentscore.models.asset import ASSET_ACTIVE
from decentscore.models.refresh_lock import LOCK_COMPLETED, LOCK_FAILED, RefreshLock
from decentscore.models.score import Score
from decentscore.services import refresh_lock, store
from decentscore.services.evidence import Absent, Failed, Ok
from decentscore.services.orchestrator import asset_ingested, call_provider
from decentscore.services.refresh import refresh_history, run_refresh

from factories import UNI, Broken, Fixed, holders, make_orchestrator


def test_call_provider_tags_outcomes():
    assert isinstance(call_provider("x", lambda: 1), Ok)
    assert isinstance(call_provider("x", lambda: None), Absent)
    assert isinstance(call_provider("x", lambda: []), Absent)
    failed = call_provider("x", Broken("x", UnsupportedChainError("x", 5)).fetch)
    assert isinstance(failed, Failed) and failed.unsupported_chain


def test_partial_failure_still_scores(app):
    result = make_orchestrator().ingest("eip155:1", UNI)

    assert result["failed_providers"] == ["ethplorer", "introspection"]
    assert result["observed_at_block"] == 19_000_000

    score = db.session.get(Score, result["score_id"])
    # sin contrato ni holders: valores por defecto y confianza de ausencia
    assert score.sub_scores["controlRisk"] == 45.0
    assert score.sub_scores["ownership"] == 45.0
    assert score.confidence["ownership"] == 0.3
    assert score.confidence["governance"] == 0.25
    assert score.liquidity_id is not None
    assert score.contract_id is None
    assert 0 <= score.total <= 100

    asset = store.get_asset(result["asset_id"])
    assert asset.status == ASSET_ACTIVE
    assert store.latest_liquidity(asset.id).observed_at_block == 19_000_000


def test_score_block_never_goes_backwards(app):
    first = make_orchestrator(head=500).ingest(1, UNI)
    second = make_orchestrator(head=100).ingest(1, UNI)
    assert second["observed_at_block"] >= first["observed_at_block"]


def test_holders_metadata_applied(app):
    ev = holders(block=0)
    ev.symbol = "UNI"
    orch = make_orchestrator(holders=[Fixed("ethplorer", ev)])
    result = orch.ingest(1, UNI)
    asset = store.get_asset(result["asset_id"])
    assert asset.symbol == "UNI"
    assert store.latest_holders(asset.id).consensus_status == "single-source"


def test_volatile_refresh_only_touches_liquidity(app):
    holders_provider = Fixed("ethplorer", holders())
    orch = make_orchestrator(holders=[holders_provider])
    result = orch.ingest(1, UNI, "volatile")
    assert holders_provider.calls == 0
    assert result["provider_calls"] == 2  # liquidity + head block


def test_unknown_refresh_class(app):
    with pytest.raises(ValueError):
        make_orchestrator().ingest(1, UNI, "hourly")


def test_subscriber_failure_does_not_break_ingestion(app):
    seen = []

    def good(sender, **kw):
        seen.append(kw["score_id"])

    def bad(sender, **kw):
        raise RuntimeError("subscriber down")

    asset_ingested.connect(bad)
    asset_ingested.connect(good)
    try:
        result = make_orchestrator().ingest(1, UNI)
    finally:
        asset_ingested.disconnect(bad)
        asset_ingested.disconnect(good)
    assert seen == [result["score_id"]]


def test_run_refresh_releases_lock_and_records_history(app):
    result = run_refresh(1, UNI, orchestrator=make_orchestrator())
    lock = RefreshLock.query.filter_by(asset_id=result["asset_id"]).one()
    assert lock.status == LOCK_COMPLETED
    history = refresh_history(result["asset_id"])
    assert history[0].success is True
    assert history[0].provider_calls == result["provider_calls"]


def test_run_refresh_failure_marks_lock_failed(app):
    class Exploding:
        def ingest(self, *args):
            raise RuntimeError("db gone")

    with pytest.raises(RuntimeError):
        run_refresh(1, UNI, orchestrator=Exploding())
    asset = store.find_asset(1, UNI)
    lock = RefreshLock.query.filter_by(asset_id=asset.id).one()
    assert lock.status == LOCK_FAILED
    assert refresh_history(asset.id)[0].error == "db gone"


def test_run_refresh_contention(app):
    asset = store.ensure_asset(1, UNI)
    refresh_lock.acquire(asset.id, "full", "other-worker")
    orch = make_orchestrator()
    with pytest.raises(RefreshInProgressError):
        run_refresh(1, UNI, orchestrator=orch)
    assert Score.query.count() == 0
