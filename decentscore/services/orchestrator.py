# decentscore/services/orchestrator.py
"""
One ingestion run: fetch every evidence category concurrently, persist what
succeeded, rescore from the latest persisted evidence and store the Score.

Worker threads only do network I/O; every DB write happens on the calling
thread after the join.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional

from blinker import Namespace
from flask import current_app
from prometheus_client import Counter

from decentscore.errors import UnsupportedChainError
from decentscore.models import db
from decentscore.providers.base import ProviderSet
from decentscore.services import store
from decentscore.services.aggregator import aggregate_holders
from decentscore.services.evidence import Absent, EvidenceResult, Failed, Ok
from decentscore.services.scoring import score_bundle
from decentscore.services.scoring_config import get_active_weights

logger = logging.getLogger(__name__)

_signals = Namespace()
# receivers get: sender=Orchestrator, asset_id, score_id, chain_id, address
asset_ingested = _signals.signal("asset-ingested")

PROVIDER_FAILURES = Counter(
    "decentscore_provider_failures_total",
    "Evidence provider calls that raised",
    ["provider"],
)
INGESTIONS = Counter(
    "decentscore_ingestions_total",
    "Completed ingestion runs",
    ["refresh_class"],
)

CATEGORIES = ("contract", "holders", "liquidity", "governance", "chain_stats", "audits")

REFRESH_CATEGORIES = {
    "full": set(CATEGORIES),
    "semiVolatile": {"holders", "liquidity", "governance"},
    "volatile": {"liquidity"},
}


def call_provider(source: str, fn, *args) -> EvidenceResult:
    """Run one provider call and tag the outcome; never raises."""
    try:
        value = fn(*args)
    except UnsupportedChainError as e:
        PROVIDER_FAILURES.labels(provider=source).inc()
        logger.info("provider skipped: %s", e, extra={"provider": source})
        return Failed(source, str(e), unsupported_chain=True)
    except Exception as e:
        PROVIDER_FAILURES.labels(provider=source).inc()
        logger.warning("provider failed: %s", e, extra={"provider": source})
        return Failed(source, str(e))
    if value is None or value == []:
        return Absent(source)
    return Ok(source, value)


class Orchestrator:
    def __init__(self, providers: ProviderSet, max_workers: int = 8, calc_version: str = "0.4.0"):
        self.providers = providers
        self.max_workers = max_workers
        self.calc_version = calc_version

    def _calls(self, chain_id, address: str, categories) -> List[tuple]:
        p = self.providers
        calls = []
        if "contract" in categories and p.contract is not None:
            calls.append(("contract", p.contract.name, p.contract.fetch, (chain_id, address)))
        if "holders" in categories:
            for h in p.holders:
                calls.append(("holders", h.name, h.fetch, (chain_id, address)))
        if "liquidity" in categories and p.liquidity is not None:
            calls.append(("liquidity", p.liquidity.name, p.liquidity.fetch, (chain_id, address)))
        if "governance" in categories and p.governance is not None:
            calls.append(("governance", p.governance.name, p.governance.fetch, (chain_id, address)))
        if "chain_stats" in categories and p.chain_stats is not None:
            calls.append(("chain_stats", p.chain_stats.name, p.chain_stats.fetch, (chain_id,)))
        if "audits" in categories and p.audits is not None:
            calls.append(("audits", p.audits.name, p.audits.fetch, (chain_id, address)))
        if p.blocks is not None:
            calls.append(("head_block", "rpc", p.blocks.block_number, (chain_id,)))
        return calls

    def collect(self, chain_id, address: str, refresh_class: str = "full") -> Dict[str, List[EvidenceResult]]:
        """Dispatch the providers for a refresh class concurrently; join before returning."""
        categories = REFRESH_CATEGORIES[refresh_class]
        calls = self._calls(chain_id, address, categories)
        results: Dict[str, List[EvidenceResult]] = {}
        if not calls:
            return results
        with ThreadPoolExecutor(max_workers=max(1, min(self.max_workers, len(calls)))) as ex:
            futs = {ex.submit(call_provider, name, fn, *args): cat for cat, name, fn, args in calls}
            for fut in as_completed(futs):
                results.setdefault(futs[fut], []).append(fut.result())
        return results

    def ingest(self, chain_id, address: str, refresh_class: str = "full") -> dict:
        if refresh_class not in REFRESH_CATEGORIES:
            raise ValueError(f"Unknown refresh class: {refresh_class}")

        asset = store.ensure_asset(chain_id, address)
        extra = {"asset_id": asset.id, "refresh_class": refresh_class}
        results = self.collect(asset.chain_id, asset.address, refresh_class)

        def first(cat):
            for r in results.get(cat, []):
                if isinstance(r, Ok):
                    return r.value
            return None

        # bloque de esta corrida: cabeza de la cadena, nunca por debajo del ultimo score
        last = store.latest_score(asset.id)
        run_block = max(first("head_block") or 0, last.observed_at_block if last else 0)

        contract = first("contract")
        holders = aggregate_holders(results.get("holders", []))
        liquidity = first("liquidity")
        governance = first("governance")
        chain_stats = first("chain_stats")
        audits = first("audits") or []

        try:
            blocks_seen = [run_block]
            for ev in (contract, holders, liquidity):
                if ev is None:
                    continue
                if not ev.observed_at_block:
                    ev.observed_at_block = run_block
                blocks_seen.append(ev.observed_at_block)

            if contract is not None:
                store.add_contract(asset.id, contract)
            if holders is not None:
                store.add_holders(asset.id, holders)
                store.apply_metadata(asset, holders)
            if liquidity is not None:
                store.add_liquidity(asset.id, liquidity)
            if governance is not None:
                store.upsert_governance(asset.id, governance)
            if chain_stats is not None:
                store.upsert_chain_stats(asset.chain_id, chain_stats)
            if audits:
                store.add_audits(asset.id, audits)
            db.session.flush()

            bundle, rows = store.load_bundle(asset)
            observed_at_block = max(max(blocks_seen), store.max_referenced_block(rows))
            result = score_bundle(bundle, get_active_weights())
            score = store.add_score(asset, result, rows, observed_at_block, self.calc_version, refresh_class)
            store.mark_active(asset)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        failed = sorted(
            r.source for rs in results.values() for r in rs if isinstance(r, Failed)
        )
        INGESTIONS.labels(refresh_class=refresh_class).inc()
        logger.info(
            "asset ingested (score=%s total=%s failed=%s)", score.id, score.total, failed or "-",
            extra=extra,
        )
        self._emit(asset, score)

        return {
            "asset_id": asset.id,
            "score_id": score.id,
            "observed_at_block": observed_at_block,
            "total": score.total,
            "failed_providers": failed,
            "provider_calls": sum(len(rs) for rs in results.values()),
        }

    def _emit(self, asset, score) -> None:
        """Notify subscribers one by one; a failing subscriber is logged and skipped."""
        for receiver in asset_ingested.receivers_for(self):
            try:
                receiver(
                    self,
                    asset_id=asset.id,
                    score_id=score.id,
                    chain_id=asset.chain_id,
                    address=asset.address,
                )
            except Exception:
                logger.exception("asset_ingested subscriber failed", extra={"asset_id": asset.id})


def get_orchestrator() -> Orchestrator:
    """Per-app orchestrator built from config; tests may replace it in ``app.extensions``."""
    ext = current_app.extensions
    orch = ext.get("decentscore.orchestrator")
    if orch is None:
        from decentscore.providers import build_provider_set

        cfg = current_app.config
        orch = Orchestrator(
            build_provider_set(cfg),
            max_workers=cfg.get("PROVIDER_MAX_WORKERS", 8),
            calc_version=cfg.get("CALC_VERSION", "0.4.0"),
        )
        ext["decentscore.orchestrator"] = orch
    return orch
