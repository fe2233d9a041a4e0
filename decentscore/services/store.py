# decentscore/services/store.py
"""
Snapshot/score store: asset identity, evidence persistence and latest-row reads.

Evidence rows are append-only (governance and chain stats are upserted);
readers always take the newest row per category.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from decentscore.errors import AssetNotFoundError
from decentscore.models import db
from decentscore.models.asset import Asset, ASSET_ACTIVE, ASSET_PENDING
from decentscore.models.evidence import (
    Audit,
    ChainStats,
    ContractIntrospection,
    GovernanceSnapshot,
    HoldersSnapshot,
    LiquiditySnapshot,
)
from decentscore.models.score import Score
from decentscore.services.chains import to_caip_chain_id
from decentscore.services.evidence import (
    AuditRecord,
    ChainStatsEvidence,
    ContractEvidence,
    EvidenceBundle,
    GovernanceEvidence,
    HoldersEvidence,
    LiquidityEvidence,
)
from decentscore.utils import utcnow

logger = logging.getLogger(__name__)


# ---------------------------
# Assets
# ---------------------------

def _norm_addr(address: str) -> str:
    addr = (address or "").strip().lower()
    if not (addr.startswith("0x") and len(addr) == 42):
        raise ValueError(f"Invalid contract address: {address!r}")
    try:
        int(addr[2:], 16)
    except ValueError:
        raise ValueError(f"Invalid contract address: {address!r}")
    return addr


def find_asset(chain_id, address: str) -> Optional[Asset]:
    return Asset.query.filter_by(chain_id=to_caip_chain_id(chain_id), address=_norm_addr(address)).first()


def get_asset(asset_id: int) -> Asset:
    asset = db.session.get(Asset, asset_id)
    if asset is None:
        raise AssetNotFoundError(f"Asset {asset_id} not found")
    return asset


def ensure_asset(chain_id, address: str, standard: str = "erc20") -> Asset:
    """Return the asset, creating it as ``pending`` on first reference."""
    caip = to_caip_chain_id(chain_id)
    addr = _norm_addr(address)
    asset = Asset.query.filter_by(chain_id=caip, address=addr).first()
    if asset:
        return asset
    asset = Asset(chain_id=caip, address=addr, standard=standard, status=ASSET_PENDING)
    db.session.add(asset)
    try:
        db.session.commit()
    except IntegrityError:
        # otra peticion la creo a la vez
        db.session.rollback()
        asset = Asset.query.filter_by(chain_id=caip, address=addr).first()
    return asset


def apply_metadata(asset: Asset, holders: Optional[HoldersEvidence]) -> None:
    if holders is None:
        return
    for field in ("symbol", "name", "decimals", "icon_url"):
        value = getattr(holders, field, None)
        if value is not None:
            setattr(asset, field, value)


def mark_active(asset: Asset) -> None:
    asset.status = ASSET_ACTIVE
    asset.updated_at = utcnow()


# ---------------------------
# Evidence writes
# ---------------------------

def add_contract(asset_id: int, ev: ContractEvidence) -> ContractIntrospection:
    row = ContractIntrospection.from_evidence(asset_id, ev)
    db.session.add(row)
    return row


def add_holders(asset_id: int, ev: HoldersEvidence) -> HoldersSnapshot:
    row = HoldersSnapshot.from_evidence(asset_id, ev)
    db.session.add(row)
    return row


def add_liquidity(asset_id: int, ev: LiquidityEvidence) -> LiquiditySnapshot:
    row = LiquiditySnapshot.from_evidence(asset_id, ev)
    db.session.add(row)
    return row


def upsert_governance(asset_id: int, ev: GovernanceEvidence) -> GovernanceSnapshot:
    row = GovernanceSnapshot.query.filter_by(asset_id=asset_id).first()
    if row is None:
        row = GovernanceSnapshot(asset_id=asset_id, created_at=ev.observed_at)
        db.session.add(row)
    row.apply(ev)
    return row


def upsert_chain_stats(chain_id, ev: ChainStatsEvidence) -> ChainStats:
    caip = to_caip_chain_id(chain_id)
    row = ChainStats.query.filter_by(chain_id=caip).first()
    if row is None:
        row = ChainStats(chain_id=caip)
        db.session.add(row)
    row.apply(ev)
    return row


def add_audits(asset_id: int, audits: List[AuditRecord]) -> int:
    """Insert audits not yet recorded for the asset; returns how many were new."""
    existing = {
        (a.firm, a.report_url)
        for a in Audit.query.filter_by(asset_id=asset_id).all()
    }
    added = 0
    for rec in audits:
        key = (rec.firm, rec.report_url)
        if key in existing:
            continue
        existing.add(key)
        db.session.add(Audit(
            asset_id=asset_id,
            firm=rec.firm,
            report_url=rec.report_url,
            date=rec.date,
            severity_summary=rec.severity_summary,
        ))
        added += 1
    return added


# ---------------------------
# Latest reads
# ---------------------------

def _latest(model, asset_id: int):
    return (
        model.query.filter_by(asset_id=asset_id)
        .order_by(model.observed_at_block.desc(), model.id.desc())
        .first()
    )


def latest_contract(asset_id: int) -> Optional[ContractIntrospection]:
    return _latest(ContractIntrospection, asset_id)


def latest_holders(asset_id: int) -> Optional[HoldersSnapshot]:
    return _latest(HoldersSnapshot, asset_id)


def latest_liquidity(asset_id: int) -> Optional[LiquiditySnapshot]:
    return _latest(LiquiditySnapshot, asset_id)


def governance_for(asset_id: int) -> Optional[GovernanceSnapshot]:
    return GovernanceSnapshot.query.filter_by(asset_id=asset_id).first()


def chain_stats_for(chain_id) -> Optional[ChainStats]:
    return ChainStats.query.filter_by(chain_id=to_caip_chain_id(chain_id)).first()


def audits_for(asset_id: int) -> List[Audit]:
    return Audit.query.filter_by(asset_id=asset_id).order_by(Audit.date.desc()).all()


def latest_score(asset_id: int) -> Optional[Score]:
    return (
        Score.query.filter_by(asset_id=asset_id)
        .order_by(Score.created_at.desc(), Score.id.desc())
        .first()
    )


def load_bundle(asset: Asset) -> Tuple[EvidenceBundle, dict]:
    """
    Latest persisted evidence per category plus the referenced rows.

    The second element maps each category to its row (or None) so callers can
    store references and compute the score block.
    """
    rows = {
        "contract": latest_contract(asset.id),
        "holders": latest_holders(asset.id),
        "liquidity": latest_liquidity(asset.id),
        "governance": governance_for(asset.id),
        "chain_stats": chain_stats_for(asset.chain_id),
    }
    audits = audits_for(asset.id)
    bundle = EvidenceBundle(
        contract=rows["contract"].to_evidence() if rows["contract"] else None,
        holders=rows["holders"].to_evidence() if rows["holders"] else None,
        liquidity=rows["liquidity"].to_evidence() if rows["liquidity"] else None,
        governance=rows["governance"].to_evidence() if rows["governance"] else None,
        chain_stats=rows["chain_stats"].to_evidence() if rows["chain_stats"] else None,
        audits=[a.to_evidence() for a in audits],
    )
    return bundle, rows


def max_referenced_block(rows: dict) -> int:
    blocks = [
        getattr(row, "observed_at_block", 0) or 0
        for row in rows.values()
        if row is not None
    ]
    return max(blocks, default=0)


def add_score(asset: Asset, result: dict, rows: dict, observed_at_block: int, calc_version: str,
              refresh_class: str = "full") -> Score:
    score = Score(
        asset_id=asset.id,
        observed_at_block=observed_at_block,
        sub_scores=result["sub_scores"],
        weights=result["weights"],
        confidence=result["confidence"],
        total=result["total"],
        calc_version=calc_version,
        refresh_class=refresh_class,
        contract_id=rows["contract"].id if rows.get("contract") else None,
        holders_id=rows["holders"].id if rows.get("holders") else None,
        liquidity_id=rows["liquidity"].id if rows.get("liquidity") else None,
        governance_id=rows["governance"].id if rows.get("governance") else None,
        chain_stats_id=rows["chain_stats"].id if rows.get("chain_stats") else None,
    )
    db.session.add(score)
    return score


def scorecard(asset: Asset) -> dict:
    """Latest score plus the evidence rows it references."""
    score = latest_score(asset.id)
    out = {"asset": asset.to_dict(), "score": None, "evidence": {}}
    if score is None:
        return out
    out["score"] = score.to_dict()
    refs = {
        "contract": (ContractIntrospection, score.contract_id),
        "holders": (HoldersSnapshot, score.holders_id),
        "liquidity": (LiquiditySnapshot, score.liquidity_id),
        "governance": (GovernanceSnapshot, score.governance_id),
        "chain_stats": (ChainStats, score.chain_stats_id),
    }
    for key, (model, row_id) in refs.items():
        row = db.session.get(model, row_id) if row_id else None
        out["evidence"][key] = row.to_dict() if row else None
    out["evidence"]["audits"] = [a.to_dict() for a in audits_for(asset.id)]
    return out
