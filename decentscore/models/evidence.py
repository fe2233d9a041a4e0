# decentscore/models/evidence.py
from decentscore.models import db
from decentscore.models.types import JSONBCompat, Address, BigIntString
from decentscore.services.evidence import (
    AuditRecord,
    ChainStatsEvidence,
    ContractEvidence,
    GovernanceEvidence,
    HolderShare,
    HoldersEvidence,
    LiquidityEvidence,
    Pool,
    RoleHolder,
    Timelock,
    TurnoutRecord,
)
from decentscore.utils import utcnow, iso


class ContractIntrospection(db.Model):
    __tablename__ = "contract_introspections"

    id = db.Column(db.Integer, primary_key=True)
    asset_id = db.Column(db.Integer, db.ForeignKey("assets.id"), nullable=False)
    address = db.Column(Address(), nullable=False)

    verified = db.Column(db.Boolean, nullable=False, default=False)
    upgradeable = db.Column(db.Boolean, nullable=False, default=False)
    proxy_kind = db.Column(db.String(32), nullable=True)
    implementation_address = db.Column(Address(), nullable=True)
    admin_address = db.Column(Address(), nullable=True)
    owner_address = db.Column(Address(), nullable=True)
    roles = db.Column(JSONBCompat(), nullable=False, default=list)   # [{role_name, holder_address}]
    pausable = db.Column(db.Boolean, nullable=False, default=False)
    paused = db.Column(db.Boolean, nullable=True)
    timelock_address = db.Column(Address(), nullable=True)
    timelock_delay_sec = db.Column(db.Integer, nullable=True)
    risk_estimate = db.Column(db.Float, nullable=True)              # 0..1, solo para tuning

    observed_at_block = db.Column(db.BigInteger, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        db.Index("ix_contract_introspections_asset_block", "asset_id", "observed_at_block"),
    )

    @classmethod
    def from_evidence(cls, asset_id: int, ev: ContractEvidence) -> "ContractIntrospection":
        return cls(
            asset_id=asset_id,
            address=ev.address,
            verified=ev.verified,
            upgradeable=ev.upgradeable,
            proxy_kind=ev.proxy_kind,
            implementation_address=ev.implementation_address,
            admin_address=ev.admin_address,
            owner_address=ev.owner_address,
            roles=[{"role_name": r.role_name, "holder_address": r.holder_address.lower()} for r in ev.roles],
            pausable=ev.pausable,
            paused=ev.paused,
            timelock_address=ev.timelock.address if ev.timelock else None,
            timelock_delay_sec=ev.timelock.delay_sec if ev.timelock else None,
            risk_estimate=ev.risk_estimate,
            observed_at_block=ev.observed_at_block,
            created_at=ev.observed_at,
        )

    def to_evidence(self) -> ContractEvidence:
        timelock = None
        if self.timelock_address and self.timelock_delay_sec is not None:
            timelock = Timelock(address=self.timelock_address, delay_sec=self.timelock_delay_sec)
        return ContractEvidence(
            address=self.address,
            verified=self.verified,
            upgradeable=self.upgradeable,
            proxy_kind=self.proxy_kind,
            implementation_address=self.implementation_address,
            admin_address=self.admin_address,
            owner_address=self.owner_address,
            roles=[RoleHolder(r["role_name"], r["holder_address"]) for r in (self.roles or [])],
            pausable=self.pausable,
            paused=self.paused,
            timelock=timelock,
            risk_estimate=self.risk_estimate or 0.0,
            observed_at_block=self.observed_at_block,
            observed_at=self.created_at,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "address": self.address,
            "verified": self.verified,
            "upgradeable": self.upgradeable,
            "proxy_kind": self.proxy_kind,
            "implementation_address": self.implementation_address,
            "admin_address": self.admin_address,
            "owner_address": self.owner_address,
            "roles": self.roles,
            "pausable": self.pausable,
            "paused": self.paused,
            "timelock": (
                {"address": self.timelock_address, "delay_sec": self.timelock_delay_sec}
                if self.timelock_address else None
            ),
            "observed_at_block": self.observed_at_block,
            "created_at": iso(self.created_at),
        }


class HoldersSnapshot(db.Model):
    __tablename__ = "holders_snapshots"

    id = db.Column(db.Integer, primary_key=True)
    asset_id = db.Column(db.Integer, db.ForeignKey("assets.id"), nullable=False)
    observed_at_block = db.Column(db.BigInteger, nullable=False, default=0)

    total_supply = db.Column(BigIntString(), nullable=False)
    free_float = db.Column(BigIntString(), nullable=False)
    top_holders = db.Column(JSONBCompat(), nullable=False, default=list)  # [{address, pct}]
    top1_pct = db.Column(db.Float, nullable=False, default=0.0)
    top3_pct = db.Column(db.Float, nullable=False, default=0.0)
    top10_pct = db.Column(db.Float, nullable=False, default=0.0)
    herfindahl_index = db.Column(db.Float, nullable=False, default=0.0)
    gini_coefficient = db.Column(db.Float, nullable=False, default=0.0)
    nakamoto_coefficient = db.Column(db.Integer, nullable=False, default=0)
    contract_share_pct = db.Column(db.Float, nullable=False, default=0.0)
    eoa_share_pct = db.Column(db.Float, nullable=False, default=0.0)
    coverage_pct = db.Column(db.Float, nullable=False, default=0.0)
    sample_size = db.Column(db.Integer, nullable=False, default=0)

    source_name = db.Column(db.String(32), nullable=False)
    contributing_sources = db.Column(JSONBCompat(), nullable=False, default=list)
    consensus_status = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        db.Index("ix_holders_snapshots_asset_block", "asset_id", "observed_at_block"),
    )

    @classmethod
    def from_evidence(cls, asset_id: int, ev: HoldersEvidence) -> "HoldersSnapshot":
        return cls(
            asset_id=asset_id,
            observed_at_block=ev.observed_at_block,
            total_supply=ev.total_supply,
            free_float=ev.free_float,
            top_holders=[{"address": h.address.lower(), "pct": h.pct} for h in ev.top_holders],
            top1_pct=ev.top1_pct,
            top3_pct=ev.top3_pct,
            top10_pct=ev.top10_pct,
            herfindahl_index=ev.hhi,
            gini_coefficient=ev.gini,
            nakamoto_coefficient=ev.nakamoto,
            contract_share_pct=ev.contract_share_pct,
            eoa_share_pct=ev.eoa_share_pct,
            coverage_pct=ev.coverage_pct,
            sample_size=ev.sample_size,
            source_name=ev.source_name,
            contributing_sources=list(ev.contributing_sources),
            consensus_status=ev.consensus_status,
            created_at=ev.observed_at,
        )

    def to_evidence(self) -> HoldersEvidence:
        return HoldersEvidence(
            total_supply=self.total_supply,
            free_float=self.free_float,
            top_holders=[HolderShare(h["address"], h["pct"]) for h in (self.top_holders or [])],
            top1_pct=self.top1_pct,
            top3_pct=self.top3_pct,
            top10_pct=self.top10_pct,
            hhi=self.herfindahl_index,
            gini=self.gini_coefficient,
            nakamoto=self.nakamoto_coefficient,
            contract_share_pct=self.contract_share_pct,
            eoa_share_pct=self.eoa_share_pct,
            coverage_pct=self.coverage_pct,
            sample_size=self.sample_size,
            source_name=self.source_name,
            contributing_sources=list(self.contributing_sources or []),
            consensus_status=self.consensus_status,
            observed_at_block=self.observed_at_block,
            observed_at=self.created_at,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "observed_at_block": self.observed_at_block,
            "total_supply": str(self.total_supply),
            "free_float": str(self.free_float),
            "top_holders": self.top_holders,
            "top1_pct": self.top1_pct,
            "top3_pct": self.top3_pct,
            "top10_pct": self.top10_pct,
            "herfindahl_index": self.herfindahl_index,
            "gini_coefficient": self.gini_coefficient,
            "nakamoto_coefficient": self.nakamoto_coefficient,
            "contract_share_pct": self.contract_share_pct,
            "eoa_share_pct": self.eoa_share_pct,
            "coverage_pct": self.coverage_pct,
            "sample_size": self.sample_size,
            "source_name": self.source_name,
            "contributing_sources": self.contributing_sources,
            "consensus_status": self.consensus_status,
            "created_at": iso(self.created_at),
        }


class LiquiditySnapshot(db.Model):
    __tablename__ = "liquidity_snapshots"

    id = db.Column(db.Integer, primary_key=True)
    asset_id = db.Column(db.Integer, db.ForeignKey("assets.id"), nullable=False)
    observed_at_block = db.Column(db.BigInteger, nullable=False, default=0)
    pools = db.Column(JSONBCompat(), nullable=False, default=list)  # [{venue, pool_address, tvl_usd, share_pct}]
    centralized_venue_share_pct = db.Column(db.Float, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        db.Index("ix_liquidity_snapshots_asset_block", "asset_id", "observed_at_block"),
    )

    @classmethod
    def from_evidence(cls, asset_id: int, ev: LiquidityEvidence) -> "LiquiditySnapshot":
        return cls(
            asset_id=asset_id,
            observed_at_block=ev.observed_at_block,
            pools=[
                {"venue": p.venue, "pool_address": p.pool_address, "tvl_usd": p.tvl_usd, "share_pct": p.share_pct}
                for p in ev.pools
            ],
            centralized_venue_share_pct=ev.centralized_venue_share_pct,
            created_at=ev.observed_at,
        )

    def to_evidence(self) -> LiquidityEvidence:
        return LiquidityEvidence(
            pools=[Pool(p["venue"], p["pool_address"], p["tvl_usd"], p["share_pct"]) for p in (self.pools or [])],
            centralized_venue_share_pct=self.centralized_venue_share_pct,
            observed_at_block=self.observed_at_block,
            observed_at=self.created_at,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "observed_at_block": self.observed_at_block,
            "pools": self.pools,
            "centralized_venue_share_pct": self.centralized_venue_share_pct,
            "created_at": iso(self.created_at),
        }


class GovernanceSnapshot(db.Model):
    """One logical row per asset, overwritten on every refresh."""
    __tablename__ = "governance_snapshots"

    id = db.Column(db.Integer, primary_key=True)
    asset_id = db.Column(db.Integer, db.ForeignKey("assets.id"), nullable=False, unique=True)
    framework = db.Column(db.String(32), nullable=True)
    quorum_pct = db.Column(db.Float, nullable=True)
    turnout_history = db.Column(JSONBCompat(), nullable=False, default=list)  # [{proposal_id, turnout_pct, timestamp}]
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def apply(self, ev: GovernanceEvidence) -> None:
        self.framework = ev.framework
        self.quorum_pct = ev.quorum_pct
        self.turnout_history = [
            {"proposal_id": t.proposal_id, "turnout_pct": t.turnout_pct, "timestamp": t.timestamp}
            for t in ev.turnout_history
        ]
        self.updated_at = ev.observed_at

    def to_evidence(self) -> GovernanceEvidence:
        return GovernanceEvidence(
            framework=self.framework,
            quorum_pct=self.quorum_pct,
            turnout_history=[
                TurnoutRecord(t["proposal_id"], t["turnout_pct"], t["timestamp"])
                for t in (self.turnout_history or [])
            ],
            observed_at=self.updated_at,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "framework": self.framework,
            "quorum_pct": self.quorum_pct,
            "turnout_history": self.turnout_history,
            "updated_at": iso(self.updated_at),
        }


class ChainStats(db.Model):
    __tablename__ = "chain_stats"

    id = db.Column(db.Integer, primary_key=True)
    chain_id = db.Column(db.String(32), nullable=False, unique=True)
    validator_count = db.Column(db.Integer, nullable=True)
    top_validators_share_pct = db.Column(db.Float, nullable=True)
    nakamoto_coefficient = db.Column(db.Integer, nullable=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def apply(self, ev: ChainStatsEvidence) -> None:
        self.validator_count = ev.validator_count
        self.top_validators_share_pct = ev.top_validators_share_pct
        self.nakamoto_coefficient = ev.nakamoto
        self.updated_at = ev.observed_at

    def to_evidence(self) -> ChainStatsEvidence:
        return ChainStatsEvidence(
            validator_count=self.validator_count,
            top_validators_share_pct=self.top_validators_share_pct,
            nakamoto=self.nakamoto_coefficient,
            observed_at=self.updated_at,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "chain_id": self.chain_id,
            "validator_count": self.validator_count,
            "top_validators_share_pct": self.top_validators_share_pct,
            "nakamoto_coefficient": self.nakamoto_coefficient,
            "updated_at": iso(self.updated_at),
        }


class Audit(db.Model):
    __tablename__ = "audits"

    id = db.Column(db.Integer, primary_key=True)
    asset_id = db.Column(db.Integer, db.ForeignKey("assets.id"), nullable=False, index=True)
    firm = db.Column(db.String(128), nullable=False)
    report_url = db.Column(db.String(512), nullable=False)
    date = db.Column(db.BigInteger, nullable=False)   # unix seconds
    severity_summary = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        db.UniqueConstraint("asset_id", "firm", "report_url", name="uq_audits_asset_firm_report"),
    )

    def to_evidence(self) -> AuditRecord:
        return AuditRecord(
            firm=self.firm,
            report_url=self.report_url,
            date=self.date,
            severity_summary=self.severity_summary,
        )

    def to_dict(self) -> dict:
        return {
            "firm": self.firm,
            "report_url": self.report_url,
            "date": self.date,
            "severity_summary": self.severity_summary,
        }
