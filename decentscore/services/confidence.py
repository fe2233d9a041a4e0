# decentscore/services/confidence.py
"""
Confidence per category (floor..1.0) from evidence richness and age.

Each function starts from a base, adds increments for richer evidence and
applies the shared recency adjustment. Absent evidence returns a fixed low base.
"""
import time
from datetime import datetime, timezone
from typing import List, Optional, Union

from decentscore.services.evidence import (
    AuditRecord,
    ChainStatsEvidence,
    ContractEvidence,
    GovernanceEvidence,
    HoldersEvidence,
    LiquidityEvidence,
)
from decentscore.services.subscores import is_onchain_framework
from decentscore.utils import clamp

ONE_YEAR_SEC = 365 * 86400


def _to_unix(value: Union[datetime, int, float, None]) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    if value > 1_000_000_000_000:  # ms
        return value / 1000
    if value > 1_000_000_000:
        return float(value)
    return None


def recency_adjustment(observed_at, now: Optional[float] = None) -> float:
    seconds = _to_unix(observed_at)
    if not seconds:
        return 0.0
    now = time.time() if now is None else now
    age_days = max(0.0, (now - seconds) / 86400)
    if age_days <= 3:
        return 0.25
    if age_days <= 7:
        return 0.18
    if age_days <= 30:
        return 0.08
    if age_days <= 90:
        return 0.0
    if age_days <= 180:
        return -0.05
    return -0.10


def ownership_confidence(holders: Optional[HoldersEvidence], now=None) -> float:
    if holders is None:
        return 0.3
    score = 0.4
    coverage = clamp(holders.coverage_pct or 0)
    if coverage >= 85:
        score += 0.35
    elif coverage >= 60:
        score += 0.25
    elif coverage >= 40:
        score += 0.15
    else:
        score += 0.05

    sample = holders.sample_size or len(holders.top_holders)
    if sample >= 25:
        score += 0.2
    elif sample >= 15:
        score += 0.1
    elif sample >= 5:
        score += 0.05

    score += recency_adjustment(holders.observed_at, now)
    return clamp(score, 0.2, 1.0)


def control_confidence(contract: Optional[ContractEvidence], now=None) -> float:
    if contract is None:
        return 0.35
    score = 0.45
    if contract.verified:
        score += 0.15
    if contract.roles:
        score += 0.1
    if contract.timelock:
        score += 0.05
    if contract.admin_address or contract.owner_address:
        score += 0.05
    score += recency_adjustment(contract.observed_at, now)
    return clamp(score, 0.25, 1.0)


def liquidity_confidence(liq: Optional[LiquidityEvidence], now=None) -> float:
    if liq is None:
        return 0.3
    score = 0.4
    pools = len(liq.pools)
    if pools >= 5:
        score += 0.25
    elif pools >= 2:
        score += 0.15
    elif pools >= 1:
        score += 0.05
    if liq.centralized_venue_share_pct is not None:
        score += 0.1
    score += recency_adjustment(liq.observed_at, now)
    return clamp(score, 0.2, 1.0)


def governance_confidence(gov: Optional[GovernanceEvidence], now=None) -> float:
    if gov is None:
        return 0.25
    score = 0.35
    if gov.quorum_pct is not None:
        score += 0.2
    turnout = len(gov.turnout_history)
    if turnout >= 8:
        score += 0.25
    elif turnout >= 3:
        score += 0.15
    elif turnout >= 1:
        score += 0.08
    if gov.framework:
        score += 0.1 if is_onchain_framework(gov.framework) else 0.05
    score += recency_adjustment(gov.observed_at, now)
    return clamp(score, 0.2, 1.0)


def chain_confidence(chain: Optional[ChainStatsEvidence], now=None) -> float:
    if chain is None:
        return 0.3
    score = 0.45
    if chain.nakamoto is not None:
        score += 0.3
    if chain.validator_count is not None:
        score += 0.15
    if chain.top_validators_share_pct is not None:
        score += 0.1
    score += recency_adjustment(chain.observed_at, now)
    return clamp(score, 0.25, 1.0)


def code_confidence(contract: Optional[ContractEvidence], audits: List[AuditRecord], now=None) -> float:
    now = time.time() if now is None else now
    score = 0.4 if contract is not None else 0.3
    if contract is not None and contract.verified:
        score += 0.15
    if audits:
        score += 0.25
        if any(a.date >= now - ONE_YEAR_SEC for a in audits):
            score += 0.15
        if len(audits) >= 3:
            score += 0.05
        latest = max(a.date or 0 for a in audits)
        if latest > 0:
            score += recency_adjustment(latest, now)
    elif contract is not None:
        score += recency_adjustment(contract.observed_at, now)
    return clamp(score, 0.2, 1.0)


def compute_confidence(bundle, now: Optional[float] = None) -> dict:
    return {
        "ownership": round(ownership_confidence(bundle.holders, now), 4),
        "controlRisk": round(control_confidence(bundle.contract, now), 4),
        "liquidity": round(liquidity_confidence(bundle.liquidity, now), 4),
        "governance": round(governance_confidence(bundle.governance, now), 4),
        "chainLevel": round(chain_confidence(bundle.chain_stats, now), 4),
        "codeAssurance": round(code_confidence(bundle.contract, bundle.audits, now), 4),
    }
