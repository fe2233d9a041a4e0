# decentscore/services/subscores.py
"""
One pure function per scoring category, evidence -> 0..100.

Higher always means more decentralized. Missing evidence returns a fixed
conservative default instead of failing.
"""
import time
from typing import List, Optional

from decentscore.services.distribution import hhi
from decentscore.services.evidence import (
    AuditRecord,
    ChainStatsEvidence,
    ContractEvidence,
    GovernanceEvidence,
    HoldersEvidence,
    LiquidityEvidence,
)
from decentscore.utils import clamp

DEFAULT_OWNERSHIP = 45.0
DEFAULT_CONTROL_RISK = 45.0
DEFAULT_LIQUIDITY = 45.0
DEFAULT_GOVERNANCE = 40.0
DEFAULT_CHAIN_LEVEL = 55.0

ZERO_PREFIX = "0x" + "0" * 36
TWO_YEARS_SEC = 2 * 365 * 86400


def _pct(value, fallback: float) -> float:
    if not isinstance(value, (int, float)) or value != value:
        return fallback
    return clamp(value)


def ownership_score(holders: Optional[HoldersEvidence]) -> float:
    if holders is None:
        return DEFAULT_OWNERSHIP

    top10 = clamp(100 - _pct(holders.top10_pct, 100))
    hhi_value = holders.hhi if holders.hhi and holders.hhi > 0 else 10000
    hhi_part = clamp(100 - clamp(hhi_value, 0, 10000) / 100)
    nak = holders.nakamoto if holders.nakamoto and holders.nakamoto > 0 else 1
    nakamoto_part = clamp(min(100.0, nak / 10 * 100))
    gini_part = clamp((1 - clamp(holders.gini, 0, 1)) * 100) if holders.gini is not None else 55.0
    top1 = clamp(100 - _pct(holders.top1_pct, _pct(holders.top10_pct, 100)))
    top3 = clamp(100 - _pct(holders.top3_pct, _pct(holders.top10_pct, 100)))
    contract_part = clamp(100 - _pct(holders.contract_share_pct, 50) * 0.8)
    coverage_part = clamp(50 + _pct(holders.coverage_pct, 60) / 2)

    return clamp(
        top10 * 0.20
        + hhi_part * 0.15
        + nakamoto_part * 0.15
        + gini_part * 0.15
        + top1 * 0.10
        + top3 * 0.10
        + contract_part * 0.10
        + coverage_part * 0.05
    )


def is_likely_multisig(contract: ContractEvidence) -> bool:
    """Two or more distinct holders of an admin-tier role."""
    holders = {
        r.holder_address.lower()
        for r in contract.roles
        if "ADMIN" in r.role_name or "OWNER" in r.role_name
    }
    return len(holders) >= 2


def _has_admin(contract: ContractEvidence) -> bool:
    entity = (contract.admin_address or contract.owner_address or "").lower()
    return entity.startswith("0x") and not entity.startswith(ZERO_PREFIX)


def control_risk_score(contract: Optional[ContractEvidence]) -> float:
    if contract is None:
        return DEFAULT_CONTROL_RISK

    # upgradeable 30, no upgradeable 60 (asimetria intencional, no tocar)
    score = 30.0 if contract.upgradeable else 60.0

    if _has_admin(contract):
        score += 20 if is_likely_multisig(contract) else -15
    else:
        score += 10

    delay = contract.timelock.delay_sec if contract.timelock else 0
    if delay:
        days = delay / 86400
        score += min(25.0, 5 + days / 30 * 20)

    if contract.pausable:
        score -= 5 if delay else 15

    return clamp(score)


def liquidity_score(liq: Optional[LiquidityEvidence]) -> float:
    if liq is None or not liq.pools:
        return DEFAULT_LIQUIDITY

    shares = [p.share_pct or 0 for p in liq.pools]
    concentration = clamp(100 - max(shares))
    cex = liq.centralized_venue_share_pct or 0
    dex_part = 50 + (100 - cex) / 100 * 50
    pool_hhi = clamp(100 - hhi(shares) / 100)
    return clamp(concentration * 0.40 + dex_part * 0.35 + pool_hhi * 0.25)


def is_onchain_framework(framework: Optional[str]) -> bool:
    fw = (framework or "").lower()
    return "tally" in fw or "onchain" in fw


def governance_score(gov: Optional[GovernanceEvidence]) -> float:
    if gov is None:
        return DEFAULT_GOVERNANCE

    score = min(100.0, gov.quorum_pct / 10 * 100) if gov.quorum_pct else 40.0
    if gov.turnout_history:
        avg = sum(t.turnout_pct for t in gov.turnout_history) / len(gov.turnout_history)
        score = score * 0.60 + min(100.0, avg / 50 * 100) * 0.40
    if is_onchain_framework(gov.framework):
        score += 5
    return clamp(score)


def chain_level_score(chain: Optional[ChainStatsEvidence]) -> float:
    if chain is None or not chain.nakamoto:
        return DEFAULT_CHAIN_LEVEL
    n = chain.nakamoto
    if n >= 20:
        return 100.0
    if n >= 10:
        return 80.0
    if n >= 5:
        return 60.0
    if n >= 2:
        return 40.0
    return 20.0


def code_assurance_score(
    contract: Optional[ContractEvidence],
    audits: List[AuditRecord],
    now: Optional[float] = None,
) -> float:
    score = 50.0 if contract is not None and contract.verified else 20.0
    if audits:
        now = time.time() if now is None else now
        recent = sum(1 for a in audits if a.date >= now - TWO_YEARS_SEC)
        older = len(audits) - recent
        score += min(30, recent * 15 + older * 10)
        if len({(a.firm or "").lower() for a in audits}) >= 2:
            score += 5
    return clamp(score)


def compute_subscores(bundle, now: Optional[float] = None) -> dict:
    return {
        "ownership": round(ownership_score(bundle.holders), 2),
        "controlRisk": round(control_risk_score(bundle.contract), 2),
        "liquidity": round(liquidity_score(bundle.liquidity), 2),
        "governance": round(governance_score(bundle.governance), 2),
        "chainLevel": chain_level_score(bundle.chain_stats),
        "codeAssurance": code_assurance_score(bundle.contract, bundle.audits, now),
    }
