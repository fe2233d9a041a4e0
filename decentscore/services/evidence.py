# decentscore/services/evidence.py
"""
Evidence shapes shared by providers, the aggregator and the scoring pipeline.

Providers return these dataclasses; the orchestrator wraps every provider call
in a tagged result (``Ok`` / ``Absent`` / ``Failed``) so partial failure is a
type check instead of a None check.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Union

from decentscore.utils import utcnow


@dataclass
class RoleHolder:
    role_name: str
    holder_address: str


@dataclass
class Timelock:
    address: str
    delay_sec: int


@dataclass
class ContractEvidence:
    address: str
    verified: bool
    upgradeable: bool
    proxy_kind: Optional[str] = None
    implementation_address: Optional[str] = None
    admin_address: Optional[str] = None
    owner_address: Optional[str] = None
    roles: List[RoleHolder] = field(default_factory=list)
    pausable: bool = False
    paused: Optional[bool] = None
    timelock: Optional[Timelock] = None
    risk_estimate: float = 0.0
    observed_at_block: int = 0
    observed_at: datetime = field(default_factory=utcnow)


@dataclass
class HolderShare:
    address: str
    pct: float
    is_contract: Optional[bool] = None


@dataclass
class HoldersEvidence:
    total_supply: int
    free_float: int
    top_holders: List[HolderShare]
    top1_pct: float
    top3_pct: float
    top10_pct: float
    hhi: float
    gini: float
    nakamoto: int
    contract_share_pct: float
    eoa_share_pct: float
    coverage_pct: float
    sample_size: int
    source_name: str
    contributing_sources: List[str] = field(default_factory=list)
    consensus_status: Optional[str] = None
    # token metadata some sources return alongside holders
    symbol: Optional[str] = None
    name: Optional[str] = None
    decimals: Optional[int] = None
    icon_url: Optional[str] = None
    observed_at_block: int = 0
    observed_at: datetime = field(default_factory=utcnow)


@dataclass
class Pool:
    venue: str
    pool_address: str
    tvl_usd: float
    share_pct: float


@dataclass
class LiquidityEvidence:
    pools: List[Pool]
    centralized_venue_share_pct: Optional[float] = None
    observed_at_block: int = 0
    observed_at: datetime = field(default_factory=utcnow)


@dataclass
class TurnoutRecord:
    proposal_id: str
    turnout_pct: float
    timestamp: int  # unix seconds


@dataclass
class GovernanceEvidence:
    framework: Optional[str] = None
    quorum_pct: Optional[float] = None
    turnout_history: List[TurnoutRecord] = field(default_factory=list)
    observed_at: datetime = field(default_factory=utcnow)


@dataclass
class ChainStatsEvidence:
    validator_count: Optional[int] = None
    top_validators_share_pct: Optional[float] = None
    nakamoto: Optional[int] = None
    observed_at: datetime = field(default_factory=utcnow)


@dataclass
class AuditRecord:
    firm: str
    report_url: str
    date: int  # unix seconds
    severity_summary: Optional[str] = None


# --- tagged provider results ---

@dataclass(frozen=True)
class Ok:
    source: str
    value: Any


@dataclass(frozen=True)
class Absent:
    source: str
    reason: str = "no-data"


@dataclass(frozen=True)
class Failed:
    source: str
    reason: str
    unsupported_chain: bool = False


EvidenceResult = Union[Ok, Absent, Failed]


def successful(results) -> list:
    """Values of the ``Ok`` results, in input order."""
    return [r.value for r in results if isinstance(r, Ok)]


@dataclass
class EvidenceBundle:
    """Latest evidence per category, as seen by the scoring pipeline."""
    contract: Optional[ContractEvidence] = None
    holders: Optional[HoldersEvidence] = None
    liquidity: Optional[LiquidityEvidence] = None
    governance: Optional[GovernanceEvidence] = None
    chain_stats: Optional[ChainStatsEvidence] = None
    audits: List[AuditRecord] = field(default_factory=list)
