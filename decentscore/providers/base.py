# decentscore/providers/base.py
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from decentscore.services.evidence import (
    AuditRecord,
    ChainStatsEvidence,
    ContractEvidence,
    GovernanceEvidence,
    HoldersEvidence,
    LiquidityEvidence,
)


class HoldersProvider(Protocol):
    name: str

    def fetch(self, chain_id, address: str) -> Optional[HoldersEvidence]: ...


class LiquidityProvider(Protocol):
    name: str

    def fetch(self, chain_id, address: str) -> Optional[LiquidityEvidence]: ...


class GovernanceProvider(Protocol):
    name: str

    def fetch(self, chain_id, address: str) -> Optional[GovernanceEvidence]: ...


class ChainStatsProvider(Protocol):
    name: str

    def fetch(self, chain_id) -> Optional[ChainStatsEvidence]: ...


class AuditsProvider(Protocol):
    name: str

    def fetch(self, chain_id, address: str) -> List[AuditRecord]: ...


class ContractProvider(Protocol):
    name: str

    def fetch(self, chain_id, address: str) -> ContractEvidence: ...


@dataclass
class ProviderSet:
    """Every adapter one ingestion run dispatches. ``None`` disables a category."""
    contract: Optional[ContractProvider] = None
    holders: List[HoldersProvider] = field(default_factory=list)
    liquidity: Optional[LiquidityProvider] = None
    governance: Optional[GovernanceProvider] = None
    chain_stats: Optional[ChainStatsProvider] = None
    audits: Optional[AuditsProvider] = None
    # head block reader (anything with block_number(chain_id))
    blocks: Optional[object] = None
