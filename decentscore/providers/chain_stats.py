# decentscore/providers/chain_stats.py
from decentscore.services.chains import to_numeric_chain_id
from decentscore.services.evidence import ChainStatsEvidence

# validadores / % top validadores / nakamoto; los L2 tienen un unico secuenciador
CHAIN_STATS = {
    1: {"validator_count": 1050000, "top_validators_share_pct": 11.0, "nakamoto": 12},
    137: {"validator_count": 105, "top_validators_share_pct": 35.0, "nakamoto": 4},
    42161: {"validator_count": 1, "top_validators_share_pct": 100.0, "nakamoto": 1},
    10: {"validator_count": 1, "top_validators_share_pct": 100.0, "nakamoto": 1},
    8453: {"validator_count": 1, "top_validators_share_pct": 100.0, "nakamoto": 1},
}
DEFAULT_CHAIN_STATS = {"nakamoto": 2}


class StaticChainStats:
    name = "chain_stats"

    def __init__(self, table=None):
        self.table = table if table is not None else CHAIN_STATS

    def fetch(self, chain_id) -> ChainStatsEvidence:
        stats = self.table.get(to_numeric_chain_id(chain_id), DEFAULT_CHAIN_STATS)
        return ChainStatsEvidence(**stats)
