# decentscore/providers/__init__.py
from decentscore.providers.audits import AuditRegistry
from decentscore.providers.base import ProviderSet
from decentscore.providers.chain_stats import StaticChainStats
from decentscore.providers.covalent import CovalentHolders
from decentscore.providers.defillama import DefiLlamaLiquidity
from decentscore.providers.ethplorer import EthplorerHolders
from decentscore.providers.governance import GovernanceDiscovery
from decentscore.providers.snapshot import SnapshotClient
from decentscore.providers.tally import TallyClient
from decentscore.services.cache import TTLCache
from decentscore.services.chain_client import ChainClient
from decentscore.services.explorer import ExplorerClient
from decentscore.services.introspection import Introspector


def build_provider_set(config, cache: TTLCache = None) -> ProviderSet:
    """Wire every adapter from a Flask config mapping."""
    timeout = config.get("HTTP_TIMEOUT", 20)
    sample = config.get("HOLDER_SAMPLE_SIZE", 25)
    cache = cache or TTLCache(config.get("SNAPSHOT_SPACES_TTL_SECONDS", 900))

    holders = [
        EthplorerHolders(config["ETHPLORER_URL"], config.get("ETHPLORER_KEY", "freekey"), sample, timeout),
    ]
    if config.get("COVALENT_API_KEY"):
        holders.append(CovalentHolders(config["COVALENT_API_URL"], config["COVALENT_API_KEY"], sample, timeout))

    chain_client = ChainClient(config.get("INFURA_PROJECT_ID", ""), timeout)
    return ProviderSet(
        contract=Introspector(
            chain_client,
            ExplorerClient(config["ETHERSCAN_V2_BASE"], config.get("ETHERSCAN_API_KEY", ""), timeout),
        ),
        holders=holders,
        liquidity=DefiLlamaLiquidity(config["DEFILLAMA_YIELDS_URL"], timeout, cache=cache),
        governance=GovernanceDiscovery(
            SnapshotClient(config["SNAPSHOT_GRAPHQL"], cache, timeout),
            TallyClient(config["TALLY_GRAPHQL"], config.get("TALLY_API_KEY", ""), timeout),
        ),
        chain_stats=StaticChainStats(),
        audits=AuditRegistry(config.get("AUDITS_FILE", "")),
        blocks=chain_client,
    )


__all__ = ["ProviderSet", "build_provider_set"]
