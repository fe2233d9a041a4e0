# decentscore/services/chains.py
"""Chain identifier helpers (CAIP-2 `eip155:<n>` <-> numeric)."""
from typing import Union

ChainLike = Union[str, int]

# nombres que usa DefiLlama en /pools
LLAMA_CHAIN_NAMES = {
    1: "ethereum",
    10: "optimism",
    137: "polygon",
    42161: "arbitrum",
    8453: "base",
}

COVALENT_CHAIN_NAMES = {
    1: "eth-mainnet",
    10: "optimism-mainnet",
    137: "matic-mainnet",
    42161: "arbitrum-mainnet",
    8453: "base-mainnet",
    43114: "avalanche-mainnet",
    56: "bsc-mainnet",
    250: "fantom-mainnet",
    100: "gnosis-mainnet",
}

INFURA_SUBDOMAINS = {
    1: "mainnet",
    42161: "arbitrum-mainnet",
    10: "optimism-mainnet",
    137: "polygon-mainnet",
    8453: "base-mainnet",
}

# cadenas que necesitan el middleware POA de web3 (extraData > 32 bytes)
POA_CHAINS = {137}


def to_numeric_chain_id(chain_id: ChainLike) -> int:
    if isinstance(chain_id, int):
        return chain_id
    s = str(chain_id).strip().lower()
    if s.startswith("eip155:"):
        s = s.split(":", 1)[1]
    try:
        return int(s or "0")
    except ValueError:
        raise ValueError(f"Invalid chain id: {chain_id!r}")


def to_caip_chain_id(chain_id: ChainLike) -> str:
    return f"eip155:{to_numeric_chain_id(chain_id)}"


def llama_chain_name(chain_id: ChainLike) -> str:
    return LLAMA_CHAIN_NAMES.get(to_numeric_chain_id(chain_id), "ethereum")


def covalent_chain_name(chain_id: ChainLike):
    return COVALENT_CHAIN_NAMES.get(to_numeric_chain_id(chain_id))


def caip_asset_id(chain_id: ChainLike, token_address: str) -> str:
    """Tally-style asset id: ``eip155:1/erc20:0xabc...``."""
    return f"{to_caip_chain_id(chain_id)}/erc20:{token_address.lower()}"
