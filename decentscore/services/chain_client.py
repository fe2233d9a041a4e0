# decentscore/services/chain_client.py
"""
Read-only access to EVM nodes: storage slots, raw eth_call, bytecode, head block.
No business logic lives here; callers decide what a revert or empty result means.
"""
import logging
import os
from typing import Dict, Optional

from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

from decentscore.errors import UnsupportedChainError
from decentscore.services.chains import INFURA_SUBDOMAINS, POA_CHAINS, ChainLike, to_numeric_chain_id

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "00" * 20


def rpc_url_for(chain_id: int, infura_project_id: str = "") -> str:
    """
    Prioridad:
      1) RPC_URL_<chainId> en ENV
      2) Infura (si hay INFURA_PROJECT_ID y la cadena tiene subdominio)
    """
    explicit = os.getenv(f"RPC_URL_{chain_id}")
    if explicit:
        return explicit
    sub = INFURA_SUBDOMAINS.get(chain_id)
    if sub and infura_project_id:
        return f"https://{sub}.infura.io/v3/{infura_project_id}"
    raise UnsupportedChainError("rpc", chain_id)


def _to_hex(raw) -> str:
    if raw is None:
        return "0x"
    if isinstance(raw, (bytes, bytearray)):
        return "0x" + bytes(raw).hex()
    s = str(raw)
    return s if s.startswith("0x") else "0x" + s


class ChainClient:
    """One lazily-built ``Web3`` per chain, reused across calls."""

    def __init__(self, infura_project_id: str = "", timeout: float = 15):
        self.infura_project_id = infura_project_id
        self.timeout = timeout
        self._w3: Dict[int, Web3] = {}

    def w3(self, chain_id: ChainLike) -> Web3:
        cid = to_numeric_chain_id(chain_id)
        if cid not in self._w3:
            uri = rpc_url_for(cid, self.infura_project_id)
            w3 = Web3(Web3.HTTPProvider(uri, request_kwargs={"timeout": self.timeout}))
            if cid in POA_CHAINS:
                w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
            self._w3[cid] = w3
        return self._w3[cid]

    def get_storage_at(self, chain_id: ChainLike, address: str, slot: str) -> str:
        raw = self.w3(chain_id).eth.get_storage_at(Web3.to_checksum_address(address), int(slot, 16))
        return _to_hex(raw)

    def get_code(self, chain_id: ChainLike, address: str) -> str:
        raw = self.w3(chain_id).eth.get_code(Web3.to_checksum_address(address))
        return _to_hex(raw)

    def call(self, chain_id: ChainLike, address: str, data: str) -> str:
        """Raw eth_call; returns ``0x`` for empty output. Reverts propagate."""
        raw = self.w3(chain_id).eth.call({"to": Web3.to_checksum_address(address), "data": data})
        return _to_hex(raw)

    def block_number(self, chain_id: ChainLike) -> int:
        return int(self.w3(chain_id).eth.block_number)


def word_to_address(word: Optional[str]) -> Optional[str]:
    """Low-order 20 bytes of a 32-byte word; ``None`` when empty or zero."""
    if not word or word in ("0x", "0x0"):
        return None
    clean = word[2:] if word.startswith("0x") else word
    addr = "0x" + clean.rjust(64, "0")[-40:].lower()
    return None if addr == ZERO_ADDRESS else addr


def word_to_int(word: Optional[str]) -> Optional[int]:
    if not word or word == "0x":
        return None
    return int(word, 16)
