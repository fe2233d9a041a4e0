# decentscore/services/explorer.py
import json
import logging
from typing import List, Optional

import requests
from web3 import Web3

from decentscore.services.chains import ChainLike, to_numeric_chain_id

logger = logging.getLogger(__name__)

NOT_VERIFIED_MSG = "Contract source code not verified"


def _parse_v2_result(data: dict) -> Optional[List[dict]]:
    """
    Parse an Etherscan v2 ``getabi`` response into the ABI list.

    v2 may return:
      - data["result"] as a JSON string (usual case)
      - data["result"][0]["ABI"]
      - data["result"]["contractInfo"][0]["ABI"]
    Returns None when the contract is unverified.
    """
    res = data.get("result")
    if not res or res == NOT_VERIFIED_MSG:
        return None

    if isinstance(res, dict):
        info_list = res.get("contractInfo") or res.get("ContractInfo")
        if isinstance(info_list, list) and info_list:
            res = info_list[0].get("ABI") or info_list[0].get("Abi") or info_list[0].get("abi")
    elif isinstance(res, list) and res and isinstance(res[0], dict):
        res = res[0].get("ABI") or res[0].get("Abi") or res[0].get("abi")

    if not isinstance(res, str) or res == NOT_VERIFIED_MSG:
        return None
    try:
        abi = json.loads(res)
    except json.JSONDecodeError:
        return None
    return abi if isinstance(abi, list) else None


class ExplorerClient:
    """Etherscan v2 multichain API (one base URL, ``chainid`` as param)."""

    def __init__(self, base_url: str, api_key: str = "", timeout: float = 20, session=None):
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_abi(self, chain_id: ChainLike, address: str) -> Optional[List[dict]]:
        """ABI list for a verified contract, None when unverified. Raises on transport errors."""
        params = {
            "module": "contract",
            "action": "getabi",
            "address": Web3.to_checksum_address(address),
            "chainid": str(to_numeric_chain_id(chain_id)),
        }
        if self.api_key:
            params["apikey"] = self.api_key

        resp = self.session.get(self.base_url, params=params, timeout=self.timeout)
        resp.raise_for_status()
        return _parse_v2_result(resp.json())

    def is_verified(self, chain_id: ChainLike, address: str) -> bool:
        try:
            return self.fetch_abi(chain_id, address) is not None
        except (requests.RequestException, ValueError) as e:
            logger.warning("explorer getabi failed for %s: %s", address, e)
            return False
