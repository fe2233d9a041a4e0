# decentscore/providers/ethplorer.py
import logging
from typing import Optional

import requests

from decentscore.errors import ProviderError, UnsupportedChainError
from decentscore.providers.http import get_json
from decentscore.services.chains import to_numeric_chain_id
from decentscore.services.distribution import free_float, holder_metrics
from decentscore.services.evidence import HolderShare, HoldersEvidence

logger = logging.getLogger(__name__)

TOP_HOLDERS_KEPT = 15


def _is_contract(holder: dict) -> bool:
    kind = holder.get("type")
    if kind == "contract":
        return True
    if kind == "address":
        return False
    return kind == 1


def _decimals(value) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class EthplorerHolders:
    """Top holders from Ethplorer (Ethereum mainnet only, tags contract holders)."""

    name = "ethplorer"

    def __init__(self, base_url: str, api_key: str = "freekey", sample_size: int = 25,
                 timeout: float = 20, session=None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.sample_size = sample_size
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, path: str, **params) -> dict:
        params["apiKey"] = self.api_key
        body = get_json(self.session, self.name, f"{self.base_url}{path}", params=params, timeout=self.timeout)
        if isinstance(body, dict) and body.get("error"):
            err = body["error"]
            raise ProviderError(self.name, err.get("message", "error") if isinstance(err, dict) else str(err))
        return body

    def fetch(self, chain_id, address: str) -> Optional[HoldersEvidence]:
        if to_numeric_chain_id(chain_id) != 1:
            raise UnsupportedChainError(self.name, chain_id)

        info = self._get(f"/getTokenInfo/{address}")
        resp = self._get(f"/getTopTokenHolders/{address}", limit=self.sample_size)
        holders = sorted(resp.get("holders") or [], key=lambda h: h.get("share") or 0, reverse=True)
        if not holders:
            return None

        shares = [float(h.get("share") or 0) for h in holders]
        flags = [_is_contract(h) for h in holders]
        m = holder_metrics(shares, flags)
        total_supply = int(info.get("totalSupply") or 0)

        return HoldersEvidence(
            total_supply=total_supply,
            free_float=free_float(total_supply, m["top10_pct"]),
            top_holders=[
                HolderShare(h["address"].lower(), s, c)
                for h, s, c in list(zip(holders, shares, flags))[:TOP_HOLDERS_KEPT]
            ],
            top1_pct=m["top1_pct"],
            top3_pct=m["top3_pct"],
            top10_pct=m["top10_pct"],
            hhi=m["hhi"],
            gini=m["gini"],
            nakamoto=m["nakamoto"],
            contract_share_pct=m["contract_share_pct"],
            eoa_share_pct=m["eoa_share_pct"],
            coverage_pct=m["coverage_pct"],
            sample_size=len(holders),
            source_name=self.name,
            symbol=info.get("symbol") or None,
            name=info.get("name") or None,
            decimals=_decimals(info.get("decimals")),
            icon_url=info.get("image") or None,
        )
