# decentscore/providers/covalent.py
import logging
from typing import Optional

import requests

from decentscore.errors import ProviderError, UnsupportedChainError
from decentscore.providers.http import get_json
from decentscore.services.chains import covalent_chain_name
from decentscore.services.distribution import free_float, holder_metrics
from decentscore.services.evidence import HolderShare, HoldersEvidence
from decentscore.utils import clamp

logger = logging.getLogger(__name__)

TOP_HOLDERS_KEPT = 15


class CovalentHolders:
    """
    Token holders from Covalent (multi-chain).

    This endpoint does not say whether a holder is a contract, so the contract
    share is reported as 0 and the EOA share equals coverage.
    """

    name = "covalent"

    def __init__(self, base_url: str, api_key: str, sample_size: int = 25, timeout: float = 20, session=None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.sample_size = sample_size
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, chain_id, address: str) -> Optional[HoldersEvidence]:
        if not self.api_key:
            raise ProviderError(self.name, "COVALENT_API_KEY not configured")
        chain_name = covalent_chain_name(chain_id)
        if not chain_name:
            raise UnsupportedChainError(self.name, chain_id)

        url = f"{self.base_url}/{chain_name}/tokens/{address.lower()}/token_holders/"
        body = get_json(
            self.session,
            self.name,
            url,
            params={"key": self.api_key, "page-size": self.sample_size, "page-number": 0},
            timeout=self.timeout,
        )
        if body.get("error"):
            raise ProviderError(self.name, body.get("error_message") or "error")

        items = (body.get("data") or {}).get("items") or []
        balances = []
        for item in items:
            try:
                balances.append((item["address"].lower(), int(item.get("balance") or 0)))
            except (KeyError, AttributeError, TypeError, ValueError):
                continue
        total = sum(b for _, b in balances)
        if total == 0:
            return None

        rows = sorted(
            ((addr, clamp((bal * 10000 // total) / 100)) for addr, bal in balances),
            key=lambda r: r[1],
            reverse=True,
        )
        shares = [pct for _, pct in rows]
        m = holder_metrics(shares)

        return HoldersEvidence(
            total_supply=total,
            free_float=free_float(total, m["top10_pct"]),
            top_holders=[HolderShare(addr, pct) for addr, pct in rows[:TOP_HOLDERS_KEPT]],
            top1_pct=m["top1_pct"],
            top3_pct=m["top3_pct"],
            top10_pct=m["top10_pct"],
            hhi=m["hhi"],
            gini=m["gini"],
            nakamoto=m["nakamoto"],
            contract_share_pct=0.0,
            eoa_share_pct=m["coverage_pct"],
            coverage_pct=m["coverage_pct"],
            sample_size=len(rows),
            source_name=self.name,
        )
