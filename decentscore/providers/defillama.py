# decentscore/providers/defillama.py
from typing import List, Optional

import requests

from decentscore.providers.http import get_json
from decentscore.services.chains import llama_chain_name
from decentscore.services.evidence import LiquidityEvidence, Pool

MAX_POOLS = 25


class DefiLlamaLiquidity:
    """
    DEX pools containing the token, from the DefiLlama yields listing.

    The listing covers every chain and is large, so it goes through the injected
    cache when one is given.
    """

    name = "defillama"

    def __init__(self, pools_url: str, timeout: float = 20, cache=None, session=None):
        self.pools_url = pools_url
        self.timeout = timeout
        self.cache = cache
        self.session = session or requests.Session()

    def _load_pools(self) -> List[dict]:
        body = get_json(self.session, self.name, self.pools_url, timeout=self.timeout)
        return body.get("data", []) if isinstance(body, dict) else list(body or [])

    def all_pools(self) -> List[dict]:
        if self.cache is None:
            return self._load_pools()
        return self.cache.get_or_fetch("defillama:pools", self._load_pools)

    def pools_for_token(self, chain_id, address: str) -> List[dict]:
        chain = llama_chain_name(chain_id).lower()
        addr = address.lower()
        matched = [
            p for p in self.all_pools()
            if (p.get("chain") or "").lower() == chain
            and any((t or "").lower() == addr for t in (p.get("underlyingTokens") or []))
        ]
        return sorted(matched, key=lambda p: p.get("tvlUsd") or 0, reverse=True)

    def fetch(self, chain_id, address: str) -> Optional[LiquidityEvidence]:
        pools = self.pools_for_token(chain_id, address)
        if not pools:
            return None
        dex_usd = sum(p.get("tvlUsd") or 0 for p in pools)
        # el listado solo trae DEX; la parte centralizada queda en 0
        cex_usd = 0.0
        total = dex_usd + cex_usd
        summarized = [
            Pool(
                venue=p.get("project") or p.get("chain") or "dex",
                pool_address=p.get("pool") or "",
                tvl_usd=float(p.get("tvlUsd") or 0),
                share_pct=round((p.get("tvlUsd") or 0) / dex_usd * 100, 2) if dex_usd > 0 else 0.0,
            )
            for p in pools[:MAX_POOLS]
        ]
        return LiquidityEvidence(
            pools=summarized,
            centralized_venue_share_pct=round(cex_usd / total * 100, 2) if total > 0 else 0.0,
        )
