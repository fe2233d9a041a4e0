# decentscore/providers/snapshot.py
"""Snapshot (off-chain voting) discovery: spaces whose strategies reference the token."""
from typing import List

import requests

from decentscore.providers.http import post_graphql
from decentscore.services.chains import to_numeric_chain_id

SPACES_QUERY = """
query Spaces($first: Int!, $skip: Int!) {
  spaces(first: $first, skip: $skip, orderBy: "created", orderDirection: desc) {
    id
    name
    network
    symbol
    followersCount
    strategies { name params }
  }
}"""

PROPOSALS_QUERY = """
query Proposals($space: String!, $limit: Int!) {
  proposals(first: $limit, skip: 0, where: { space_in: [$space] }, orderBy: "created", orderDirection: desc) {
    id
    votes
    scores_total
    quorum
    start
    end
  }
}"""

PAGE_SIZE = 200
MAX_PAGES = 30
STRATEGY_ADDRESS_KEYS = ("address", "token", "tokenAddress", "addressMainnet", "addressPolygon")


def strategy_matches_token(strategy: dict, token: str) -> bool:
    params = (strategy or {}).get("params") or {}
    candidates = []
    for key in STRATEGY_ADDRESS_KEYS:
        value = params.get(key)
        if isinstance(value, list):
            candidates.extend(value)
        elif value:
            candidates.append(value)
    if isinstance(params.get("addresses"), list):
        candidates.extend(params["addresses"])
    token = token.lower()
    return any(isinstance(c, str) and c.lower() == token for c in candidates)


class SnapshotClient:
    name = "snapshot"

    def __init__(self, graphql_url: str, cache, timeout: float = 20, session=None):
        self.graphql_url = graphql_url
        self.cache = cache
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, query: str, variables: dict) -> dict:
        return post_graphql(self.session, self.name, self.graphql_url, query, variables, timeout=self.timeout)

    def _load_all_spaces(self) -> List[dict]:
        collected = []
        for page in range(MAX_PAGES):
            spaces = self._post(SPACES_QUERY, {"first": PAGE_SIZE, "skip": page * PAGE_SIZE}).get("spaces") or []
            if not spaces:
                break
            collected.extend(spaces)
            if len(spaces) < PAGE_SIZE:
                break
        return collected

    def all_spaces(self) -> List[dict]:
        return self.cache.get_or_fetch("snapshot:spaces", self._load_all_spaces)

    def spaces_for_token(self, chain_id, token: str) -> List[dict]:
        network = str(to_numeric_chain_id(chain_id))
        return [
            s for s in self.all_spaces()
            if s.get("network") == network
            and any(strategy_matches_token(st, token) for st in (s.get("strategies") or []))
        ]

    def recent_proposals(self, space_id: str, limit: int = 3) -> List[dict]:
        return self._post(PROPOSALS_QUERY, {"space": space_id, "limit": limit}).get("proposals") or []
