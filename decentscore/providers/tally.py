# decentscore/providers/tally.py
"""Tally (on-chain governors) discovery by token asset id."""
import logging
from typing import List, Optional

import requests

from decentscore.errors import ProviderError
from decentscore.providers.http import post_graphql
from decentscore.services.chains import caip_asset_id

logger = logging.getLogger(__name__)

ORGANIZATIONS_QUERY = """
query Organizations($limit: Int!, $after: String) {
  organizations(input: { page: { limit: $limit, afterCursor: $after } }) {
    nodes {
      ... on Organization {
        id
        slug
        name
        tokenIds
        governorIds
      }
    }
    pageInfo { lastCursor }
  }
}"""

GOVERNOR_QUERY = """
query Governor($id: AccountID!) {
  governor(input: { id: $id }) {
    id
    name
    slug
    chainId
    quorum
    token { id decimals supply }
  }
}"""

PAGE_SIZE = 200
MAX_PAGES = 40
MAX_MATCHES = 5


def pct_from_ints(numerator: int, denominator: int) -> Optional[float]:
    if denominator == 0:
        return None
    return (numerator * 10000 // denominator) / 100


class TallyClient:
    name = "tally"

    def __init__(self, graphql_url: str, api_key: str = "", timeout: float = 20, session=None):
        self.graphql_url = graphql_url
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, query: str, variables: dict) -> dict:
        headers = {"Api-Key": self.api_key} if self.api_key else None
        return post_graphql(self.session, self.name, self.graphql_url, query, variables,
                            timeout=self.timeout, headers=headers)

    def organizations_for(self, asset_id: str) -> List[dict]:
        matches = []
        cursor = None
        for _ in range(MAX_PAGES):
            data = self._post(ORGANIZATIONS_QUERY, {"limit": PAGE_SIZE, "after": cursor}).get("organizations") or {}
            nodes = data.get("nodes") or []
            for node in nodes:
                if asset_id in [t.lower() for t in (node.get("tokenIds") or [])]:
                    matches.append(node)
            if len(matches) >= MAX_MATCHES:
                break
            cursor = (data.get("pageInfo") or {}).get("lastCursor")
            if not cursor or len(nodes) < PAGE_SIZE:
                break
        return matches

    def governor(self, governor_id: str) -> Optional[dict]:
        try:
            gov = self._post(GOVERNOR_QUERY, {"id": governor_id}).get("governor")
        except ProviderError as e:
            logger.warning("tally governor %s failed: %s", governor_id, e)
            return None
        if not gov:
            return None
        quorum = int(gov["quorum"]) if gov.get("quorum") else None
        supply = int((gov.get("token") or {}).get("supply") or 0) or None
        return {
            "id": gov.get("id"),
            "name": gov.get("name"),
            "slug": gov.get("slug"),
            "chain_id": gov.get("chainId"),
            "quorum_pct": pct_from_ints(quorum, supply) if quorum and supply else None,
        }

    def governors_for_token(self, chain_id, token: str) -> List[dict]:
        orgs = self.organizations_for(caip_asset_id(chain_id, token))
        governor_ids = []
        for org in orgs:
            for gid in org.get("governorIds") or []:
                if gid not in governor_ids:
                    governor_ids.append(gid)
        return [g for g in (self.governor(gid) for gid in governor_ids) if g]
