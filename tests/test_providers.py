import json

import pytest
import requests

from decentscore.errors import ProviderError, UnsupportedChainError
from decentscore.providers import build_provider_set
from decentscore.providers.audits import AuditRegistry
from decentscore.providers.chain_stats import StaticChainStats
from decentscore.providers.covalent import CovalentHolders
from decentscore.providers.defillama import DefiLlamaLiquidity
from decentscore.providers.ethplorer import EthplorerHolders
from decentscore.providers.governance import GovernanceDiscovery, snapshot_turnout, summarize
from decentscore.providers.snapshot import strategy_matches_token
from decentscore.providers.tally import TallyClient
from decentscore.services.cache import TTLCache
from decentscore.services.explorer import ExplorerClient

from factories import UNI


class FakeResponse:
    def __init__(self, body, status=200):
        self.body = body
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.body


class FakeSession:
    """Answers GETs by URL suffix; records every call."""

    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append((url, params))
        for suffix, resp in self.routes.items():
            if url.endswith(suffix):
                if isinstance(resp, Exception):
                    raise resp
                return resp
        return FakeResponse({}, 404)


def test_ethplorer_holders():
    session = FakeSession({
        f"/getTokenInfo/{UNI}": FakeResponse({
            "totalSupply": "1000000000000000000000000000",
            "symbol": "UNI",
            "name": "Uniswap",
            "decimals": "18",
        }),
        f"/getTopTokenHolders/{UNI}": FakeResponse({"holders": [
            {"address": "0x" + "aa" * 20, "share": 30.0, "type": "contract"},
            {"address": "0x" + "bb" * 20, "share": 40.0},
            {"address": "0x" + "cc" * 20, "share": 10.0, "type": "address"},
        ]}),
    })
    ev = EthplorerHolders("https://api.ethplorer.io", session=session).fetch("eip155:1", UNI)

    assert ev.source_name == "ethplorer"
    assert ev.top1_pct == 40.0
    assert ev.top3_pct == 80.0
    assert ev.nakamoto == 2
    assert ev.contract_share_pct == 30.0
    assert ev.coverage_pct == 80.0
    assert ev.sample_size == 3
    assert ev.symbol == "UNI"
    assert ev.decimals == 18
    assert ev.free_float == 10 ** 27 * 2000 // 10000
    assert ev.top_holders[0].address == "0x" + "bb" * 20


def test_ethplorer_mainnet_only():
    with pytest.raises(UnsupportedChainError):
        EthplorerHolders("https://api.ethplorer.io", session=FakeSession({})).fetch("eip155:137", UNI)


def test_ethplorer_api_error_is_provider_error():
    session = FakeSession({f"/getTokenInfo/{UNI}": FakeResponse({"error": {"code": 150, "message": "Address is not a token"}})})
    with pytest.raises(ProviderError):
        EthplorerHolders("https://api.ethplorer.io", session=session).fetch(1, UNI)


def test_ethplorer_http_error_is_provider_error():
    session = FakeSession({f"/getTokenInfo/{UNI}": requests.ConnectionError("down")})
    with pytest.raises(ProviderError):
        EthplorerHolders("https://api.ethplorer.io", session=session).fetch(1, UNI)


def test_defillama_pools_are_matched_and_cached():
    pools = {"data": [
        {"chain": "Ethereum", "project": "uniswap-v3", "pool": "p1", "tvlUsd": 300.0, "underlyingTokens": [UNI.upper().replace("0X", "0x")]},
        {"chain": "Ethereum", "project": "curve", "pool": "p2", "tvlUsd": 100.0, "underlyingTokens": [UNI]},
        {"chain": "Arbitrum", "project": "uniswap-v3", "pool": "p3", "tvlUsd": 999.0, "underlyingTokens": [UNI]},
        {"chain": "Ethereum", "project": "other", "pool": "p4", "tvlUsd": 50.0, "underlyingTokens": ["0x" + "99" * 20]},
    ]}
    session = FakeSession({"/pools": FakeResponse(pools)})
    provider = DefiLlamaLiquidity("https://yields.llama.fi/pools", cache=TTLCache(900), session=session)

    ev = provider.fetch("eip155:1", UNI)
    assert [p.pool_address for p in ev.pools] == ["p1", "p2"]
    assert [p.share_pct for p in ev.pools] == [75.0, 25.0]
    assert ev.centralized_venue_share_pct == 0.0

    provider.fetch("eip155:1", UNI)
    assert len(session.calls) == 1


def test_defillama_no_pools_is_absent():
    session = FakeSession({"/pools": FakeResponse({"data": []})})
    assert DefiLlamaLiquidity("https://yields.llama.fi/pools", session=session).fetch(1, UNI) is None


def test_static_chain_stats():
    ev = StaticChainStats().fetch("eip155:1")
    assert ev.nakamoto == 12
    assert StaticChainStats().fetch(424242).nakamoto == 2


def test_audit_registry(tmp_path):
    path = tmp_path / "audits.json"
    path.write_text(json.dumps({
        f"eip155:1/{UNI}": [
            {"firm": "Trail of Bits", "report_url": "https://example.org/uni.pdf", "date": 1700000000},
            {"firm": "", "report_url": "https://example.org/skip.pdf"},
        ],
    }))
    audits = AuditRegistry(str(path)).fetch(1, UNI.upper().replace("0X", "0x"))
    assert len(audits) == 1
    assert audits[0].firm == "Trail of Bits"
    assert AuditRegistry("").fetch(1, UNI) == []
    with pytest.raises(ProviderError):
        AuditRegistry(str(tmp_path / "missing.json")).fetch(1, UNI)


def test_strategy_matching():
    assert strategy_matches_token({"name": "erc20-balance-of", "params": {"address": UNI.upper().replace("0X", "0x")}}, UNI)
    assert strategy_matches_token({"params": {"addresses": ["0x1", UNI]}}, UNI)
    assert not strategy_matches_token({"params": {"symbol": "UNI"}}, UNI)
    assert not strategy_matches_token(None, UNI)


def test_snapshot_turnout_from_followers_or_quorum():
    t = snapshot_turnout({"followersCount": 200}, {"id": "p1", "votes": 50, "end": 1700000000})
    assert t.turnout_pct == 25.0
    assert t.timestamp == 1700000000
    t = snapshot_turnout({}, {"id": "p2", "quorum": 100, "scores_total": 40, "end": 1})
    assert t.turnout_pct == 40.0
    assert snapshot_turnout({}, {"id": "p3"}) is None


def test_summarize_prefers_tally_label():
    assert summarize([], []) is None
    ev = summarize([{"id": "uniswap", "quorum_pct": 4.0, "turnout_history": []}], [{"quorum_pct": 6.0}])
    assert ev.framework == "tally"
    assert ev.quorum_pct == 5.0


class FakeSnapshot:
    def spaces_for_token(self, chain_id, address):
        return [{"id": "uniswap", "followersCount": 100}]

    def recent_proposals(self, space_id, limit):
        return [{"id": "p1", "votes": 10, "quorum": 5, "end": 1700000000}]


class FailingTally:
    def governors_for_token(self, chain_id, address):
        raise ProviderError("tally", "401 unauthorized")


def test_tally_failure_is_not_fatal():
    ev = GovernanceDiscovery(FakeSnapshot(), FailingTally()).fetch(1, UNI)
    assert ev.framework == "snapshot"
    assert ev.quorum_pct == 5.0
    assert ev.turnout_history[0].turnout_pct == 10.0


def test_explorer_verification():
    verified = FakeSession({"/api": FakeResponse({"status": "1", "result": "[{\"type\": \"function\"}]"})})
    unverified = FakeSession({"/api": FakeResponse({"status": "0", "result": "Contract source code not verified"})})
    broken = FakeSession({"/api": requests.Timeout("slow")})
    base = "https://api.etherscan.io/v2/api"
    assert ExplorerClient(base, session=verified).is_verified(1, UNI) is True
    assert ExplorerClient(base, session=unverified).is_verified(1, UNI) is False
    assert ExplorerClient(base, session=broken).is_verified(1, UNI) is False


class GraphQLSession:
    """Replays GraphQL ``data`` payloads in order."""

    def __init__(self, *payloads):
        self.payloads = list(payloads)
        self.posts = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.posts.append((json, headers))
        return FakeResponse({"data": self.payloads.pop(0)})


def test_covalent_requires_key_and_known_chain():
    with pytest.raises(ProviderError):
        CovalentHolders("https://api.covalenthq.com/v1", "").fetch(1, UNI)
    with pytest.raises(UnsupportedChainError):
        CovalentHolders("https://api.covalenthq.com/v1", "ckey_x", session=FakeSession({})).fetch(424242, UNI)


def test_covalent_shares_from_balances():
    session = FakeSession({"/token_holders/": FakeResponse({"data": {"items": [
        {"address": "0x" + "aa" * 20, "balance": "600"},
        {"address": "0x" + "bb" * 20, "balance": "300"},
        {"address": "0x" + "cc" * 20, "balance": "100"},
        {"balance": "5"},
    ]}})})
    ev = CovalentHolders("https://api.covalenthq.com/v1", "ckey_x", session=session).fetch("eip155:137", UNI)
    assert ev.source_name == "covalent"
    assert ev.top1_pct == 60.0
    assert ev.nakamoto == 1
    assert ev.contract_share_pct == 0.0
    assert ev.eoa_share_pct == ev.coverage_pct
    assert session.calls[0][0].endswith(f"/matic-mainnet/tokens/{UNI}/token_holders/")


def test_tally_governors_for_token():
    session = GraphQLSession(
        {"organizations": {"nodes": [
            {"id": "1", "tokenIds": [f"eip155:1/erc20:{UNI}"], "governorIds": ["eip155:1:0xgov"]},
            {"id": "2", "tokenIds": ["eip155:1/erc20:0xother"], "governorIds": ["eip155:1:0xnope"]},
        ], "pageInfo": {"lastCursor": None}}},
        {"governor": {"id": "eip155:1:0xgov", "name": "Uniswap", "quorum": "40000000", "token": {"supply": "1000000000"}}},
    )
    govs = TallyClient("https://api.tally.xyz/query", "tkey", session=session).governors_for_token(1, UNI)
    assert govs == [{
        "id": "eip155:1:0xgov",
        "name": "Uniswap",
        "slug": None,
        "chain_id": None,
        "quorum_pct": 4.0,
    }]
    assert session.posts[0][1]["Api-Key"] == "tkey"


def test_provider_set_wiring(app):
    cfg = dict(app.config)
    providers = build_provider_set(cfg)
    assert [h.name for h in providers.holders] == ["ethplorer"]
    assert providers.blocks is providers.contract.client

    cfg["COVALENT_API_KEY"] = "ckey_x"
    assert [h.name for h in build_provider_set(cfg).holders] == ["ethplorer", "covalent"]
