import pytest

from decentscore.services.evidence import (
    AuditRecord,
    ChainStatsEvidence,
    ContractEvidence,
    EvidenceBundle,
    GovernanceEvidence,
    LiquidityEvidence,
    Pool,
    RoleHolder,
    Timelock,
    TurnoutRecord,
)
from decentscore.services.subscores import (
    DEFAULT_CHAIN_LEVEL,
    DEFAULT_CONTROL_RISK,
    DEFAULT_GOVERNANCE,
    DEFAULT_LIQUIDITY,
    DEFAULT_OWNERSHIP,
    chain_level_score,
    code_assurance_score,
    compute_subscores,
    control_risk_score,
    governance_score,
    is_likely_multisig,
    liquidity_score,
    ownership_score,
)

from factories import UNI, holders

NOW = 1_760_000_000
ADMIN = "0x" + "aa" * 20
SIGNER_1 = "0x" + "b1" * 20
SIGNER_2 = "0x" + "b2" * 20


def contract(**kw):
    base = dict(address=UNI, verified=True, upgradeable=False)
    base.update(kw)
    return ContractEvidence(**base)


def test_missing_evidence_uses_defaults():
    sub = compute_subscores(EvidenceBundle(), now=NOW)
    assert sub["ownership"] == DEFAULT_OWNERSHIP
    assert sub["controlRisk"] == DEFAULT_CONTROL_RISK
    assert sub["liquidity"] == DEFAULT_LIQUIDITY
    assert sub["governance"] == DEFAULT_GOVERNANCE
    assert sub["chainLevel"] == DEFAULT_CHAIN_LEVEL
    assert sub["codeAssurance"] == 20.0


def test_every_subscore_in_range():
    bundle = EvidenceBundle(
        contract=contract(upgradeable=True, admin_address=ADMIN, pausable=True),
        holders=holders(),
        liquidity=LiquidityEvidence(pools=[Pool("uniswap-v3", "p", 1.0, 100.0)]),
        governance=GovernanceEvidence(framework="snapshot", quorum_pct=50),
        chain_stats=ChainStatsEvidence(nakamoto=1),
    )
    for value in compute_subscores(bundle, now=NOW).values():
        assert 0 <= value <= 100


def test_immutable_contract_without_admin():
    assert control_risk_score(contract()) == 70.0


def test_upgradeable_single_admin_is_penalized():
    assert control_risk_score(contract(upgradeable=True, admin_address=ADMIN)) == 15.0


def test_upgradeable_multisig_admin():
    ev = contract(
        upgradeable=True,
        admin_address=ADMIN,
        roles=[RoleHolder("DEFAULT_ADMIN_ROLE", SIGNER_1), RoleHolder("DEFAULT_ADMIN_ROLE", SIGNER_2)],
    )
    assert is_likely_multisig(ev)
    assert control_risk_score(ev) == 50.0


def test_timelock_softens_pause_penalty():
    thirty_days = 30 * 86400
    with_tl = contract(pausable=True, timelock=Timelock(ADMIN, thirty_days))
    without_tl = contract(pausable=True)
    # 60 + 10 + 25 - 5
    assert control_risk_score(with_tl) == 90.0
    # 60 + 10 - 15
    assert control_risk_score(without_tl) == 55.0


def test_zero_admin_counts_as_no_admin():
    ev = contract(owner_address="0x" + "00" * 20)
    assert control_risk_score(ev) == 70.0


def test_liquidity_single_pool():
    liq = LiquidityEvidence(pools=[Pool("uniswap-v3", "p", 1_000.0, 100.0)])
    assert liquidity_score(liq) == pytest.approx(35.0)


def test_liquidity_spread_beats_concentration():
    spread = LiquidityEvidence(pools=[Pool("a", "p1", 1.0, 25.0) for _ in range(4)], centralized_venue_share_pct=0)
    single = LiquidityEvidence(pools=[Pool("a", "p1", 1.0, 100.0)], centralized_venue_share_pct=0)
    assert liquidity_score(spread) > liquidity_score(single)


def test_governance_quorum_and_turnout():
    assert governance_score(GovernanceEvidence(quorum_pct=4)) == pytest.approx(40.0)
    gov = GovernanceEvidence(
        framework="snapshot",
        quorum_pct=10,
        turnout_history=[TurnoutRecord("p1", 20.0, NOW), TurnoutRecord("p2", 30.0, NOW)],
    )
    # 100 * 0.6 + 50 * 0.4
    assert governance_score(gov) == pytest.approx(80.0)
    gov.framework = "tally-onchain"
    assert governance_score(gov) == pytest.approx(85.0)


def test_chain_level_steps():
    assert chain_level_score(None) == 55.0
    assert chain_level_score(ChainStatsEvidence(nakamoto=25)) == 100.0
    assert chain_level_score(ChainStatsEvidence(nakamoto=12)) == 80.0
    assert chain_level_score(ChainStatsEvidence(nakamoto=5)) == 60.0
    assert chain_level_score(ChainStatsEvidence(nakamoto=2)) == 40.0
    assert chain_level_score(ChainStatsEvidence(nakamoto=1)) == 20.0


def test_code_assurance_with_audits():
    audits = [
        AuditRecord("Trail of Bits", "https://example.org/a.pdf", NOW - 86400),
        AuditRecord("OpenZeppelin", "https://example.org/b.pdf", NOW - 100 * 86400),
    ]
    assert code_assurance_score(contract(), [], now=NOW) == 50.0
    assert code_assurance_score(contract(verified=False), [], now=NOW) == 20.0
    assert code_assurance_score(contract(), audits, now=NOW) == 85.0


def test_code_assurance_old_audits_count_less():
    old = [AuditRecord("Trail of Bits", "u", NOW - 3 * 365 * 86400)]
    assert code_assurance_score(contract(), old, now=NOW) == 60.0


def test_ownership_prefers_dispersed_holders():
    concentrated = holders(top10=95.0, hhi=8000.0, nakamoto=1)
    dispersed = holders(top10=20.0, hhi=200.0, nakamoto=12)
    assert ownership_score(dispersed) > ownership_score(concentrated)
    assert ownership_score(None) == DEFAULT_OWNERSHIP
