# decentscore/providers/governance.py
import logging
import time
from typing import List, Optional

from decentscore.errors import ProviderError
from decentscore.services.evidence import GovernanceEvidence, TurnoutRecord

logger = logging.getLogger(__name__)

SNAPSHOT_SPACE_LIMIT = 3
SNAPSHOT_PROPOSAL_LIMIT = 3
TURNOUT_HISTORY_KEPT = 6


def snapshot_turnout(space: dict, proposal: dict) -> Optional[TurnoutRecord]:
    followers = space.get("followersCount") or 0
    votes = proposal.get("votes") or 0
    quorum = proposal.get("quorum") or 0
    scores_total = proposal.get("scores_total") or 0

    turnout = None
    if followers > 0:
        turnout = min(100.0, votes / followers * 100)
    elif quorum > 0 and scores_total:
        turnout = min(100.0, scores_total / quorum * 100)
    if not turnout or turnout <= 0:
        return None

    ts = proposal.get("end") or proposal.get("start") or int(time.time())
    return TurnoutRecord(proposal_id=proposal["id"], turnout_pct=round(turnout, 2), timestamp=int(ts))


def snapshot_quorum(space: dict, proposals: List[dict]) -> Optional[float]:
    followers = space.get("followersCount") or 0
    if followers <= 0:
        return None
    ratios = [min(100.0, p["quorum"] / followers * 100) for p in proposals if p.get("quorum")]
    if not ratios:
        return None
    return round(sum(ratios) / len(ratios), 2)


def summarize(snapshot_spaces: List[dict], tally_governors: List[dict]) -> Optional[GovernanceEvidence]:
    """Tally wins the framework label over Snapshot; quorum is the plain average."""
    if not snapshot_spaces and not tally_governors:
        return None
    framework = "tally" if tally_governors else "snapshot"

    quorums = [g["quorum_pct"] for g in tally_governors if g.get("quorum_pct")]
    quorums += [s["quorum_pct"] for s in snapshot_spaces if s.get("quorum_pct")]
    quorum_pct = round(sum(quorums) / len(quorums), 2) if quorums else None

    history = [t for s in snapshot_spaces for t in s["turnout_history"]]
    history.sort(key=lambda t: t.timestamp, reverse=True)
    return GovernanceEvidence(
        framework=framework,
        quorum_pct=quorum_pct,
        turnout_history=history[:TURNOUT_HISTORY_KEPT],
    )


class GovernanceDiscovery:
    """Snapshot spaces plus Tally governors for a token."""

    name = "governance"

    def __init__(self, snapshot, tally=None):
        self.snapshot = snapshot
        self.tally = tally

    def snapshot_evidence(self, chain_id, address: str) -> List[dict]:
        out = []
        for space in self.snapshot.spaces_for_token(chain_id, address)[:SNAPSHOT_SPACE_LIMIT]:
            proposals = self.snapshot.recent_proposals(space["id"], SNAPSHOT_PROPOSAL_LIMIT)
            out.append({
                "id": space["id"],
                "quorum_pct": snapshot_quorum(space, proposals),
                "turnout_history": [t for t in (snapshot_turnout(space, p) for p in proposals) if t],
            })
        return out

    def tally_evidence(self, chain_id, address: str) -> List[dict]:
        if self.tally is None:
            return []
        try:
            return self.tally.governors_for_token(chain_id, address)
        except ProviderError as e:
            logger.warning("tally discovery failed: %s", e, extra={"provider": "tally"})
            return []

    def fetch(self, chain_id, address: str) -> Optional[GovernanceEvidence]:
        spaces = self.snapshot_evidence(chain_id, address)
        governors = self.tally_evidence(chain_id, address)
        return summarize(spaces, governors)
