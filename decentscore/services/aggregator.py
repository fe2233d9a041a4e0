# decentscore/services/aggregator.py
"""
Merge holder snapshots from several sources into one consensus snapshot.

Input is the list of tagged results the orchestrator collected; anything that
is not ``Ok`` is dropped before merging.
"""
import dataclasses
import logging
from typing import List, Optional, Sequence

from decentscore.services.distribution import variance
from decentscore.services.evidence import EvidenceResult, HoldersEvidence, successful

logger = logging.getLogger(__name__)

SINGLE_SOURCE = "single-source"
DATA_CONFLICT = "data conflict detected"

TOP10_VARIANCE_LIMIT = 5.0
HHI_VARIANCE_LIMIT = 100.0

# (campo, decimales) de las metricas promediadas por cobertura
WEIGHTED_FIELDS = (
    ("top10_pct", 2),
    ("hhi", 2),
    ("gini", 4),
    ("top1_pct", 2),
    ("top3_pct", 2),
    ("contract_share_pct", 2),
    ("eoa_share_pct", 2),
)


def _coverage(ev: HoldersEvidence) -> float:
    return ev.coverage_pct or 0.0


def consensus_status(sources: Sequence[HoldersEvidence]) -> str:
    if len(sources) < 2:
        return SINGLE_SOURCE
    top10_var = variance([s.top10_pct for s in sources])
    hhi_var = variance([s.hhi for s in sources])
    if top10_var < TOP10_VARIANCE_LIMIT and hhi_var < HHI_VARIANCE_LIMIT:
        return f"{len(sources)} sources agree"
    return DATA_CONFLICT


def merge_holders(sources: List[HoldersEvidence]) -> HoldersEvidence:
    """Coverage-weighted merge of two or more snapshots."""
    template = sources[0]
    for s in sources[1:]:
        if _coverage(s) > _coverage(template):
            template = s

    total_coverage = sum(_coverage(s) for s in sources)
    weights = [
        (_coverage(s) / total_coverage) if total_coverage > 0 else 1.0 / len(sources)
        for s in sources
    ]

    merged = {
        name: round(sum(getattr(s, name) * w for s, w in zip(sources, weights)), digits)
        for name, digits in WEIGHTED_FIELDS
    }
    return dataclasses.replace(
        template,
        nakamoto=max(s.nakamoto for s in sources),
        sample_size=round(sum(s.sample_size for s in sources) / len(sources)),
        contributing_sources=[s.source_name for s in sources],
        consensus_status=consensus_status(sources),
        observed_at_block=max(s.observed_at_block for s in sources),
        **merged,
    )


def aggregate_holders(results: Sequence[EvidenceResult]) -> Optional[HoldersEvidence]:
    """Consensus snapshot from tagged results, or None when no source succeeded."""
    sources = [v for v in successful(results) if v is not None]
    if not sources:
        return None
    if len(sources) == 1:
        only = sources[0]
        return dataclasses.replace(
            only,
            contributing_sources=[only.source_name],
            consensus_status=SINGLE_SOURCE,
        )
    merged = merge_holders(sources)
    logger.info(
        "holders aggregated",
        extra={"provider": ",".join(merged.contributing_sources)},
    )
    return merged
