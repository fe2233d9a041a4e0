# decentscore/services/distribution.py
"""Concentration metrics over percentage shares (0..100)."""
from typing import Iterable, List, Sequence

import numpy as np

from decentscore.utils import clamp


def hhi(shares: Iterable[float]) -> float:
    """Herfindahl index: sum of squared percentage shares (0..10000)."""
    arr = np.asarray(list(shares), dtype=float)
    return round(float(np.sum(arr * arr)), 2)


def gini(values: Iterable[float]) -> float:
    """Gini over the strictly positive values; 0 for empty or single-holder input."""
    arr = np.asarray([v for v in values if v is not None and np.isfinite(v) and v > 0], dtype=float)
    if arr.size == 0:
        return 0.0
    arr.sort()
    total = arr.sum()
    if total == 0:
        return 0.0
    n = arr.size
    ranks = np.arange(1, n + 1)
    coefficient = float(np.sum((2 * ranks - n - 1) * arr) / (n * total))
    return round(clamp(coefficient, 0.0, 1.0), 4)


def nakamoto(shares: Sequence[float]) -> int:
    """Smallest number of leading shares whose cumulative sum reaches 50%."""
    cumulative = 0.0
    for i, s in enumerate(shares):
        cumulative += s
        if cumulative >= 50:
            return i + 1
    return len(shares)


def top_pct(shares: Sequence[float], count: int) -> float:
    if count <= 0:
        return 0.0
    return round(float(sum(shares[:count])), 2)


def composition(shares: Sequence[float], is_contract: Sequence[bool]) -> dict:
    coverage = sum(shares)
    contract = sum(s for s, c in zip(shares, is_contract) if c)
    coverage_pct = round(clamp(coverage), 2)
    contract_pct = round(clamp(contract), 2)
    return {
        "coverage_pct": coverage_pct,
        "contract_share_pct": contract_pct,
        "eoa_share_pct": round(clamp(coverage_pct - contract_pct), 2),
    }


def free_float(total_supply: int, top10: float) -> int:
    """``supply * (10000 - round(top10 * 100)) // 10000`` on plain ints."""
    scaled = int(clamp(round(top10 * 100), 0, 10000))
    return (int(total_supply) * (10000 - scaled)) // 10000


def variance(values: Iterable[float]) -> float:
    """Population variance (ddof=0); 0 for empty input."""
    arr = np.asarray(list(values), dtype=float)
    if arr.size == 0:
        return 0.0
    return float(np.var(arr))


def holder_metrics(shares: List[float], is_contract: List[bool] = None) -> dict:
    """Every per-source metric for shares already sorted descending."""
    flags = is_contract if is_contract is not None else [False] * len(shares)
    out = {
        "top1_pct": top_pct(shares, 1),
        "top3_pct": top_pct(shares, 3),
        "top10_pct": top_pct(shares, 10),
        "hhi": hhi(shares),
        "gini": gini([s / 100 for s in shares]),
        "nakamoto": nakamoto(shares),
    }
    out.update(composition(shares, flags))
    return out
