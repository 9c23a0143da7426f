"""
Metrics over L-system generations.

Consumers of the states the engine produces; nothing here feeds back into
rewriting.
"""

from __future__ import annotations
from typing import Any, Dict, Sequence
import numpy as np

from ..core.evolution import EvolutionResult
from ..core.state import GenerationState


def kind_counts(state: GenerationState) -> Dict[str, int]:
    """
    Count modules per kind.

    Kinds are returned in sorted order.
    """
    if len(state) == 0:
        return {}
    kinds, counts = np.unique(np.array(state.kinds(), dtype=object), return_counts=True)
    return {str(kind): int(count) for kind, count in zip(kinds, counts)}


def newness_fraction(state: GenerationState) -> float:
    """Fraction of positions produced by the last evolution, in [0, 1]."""
    if len(state) == 0:
        return 0.0
    return float(np.mean(state.newness))


def growth_series(history: Sequence[GenerationState]) -> np.ndarray:
    """Module count for each state of a history."""
    return np.array([len(state) for state in history], dtype=np.int64)


def growth_ratios(history: Sequence[GenerationState]) -> np.ndarray:
    """
    Ratio len(S(n+1)) / len(S(n)) between consecutive states.

    Empty predecessors give nan.
    """
    lengths = growth_series(history).astype(float)
    if len(lengths) < 2:
        return np.array([], dtype=float)
    previous = lengths[:-1]
    ratios = np.full(len(previous), np.nan)
    mask = previous > 0
    ratios[mask] = lengths[1:][mask] / previous[mask]
    return ratios


def summarize(result: EvolutionResult) -> Dict[str, Any]:
    """Summary of a run for logging and display."""
    final = result.final_state
    stats = result.stats
    return {
        "generations": stats.generations,
        "final_length": len(final),
        "new_modules": final.new_count,
        "newness_fraction": newness_fraction(final),
        "rules_applied": stats.rules_applied,
        "rules_by_name": dict(sorted(stats.rules_by_name.items())),
        "kind_counts": kind_counts(final),
        "elapsed_time": stats.elapsed_time,
    }
