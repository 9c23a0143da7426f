"""
Analysis module for L-system runs.

Provides read-only metrics over generations:
- Kind histograms and newness fractions
- Growth series and growth ratios across history
"""

from .metrics import (
    kind_counts,
    newness_fraction,
    growth_series,
    growth_ratios,
    summarize,
)

__all__ = [
    "kind_counts",
    "newness_fraction",
    "growth_series",
    "growth_ratios",
    "summarize",
]
