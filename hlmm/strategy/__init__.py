"""
Strategy package.

Quote computation and the requote (deviation) policy.
"""

from hlmm.strategy.deviation import bps_diff, needs_requote
from hlmm.strategy.quoting import Quote, compute_quote, truncate_price

__all__ = [
    "Quote",
    "bps_diff",
    "compute_quote",
    "needs_requote",
    "truncate_price",
]
