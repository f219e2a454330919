"""
Deviation policy: decide whether a resting order has drifted far enough
from its target to be replaced.
"""

from __future__ import annotations

import math

from hlmm.state import EPSILON, RestingOrder


def bps_diff(a: float, b: float) -> float:
    """
    Symmetric distance between two prices in basis points, relative to
    their mean. Infinite when either is NaN or the mean is zero.
    """
    if math.isnan(a) or math.isnan(b):
        return math.inf
    mean = abs(a + b) / 2.0
    if mean == 0.0:
        return 0.0 if a == b else math.inf
    return abs(a - b) / mean * 10000.0


def needs_requote(target_price: float, target_amount: float, resting: RestingOrder, max_bps_diff: int) -> bool:
    # Size is held to EPSILON; price gets a tolerance band to avoid churn.
    if abs(target_amount - resting.position) > EPSILON:
        return True
    return bps_diff(target_price, resting.price) > max_bps_diff
