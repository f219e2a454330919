"""
In-memory state of one market-making agent.

Owned by exactly one MarketMaker and mutated only from its event loop task,
so no locking is needed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

# Tolerance for float size comparisons.
EPSILON = 1e-6

MID_UNSET = -1.0
PRICE_UNSET = -1.0


@dataclass
class RestingOrder:
    """The agent's belief about the order resting on one side of the book."""

    oid: int = 0
    position: float = 0.0
    price: float = PRICE_UNSET

    @property
    def is_live(self) -> bool:
        return self.oid != 0 and self.position > EPSILON

    def reset(self) -> None:
        self.oid = 0
        self.position = 0.0
        self.price = PRICE_UNSET

    def update(self, oid: int, position: float, price: float) -> None:
        self.oid = oid
        self.position = position
        self.price = price


@dataclass
class AgentState:
    """
    Resting orders, position, mid price and the active-order index.

    `active_orders` maps oid -> is_buy for every order believed live on the
    exchange. A nonzero RestingOrder.oid is expected to be present there with
    the matching side, except between a fill that consumed it and the next
    reconciliation pass.
    """

    lower_resting: RestingOrder = field(default_factory=RestingOrder)
    upper_resting: RestingOrder = field(default_factory=RestingOrder)
    cur_position: float = 0.0
    latest_mid_price: float = MID_UNSET
    active_orders: Dict[int, bool] = field(default_factory=dict)

    @property
    def has_mid(self) -> bool:
        return self.latest_mid_price >= 0.0

    def resting_for(self, is_buy: bool) -> RestingOrder:
        return self.lower_resting if is_buy else self.upper_resting

    def snapshot(self) -> dict:
        """Plain-dict view for logging."""
        return {
            "position": self.cur_position,
            "mid": self.latest_mid_price,
            "lower": {"oid": self.lower_resting.oid, "sz": self.lower_resting.position, "px": self.lower_resting.price},
            "upper": {"oid": self.upper_resting.oid, "sz": self.upper_resting.position, "px": self.upper_resting.price},
            "active_orders": len(self.active_orders),
        }
