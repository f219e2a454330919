"""
State package.

The per-agent aggregate of resting orders, position and order index.
"""

from hlmm.state.agent_state import EPSILON, MID_UNSET, AgentState, RestingOrder

__all__ = [
    "EPSILON",
    "MID_UNSET",
    "AgentState",
    "RestingOrder",
]
