"""
StateSync: seed an agent's state from the exchange before its event loop
starts.

Pulls this account's open orders for the asset (rebuilding the active-order
index and the resting-order records) and its current position. Any failure
here is fatal to the agent's startup and surfaces as BootstrapError.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from hlmm.infra.logging_cfg import LOGGER_NAME, log_event
from hlmm.state import AgentState, RestingOrder

log = logging.getLogger(LOGGER_NAME)


class BootstrapError(RuntimeError):
    """The agent could not build its sessions or fetch its initial state."""


def _to_float(raw: Any, default: float = 0.0) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


class StateSync:
    def __init__(self, coin: str, async_info, account: str, state: AgentState) -> None:
        self.coin = coin
        self.async_info = async_info
        self.account = account
        self.state = state

    async def sync(self) -> None:
        await self.fetch_open_orders()
        await self.fetch_current_position()
        log_event(log, "state_synced", coin=self.coin, **self.state.snapshot())

    async def fetch_open_orders(self) -> None:
        try:
            orders = await self.async_info.open_orders(self.account)
        except Exception as exc:
            raise BootstrapError(f"{self.coin}: failed to fetch open orders: {exc}") from exc
        if not isinstance(orders, list):
            raise BootstrapError(f"{self.coin}: unexpected openOrders response: {orders!r}")
        self.apply_open_orders(orders)

    def apply_open_orders(self, orders: List[Dict[str, Any]]) -> None:
        """
        Index every open order for our coin. If one side has several, the
        last one listed becomes that side's RestingOrder; the others stay in
        the index so their fills are still recognised.
        """
        for order in orders:
            if not isinstance(order, dict) or order.get("coin") != self.coin:
                continue
            try:
                oid = int(order["oid"])
            except (KeyError, TypeError, ValueError) as exc:
                raise BootstrapError(f"{self.coin}: open order without a valid oid: {order!r}") from exc
            is_buy = order.get("side") == "B"
            self.state.active_orders[oid] = is_buy
            resting = RestingOrder(
                oid=oid,
                position=_to_float(order.get("sz")),
                price=_to_float(order.get("limitPx")),
            )
            if is_buy:
                self.state.lower_resting = resting
            else:
                self.state.upper_resting = resting

    async def fetch_current_position(self) -> None:
        try:
            user_state = await self.async_info.user_state(self.account)
        except Exception as exc:
            raise BootstrapError(f"{self.coin}: failed to fetch user state: {exc}") from exc
        if not isinstance(user_state, dict):
            raise BootstrapError(f"{self.coin}: unexpected clearinghouseState response: {user_state!r}")
        self.apply_user_state(user_state)

    def apply_user_state(self, user_state: Dict[str, Any]) -> None:
        for ap in user_state.get("assetPositions", []) or []:
            pos = ap.get("position", {}) if isinstance(ap, dict) else {}
            if pos.get("coin") != self.coin:
                continue
            try:
                self.state.cur_position = float(pos["szi"])
            except (KeyError, TypeError, ValueError) as exc:
                raise BootstrapError(f"{self.coin}: unparseable position size: {pos!r}") from exc
            return
