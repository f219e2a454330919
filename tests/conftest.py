"""
Pytest configuration and shared fakes.
Adds the repo root to sys.path so tests can import hlmm without installing.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from hlmm.config import MarketConfig  # noqa: E402


def ok_statuses(*statuses: Any) -> Dict[str, Any]:
    return {"status": "ok", "response": {"type": "order", "data": {"statuses": list(statuses)}}}


def err_response(msg: str) -> Dict[str, Any]:
    return {"status": "err", "response": msg}


class FakeExchange:
    """
    Records every gateway call. Responses are popped from per-method queues;
    when a queue is empty, orders rest with increasing oids and cancels succeed.
    Queue an Exception instance to have the call raise it.
    """

    def __init__(self) -> None:
        self.orders: List[Dict[str, Any]] = []
        self.cancels: List[Dict[str, Any]] = []
        self.order_responses: List[Any] = []
        self.cancel_responses: List[Any] = []
        self._next_oid = 1000
        self.closed = False

    @property
    def calls(self) -> int:
        return len(self.orders) + len(self.cancels)

    async def order(self, coin, is_buy, sz, px, order_type, reduce_only=False, cloid=None):
        self.orders.append({
            "coin": coin, "is_buy": is_buy, "sz": sz, "px": px,
            "order_type": order_type, "reduce_only": reduce_only,
        })
        if self.order_responses:
            resp = self.order_responses.pop(0)
        else:
            self._next_oid += 1
            resp = ok_statuses({"resting": {"oid": self._next_oid}})
        if isinstance(resp, Exception):
            raise resp
        return resp

    async def cancel(self, coin, oid):
        self.cancels.append({"coin": coin, "oid": oid})
        if self.cancel_responses:
            resp = self.cancel_responses.pop(0)
        else:
            resp = ok_statuses("success")
        if isinstance(resp, Exception):
            raise resp
        return resp

    async def close(self, wait=True):
        self.closed = True


class FakeAsyncInfo:
    def __init__(self, open_orders: Optional[list] = None, user_state: Optional[dict] = None) -> None:
        self._open_orders = open_orders if open_orders is not None else []
        self._user_state = user_state if user_state is not None else {"assetPositions": []}
        self.closed = False

    async def open_orders(self, account):
        if isinstance(self._open_orders, Exception):
            raise self._open_orders
        return self._open_orders

    async def user_state(self, account):
        if isinstance(self._user_state, Exception):
            raise self._user_state
        return self._user_state

    async def close(self):
        self.closed = True


class FakeInfo:
    """Websocket side of hyperliquid.info.Info: records subscriptions."""

    def __init__(self, fail_subscribe: bool = False) -> None:
        self.subscriptions: Dict[int, Any] = {}
        self.unsubscribed: List[int] = []
        self.fail_subscribe = fail_subscribe
        self.disconnected = False
        self._next_id = 0

    def subscribe(self, subscription, callback):
        if self.fail_subscribe:
            raise ConnectionError("websocket unavailable")
        self._next_id += 1
        self.subscriptions[self._next_id] = (subscription, callback)
        return self._next_id

    def unsubscribe(self, subscription, subscription_id):
        self.unsubscribed.append(subscription_id)
        return self.subscriptions.pop(subscription_id, None) is not None

    def disconnect_websocket(self):
        self.disconnected = True


@pytest.fixture
def market():
    return MarketConfig(
        asset="ETH",
        target_liquidity=1.0,
        half_spread_bps=5,
        max_bps_diff=10,
        max_absolute_position_size=1.0,
        decimals=2,
    )


@pytest.fixture
def exchange():
    return FakeExchange()
