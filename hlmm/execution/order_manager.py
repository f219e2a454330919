"""
OrderLifecycleManager: cancel and place post-only quotes, keeping the
active-order index in step with gateway responses.

Each side of the book cycles through
    no-order -> pending-placement -> resting -> (pending-cancel | filled) -> no-order
and only this manager (plus fills) moves it. The exchange never pushes an
"accepted" event; the synchronous order response is the only confirmation.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, TYPE_CHECKING

from hlmm.execution.results import (
    CancelResult,
    CancelStatus,
    PlaceResult,
    PlaceStatus,
    classify_cancel,
    classify_order,
)
from hlmm.infra.logging_cfg import LOGGER_NAME, log_event
from hlmm.state import AgentState

if TYPE_CHECKING:
    from hlmm.monitoring.metrics import QuoteMetrics

log = logging.getLogger(LOGGER_NAME)

# Add-liquidity-only: the exchange rejects the order instead of crossing.
POST_ONLY = {"limit": {"tif": "Alo"}}


class OrderLifecycleManager:
    """
    Wraps the order-entry gateway for one asset.

    `exchange` needs async `cancel(coin, oid)` and
    `order(coin, is_buy, sz, px, order_type, reduce_only)`, e.g. AsyncExchange.
    """

    def __init__(
        self,
        coin: str,
        exchange: Any,
        state: AgentState,
        metrics: Optional["QuoteMetrics"] = None,
    ) -> None:
        self.coin = coin
        self.exchange = exchange
        self.state = state
        self.metrics = metrics

    @property
    def active_orders(self) -> dict[int, bool]:
        return self.state.active_orders

    async def cancel(self, asset: str, oid: int) -> CancelResult:
        """Issue a cancel and classify the outcome. Does not touch state."""
        try:
            resp = await self.exchange.cancel(asset, oid)
        except Exception as exc:
            return CancelResult(CancelStatus.FAILED, f"{type(exc).__name__}: {exc}")
        return classify_cancel(resp)

    async def attempt_cancel(self, asset: str, oid: int) -> bool:
        """
        Cancel `oid` if we still believe it is live.

        Returns True when the order is known to be off the book (cancelled
        now, or already gone), False when the cancel failed for any other
        reason. On False nothing is mutated.
        """
        if oid not in self.active_orders:
            log_event(log, "cancel_skip_inactive", level=logging.DEBUG, coin=self.coin, oid=oid)
            return True

        result = await self.cancel(asset, oid)
        if result.status is CancelStatus.SUCCESS:
            self.active_orders.pop(oid, None)
            self._count_cancel("success")
            return True
        if result.status is CancelStatus.STALE:
            # Exchange and belief diverged benignly: the order is already gone.
            self.active_orders.pop(oid, None)
            self._count_cancel("stale")
            log_event(log, "cancel_stale", coin=self.coin, oid=oid, err=result.error)
            return True

        self._count_cancel("error")
        log_event(log, "cancel_error", level=logging.ERROR, coin=self.coin, oid=oid, err=result.error)
        return False

    async def submit(self, asset: str, amount: float, price: float, is_buy: bool) -> PlaceResult:
        """Send a post-only limit order and classify the outcome. Does not touch state."""
        try:
            resp = await self.exchange.order(asset, is_buy, amount, price, POST_ONLY, False)
        except Exception as exc:
            return PlaceResult(PlaceStatus.FAILED, error=f"{type(exc).__name__}: {exc}")
        return classify_order(resp)

    async def place_order(self, asset: str, amount: float, price: float, is_buy: bool) -> tuple[float, int]:
        """
        Place a post-only quote.

        Returns (amount, oid) when the order rests, (0.0, 0) otherwise.
        """
        side = "buy" if is_buy else "sell"
        result = await self.submit(asset, amount, price, is_buy)

        if result.status is PlaceStatus.RESTING:
            self.active_orders[result.oid] = is_buy
            if self.metrics:
                self.metrics.orders_placed.labels(coin=self.coin, side=side).inc()
            return amount, result.oid

        if result.status is PlaceStatus.POST_ONLY_REJECTED:
            # Price moved through our quote between computing and sending it.
            log_event(
                log, "post_only_rejected", coin=self.coin, side=side, px=price, sz=amount,
                note="will retry on next price update",
            )
            self._count_reject("post_only")
        else:
            log_event(
                log, "order_error", level=logging.ERROR, coin=self.coin, side=side,
                px=price, sz=amount, status=result.status.name.lower(), err=result.error,
            )
            self._count_reject(result.status.name.lower())
        return 0.0, 0

    def _count_cancel(self, reason: str) -> None:
        if self.metrics:
            self.metrics.orders_cancelled.labels(coin=self.coin, reason=reason).inc()

    def _count_reject(self, reason: str) -> None:
        if self.metrics:
            self.metrics.orders_rejected.labels(coin=self.coin, reason=reason).inc()
