"""
MarketMaker: one asset's quoting agent.

Lifecycle:
    initialize()  seed state from the exchange (fatal on failure)
    run()         subscribe and drain the feed, one message at a time
    stop()        end the feed; run() returns
    shutdown()    optionally pull our quotes, then release sessions

Every gateway call is awaited inside the message step that issued it, so
at most one order-entry request is in flight per agent and no two
reconciliation passes ever overlap.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, Dict, Optional, TYPE_CHECKING

from hlmm.config import MarketConfig
from hlmm.execution.fill_processor import FillProcessor
from hlmm.execution.order_manager import OrderLifecycleManager
from hlmm.execution.state_sync import StateSync
from hlmm.infra.logging_cfg import LOGGER_NAME, log_event
from hlmm.market_data.feed import STREAM_END, MarketFeed
from hlmm.state import EPSILON, AgentState
from hlmm.strategy.deviation import needs_requote
from hlmm.strategy.quoting import compute_quote

if TYPE_CHECKING:
    from hlmm.monitoring.metrics import QuoteMetrics

log = logging.getLogger(LOGGER_NAME)


class MarketMaker:
    def __init__(
        self,
        market: MarketConfig,
        exchange: Any,
        async_info: Any,
        info: Any,
        account: str,
        metrics: Optional["QuoteMetrics"] = None,
        cancel_on_exit: bool = True,
    ) -> None:
        self.market = market
        self.coin = market.asset
        self.account = account
        self.metrics = metrics
        self.cancel_on_exit = cancel_on_exit

        self.state = AgentState()
        self.orders = OrderLifecycleManager(self.coin, exchange, self.state, metrics)
        self.fills = FillProcessor(self.coin, self.state, metrics)
        self.state_sync = StateSync(self.coin, async_info, account, self.state)
        self.feed = MarketFeed(info, self.coin, account)
        self._stopping = False

    async def initialize(self) -> None:
        """Pull open orders and position. Raises BootstrapError on failure."""
        await self.state_sync.sync()
        if self.metrics:
            self.metrics.position.labels(coin=self.coin).set(self.state.cur_position)

    async def run(self) -> None:
        try:
            self.feed.start(asyncio.get_running_loop())
        except Exception as exc:
            log_event(log, "subscribe_error", level=logging.ERROR, coin=self.coin, err=str(exc))
            return

        while True:
            message = await self.feed.next_message()
            if message is STREAM_END:
                break
            await self.process_message(message)

        if self._stopping:
            log_event(log, "feed_stream_closed", coin=self.coin)
        else:
            log_event(log, "feed_stream_ended", level=logging.ERROR, coin=self.coin)

    def stop(self) -> None:
        self._stopping = True
        self.feed.close()

    async def shutdown(self) -> None:
        """
        Best-effort cancel of our believed quotes when configured to.

        Covers every indexed oid plus any resting order with size left,
        including partially filled ones that fills have already unindexed.
        """
        if not self.cancel_on_exit:
            return
        state = self.state
        targets: Dict[int, bool] = dict(state.active_orders)
        for is_buy, resting in ((True, state.lower_resting), (False, state.upper_resting)):
            if resting.oid != 0 and resting.position > EPSILON:
                targets.setdefault(resting.oid, is_buy)

        for oid, is_buy in targets.items():
            side = "buy" if is_buy else "sell"
            result = await self.orders.cancel(self.coin, oid)
            if not result.order_gone:
                log_event(log, "exit_cancel_error", level=logging.ERROR, coin=self.coin, side=side,
                          oid=oid, err=result.error)
                continue
            state.active_orders.pop(oid, None)
            for resting in (state.lower_resting, state.upper_resting):
                if resting.oid == oid:
                    resting.reset()
            log_event(log, "exit_cancel", coin=self.coin, side=side, oid=oid,
                      status=result.status.name.lower())

    # ========== Event processing ==========

    async def process_message(self, message: Dict[str, Any]) -> None:
        channel = message.get("channel")
        data = message.get("data")
        if channel == "allMids":
            await self._on_all_mids(data)
        elif channel == "user":
            await self._on_user_events(data)
        else:
            log_event(log, "feed_unknown_channel", level=logging.WARNING, coin=self.coin, channel=channel)

    async def _on_all_mids(self, data: Any) -> None:
        mids = data.get("mids") if isinstance(data, dict) else None
        if not isinstance(mids, dict):
            log_event(log, "mid_parse_error", level=logging.ERROR, coin=self.coin, data=data)
            return
        raw = mids.get(self.coin)
        if raw is None:
            log_event(log, "mid_missing", level=logging.WARNING, coin=self.coin)
            return
        try:
            mid = float(raw)
        except (TypeError, ValueError):
            mid = math.nan
        if not math.isfinite(mid) or mid <= 0:
            log_event(log, "mid_parse_error", level=logging.ERROR, coin=self.coin, mid=raw)
            return

        self.state.latest_mid_price = mid
        if self.metrics:
            self.metrics.mid_price.labels(coin=self.coin).set(mid)
        await self.potentially_update()

    async def _on_user_events(self, data: Any) -> None:
        # No price reference to requote against yet.
        if not self.state.has_mid:
            log_event(log, "user_event_before_mid", level=logging.DEBUG, coin=self.coin)
            return
        fills = data.get("fills") if isinstance(data, dict) else None
        if not isinstance(fills, list):
            log_event(log, "user_event_ignored", level=logging.DEBUG, coin=self.coin,
                      keys=sorted(data) if isinstance(data, dict) else None)
            return
        self.fills.process_batch(fills)
        await self.potentially_update()

    # ========== Reconciliation ==========

    async def potentially_update(self) -> None:
        """
        Cancel drifted quotes, then place fresh ones.

        A failed cancel aborts the whole pass, both sides: the order may have
        just filled, and the fill event will trigger another pass once our
        view of the book is current again.
        """
        if not self.state.has_mid:
            return
        quote = compute_quote(self.state.latest_mid_price, self.market, self.state.cur_position)
        lower = self.state.lower_resting
        upper = self.state.upper_resting

        lower_change = needs_requote(quote.lower_price, quote.lower_amount, lower, self.market.max_bps_diff)
        upper_change = needs_requote(quote.upper_price, quote.upper_amount, upper, self.market.max_bps_diff)

        if lower_change and lower.is_live:
            if not await self.orders.attempt_cancel(self.coin, lower.oid):
                log_event(log, "reconcile_abort", coin=self.coin, side="buy", oid=lower.oid)
                return
            log_event(log, "cancelled", coin=self.coin, side="buy", oid=lower.oid, sz=lower.position, px=lower.price)
            lower.reset()

        if upper_change and upper.is_live:
            if not await self.orders.attempt_cancel(self.coin, upper.oid):
                log_event(log, "reconcile_abort", coin=self.coin, side="sell", oid=upper.oid)
                return
            log_event(log, "cancelled", coin=self.coin, side="sell", oid=upper.oid, sz=upper.position, px=upper.price)
            upper.reset()

        if quote.lower_amount > EPSILON and lower_change:
            amount, oid = await self.orders.place_order(self.coin, quote.lower_amount, quote.lower_price, True)
            lower.update(oid, amount, quote.lower_price)
            if amount > EPSILON:
                log_event(log, "resting", coin=self.coin, side="buy", sz=amount, px=quote.lower_price, oid=oid)

        if quote.upper_amount > EPSILON and upper_change:
            amount, oid = await self.orders.place_order(self.coin, quote.upper_amount, quote.upper_price, False)
            upper.update(oid, amount, quote.upper_price)
            if amount > EPSILON:
                log_event(log, "resting", coin=self.coin, side="sell", sz=amount, px=quote.upper_price, oid=oid)
