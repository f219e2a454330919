"""
Market data feed: Hyperliquid websocket allMids + userEvents multiplexed
onto one asyncio queue.

The SDK invokes callbacks on its websocket thread; messages are handed to
the agent's event loop unchanged and in arrival order. Mids and user events
come from independent topics, so their relative order is not guaranteed.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional

from hlmm.infra.logging_cfg import LOGGER_NAME

log = logging.getLogger(LOGGER_NAME)

# Queued by close() to end the consumer loop.
STREAM_END = None


class MarketFeed:
    def __init__(self, info, coin: str, account: str) -> None:
        self.info = info
        self.coin = coin
        self.account = account
        self.queue: asyncio.Queue[Optional[Dict[str, Any]]] = asyncio.Queue()
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.last_event: float = 0.0
        self._subs: Dict[str, tuple[dict, int]] = {}
        self._closed = False

    @property
    def started(self) -> bool:
        return bool(self._subs)

    def _on_message(self, msg: Any) -> None:
        # Runs on the SDK websocket thread: never raise from here.
        if self._closed or self.loop is None or not isinstance(msg, dict):
            return
        self.last_event = time.time()
        try:
            asyncio.run_coroutine_threadsafe(self.queue.put(msg), self.loop)
        except RuntimeError:
            # loop already closed during shutdown
            pass

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        """
        Subscribe to this account's user events (fills) and all mids.

        Raises whatever the SDK raises if a subscription fails; the caller
        decides whether that is fatal.
        """
        if self.started:
            return
        self.loop = loop
        user_sub = {"type": "userEvents", "user": self.account}
        self._subs["user"] = (user_sub, self.info.subscribe(user_sub, self._on_message))
        mids_sub = {"type": "allMids"}
        self._subs["mids"] = (mids_sub, self.info.subscribe(mids_sub, self._on_message))
        log.info(json.dumps({"event": "ws_start", "coin": self.coin, "account": self.account}))

    async def next_message(self) -> Optional[Dict[str, Any]]:
        return await self.queue.get()

    def close(self) -> None:
        """Unsubscribe and wake the consumer with STREAM_END."""
        if self._closed:
            return
        self._closed = True
        for name, (sub, sub_id) in list(self._subs.items()):
            try:
                self.info.unsubscribe(sub, sub_id)
            except Exception as exc:
                log.warning(json.dumps({"event": "ws_unsubscribe_error", "coin": self.coin, "sub": name, "err": str(exc)}))
        self._subs.clear()
        self.queue.put_nowait(STREAM_END)

    def data_age(self) -> float:
        return time.time() - self.last_event if self.last_event else float("inf")
