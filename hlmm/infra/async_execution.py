"""
Async wrapper around the blocking Hyperliquid Exchange.

Each agent owns one of these (and one executor), so order-entry calls from
different assets never queue behind each other. Calls are awaited by the
caller; no timeout or retry is added here.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Any


class AsyncExchange:
    def __init__(self, exchange, max_workers: int = 2, name: str = "hl-exec") -> None:
        self._exchange = exchange
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)

    async def order(self, *args, **kwargs) -> Any:
        return await self._call(lambda: self._exchange.order(*args, **kwargs))

    async def cancel(self, coin: str, oid: int) -> Any:
        return await self._call(lambda: self._exchange.cancel(coin, oid))

    async def close(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    async def _call(self, fn) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, fn)
