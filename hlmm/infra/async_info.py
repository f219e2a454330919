"""
Minimal async HTTP client for the Hyperliquid /info endpoint (HTTP/2).

Used for the bootstrap queries; the websocket feed stays on the SDK's Info.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx


class AsyncInfo:
    def __init__(self, base_url: str, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None) -> None:
        self.base_url = base_url.rstrip("/")
        # A shared client passed in is not closed by close().
        if client is not None:
            self.client = client
            self._owns_client = False
        else:
            self.client = httpx.AsyncClient(base_url=self.base_url, http2=True, timeout=timeout)
            self._owns_client = True

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def open_orders(self, account: str) -> Any:
        """Open orders for `account`: list of {coin, side, sz, limitPx, oid, ...}."""
        return await self._post_info({"type": "openOrders", "user": account})

    async def user_state(self, account: str) -> Any:
        """Clearinghouse state for `account`, including assetPositions."""
        return await self._post_info({"type": "clearinghouseState", "user": account})

    async def _post_info(self, payload: dict[str, Any]) -> Any:
        resp = await self.client.post("/info", json=payload)
        resp.raise_for_status()
        return resp.json()
