"""
Session factory: one isolated set of exchange sessions per agent.

Agents for different assets may share a credential, but never a signer
object, HTTP client, websocket or executor. Each call builds fresh ones.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from hyperliquid.exchange import Exchange
from hyperliquid.info import Info

from hlmm.execution.state_sync import BootstrapError
from hlmm.infra.async_execution import AsyncExchange
from hlmm.infra.async_info import AsyncInfo
from hlmm.infra.logging_cfg import LOGGER_NAME, log_event

if TYPE_CHECKING:
    from hlmm.config import Settings

log = logging.getLogger(LOGGER_NAME)


@dataclass
class Sessions:
    """Everything one agent needs to talk to the exchange."""
    info: Info
    async_info: AsyncInfo
    exchange: AsyncExchange
    account: str

    async def close(self) -> None:
        await self.exchange.close(wait=False)
        await self.async_info.close()
        try:
            self.info.disconnect_websocket()
        except Exception as exc:
            log_event(log, "ws_disconnect_error", level=logging.WARNING, err=str(exc))


async def build_sessions(cfg: "Settings", coin: str) -> Sessions:
    """
    Build websocket, REST and order-entry sessions for `coin`.

    Info/Exchange construction does blocking network IO (meta download,
    websocket connect), so it runs off the event loop. Any failure is a
    BootstrapError.
    """
    try:
        wallet = cfg.resolve_signer()
        account = cfg.resolve_account()
        info = await asyncio.to_thread(Info, cfg.base_url, False)
        base_exchange = await asyncio.to_thread(
            Exchange, wallet, cfg.base_url, account_address=account
        )
    except Exception as exc:
        raise BootstrapError(f"{coin}: failed to create exchange sessions: {exc}") from exc

    return Sessions(
        info=info,
        async_info=AsyncInfo(cfg.base_url, timeout=cfg.http_timeout),
        exchange=AsyncExchange(base_exchange, name=f"hl-exec-{coin}"),
        account=account,
    )
