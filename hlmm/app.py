"""
Runner with per-asset isolation.

Each asset gets its own sessions, state and task. A failure in one agent,
at startup or while running, is logged and contained: the others keep
quoting.
"""

from __future__ import annotations

import asyncio
import logging
import traceback
from typing import Awaitable, Callable, List, Optional, TYPE_CHECKING

from hlmm.bot import MarketMaker
from hlmm.bot_factory import Sessions, build_sessions
from hlmm.config import MarketConfig
from hlmm.infra.logging_cfg import LOGGER_NAME, log_event

if TYPE_CHECKING:
    from hlmm.config import Settings
    from hlmm.monitoring.metrics import QuoteMetrics

log = logging.getLogger(LOGGER_NAME)

SessionsFactory = Callable[["Settings", str], Awaitable[Sessions]]


class BotRunner:
    def __init__(
        self,
        market: MarketConfig,
        cfg: "Settings",
        metrics: Optional["QuoteMetrics"] = None,
        sessions_factory: SessionsFactory = build_sessions,
    ) -> None:
        self.market = market
        self.coin = market.asset
        self.cfg = cfg
        self.metrics = metrics
        self._sessions_factory = sessions_factory
        self.sessions: Optional[Sessions] = None
        self.bot: Optional[MarketMaker] = None
        self.task: asyncio.Task | None = None
        self.error: Exception | None = None

    async def start(self) -> None:
        try:
            self.sessions = await self._sessions_factory(self.cfg, self.coin)
            self.bot = MarketMaker(
                self.market,
                self.sessions.exchange,
                self.sessions.async_info,
                self.sessions.info,
                self.sessions.account,
                metrics=self.metrics,
                cancel_on_exit=self.cfg.cancel_on_exit,
            )
            await self.bot.initialize()
            self.task = asyncio.create_task(self.bot.run(), name=f"mm-{self.coin}")
        except Exception as exc:
            self.error = exc
            log_event(log, "bot_init_error", level=logging.ERROR, coin=self.coin, err=str(exc),
                      traceback=traceback.format_exc())
            self.bot = None
            await self._close_sessions()

    async def stop(self) -> None:
        if self.bot is not None:
            self.bot.stop()
        if self.task:
            if not self.task.done():
                self.task.cancel()
            await asyncio.gather(self.task, return_exceptions=True)
        if self.bot is not None:
            try:
                await self.bot.shutdown()
            except Exception as exc:
                log_event(log, "bot_shutdown_error", level=logging.ERROR, coin=self.coin, err=str(exc))
        await self._close_sessions()

    async def _close_sessions(self) -> None:
        if self.sessions is None:
            return
        sessions, self.sessions = self.sessions, None
        try:
            await sessions.close()
        except Exception as exc:
            log_event(log, "session_close_error", level=logging.WARNING, coin=self.coin, err=str(exc))


async def run_all(
    markets: List[MarketConfig],
    cfg: "Settings",
    metrics: Optional["QuoteMetrics"] = None,
    sessions_factory: SessionsFactory = build_sessions,
) -> List[BotRunner]:
    """
    Start one agent per market and wait until every agent has finished.

    Cancelling this coroutine stops every agent and runs its shutdown.
    """
    runners = [BotRunner(m, cfg, metrics, sessions_factory) for m in markets]
    await asyncio.gather(*(r.start() for r in runners))
    started = [r for r in runners if r.task]
    log_event(log, "agents_started", coins=[r.coin for r in started],
              failed=[r.coin for r in runners if r.error])

    try:
        async with asyncio.TaskGroup() as tg:
            for r in started:
                tg.create_task(_watch_bot(r))
    finally:
        await asyncio.gather(*(r.stop() for r in runners), return_exceptions=True)
    return runners


async def _watch_bot(runner: BotRunner) -> None:
    try:
        if runner.task:
            await runner.task
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        # Contained: siblings are independent and keep running.
        runner.error = exc
        log_event(log, "bot_run_error", level=logging.ERROR, coin=runner.coin, err=str(exc),
                  traceback=traceback.format_exc())
