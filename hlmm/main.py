"""
Entry point wiring all components.
"""

from __future__ import annotations

import asyncio
import json
import signal
import sys
from typing import List

from hlmm.app import run_all
from hlmm.config import ConfigError, MarketConfig, Settings
from hlmm.infra.logging_cfg import build_logger
from hlmm.monitoring.metrics import QuoteMetrics


async def amain(cfg: Settings, markets: List[MarketConfig]) -> None:
    log = build_logger(level=cfg.log_level, file_path=cfg.log_file)
    metrics = QuoteMetrics()
    if cfg.metrics_port:
        metrics.serve(cfg.metrics_port)

    # First record after handlers exist; Settings.load() runs before build_logger.
    log.info(json.dumps({"event": "startup", "coins": [m.asset for m in markets], "settings": cfg.dump()}))

    loop = asyncio.get_running_loop()
    run_task = asyncio.create_task(run_all(markets, cfg, metrics))

    def stop_all() -> None:
        # Cancelling run_all makes every agent run its shutdown.
        if not run_task.done():
            run_task.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_all)
        except NotImplementedError:
            pass

    try:
        await run_task
    except asyncio.CancelledError:
        log.info(json.dumps({"event": "shutdown", "reason": "signal_received"}))
    finally:
        log.info(json.dumps({"event": "shutdown_complete"}))


def main() -> None:
    try:
        cfg = Settings.load()
        markets = cfg.load_markets()
    except ConfigError as exc:
        build_logger(file_path=None).error(json.dumps({"event": "config_error", "err": str(exc)}))
        sys.exit(1)

    try:
        asyncio.run(amain(cfg, markets))
    except KeyboardInterrupt:
        print("\nMarket maker stopped by user")
    sys.exit(0)


if __name__ == "__main__":
    main()
