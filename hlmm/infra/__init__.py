"""
Infrastructure package.

Async adapters over the Hyperliquid SDK/REST API and logging configuration.
"""

from hlmm.infra.async_execution import AsyncExchange
from hlmm.infra.async_info import AsyncInfo
from hlmm.infra.logging_cfg import build_logger, log_event

__all__ = [
    "AsyncExchange",
    "AsyncInfo",
    "build_logger",
    "log_event",
]
