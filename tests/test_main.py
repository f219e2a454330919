"""Tests for the entry point wiring."""

import json
import logging

import pytest

from hlmm import main as entry
from hlmm.config import Settings

TEST_KEY = "0x" + "11" * 32


def _settings():
    return Settings(
        base_url="https://api.hyperliquid-testnet.xyz",
        private_key=TEST_KEY,
        agent_key=None,
        user_address=None,
        markets_path="configs/markets.yaml",
        assets=[],
        http_timeout=10.0,
        log_level="INFO",
        log_file=None,
        metrics_port=0,
        cancel_on_exit=True,
    )


@pytest.mark.asyncio
async def test_amain_logs_effective_settings_once_logger_is_built(market, monkeypatch, caplog):
    caplog.set_level(logging.INFO, logger="mmbot")
    built = []

    def fake_build_logger(**kwargs):
        built.append(kwargs)
        return logging.getLogger("mmbot")

    started = []

    async def fake_run_all(markets, cfg, metrics):
        started.append([m.asset for m in markets])
        return []

    monkeypatch.setattr(entry, "build_logger", fake_build_logger)
    monkeypatch.setattr(entry, "run_all", fake_run_all)

    await entry.amain(_settings(), [market])

    assert built == [{"level": "INFO", "file_path": None}]
    assert started == [["ETH"]]
    events = [json.loads(r.getMessage()) for r in caplog.records if r.name == "mmbot"]
    startup = next(e for e in events if e["event"] == "startup")
    assert startup["coins"] == ["ETH"]
    assert startup["settings"]["private_key"] == "***"
    assert startup["settings"]["base_url"] == "https://api.hyperliquid-testnet.xyz"
    assert events[-1]["event"] == "shutdown_complete"
