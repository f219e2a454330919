"""
Tests for per-asset isolation in the runner: a failing agent, at startup or
while running, must not take the others down.
"""

import asyncio
import dataclasses
import logging
from types import SimpleNamespace

import pytest

from conftest import FakeAsyncInfo, FakeExchange, FakeInfo
from hlmm.app import BotRunner, _watch_bot, run_all
from hlmm.bot_factory import Sessions
from hlmm.execution.state_sync import BootstrapError


@pytest.fixture
def cfg():
    return SimpleNamespace(cancel_on_exit=True)


class SessionsFactory:
    def __init__(self, fail=(), async_info=None):
        self.fail = set(fail)
        self.async_info = async_info
        self.built = {}

    async def __call__(self, cfg, coin):
        if coin in self.fail:
            raise BootstrapError(f"{coin}: failed to create exchange sessions")
        sessions = Sessions(
            info=FakeInfo(),
            async_info=self.async_info or FakeAsyncInfo(),
            exchange=FakeExchange(),
            account="0xabc",
        )
        self.built[coin] = sessions
        return sessions


@pytest.mark.asyncio
async def test_runner_start_and_stop(market, cfg):
    factory = SessionsFactory()
    runner = BotRunner(market, cfg, sessions_factory=factory)
    await runner.start()
    assert runner.error is None
    assert runner.task is not None
    await asyncio.sleep(0)

    await runner.stop()
    assert runner.task.done()
    assert runner.sessions is None
    s = factory.built["ETH"]
    assert s.exchange.closed
    assert s.async_info.closed
    assert s.info.disconnected


@pytest.mark.asyncio
async def test_runner_bootstrap_failure_recorded(market, cfg, caplog):
    caplog.set_level(logging.ERROR, logger="mmbot")
    factory = SessionsFactory(async_info=FakeAsyncInfo(open_orders=ConnectionError("down")))
    runner = BotRunner(market, cfg, sessions_factory=factory)
    await runner.start()

    assert isinstance(runner.error, BootstrapError)
    assert runner.task is None
    assert runner.bot is None
    assert factory.built["ETH"].exchange.closed
    assert any("bot_init_error" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_run_all_contains_failed_startup(market, cfg, caplog):
    caplog.set_level(logging.INFO, logger="mmbot")
    btc = dataclasses.replace(market, asset="BTC")
    factory = SessionsFactory(fail={"BTC"})

    run_task = asyncio.create_task(run_all([market, btc], cfg, sessions_factory=factory))
    for _ in range(10):
        await asyncio.sleep(0)

    eth = factory.built["ETH"]
    assert "BTC" not in factory.built
    assert len(eth.info.subscriptions) == 2
    assert not run_task.done()

    run_task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await run_task
    assert eth.exchange.closed
    assert eth.info.disconnected
    assert any("bot_init_error" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_run_all_cancels_quotes_on_exit(market, cfg):
    factory = SessionsFactory()
    run_task = asyncio.create_task(run_all([market], cfg, sessions_factory=factory))
    for _ in range(10):
        await asyncio.sleep(0)

    eth = factory.built["ETH"]
    eth.info.subscriptions[2][1]({"channel": "allMids", "data": {"mids": {"ETH": "100.0"}}})
    for _ in range(10):
        await asyncio.sleep(0)
    assert len(eth.exchange.orders) == 2

    run_task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await run_task
    assert [c["oid"] for c in eth.exchange.cancels] == [1001, 1002]


@pytest.mark.asyncio
async def test_watch_bot_records_run_failure(market, cfg, caplog):
    caplog.set_level(logging.ERROR, logger="mmbot")
    runner = BotRunner(market, cfg, sessions_factory=SessionsFactory())

    async def crash():
        raise RuntimeError("websocket thread died")

    runner.task = asyncio.create_task(crash())
    await _watch_bot(runner)
    assert isinstance(runner.error, RuntimeError)
    assert any("bot_run_error" in r.getMessage() for r in caplog.records)
