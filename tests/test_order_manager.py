"""
Tests for OrderLifecycleManager: cancel outcomes, post-only placement and
active-order index bookkeeping.
"""

import logging

import pytest

from conftest import err_response, ok_statuses
from hlmm.execution.order_manager import POST_ONLY, OrderLifecycleManager
from hlmm.state import AgentState


@pytest.fixture
def state():
    return AgentState()


@pytest.fixture
def manager(exchange, state):
    return OrderLifecycleManager("ETH", exchange, state)


@pytest.mark.asyncio
async def test_cancel_unknown_oid_is_noop(manager, exchange):
    assert await manager.attempt_cancel("ETH", 42) is True
    assert exchange.cancels == []


@pytest.mark.asyncio
async def test_cancel_success_removes_oid(manager, exchange, state):
    state.active_orders[42] = True
    assert await manager.attempt_cancel("ETH", 42) is True
    assert exchange.cancels == [{"coin": "ETH", "oid": 42}]
    assert 42 not in state.active_orders


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "resp",
    [
        ok_statuses({"error": "Order was never placed, already canceled, or filled. asset=4"}),
        ok_statuses({"error": "Order already filled"}),
        err_response("Order does not exist."),
    ],
)
async def test_cancel_of_order_already_gone_counts_as_success(manager, exchange, state, resp):
    state.active_orders[42] = False
    exchange.cancel_responses.append(resp)
    assert await manager.attempt_cancel("ETH", 42) is True
    assert 42 not in state.active_orders


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "resp",
    [
        ok_statuses({"error": "Rate limit exceeded"}),
        err_response("User or API Wallet does not exist."),
        {"status": "ok"},
        ok_statuses(),
        ConnectionError("reset by peer"),
    ],
)
async def test_cancel_failure_leaves_index_untouched(manager, exchange, state, resp, caplog):
    caplog.set_level(logging.ERROR, logger="mmbot")
    state.active_orders[42] = True
    exchange.cancel_responses.append(resp)
    assert await manager.attempt_cancel("ETH", 42) is False
    assert state.active_orders == {42: True}
    assert any("cancel_error" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_place_resting_indexes_oid(manager, exchange, state):
    amount, oid = await manager.place_order("ETH", 0.5, 99.95, True)
    assert amount == 0.5
    assert oid == 1001
    assert state.active_orders == {1001: True}

    sent = exchange.orders[0]
    assert sent["coin"] == "ETH"
    assert sent["is_buy"] is True
    assert sent["sz"] == 0.5
    assert sent["px"] == 99.95
    assert sent["order_type"] == POST_ONLY
    assert sent["reduce_only"] is False


@pytest.mark.asyncio
async def test_place_sell_records_side(manager, state):
    _, oid = await manager.place_order("ETH", 1.0, 100.05, False)
    assert state.active_orders[oid] is False


@pytest.mark.asyncio
async def test_post_only_rejection_is_informational(manager, exchange, state, caplog):
    caplog.set_level(logging.INFO, logger="mmbot")
    exchange.order_responses.append(
        ok_statuses({"error": "Post only order would have immediately matched, bbo was 100.0@100.1. asset=4"})
    )
    assert await manager.place_order("ETH", 1.0, 100.1, True) == (0.0, 0)
    assert state.active_orders == {}

    records = [r for r in caplog.records if "post_only_rejected" in r.getMessage()]
    assert len(records) == 1
    assert records[0].levelno == logging.INFO
    assert not any(r.levelno >= logging.ERROR for r in caplog.records)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "resp",
    [
        ok_statuses({"error": "Insufficient margin to place order. asset=4"}),
        err_response("Invalid order size"),
        ok_statuses({"filled": {"totalSz": "1.0", "avgPx": "100.0", "oid": 7}}),
        ok_statuses({"resting": {}}),
        ok_statuses(),
        {"status": "ok", "response": "garbage"},
        TimeoutError("gateway timed out"),
    ],
)
async def test_place_failures_return_zero(manager, exchange, state, resp, caplog):
    caplog.set_level(logging.ERROR, logger="mmbot")
    exchange.order_responses.append(resp)
    assert await manager.place_order("ETH", 1.0, 99.0, True) == (0.0, 0)
    assert state.active_orders == {}
    assert any("order_error" in r.getMessage() for r in caplog.records)
