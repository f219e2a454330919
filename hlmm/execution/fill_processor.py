"""
FillProcessor: apply userEvents fills to position and resting-order state.

Fills are matched to our quotes purely by oid membership in the
active-order index. A matched oid is removed from the index even on a
partial fill; the next reconciliation pass then treats that side as having
nothing live to cancel and re-quotes the target size.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, TYPE_CHECKING

from hlmm.infra.logging_cfg import LOGGER_NAME, log_event
from hlmm.state import AgentState

if TYPE_CHECKING:
    from hlmm.monitoring.metrics import QuoteMetrics

log = logging.getLogger(LOGGER_NAME)


@dataclass
class FillResult:
    """Outcome of applying one fill."""
    oid: Optional[int]
    is_buy: bool
    size: float
    old_position: float
    new_position: float
    matched: bool = False       # oid was in the active-order index
    matched_side: Optional[bool] = None  # is_buy recorded for that oid


class FillProcessor:
    def __init__(self, coin: str, state: AgentState, metrics: Optional["QuoteMetrics"] = None) -> None:
        self.coin = coin
        self.state = state
        self.metrics = metrics

    def process_batch(self, fills: Iterable[Dict[str, Any]]) -> List[FillResult]:
        """Apply every fill for our coin; malformed fills are logged and skipped."""
        results = []
        for fill in fills:
            if not isinstance(fill, dict) or fill.get("coin") != self.coin:
                continue
            result = self.process_fill(fill)
            if result is not None:
                results.append(result)
        return results

    def process_fill(self, fill: Dict[str, Any]) -> Optional[FillResult]:
        try:
            amount = float(fill["sz"])
        except (KeyError, TypeError, ValueError):
            amount = math.nan
        if not math.isfinite(amount) or amount < 0:
            log_event(log, "fill_parse_error", level=logging.ERROR, coin=self.coin, fill=fill)
            return None
        oid = _to_oid(fill.get("oid"))
        is_buy = fill.get("side") == "B"

        state = self.state
        old_position = state.cur_position
        state.cur_position += amount if is_buy else -amount

        matched_side = state.active_orders.pop(oid, None) if oid is not None else None
        if matched_side is not None and matched_side == is_buy:
            state.resting_for(is_buy).position -= amount
        elif matched_side is None:
            # Placed before bootstrap, by another process, or already consumed.
            log_event(log, "fill_untracked_oid", level=logging.WARNING, coin=self.coin, oid=oid,
                      side="buy" if is_buy else "sell", sz=amount)
        else:
            log_event(log, "fill_side_mismatch", level=logging.WARNING, coin=self.coin, oid=oid,
                      side="buy" if is_buy else "sell", indexed_side="buy" if matched_side else "sell",
                      sz=amount)

        log_event(log, "fill", coin=self.coin, side="bought" if is_buy else "sold", sz=amount,
                  px=fill.get("px"), oid=oid, position=state.cur_position)
        if self.metrics:
            self.metrics.fills_total.labels(coin=self.coin, side="buy" if is_buy else "sell").inc()
            self.metrics.position.labels(coin=self.coin).set(state.cur_position)

        return FillResult(
            oid=oid,
            is_buy=is_buy,
            size=amount,
            old_position=old_position,
            new_position=state.cur_position,
            matched=matched_side is not None,
            matched_side=matched_side,
        )


def _to_oid(raw: Any) -> Optional[int]:
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None
