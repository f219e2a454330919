"""
Quote calculator: mid price + config + inventory -> target quotes.

Pure functions, no IO.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal

from hlmm.config import MarketConfig
from hlmm.state import EPSILON


@dataclass(frozen=True)
class Quote:
    lower_price: float
    upper_price: float
    lower_amount: float
    upper_amount: float


def _quantum(decimals: int) -> Decimal:
    return Decimal(1).scaleb(-decimals)


def tick_size(decimals: int) -> float:
    return float(_quantum(decimals))


def _truncate(px: float, decimals: int, round_up: bool) -> Decimal:
    rounding = ROUND_CEILING if round_up else ROUND_FLOOR
    return Decimal(repr(px)).quantize(_quantum(decimals), rounding=rounding)


def truncate_price(px: float, decimals: int, round_up: bool) -> float:
    """
    Cut `px` to `decimals` places, rounding up (ceiling) or down (floor).

    Works on the shortest decimal repr of the float, so values that are
    already on a tick (99.95 at 2 decimals) stay where they are instead of
    drifting a tick because of binary representation error.
    """
    return float(_truncate(px, decimals, round_up))


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(value, hi))


def quote_prices(mid: float, half_spread_bps: int, decimals: int) -> tuple[float, float]:
    """
    Bid/ask prices `half_spread_bps` either side of `mid`.

    The bid rounds down and the ask rounds up, so rounding only ever widens
    the spread. If the two still collide (zero spread on a tick, or a spread
    lost to float precision) each moves one tick outward.
    """
    half_spread = mid * half_spread_bps / 10000.0
    lower = _truncate(mid - half_spread, decimals, round_up=False)
    upper = _truncate(mid + half_spread, decimals, round_up=True)

    tick = _quantum(decimals)
    if upper - lower < min(Decimal(repr(EPSILON)), tick / 2):
        lower -= tick
        upper += tick
    return float(lower), float(upper)


def quote_amounts(cur_position: float, target_liquidity: float, max_position: float) -> tuple[float, float]:
    """
    Sizes for each side, capped so our own fills can't push |position|
    past `max_position`.
    """
    lower = clamp(max_position - cur_position, 0.0, target_liquidity)
    upper = clamp(max_position + cur_position, 0.0, target_liquidity)
    return lower, upper


def compute_quote(mid: float, cfg: MarketConfig, cur_position: float) -> Quote:
    lower_price, upper_price = quote_prices(mid, cfg.half_spread_bps, cfg.decimals)
    lower_amount, upper_amount = quote_amounts(
        cur_position, cfg.target_liquidity, cfg.max_absolute_position_size
    )
    return Quote(
        lower_price=lower_price,
        upper_price=upper_price,
        lower_amount=lower_amount,
        upper_amount=upper_amount,
    )
