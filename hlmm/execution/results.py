"""
Typed outcomes for order-entry calls.

Hyperliquid answers cancel/order actions with either
    {"status": "err", "response": "<message>"}
or
    {"status": "ok", "response": {"type": ..., "data": {"statuses": [...]}}}
where each status is "success", {"resting": {"oid": ...}}, {"filled": {...}}
or {"error": "<message>"}. The classifiers below fold every shape,
including malformed ones, into a single status enum per operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, List, Optional

# Cancel errors meaning the order is already off the book.
STALE_CANCEL_MARKERS = (
    "Order does not exist",
    "already canceled",
    "Order already filled",
)

# Order errors meaning an ALO order would have crossed the book.
POST_ONLY_REJECT_MARKERS = (
    "Post only order would have immediately matched",
    "Invalid Time in Force",
)


class CancelStatus(Enum):
    SUCCESS = auto()
    STALE = auto()      # already gone on the exchange; treated as success
    FAILED = auto()     # anything else; caller must not assume the order is gone


class PlaceStatus(Enum):
    RESTING = auto()
    POST_ONLY_REJECTED = auto()
    REJECTED = auto()
    FAILED = auto()     # transport error or malformed response


@dataclass(frozen=True)
class CancelResult:
    status: CancelStatus
    error: Optional[str] = None

    @property
    def order_gone(self) -> bool:
        return self.status in (CancelStatus.SUCCESS, CancelStatus.STALE)


@dataclass(frozen=True)
class PlaceResult:
    status: PlaceStatus
    oid: int = 0
    error: Optional[str] = None

    @property
    def is_resting(self) -> bool:
        return self.status is PlaceStatus.RESTING


def _is_stale_cancel(msg: str) -> bool:
    return any(marker in msg for marker in STALE_CANCEL_MARKERS)


def _is_post_only_reject(msg: str) -> bool:
    return any(marker in msg for marker in POST_ONLY_REJECT_MARKERS)


def extract_statuses(resp: Any) -> Optional[List[Any]]:
    """Return the statuses list of an ok response, or None if absent/malformed."""
    if not isinstance(resp, dict):
        return None
    body = resp.get("response")
    if not isinstance(body, dict):
        return None
    data = body.get("data")
    if not isinstance(data, dict):
        return None
    statuses = data.get("statuses")
    if not isinstance(statuses, list):
        return None
    return statuses


def top_level_error(resp: Any) -> Optional[str]:
    if isinstance(resp, dict) and resp.get("status") == "err":
        return str(resp.get("response", ""))
    return None


def classify_cancel(resp: Any) -> CancelResult:
    err = top_level_error(resp)
    if err is not None:
        status = CancelStatus.STALE if _is_stale_cancel(err) else CancelStatus.FAILED
        return CancelResult(status, err)

    statuses = extract_statuses(resp)
    if statuses is None:
        return CancelResult(CancelStatus.FAILED, f"malformed cancel response: {resp!r}")
    if not statuses:
        return CancelResult(CancelStatus.FAILED, "empty cancel statuses")

    first = statuses[0]
    if first == "success":
        return CancelResult(CancelStatus.SUCCESS)
    if isinstance(first, dict) and "error" in first:
        msg = str(first["error"])
        status = CancelStatus.STALE if _is_stale_cancel(msg) else CancelStatus.FAILED
        return CancelResult(status, msg)
    return CancelResult(CancelStatus.FAILED, f"unexpected cancel status: {first!r}")


def classify_order(resp: Any) -> PlaceResult:
    err = top_level_error(resp)
    if err is not None:
        status = PlaceStatus.POST_ONLY_REJECTED if _is_post_only_reject(err) else PlaceStatus.REJECTED
        return PlaceResult(status, error=err)

    statuses = extract_statuses(resp)
    if statuses is None:
        return PlaceResult(PlaceStatus.FAILED, error=f"malformed order response: {resp!r}")
    if not statuses:
        return PlaceResult(PlaceStatus.FAILED, error="empty order statuses")

    first = statuses[0]
    if isinstance(first, dict):
        resting = first.get("resting")
        if isinstance(resting, dict):
            try:
                oid = int(resting["oid"])
            except (KeyError, TypeError, ValueError):
                return PlaceResult(PlaceStatus.FAILED, error=f"resting status without oid: {first!r}")
            return PlaceResult(PlaceStatus.RESTING, oid=oid)
        if "error" in first:
            msg = str(first["error"])
            status = PlaceStatus.POST_ONLY_REJECTED if _is_post_only_reject(msg) else PlaceStatus.REJECTED
            return PlaceResult(status, error=msg)
    # "filled" and anything else: not a resting maker quote.
    return PlaceResult(PlaceStatus.REJECTED, error=f"unexpected order status: {first!r}")
