"""
Execution package.

Order lifecycle against the gateway, fill bookkeeping and startup state sync.
"""

from hlmm.execution.fill_processor import FillProcessor, FillResult
from hlmm.execution.order_manager import OrderLifecycleManager
from hlmm.execution.results import CancelResult, CancelStatus, PlaceResult, PlaceStatus
from hlmm.execution.state_sync import BootstrapError, StateSync

__all__ = [
    "BootstrapError",
    "CancelResult",
    "CancelStatus",
    "FillProcessor",
    "FillResult",
    "OrderLifecycleManager",
    "PlaceResult",
    "PlaceStatus",
    "StateSync",
]
