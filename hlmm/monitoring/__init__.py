"""
Monitoring package.
"""

from hlmm.monitoring.metrics import QuoteMetrics

__all__ = ["QuoteMetrics"]
