"""
Prometheus metrics for the quoting loop.
"""

from __future__ import annotations

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, start_http_server


class QuoteMetrics:
    """Counters and gauges shared by all agents in the process, labelled by coin."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        reg = self.registry

        self.orders_placed = Counter(
            'orders_placed_total',
            'Post-only orders accepted as resting',
            labelnames=['coin', 'side'],
            registry=reg
        )
        self.orders_rejected = Counter(
            'orders_rejected_total',
            'Order placements that did not rest',
            labelnames=['coin', 'reason'],
            registry=reg
        )
        self.orders_cancelled = Counter(
            'orders_cancelled_total',
            'Cancel attempts by outcome',
            labelnames=['coin', 'reason'],
            registry=reg
        )
        self.fills_total = Counter(
            'fills_total',
            'Fills received for the quoted asset',
            labelnames=['coin', 'side'],
            registry=reg
        )
        self.position = Gauge(
            'position',
            'Current position (coins)',
            labelnames=['coin'],
            registry=reg
        )
        self.mid_price = Gauge(
            'mid_price',
            'Latest mid price',
            labelnames=['coin'],
            registry=reg
        )

    def serve(self, port: int) -> None:
        """Expose /metrics on `port` from a background thread."""
        start_http_server(port, registry=self.registry)
