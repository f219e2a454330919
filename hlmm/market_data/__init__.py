"""
Market data package.
"""

from hlmm.market_data.feed import STREAM_END, MarketFeed

__all__ = ["STREAM_END", "MarketFeed"]
