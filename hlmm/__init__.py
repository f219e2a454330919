"""
hlmm: per-asset post-only market maker for Hyperliquid perpetuals.
"""

__version__ = "0.1.0"
