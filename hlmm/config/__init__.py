"""
Configuration package.

Environment settings plus per-asset market parameters loaded from YAML.
"""

from hlmm.config.config import ConfigError, MarketConfig, Settings, load_markets

__all__ = [
    "ConfigError",
    "MarketConfig",
    "Settings",
    "load_markets",
]
