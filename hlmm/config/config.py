"""
Environment-driven configuration with validation.

Process-wide settings come from the environment (optionally a `.env` file);
per-asset quoting parameters come from a YAML file (`HL_MARKETS_CONFIG`).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

import yaml
from dotenv import load_dotenv

load_dotenv()


class ConfigError(ValueError):
    """Raised when settings or market parameters are invalid."""


def env_bool(key: str, default: bool) -> bool:
    val = os.getenv(key)
    if val is None:
        return default
    return val.lower() in {"1", "true", "yes", "y"}


def _int_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from exc


def _float_env(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class MarketConfig:
    """Quoting parameters for one asset. Immutable for the life of an agent."""

    asset: str
    target_liquidity: float
    half_spread_bps: int
    max_bps_diff: int
    max_absolute_position_size: float
    decimals: int

    def validate(self) -> None:
        if not self.asset:
            raise ConfigError("asset must be non-empty")
        if self.target_liquidity <= 0:
            raise ConfigError(f"{self.asset}: target_liquidity must be > 0")
        if self.half_spread_bps < 0:
            raise ConfigError(f"{self.asset}: half_spread_bps must be >= 0")
        if self.max_bps_diff < 0:
            raise ConfigError(f"{self.asset}: max_bps_diff must be >= 0")
        if self.max_absolute_position_size < 0:
            raise ConfigError(f"{self.asset}: max_absolute_position_size must be >= 0")
        if not 0 <= self.decimals <= 8:
            raise ConfigError(f"{self.asset}: decimals must be within [0, 8]")

    @classmethod
    def from_dict(cls, asset: str, raw: Dict[str, Any]) -> "MarketConfig":
        try:
            cfg = cls(
                asset=asset,
                target_liquidity=float(raw["target_liquidity"]),
                half_spread_bps=int(raw["half_spread_bps"]),
                max_bps_diff=int(raw["max_bps_diff"]),
                max_absolute_position_size=float(raw["max_absolute_position_size"]),
                decimals=int(raw["decimals"]),
            )
        except KeyError as exc:
            raise ConfigError(f"{asset}: missing market parameter {exc.args[0]}") from exc
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"{asset}: invalid market parameter ({exc})") from exc
        cfg.validate()
        return cfg


def load_markets(path: str | Path, assets: List[str] | None = None) -> List[MarketConfig]:
    """
    Load per-asset market configs from YAML.

    The file maps asset symbol -> parameters. When `assets` is given only
    those symbols are returned, and each must be present in the file.
    """
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"markets config not found: {p}")
    with p.open("r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ConfigError(f"markets config is not valid YAML: {exc}") from exc
    if not isinstance(data, dict) or not data:
        raise ConfigError(f"markets config must be a non-empty mapping: {p}")

    markets = []
    for asset, raw in data.items():
        if not isinstance(raw, dict):
            raise ConfigError(f"{asset}: market parameters must be a mapping")
        markets.append(MarketConfig.from_dict(str(asset), raw))

    if assets:
        by_asset = {m.asset: m for m in markets}
        missing = [a for a in assets if a not in by_asset]
        if missing:
            raise ConfigError(f"assets not present in markets config: {', '.join(missing)}")
        markets = [by_asset[a] for a in assets]
    return markets


@dataclass(frozen=True)
class Settings:
    base_url: str
    private_key: str | None
    agent_key: str | None
    user_address: str | None
    markets_path: str
    assets: List[str]
    http_timeout: float
    log_level: str
    log_file: str | None
    metrics_port: int
    cancel_on_exit: bool

    def dump(self) -> dict:
        """Return a dict of settings for logging, with secrets redacted."""
        d = self.__dict__.copy()
        for key in ("private_key", "agent_key"):
            if d.get(key):
                d[key] = "***"
        return d

    @staticmethod
    def _assets() -> List[str]:
        raw = os.getenv("HL_ASSETS")
        if not raw:
            return []
        return [a.strip() for a in raw.split(",") if a.strip()]

    @classmethod
    def load(cls) -> "Settings":
        log_file = os.getenv("HL_LOG_FILE", "mmbot.log")
        cfg = cls(
            base_url=os.getenv("HL_BASE_URL", "https://api.hyperliquid.xyz"),
            private_key=os.getenv("HL_PRIVATE_KEY") or None,
            agent_key=os.getenv("HL_AGENT_KEY") or None,
            user_address=os.getenv("HL_USER_ADDRESS") or None,
            markets_path=os.getenv("HL_MARKETS_CONFIG", "configs/markets.yaml"),
            assets=cls._assets(),
            http_timeout=_float_env("HL_HTTP_TIMEOUT", 10.0),
            log_level=os.getenv("HL_LOG_LEVEL", "INFO").upper(),
            log_file=log_file or None,
            metrics_port=_int_env("HL_METRICS_PORT", 0),
            cancel_on_exit=env_bool("HL_CANCEL_ON_EXIT", True),
        )
        cfg._validate()
        return cfg

    def load_markets(self) -> List[MarketConfig]:
        return load_markets(self.markets_path, self.assets or None)

    def resolve_account(self) -> str:
        if self.user_address:
            return self.user_address
        if self.private_key:
            from eth_account import Account

            return Account.from_key(self.private_key).address
        raise ConfigError("Missing HL_USER_ADDRESS or HL_PRIVATE_KEY")

    def resolve_signer(self):
        """Build a fresh signer. Each agent calls this so no signer object is shared."""
        from eth_account import Account

        if self.private_key:
            return Account.from_key(self.private_key)
        if self.agent_key:
            return Account.from_key(self.agent_key)
        raise ConfigError("Missing credentials: set HL_PRIVATE_KEY or HL_AGENT_KEY")

    def _validate(self) -> None:
        if not self.private_key and not self.agent_key:
            raise ConfigError("Missing credentials: set HL_PRIVATE_KEY or HL_AGENT_KEY")
        if self.agent_key and not self.private_key and not self.user_address:
            raise ConfigError("HL_AGENT_KEY requires HL_USER_ADDRESS")
        if self.http_timeout <= 0:
            raise ConfigError("HL_HTTP_TIMEOUT must be > 0")
        if self.metrics_port < 0:
            raise ConfigError("HL_METRICS_PORT must be >= 0")
        if self.log_level not in logging.getLevelNamesMapping():
            raise ConfigError(f"HL_LOG_LEVEL {self.log_level!r} is not a logging level")

