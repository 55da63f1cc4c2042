"""Configuration loader: reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .constants import (
    DEFAULT_CLOSE_FACTOR,
    DEFAULT_LIQUIDATION_THRESHOLD,
    DEFAULT_MAX_STALENESS,
    DEFAULT_RESERVE_FACTOR,
    SCALE,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------
# Ratios and prices are stored as 1e18 fixed-point integers.


@dataclass(frozen=True)
class PoolConfig:
    admin: str = "admin"
    base_asset: str = "USDC"
    base_decimals: int = 6
    reserve_factor: int = DEFAULT_RESERVE_FACTOR
    share_name: str = "Lending Pool Share"
    share_symbol: str = "lpSHARE"


@dataclass(frozen=True)
class InterestRateConfig:
    base_rate: int = 2 * 10**16
    optimal_utilization: int = 8 * 10**17
    slope1: int = 4 * 10**16
    slope2: int = 75 * 10**16


@dataclass(frozen=True)
class LiquidationConfig:
    close_factor: int = DEFAULT_CLOSE_FACTOR
    liquidation_threshold: int = DEFAULT_LIQUIDATION_THRESHOLD


@dataclass(frozen=True)
class CollateralAssetConfig:
    symbol: str = ""
    ltv: int = 0
    liquidation_threshold: int = 0
    liquidation_bonus: int = 0
    decimals: int = 18
    enabled: bool = True


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feeds: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class OracleConfig:
    max_staleness: int = DEFAULT_MAX_STALENESS
    # Base-asset price of one whole unit of each asset
    initial_prices: dict[str, int] = field(default_factory=dict)
    pyth: PythConfig = field(default_factory=PythConfig)


@dataclass(frozen=True)
class AppConfig:
    pool: PoolConfig = field(default_factory=PoolConfig)
    interest_rate: InterestRateConfig = field(default_factory=InterestRateConfig)
    liquidation: LiquidationConfig = field(default_factory=LiquidationConfig)
    collaterals: tuple[CollateralAssetConfig, ...] = ()
    oracle: OracleConfig = field(default_factory=OracleConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


def parse_fixed(value: Any, name: str = "value") -> int:
    """Convert a decimal literal (``0.8``, ``"0.05"``, ``3``) to a 1e18 fixed-point int.

    Floats are routed through ``str`` so YAML's ``0.8`` becomes exactly
    ``800000000000000000``.
    """
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number, got {value!r}")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"{name} is not a number: {value!r}") from None
    if not number.is_finite() or number < 0:
        raise ValueError(f"{name} must be a non-negative number, got {value!r}")
    return int(number * SCALE)


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_pool(raw: dict[str, Any]) -> PoolConfig:
    return PoolConfig(
        admin=str(raw.get("admin", "admin")),
        base_asset=str(raw.get("base_asset", "USDC")),
        base_decimals=int(raw.get("base_decimals", 6)),
        reserve_factor=parse_fixed(raw.get("reserve_factor", "0.1"), "reserve_factor"),
        share_name=str(raw.get("share_name", "Lending Pool Share")),
        share_symbol=str(raw.get("share_symbol", "lpSHARE")),
    )


def _build_interest_rate(raw: dict[str, Any]) -> InterestRateConfig:
    return InterestRateConfig(
        base_rate=parse_fixed(raw.get("base_rate", "0.02"), "base_rate"),
        optimal_utilization=parse_fixed(
            raw.get("optimal_utilization", "0.8"), "optimal_utilization"
        ),
        slope1=parse_fixed(raw.get("slope1", "0.04"), "slope1"),
        slope2=parse_fixed(raw.get("slope2", "0.75"), "slope2"),
    )


def _build_liquidation(raw: dict[str, Any]) -> LiquidationConfig:
    return LiquidationConfig(
        close_factor=parse_fixed(raw.get("close_factor", "0.5"), "close_factor"),
        liquidation_threshold=parse_fixed(
            raw.get("liquidation_threshold", "1"), "liquidation_threshold"
        ),
    )


def _build_collaterals(raw: list[dict[str, Any]]) -> tuple[CollateralAssetConfig, ...]:
    collaterals: list[CollateralAssetConfig] = []
    for c in raw:
        symbol = str(c.get("symbol", ""))
        collaterals.append(
            CollateralAssetConfig(
                symbol=symbol,
                ltv=parse_fixed(c.get("ltv", 0), f"{symbol}.ltv"),
                liquidation_threshold=parse_fixed(
                    c.get("liquidation_threshold", 0), f"{symbol}.liquidation_threshold"
                ),
                liquidation_bonus=parse_fixed(
                    c.get("liquidation_bonus", 0), f"{symbol}.liquidation_bonus"
                ),
                decimals=int(c.get("decimals", 18)),
                enabled=bool(c.get("enabled", True)),
            )
        )
    return tuple(collaterals)


def _build_oracle(raw: dict[str, Any]) -> OracleConfig:
    pyth_raw = raw.get("pyth", {}) or {}
    prices = raw.get("initial_prices", {}) or {}
    return OracleConfig(
        max_staleness=int(raw.get("max_staleness", DEFAULT_MAX_STALENESS)),
        initial_prices={
            str(symbol): parse_fixed(price, f"initial_prices.{symbol}")
            for symbol, price in prices.items()
        },
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            feeds=dict(pyth_raw.get("feeds", {}) or {}),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate protocol configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        pool=_build_pool(raw.get("pool", {}) or {}),
        interest_rate=_build_interest_rate(raw.get("interest_rate", {}) or {}),
        liquidation=_build_liquidation(raw.get("liquidation", {}) or {}),
        collaterals=_build_collaterals(raw.get("collaterals", []) or []),
        oracle=_build_oracle(raw.get("oracle", {}) or {}),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.pool.admin:
        raise ValueError("Pool admin must be set")
    if not cfg.pool.base_asset:
        raise ValueError("Pool base_asset must be set")
    if cfg.pool.reserve_factor > SCALE:
        raise ValueError("reserve_factor must not exceed 1")

    rates = cfg.interest_rate
    if not 0 < rates.optimal_utilization < SCALE:
        raise ValueError("optimal_utilization must be strictly between 0 and 1")

    if not 0 < cfg.liquidation.close_factor <= SCALE:
        raise ValueError("close_factor must be in (0, 1]")

    if cfg.oracle.max_staleness <= 0:
        raise ValueError("oracle max_staleness must be positive")

    seen: set[str] = set()
    for c in cfg.collaterals:
        if not c.symbol:
            raise ValueError("Collateral entry has no symbol")
        if c.symbol in seen:
            raise ValueError(f"Duplicate collateral '{c.symbol}'")
        if c.symbol == cfg.pool.base_asset:
            raise ValueError(f"Collateral '{c.symbol}' is the base asset")
        seen.add(c.symbol)
        if c.ltv > c.liquidation_threshold:
            raise ValueError(f"Collateral '{c.symbol}' has ltv above liquidation_threshold")
        if c.liquidation_threshold > SCALE:
            raise ValueError(f"Collateral '{c.symbol}' liquidation_threshold exceeds 1")
        if c.liquidation_bonus > SCALE:
            raise ValueError(f"Collateral '{c.symbol}' liquidation_bonus exceeds 1")
