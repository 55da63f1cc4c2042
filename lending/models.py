"""Ledger records, all frozen (immutable). Updates go through ``dataclasses.replace``."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BorrowPosition:
    """Outstanding base-asset debt of one user."""

    user: str
    principal: int = 0
    interest_accrued: int = 0
    last_update: int = 0

    @property
    def total_debt(self) -> int:
        return self.principal + self.interest_accrued

    @property
    def is_active(self) -> bool:
        return self.total_debt > 0


@dataclass(frozen=True)
class CollateralConfig:
    """Risk parameters of a collateral asset, ratios scaled by 1e18.

    Invariant: ``ltv <= liquidation_threshold <= SCALE``.
    """

    asset: str
    ltv: int
    liquidation_threshold: int
    liquidation_bonus: int
    is_enabled: bool = True


@dataclass(frozen=True)
class PriceFeed:
    """Admin-set price of one asset in base-asset units (scaled by 1e18)."""

    asset: str
    price: int
    last_update: int
    is_active: bool = True


@dataclass(frozen=True)
class InterestRateParams:
    base_rate: int
    optimal_utilization: int
    slope1: int
    slope2: int


@dataclass(frozen=True)
class LiquidationParams:
    max_liquidation_close_factor: int
    liquidation_threshold: int


@dataclass(frozen=True)
class LiquidationResult:
    """Outcome of a successful liquidation call."""

    borrower: str
    liquidator: str
    collateral_asset: str
    debt_covered: int
    collateral_seized: int
    collateral_seized_value: int
    liquidation_bonus: int
