"""Collateralized lending protocol engine."""
from .engine import (
    CollateralManager,
    InterestRateStrategy,
    LendingPool,
    LiquidationEngine,
    ShareVault,
)
from .oracles import PriceOracle
from .runtime import Environment
from .tokens import FungibleToken

__all__ = [
    "CollateralManager",
    "Environment",
    "FungibleToken",
    "InterestRateStrategy",
    "LendingPool",
    "LiquidationEngine",
    "PriceOracle",
    "ShareVault",
]
