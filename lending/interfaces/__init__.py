"""Capability interfaces between the lending components."""
from .collateral import CollateralManager
from .interest_rate import InterestRateStrategy
from .liquidation import LiquidationEngine
from .pool import DebtSource
from .price_oracle import PriceOracle, PriceSource
from .token import FungibleToken
from .vault import ShareVault

__all__ = [
    "CollateralManager",
    "DebtSource",
    "FungibleToken",
    "InterestRateStrategy",
    "LiquidationEngine",
    "PriceOracle",
    "PriceSource",
    "ShareVault",
]
