"""Lending engine components."""
from .collateral_manager import CollateralManager
from .interest_rate import InterestRateStrategy
from .lending_pool import LendingPool
from .liquidation import LiquidationEngine
from .share_vault import ShareVault

__all__ = [
    "CollateralManager",
    "InterestRateStrategy",
    "LendingPool",
    "LiquidationEngine",
    "ShareVault",
]
