"""Liquidation engine protocol."""
from typing import Protocol


class LiquidationEngine(Protocol):
    def calculate_liquidation_amounts(
        self,
        debt_to_cover: int,
        total_debt: int,
        collateral_value: int,
        liquidation_bonus: int,
    ) -> tuple[int, int]: ...

    def can_liquidate(self, health_factor: int) -> bool: ...
