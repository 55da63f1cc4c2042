"""Collateral manager protocol, as seen by the lending pool."""
from typing import Protocol

from ..models import CollateralConfig


class CollateralManager(Protocol):
    def get_user_collateral(self, user: str, asset: str) -> int: ...

    def get_collateral_config(self, asset: str) -> CollateralConfig: ...

    def get_max_borrow_amount(self, user: str) -> int: ...

    def calculate_health_factor(self, user: str, debt: int) -> int: ...

    def can_liquidate(self, user: str, debt: int) -> bool: ...

    def seize_collateral(
        self, borrower: str, asset: str, amount: int, recipient: str
    ) -> None: ...
