"""Interest rate strategy protocol."""
from typing import Protocol


class InterestRateStrategy(Protocol):
    def calculate_utilization_rate(self, total_borrows: int, total_liquidity: int) -> int: ...

    def calculate_borrow_rate(self, total_borrows: int, total_liquidity: int) -> int: ...

    def calculate_supply_rate(
        self,
        borrow_rate: int,
        total_borrows: int,
        total_liquidity: int,
        reserve_factor: int,
    ) -> int: ...
