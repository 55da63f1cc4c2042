"""What the collateral manager needs to know about the lending pool."""
from typing import Protocol


class DebtSource(Protocol):
    @property
    def address(self) -> str: ...

    def get_user_debt(self, user: str) -> int: ...

    def is_paused(self) -> bool: ...
