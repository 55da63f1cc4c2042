"""Fungible token protocol: the base asset and every collateral asset."""
from typing import Protocol


class FungibleToken(Protocol):
    """Balance-and-allowance token; transfers report failure by returning ``False``."""

    @property
    def address(self) -> str: ...

    def balance_of(self, owner: str) -> int: ...

    def transfer(self, to: str, amount: int) -> bool: ...

    def transfer_from(self, owner: str, to: str, amount: int) -> bool: ...
