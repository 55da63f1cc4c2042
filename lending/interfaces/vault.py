"""Share vault protocol: privileged share accounting driven by the pool."""
from typing import Protocol


class ShareVault(Protocol):
    def balance_of(self, owner: str) -> int: ...

    def convert_to_shares(self, assets: int) -> int: ...

    def convert_to_assets(self, shares: int) -> int: ...

    def preview_withdraw(self, assets: int) -> int: ...

    def mint(self, to: str, amount: int) -> None: ...

    def burn(self, owner: str, amount: int) -> None: ...

    def update_total_assets(self, new_total: int) -> None: ...
