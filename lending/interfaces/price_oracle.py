"""Price oracle protocols: the on-ledger oracle and external price sources."""
from typing import Protocol


class PriceOracle(Protocol):
    """Converts asset amounts to and from base-asset value."""

    def get_price(self, asset: str) -> int: ...

    def get_asset_value(self, asset: str, amount: int) -> int: ...

    def get_asset_amount(self, asset: str, value: int) -> int: ...


class PriceSource(Protocol):
    """Off-ledger price feed, prices scaled by 1e18."""

    async def fetch_prices(self, symbols: list[str] | None = None) -> dict[str, int]: ...
