"""Push external USD prices into the price oracle in base-asset terms."""
from __future__ import annotations

import asyncio
import logging

from ..constants import SCALE
from ..errors import LendingError
from ..fixed_point import mul_div
from ..interfaces.price_oracle import PriceSource
from ..oracles.price_oracle import PriceOracle
from ..runtime import Environment

logger = logging.getLogger(__name__)


class PriceFeeder:
    """Periodically refresh oracle prices from a :class:`PriceSource`.

    ``assets`` maps each oracle asset to its token decimals. Every asset is
    priced against ``base_symbol``; the base asset itself is not written to the
    oracle.
    """

    def __init__(
        self,
        oracle: PriceOracle,
        source: PriceSource,
        env: Environment,
        admin: str,
        assets: dict[str, int],
        base_symbol: str,
        base_decimals: int,
    ) -> None:
        self._oracle = oracle
        self._source = source
        self._env = env
        self._admin = admin
        self._assets = dict(assets)
        self._base_symbol = base_symbol
        self._base_decimals = base_decimals

    def _to_oracle_price(self, usd_price: int, base_usd_price: int, decimals: int) -> int:
        # Base-asset smallest units per asset smallest unit, scaled by 1e18.
        return mul_div(
            usd_price * 10**self._base_decimals,
            SCALE,
            base_usd_price * 10**decimals,
        )

    async def refresh(self) -> dict[str, int]:
        """Fetch prices once and write them to the oracle atomically.

        Returns the oracle prices written. Assets missing from the source are
        left untouched; nothing is written if the base price is unavailable.
        """
        symbols = sorted({*self._assets, self._base_symbol})
        usd_prices = await self._source.fetch_prices(symbols)

        base_usd = usd_prices.get(self._base_symbol)
        if not base_usd:
            logger.warning("No %s price available, skipping oracle update", self._base_symbol)
            return {}

        updates: dict[str, int] = {}
        for asset, decimals in self._assets.items():
            if asset == self._base_symbol:
                continue
            usd_price = usd_prices.get(asset)
            if usd_price is None:
                logger.warning("No price for %s from source", asset)
                continue
            updates[asset] = self._to_oracle_price(usd_price, base_usd, decimals)

        if not updates:
            return updates

        with self._env.as_caller(self._admin):
            self._oracle.set_prices(updates)
        logger.info("Oracle updated with %d price(s)", len(updates))
        return updates

    async def run(self, interval: float, iterations: int | None = None) -> None:
        """Refresh every ``interval`` seconds; ``iterations=None`` runs forever."""
        logger.info("Starting price feeder (refreshing every %s seconds)", interval)
        done = 0
        while iterations is None or done < iterations:
            try:
                await self.refresh()
            except LendingError as e:
                logger.error("Oracle rejected price update: %s", e)
            done += 1
            if iterations is None or done < iterations:
                await asyncio.sleep(interval)
