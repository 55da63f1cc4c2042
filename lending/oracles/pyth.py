"""Pyth Network price source: Hermes REST prices as 1e18 fixed-point integers."""
from __future__ import annotations

import logging
import ssl

import aiohttp
import certifi

from ..config import PythConfig
from ..constants import SCALE

logger = logging.getLogger(__name__)

_SCALE_DECIMALS = 18


def to_fixed_point(price_raw: int, expo: int) -> int:
    """Convert a Pyth ``price * 10**expo`` pair to a 1e18-scaled integer (truncated)."""
    shift = _SCALE_DECIMALS + expo
    if shift >= 0:
        return price_raw * 10**shift
    return price_raw // 10**-shift


def _normalize_id(feed_id: str) -> str:
    return feed_id.lower().removeprefix("0x")


class PythPriceSource:
    """Fetch prices from Pyth Network."""

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.price_feeds = dict(config.feeds)

    async def fetch_prices(self, symbols: list[str] | None = None) -> dict[str, int]:
        """Fetch current USD prices, scaled by 1e18.

        Args:
            symbols: Optional list of symbols to fetch. If None, fetches all
                     configured feeds.
        """
        prices: dict[str, int] = {}

        feeds = self.price_feeds
        if symbols is not None:
            feeds = {k: v for k, v in self.price_feeds.items() if k in symbols}

        feed_ids = sorted(set(feeds.values()))
        if not feed_ids:
            return prices

        query_params = "&".join([f"ids[]={fid}" for fid in feed_ids])
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching prices from Pyth: HTTP %s", response.status
                        )
                        return prices

                    data = await response.json()
                    parsed = data.get("parsed", [])

                    # Several symbols may share one feed id
                    id_to_assets: dict[str, list[str]] = {}
                    for asset, feed_id in feeds.items():
                        id_to_assets.setdefault(_normalize_id(feed_id), []).append(asset)

                    for item in parsed:
                        feed_id = _normalize_id(str(item.get("id", "")))
                        price_data = item.get("price", {})
                        price_raw = int(price_data.get("price", 0))
                        expo = int(price_data.get("expo", 0))

                        if price_raw <= 0:
                            logger.warning("Ignoring non-positive Pyth price for %s", feed_id)
                            continue

                        price = to_fixed_point(price_raw, expo)
                        for asset in id_to_assets.get(feed_id, []):
                            prices[asset] = price

                    logger.info("Fetched prices from Pyth Network:")
                    for asset, price in sorted(prices.items()):
                        logger.info("  %s: %d.%018d", asset, price // SCALE, price % SCALE)

        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)

        return prices
