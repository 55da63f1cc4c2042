"""Admin-fed price oracle with staleness rejection."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Mapping

from ..constants import DEFAULT_MAX_STALENESS, SCALE
from ..errors import InvalidPrice, PriceFeedNotAvailable
from ..events import MaxStalenessUpdated, PriceFeedStatusChanged, PriceUpdated
from ..fixed_point import check_uint, mul_div
from ..models import PriceFeed
from ..runtime import Contract, Environment, atomic

logger = logging.getLogger(__name__)


@dataclass
class _OracleState:
    feeds: dict[str, PriceFeed] = field(default_factory=dict)
    max_staleness: int = DEFAULT_MAX_STALENESS


class PriceOracle(Contract):
    """Prices are quoted in base-asset units per asset unit, scaled by 1e18.

    Feeds are never removed, only disabled.
    """

    def __init__(
        self,
        env: Environment,
        address: str = "price-oracle",
        max_staleness: int = DEFAULT_MAX_STALENESS,
    ) -> None:
        super().__init__(env, address)
        self._state = _OracleState(max_staleness=check_uint(max_staleness, "max_staleness"))

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    @atomic
    def set_price(self, asset: str, price: int) -> None:
        self._only_admin()
        self._set_price(asset, price)

    @atomic
    def set_prices(self, prices: Mapping[str, int]) -> None:
        """Set several prices in one unit of work; any invalid price aborts all."""
        self._only_admin()
        for asset, price in prices.items():
            self._set_price(asset, price)

    def _set_price(self, asset: str, price: int) -> None:
        if check_uint(price, "price") == 0:
            raise InvalidPrice(f"zero price for {asset}")
        now = self._now()
        self._state.feeds[asset] = PriceFeed(
            asset=asset, price=price, last_update=now, is_active=True
        )
        self._env.emit(PriceUpdated(asset=asset, price=price, timestamp=now))

    @atomic
    def enable_feed(self, asset: str) -> None:
        self._only_admin()
        self._set_feed_active(asset, True)

    @atomic
    def disable_feed(self, asset: str) -> None:
        self._only_admin()
        self._set_feed_active(asset, False)

    def _set_feed_active(self, asset: str, active: bool) -> None:
        feed = self._state.feeds.get(asset)
        if feed is None:
            raise PriceFeedNotAvailable(f"no feed for {asset}")
        self._state.feeds[asset] = replace(feed, is_active=active)
        logger.info("Price feed %s %s", asset, "enabled" if active else "disabled")
        self._env.emit(
            PriceFeedStatusChanged(asset=asset, is_active=active, timestamp=self._now())
        )

    @atomic
    def set_max_staleness(self, seconds: int) -> None:
        self._only_admin()
        self._state.max_staleness = check_uint(seconds, "seconds")
        self._env.emit(MaxStalenessUpdated(max_staleness=seconds, timestamp=self._now()))

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def max_staleness(self) -> int:
        return self._state.max_staleness

    def get_feed(self, asset: str) -> PriceFeed | None:
        """Raw feed record, without availability or staleness checks."""
        return self._state.feeds.get(asset)

    def get_price(self, asset: str) -> int:
        feed = self._state.feeds.get(asset)
        if feed is None or not feed.is_active:
            raise PriceFeedNotAvailable(f"no active feed for {asset}")
        age = self._now() - feed.last_update
        if age > self._state.max_staleness:
            raise InvalidPrice(
                f"price of {asset} is stale ({age}s > {self._state.max_staleness}s)"
            )
        return feed.price

    def get_asset_value(self, asset: str, amount: int) -> int:
        """Base-asset value of ``amount`` units of ``asset``, truncated."""
        return mul_div(amount, self.get_price(asset), SCALE)

    def get_asset_amount(self, asset: str, value: int) -> int:
        """Units of ``asset`` worth ``value`` in base asset, truncated."""
        return mul_div(value, SCALE, self.get_price(asset))
