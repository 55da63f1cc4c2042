"""Integration tests for pushing external prices into a deployed oracle."""
from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from conftest import ADMIN
from lending.config import AppConfig
from lending.constants import SCALE
from lending.errors import InvalidPrice
from lending.fixed_point import rescale_price
from lending.main import run_price_feeder
from lending.oracles.pyth import PythPriceSource
from lending.services import Deployment, PriceFeeder, deploy


@pytest.fixture()
def deployment(sample_app_config: AppConfig) -> Deployment:
    return deploy(sample_app_config)


def _feeder(d: Deployment, prices: dict[str, int]) -> tuple[PriceFeeder, AsyncMock]:
    source = AsyncMock()
    source.fetch_prices = AsyncMock(return_value=prices)
    feeder = PriceFeeder(
        d.oracle,
        source,
        d.env,
        admin=ADMIN,
        assets={"WETH": 18, "WBTC": 8},
        base_symbol="USDC",
        base_decimals=6,
    )
    return feeder, source


class TestRefresh:
    @pytest.mark.asyncio
    async def test_writes_base_denominated_prices(self, deployment: Deployment) -> None:
        feeder, source = _feeder(
            deployment, {"USDC": SCALE, "WETH": 3_500 * SCALE, "WBTC": 65_000 * SCALE}
        )

        written = await feeder.refresh()

        source.fetch_prices.assert_awaited_once_with(["USDC", "WBTC", "WETH"])
        assert written == {
            "WETH": rescale_price(3_500 * SCALE, 18, 6),
            "WBTC": rescale_price(65_000 * SCALE, 8, 6),
        }
        assert deployment.oracle.get_asset_value("WETH", 10**18) == 3_500 * 10**6

    @pytest.mark.asyncio
    async def test_prices_relative_to_base(self, deployment: Deployment) -> None:
        feeder, _ = _feeder(deployment, {"USDC": SCALE // 2, "WETH": 3_000 * SCALE})
        await feeder.refresh()
        assert deployment.oracle.get_asset_value("WETH", 10**18) == 6_000 * 10**6

    @pytest.mark.asyncio
    async def test_missing_base_price_skips_update(self, deployment: Deployment) -> None:
        before = deployment.oracle.get_feed("WETH")
        feeder, _ = _feeder(deployment, {"WETH": 1 * SCALE})
        assert await feeder.refresh() == {}
        assert deployment.oracle.get_feed("WETH") == before

    @pytest.mark.asyncio
    async def test_missing_asset_left_untouched(self, deployment: Deployment) -> None:
        before = deployment.oracle.get_feed("WBTC")
        feeder, _ = _feeder(deployment, {"USDC": SCALE, "WETH": 2_000 * SCALE})
        written = await feeder.refresh()
        assert set(written) == {"WETH"}
        assert deployment.oracle.get_feed("WBTC") == before

    @pytest.mark.asyncio
    async def test_refresh_clears_staleness(self, deployment: Deployment) -> None:
        deployment.env.advance_time(601)
        with pytest.raises(InvalidPrice):
            deployment.oracle.get_price("WETH")

        feeder, _ = _feeder(deployment, {"USDC": SCALE, "WETH": 3_000 * SCALE})
        await feeder.refresh()
        assert deployment.oracle.get_price("WETH") == rescale_price(3_000 * SCALE, 18, 6)

    @pytest.mark.asyncio
    async def test_rejected_batch_writes_nothing(self, deployment: Deployment) -> None:
        before = deployment.oracle.get_feed("WETH")
        # WBTC rounds to a zero unit price and the oracle rejects the whole batch
        feeder, _ = _feeder(deployment, {"USDC": SCALE, "WETH": 10 * SCALE, "WBTC": 1})
        with pytest.raises(InvalidPrice):
            await feeder.refresh()
        assert deployment.oracle.get_feed("WETH") == before


class TestRun:
    @pytest.mark.asyncio
    async def test_runs_requested_iterations(self, deployment: Deployment) -> None:
        feeder, source = _feeder(deployment, {"USDC": SCALE, "WETH": 3_000 * SCALE})
        with patch("lending.services.price_feeder.asyncio.sleep", new=AsyncMock()) as sleep:
            await feeder.run(interval=30, iterations=3)
        assert source.fetch_prices.await_count == 3
        assert sleep.await_count == 2
        sleep.assert_awaited_with(30)

    @pytest.mark.asyncio
    async def test_oracle_rejection_does_not_stop_loop(
        self, deployment: Deployment, caplog: pytest.LogCaptureFixture
    ) -> None:
        feeder, source = _feeder(deployment, {"USDC": SCALE, "WETH": 1})
        with patch("lending.services.price_feeder.asyncio.sleep", new=AsyncMock()):
            with caplog.at_level(logging.ERROR, logger="lending.services.price_feeder"):
                await feeder.run(interval=1, iterations=2)
        assert source.fetch_prices.await_count == 2
        assert "rejected" in caplog.text


class TestDeploymentFeeder:
    def test_defaults_to_configured_pyth_feeds(self, deployment: Deployment) -> None:
        feeder = deployment.price_feeder()
        assert isinstance(feeder._source, PythPriceSource)
        assert feeder._source.price_feeds == {"WETH": "aaa111", "WBTC": "bbb222", "USDC": "ccc333"}

    @pytest.mark.asyncio
    async def test_covers_every_listed_collateral(self, deployment: Deployment) -> None:
        source = AsyncMock()
        source.fetch_prices = AsyncMock(
            return_value={"USDC": SCALE, "WETH": 2_500 * SCALE, "WBTC": 50_000 * SCALE}
        )
        written = await deployment.price_feeder(source).refresh()

        source.fetch_prices.assert_awaited_once_with(["USDC", "WBTC", "WETH"])
        assert set(written) == {"WETH", "WBTC"}
        assert deployment.oracle.get_asset_value("WBTC", 10**8) == 50_000 * 10**6


class TestRunPriceFeeder:
    @pytest.mark.asyncio
    async def test_deploys_from_yaml_and_feeds_oracle(self, sample_yaml_path: Path) -> None:
        fetch = AsyncMock(return_value={"USDC": SCALE, "WETH": 3_500 * SCALE})
        with patch.object(PythPriceSource, "fetch_prices", new=fetch):
            with patch("lending.services.price_feeder.asyncio.sleep", new=AsyncMock()):
                with patch("lending.main.configure_logging") as configure:
                    d = await run_price_feeder(
                        sample_yaml_path, interval=5, iterations=2, log_level="DEBUG"
                    )

        configure.assert_called_once_with("DEBUG")
        assert d.admin == "treasury"
        assert fetch.await_count == 2
        assert d.oracle.get_price("WETH") == rescale_price(3_500 * SCALE, 18, 6)
