"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from dataclasses import dataclass
from pathlib import Path

import pytest

from lending.config import (
    AppConfig,
    CollateralAssetConfig,
    InterestRateConfig,
    LiquidationConfig,
    OracleConfig,
    PoolConfig,
    PythConfig,
)
from lending.constants import SCALE
from lending.engine import (
    CollateralManager,
    InterestRateStrategy,
    LendingPool,
    LiquidationEngine,
    ShareVault,
)
from lending.models import InterestRateParams, LiquidationParams
from lending.oracles import PriceOracle
from lending.runtime import Environment
from lending.tokens import FungibleToken

ADMIN = "admin"
ALICE = "alice"
BOB = "bob"
CAROL = "carol"

# 1e18-scaled ratios
PCT = SCALE // 100


# ---------------------------------------------------------------------------
# Runtime fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def env() -> Environment:
    return Environment(block_time=1_000)


@pytest.fixture()
def rate_params() -> InterestRateParams:
    return InterestRateParams(
        base_rate=2 * PCT,
        optimal_utilization=80 * PCT,
        slope1=4 * PCT,
        slope2=75 * PCT,
    )


@dataclass
class Deployed:
    env: Environment
    base: FungibleToken
    weth: FungibleToken
    oracle: PriceOracle
    strategy: InterestRateStrategy
    liquidation: LiquidationEngine
    collateral: CollateralManager
    vault: ShareVault
    pool: LendingPool

    def fund(self, user: str, token: FungibleToken, amount: int, spender: str) -> None:
        """Mint ``amount`` to ``user`` and approve ``spender`` for it."""
        with self.env.as_caller(ADMIN):
            token.mint(user, amount)
        with self.env.as_caller(user):
            token.approve(spender, amount)

    def supply(self, user: str, amount: int) -> int:
        self.fund(user, self.base, amount, self.pool.address)
        with self.env.as_caller(user):
            return self.pool.deposit(amount)

    def post_collateral(self, user: str, amount: int) -> None:
        self.fund(user, self.weth, amount, self.collateral.address)
        with self.env.as_caller(user):
            self.collateral.deposit_collateral(self.weth.address, amount)


@pytest.fixture()
def protocol(env: Environment, rate_params: InterestRateParams) -> Deployed:
    """Pool with one collateral asset (WETH at 2 base units, 75% LTV / 80% threshold / 5% bonus)."""
    with env.as_caller(ADMIN):
        base = FungibleToken(env, "USDC", "USD Coin", "USDC")
        weth = FungibleToken(env, "WETH", "Wrapped Ether", "WETH")
        oracle = PriceOracle(env)
        strategy = InterestRateStrategy(env, rate_params)
        liquidation = LiquidationEngine(
            env,
            LiquidationParams(max_liquidation_close_factor=50 * PCT, liquidation_threshold=SCALE),
        )
        collateral = CollateralManager(env, oracle)
        vault = ShareVault(env, asset=base.address)
        pool = LendingPool(
            env,
            base_token=base,
            vault=vault,
            collateral_manager=collateral,
            interest_rate_strategy=strategy,
            liquidation_engine=liquidation,
            price_oracle=oracle,
        )
        vault.set_lending_pool(pool.address)
        collateral.set_lending_pool(pool)
        collateral.add_collateral(weth, 75 * PCT, 80 * PCT, 5 * PCT)
        oracle.set_price(weth.address, 2 * SCALE)

    return Deployed(
        env=env,
        base=base,
        weth=weth,
        oracle=oracle,
        strategy=strategy,
        liquidation=liquidation,
        collateral=collateral,
        vault=vault,
        pool=pool,
    )


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_pyth_config() -> PythConfig:
    return PythConfig(
        hermes_url="https://hermes.example.com/v2/updates/price/latest",
        feeds={"WETH": "aaa111", "WBTC": "bbb222", "USDC": "ccc333"},
    )


@pytest.fixture()
def sample_app_config(sample_pyth_config: PythConfig) -> AppConfig:
    return AppConfig(
        pool=PoolConfig(admin=ADMIN, base_asset="USDC", base_decimals=6),
        interest_rate=InterestRateConfig(),
        liquidation=LiquidationConfig(),
        collaterals=(
            CollateralAssetConfig(
                symbol="WETH",
                ltv=75 * PCT,
                liquidation_threshold=80 * PCT,
                liquidation_bonus=5 * PCT,
                decimals=18,
            ),
            CollateralAssetConfig(
                symbol="WBTC",
                ltv=70 * PCT,
                liquidation_threshold=75 * PCT,
                liquidation_bonus=10 * PCT,
                decimals=8,
                enabled=False,
            ),
        ),
        oracle=OracleConfig(
            max_staleness=600,
            initial_prices={"WETH": 3000 * SCALE, "WBTC": 60000 * SCALE},
            pyth=sample_pyth_config,
        ),
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    pool:
      admin: treasury
      base_asset: USDC
      base_decimals: 6
      reserve_factor: 0.1
      share_symbol: lpUSDC
    interest_rate:
      base_rate: 0.02
      optimal_utilization: 0.8
      slope1: 0.04
      slope2: 0.75
    liquidation:
      close_factor: 0.5
      liquidation_threshold: 1
    collaterals:
      - symbol: WETH
        decimals: 18
        ltv: 0.75
        liquidation_threshold: 0.8
        liquidation_bonus: 0.05
      - symbol: WBTC
        decimals: 8
        ltv: "0.7"
        liquidation_threshold: "0.75"
        liquidation_bonus: "0.1"
        enabled: false
    oracle:
      max_staleness: 600
      initial_prices:
        WETH: "3000"
        WBTC: 60000
      pyth:
        hermes_url: "https://hermes.example.com"
        feeds: {WETH: "aaa", USDC: "ccc"}
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
