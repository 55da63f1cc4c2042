"""Wire a complete lending protocol from configuration."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config import AppConfig
from ..engine.collateral_manager import CollateralManager
from ..engine.interest_rate import InterestRateStrategy
from ..engine.lending_pool import LendingPool
from ..engine.liquidation import LiquidationEngine
from ..engine.share_vault import ShareVault
from ..fixed_point import rescale_price
from ..interfaces.price_oracle import PriceSource
from ..models import InterestRateParams, LiquidationParams
from ..oracles.price_oracle import PriceOracle
from ..oracles.pyth import PythPriceSource
from ..runtime import Environment
from ..tokens import FungibleToken
from .price_feeder import PriceFeeder

logger = logging.getLogger(__name__)


@dataclass
class Deployment:
    config: AppConfig
    env: Environment
    admin: str
    base_token: FungibleToken
    collateral_tokens: dict[str, FungibleToken]
    oracle: PriceOracle
    interest_rate_strategy: InterestRateStrategy
    liquidation_engine: LiquidationEngine
    collateral_manager: CollateralManager
    vault: ShareVault
    pool: LendingPool

    def token(self, symbol: str) -> FungibleToken:
        if symbol == self.base_token.address:
            return self.base_token
        return self.collateral_tokens[symbol]

    def price_feeder(self, source: PriceSource | None = None) -> PriceFeeder:
        """Feeder for every listed collateral, reading the configured Pyth feeds by default."""
        return PriceFeeder(
            self.oracle,
            source or PythPriceSource(self.config.oracle.pyth),
            self.env,
            admin=self.admin,
            assets={symbol: token.decimals for symbol, token in self.collateral_tokens.items()},
            base_symbol=self.base_token.address,
            base_decimals=self.base_token.decimals,
        )


def deploy(config: AppConfig, env: Environment | None = None) -> Deployment:
    """Create tokens and the six components under the configured admin.

    The pool is registered with the vault and the collateral manager,
    configured collateral is listed, and configured initial prices are seeded
    at the environment's current block time.
    """
    env = env or Environment()
    pool_cfg = config.pool
    admin = pool_cfg.admin

    with env.as_caller(admin):
        base_token = FungibleToken(
            env,
            pool_cfg.base_asset,
            name=pool_cfg.base_asset,
            symbol=pool_cfg.base_asset,
            decimals=pool_cfg.base_decimals,
        )
        collateral_tokens = {
            c.symbol: FungibleToken(env, c.symbol, name=c.symbol, symbol=c.symbol, decimals=c.decimals)
            for c in config.collaterals
        }

        oracle = PriceOracle(env, max_staleness=config.oracle.max_staleness)
        rates = config.interest_rate
        strategy = InterestRateStrategy(
            env,
            InterestRateParams(
                base_rate=rates.base_rate,
                optimal_utilization=rates.optimal_utilization,
                slope1=rates.slope1,
                slope2=rates.slope2,
            ),
        )
        liquidation = LiquidationEngine(
            env,
            LiquidationParams(
                max_liquidation_close_factor=config.liquidation.close_factor,
                liquidation_threshold=config.liquidation.liquidation_threshold,
            ),
        )
        collateral_manager = CollateralManager(env, oracle)
        vault = ShareVault(
            env,
            asset=base_token.address,
            name=pool_cfg.share_name,
            symbol=pool_cfg.share_symbol,
            decimals=pool_cfg.base_decimals,
        )
        pool = LendingPool(
            env,
            base_token=base_token,
            vault=vault,
            collateral_manager=collateral_manager,
            interest_rate_strategy=strategy,
            liquidation_engine=liquidation,
            price_oracle=oracle,
            reserve_factor=pool_cfg.reserve_factor,
        )

        vault.set_lending_pool(pool.address)
        collateral_manager.set_lending_pool(pool)

        for c in config.collaterals:
            collateral_manager.add_collateral(
                collateral_tokens[c.symbol],
                c.ltv,
                c.liquidation_threshold,
                c.liquidation_bonus,
            )
            if not c.enabled:
                collateral_manager.set_collateral_enabled(c.symbol, False)

        decimals = {symbol: token.decimals for symbol, token in collateral_tokens.items()}
        decimals[base_token.address] = base_token.decimals
        initial = {}
        for symbol, price in config.oracle.initial_prices.items():
            if symbol not in decimals:
                logger.warning("Skipping initial price for unknown asset '%s'", symbol)
                continue
            initial[symbol] = rescale_price(price, decimals[symbol], pool_cfg.base_decimals)
        if initial:
            oracle.set_prices(initial)

    logger.info(
        "Deployed lending pool for %s with %d collateral asset(s), admin %s",
        pool_cfg.base_asset,
        len(collateral_tokens),
        admin,
    )
    return Deployment(
        config=config,
        env=env,
        admin=admin,
        base_token=base_token,
        collateral_tokens=collateral_tokens,
        oracle=oracle,
        interest_rate_strategy=strategy,
        liquidation_engine=liquidation,
        collateral_manager=collateral_manager,
        vault=vault,
        pool=pool,
    )
