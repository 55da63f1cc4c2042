"""Collateral manager: per-user collateral custody, risk parameters and health factor.

Health factor = risk-weighted collateral value * 1e18 / debt, where each held
asset contributes ``value * liquidation_threshold / 1e18``. Borrowing power
uses the asset's LTV in place of the liquidation threshold.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable

from ..constants import MAX_UINT256, MIN_HEALTH_FACTOR, SCALE
from ..errors import (
    CannotWithdrawCollateral,
    CollateralDisabled,
    ContractPaused,
    InsufficientCollateralDeposit,
    InvalidConfiguration,
    Unauthorized,
    UnsupportedCollateral,
    ZeroAmount,
)
from ..events import (
    CollateralAdded,
    CollateralDeposited,
    CollateralSeized,
    CollateralStatusUpdated,
    CollateralUpdated,
    CollateralWithdrawn,
)
from ..fixed_point import add, check_uint, mul_div
from ..interfaces.pool import DebtSource
from ..interfaces.price_oracle import PriceOracle
from ..interfaces.token import FungibleToken
from ..models import CollateralConfig
from ..runtime import Contract, Environment, atomic
from ..tokens import safe_transfer, safe_transfer_from

logger = logging.getLogger(__name__)


@dataclass
class _CollateralState:
    configs: dict[str, CollateralConfig] = field(default_factory=dict)
    balances: dict[tuple[str, str], int] = field(default_factory=dict)
    # Per-user asset keys in first-deposit order; entries are never removed.
    user_assets: dict[str, list[str]] = field(default_factory=dict)
    lending_pool: str | None = None


def _validate_risk_params(ltv: int, liquidation_threshold: int, liquidation_bonus: int) -> None:
    check_uint(ltv, "ltv")
    check_uint(liquidation_threshold, "liquidation_threshold")
    check_uint(liquidation_bonus, "liquidation_bonus")
    if not ltv <= liquidation_threshold <= SCALE:
        raise InvalidConfiguration(
            f"require ltv <= liquidation_threshold <= {SCALE}, "
            f"got ltv={ltv} liquidation_threshold={liquidation_threshold}"
        )
    if liquidation_bonus > SCALE:
        raise InvalidConfiguration(f"liquidation_bonus above {SCALE}: {liquidation_bonus}")


class CollateralManager(Contract):
    def __init__(
        self,
        env: Environment,
        price_oracle: PriceOracle,
        tokens: dict[str, FungibleToken] | None = None,
        address: str = "collateral-manager",
    ) -> None:
        super().__init__(env, address)
        self._oracle = price_oracle
        self._tokens: dict[str, FungibleToken] = dict(tokens or {})
        self._pool: DebtSource | None = None
        self._state = _CollateralState()

    # ------------------------------------------------------------------
    # Configuration (admin)
    # ------------------------------------------------------------------

    @atomic
    def set_lending_pool(self, pool: DebtSource) -> None:
        """Register the pool allowed to seize collateral and consulted for debt and pause."""
        self._only_admin()
        self._pool = pool
        self._state.lending_pool = pool.address

    @atomic
    def add_collateral(
        self,
        asset: FungibleToken,
        ltv: int,
        liquidation_threshold: int,
        liquidation_bonus: int,
    ) -> None:
        self._only_admin()
        _validate_risk_params(ltv, liquidation_threshold, liquidation_bonus)
        if asset.address in self._state.configs:
            raise InvalidConfiguration(f"collateral already added: {asset.address}")

        self._tokens[asset.address] = asset
        self._state.configs[asset.address] = CollateralConfig(
            asset=asset.address,
            ltv=ltv,
            liquidation_threshold=liquidation_threshold,
            liquidation_bonus=liquidation_bonus,
            is_enabled=True,
        )
        logger.info(
            "Collateral %s added (ltv=%d, threshold=%d, bonus=%d)",
            asset.address,
            ltv,
            liquidation_threshold,
            liquidation_bonus,
        )
        self._env.emit(
            CollateralAdded(
                asset=asset.address,
                ltv=ltv,
                liquidation_threshold=liquidation_threshold,
                liquidation_bonus=liquidation_bonus,
                added_by=self._env.caller,
                timestamp=self._now(),
            )
        )

    @atomic
    def update_collateral(
        self,
        asset: str,
        ltv: int,
        liquidation_threshold: int,
        liquidation_bonus: int,
    ) -> None:
        self._only_admin()
        config = self.get_collateral_config(asset)
        _validate_risk_params(ltv, liquidation_threshold, liquidation_bonus)

        self._state.configs[asset] = replace(
            config,
            ltv=ltv,
            liquidation_threshold=liquidation_threshold,
            liquidation_bonus=liquidation_bonus,
        )
        logger.info("Collateral %s updated", asset)
        self._env.emit(
            CollateralUpdated(
                asset=asset,
                ltv=ltv,
                liquidation_threshold=liquidation_threshold,
                liquidation_bonus=liquidation_bonus,
                updated_by=self._env.caller,
                timestamp=self._now(),
            )
        )

    @atomic
    def set_collateral_enabled(self, asset: str, enabled: bool) -> None:
        self._only_admin()
        config = self.get_collateral_config(asset)
        self._state.configs[asset] = replace(config, is_enabled=enabled)
        logger.info("Collateral %s %s", asset, "enabled" if enabled else "disabled")
        self._env.emit(
            CollateralStatusUpdated(
                asset=asset,
                is_enabled=enabled,
                updated_by=self._env.caller,
                timestamp=self._now(),
            )
        )

    # ------------------------------------------------------------------
    # Deposits / withdrawals
    # ------------------------------------------------------------------

    @atomic
    def deposit_collateral(self, asset: str, amount: int) -> None:
        self._ensure_not_paused()
        user = self._env.caller
        if check_uint(amount, "amount") == 0:
            raise ZeroAmount("collateral deposit of zero")

        config = self.get_collateral_config(asset)
        if not config.is_enabled:
            raise CollateralDisabled(f"collateral {asset} is disabled")

        with self._env.as_caller(self.address):
            safe_transfer_from(self._tokens[asset], user, self.address, amount)

        key = (user, asset)
        self._state.balances[key] = add(self._state.balances.get(key, 0), amount)
        assets = self._state.user_assets.setdefault(user, [])
        if asset not in assets:
            assets.append(asset)

        self._env.emit(CollateralDeposited(user=user, asset=asset, amount=amount, timestamp=self._now()))

    @atomic
    def withdraw_collateral(self, asset: str, amount: int, user_debt: int = 0) -> None:
        """Withdraw ``amount`` unless the remaining collateral would leave the user unhealthy.

        ``user_debt`` is the debt to test against. When a lending pool is
        registered its recorded debt is used if larger.
        """
        self._ensure_not_paused()
        user = self._env.caller
        if check_uint(amount, "amount") == 0:
            raise ZeroAmount("collateral withdrawal of zero")

        key = (user, asset)
        current = self._state.balances.get(key, 0)
        if current < amount:
            raise InsufficientCollateralDeposit(
                f"{user} holds {current} of {asset}, cannot withdraw {amount}"
            )

        debt = check_uint(user_debt, "user_debt")
        if self._pool is not None:
            debt = max(debt, self._pool.get_user_debt(user))

        # Applied speculatively; the enclosing transaction undoes it on failure.
        self._state.balances[key] = current - amount
        health_factor = self.calculate_health_factor(user, debt)
        if debt > 0 and health_factor < MIN_HEALTH_FACTOR:
            raise CannotWithdrawCollateral(
                f"health factor would drop to {health_factor} for {user}"
            )

        with self._env.as_caller(self.address):
            safe_transfer(self._tokens[asset], user, amount)

        self._env.emit(CollateralWithdrawn(user=user, asset=asset, amount=amount, timestamp=self._now()))

    @atomic
    def seize_collateral(self, borrower: str, asset: str, amount: int, recipient: str) -> None:
        """Move ``amount`` of the borrower's collateral to ``recipient``. Lending pool only."""
        pool = self._state.lending_pool
        if pool is None or self._env.caller != pool:
            raise Unauthorized(f"{self._env.caller} may not seize collateral")

        key = (borrower, asset)
        current = self._state.balances.get(key, 0)
        if current < amount:
            raise InsufficientCollateralDeposit(
                f"{borrower} holds {current} of {asset}, cannot seize {amount}"
            )
        self._state.balances[key] = current - amount

        with self._env.as_caller(self.address):
            safe_transfer(self._tokens[asset], recipient, amount)

        self._env.emit(
            CollateralSeized(
                borrower=borrower,
                recipient=recipient,
                asset=asset,
                amount=amount,
                timestamp=self._now(),
            )
        )

    # ------------------------------------------------------------------
    # Health factor and borrowing power
    # ------------------------------------------------------------------

    def calculate_health_factor(self, user: str, debt: int) -> int:
        """Scaled health factor; ``MAX_UINT256`` when there is no debt."""
        if debt == 0:
            return MAX_UINT256
        weighted = self._weighted_collateral_value(user, lambda c: c.liquidation_threshold)
        if weighted == 0:
            return 0
        return mul_div(weighted, SCALE, debt)

    def get_max_borrow_amount(self, user: str) -> int:
        return self._weighted_collateral_value(user, lambda c: c.ltv)

    def get_user_collateral_value(self, user: str) -> int:
        """Unweighted base-asset value of everything the user has deposited."""
        total = 0
        for asset, amount in self._held_assets(user):
            total = add(total, self._oracle.get_asset_value(asset, amount))
        return total

    def can_liquidate(self, user: str, debt: int) -> bool:
        if debt == 0:
            return False
        return self.calculate_health_factor(user, debt) < MIN_HEALTH_FACTOR

    def _weighted_collateral_value(
        self, user: str, weight: Callable[[CollateralConfig], int]
    ) -> int:
        total = 0
        for asset, amount in self._held_assets(user):
            config = self.get_collateral_config(asset)
            value = self._oracle.get_asset_value(asset, amount)
            total = add(total, mul_div(value, weight(config), SCALE))
        return total

    def _held_assets(self, user: str) -> list[tuple[str, int]]:
        held = []
        for asset in self._state.user_assets.get(user, []):
            amount = self._state.balances.get((user, asset), 0)
            if amount > 0:
                held.append((asset, amount))
        return held

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def get_user_collateral(self, user: str, asset: str) -> int:
        return self._state.balances.get((user, asset), 0)

    def get_user_collateral_assets(self, user: str) -> tuple[str, ...]:
        return tuple(self._state.user_assets.get(user, []))

    def get_collateral_config(self, asset: str) -> CollateralConfig:
        config = self._state.configs.get(asset)
        if config is None:
            raise UnsupportedCollateral(f"unsupported collateral: {asset}")
        return config

    def is_supported(self, asset: str) -> bool:
        return asset in self._state.configs

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_not_paused(self) -> None:
        if self._pool is not None and self._pool.is_paused():
            raise ContractPaused("lending pool is paused")
