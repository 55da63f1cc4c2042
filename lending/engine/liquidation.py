"""Liquidation engine: close-factor cap and bonus economics."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from ..constants import DEFAULT_CLOSE_FACTOR, DEFAULT_LIQUIDATION_THRESHOLD, SCALE
from ..errors import InsufficientCollateralForLiquidation, InvalidConfiguration
from ..events import LiquidationParamsUpdated
from ..fixed_point import add, check_uint, mul_div
from ..models import LiquidationParams
from ..runtime import Contract, Environment, atomic

logger = logging.getLogger(__name__)


@dataclass
class _EngineState:
    params: LiquidationParams


def _validate(params: LiquidationParams) -> LiquidationParams:
    check_uint(params.liquidation_threshold, "liquidation_threshold")
    if not 0 < check_uint(params.max_liquidation_close_factor, "close_factor") <= SCALE:
        raise InvalidConfiguration(
            f"close factor must be in (0, {SCALE}], got {params.max_liquidation_close_factor}"
        )
    return params


class LiquidationEngine(Contract):
    def __init__(
        self,
        env: Environment,
        params: LiquidationParams | None = None,
        address: str = "liquidation-engine",
    ) -> None:
        super().__init__(env, address)
        if params is None:
            params = LiquidationParams(
                max_liquidation_close_factor=DEFAULT_CLOSE_FACTOR,
                liquidation_threshold=DEFAULT_LIQUIDATION_THRESHOLD,
            )
        self._state = _EngineState(params=_validate(params))

    def get_params(self) -> LiquidationParams:
        return self._state.params

    @atomic
    def update_params(self, max_liquidation_close_factor: int, liquidation_threshold: int) -> None:
        self._only_admin()
        params = _validate(
            LiquidationParams(max_liquidation_close_factor, liquidation_threshold)
        )
        self._state.params = params
        logger.info("Liquidation params updated: %s", params)
        self._env.emit(
            LiquidationParamsUpdated(
                max_liquidation_close_factor=max_liquidation_close_factor,
                liquidation_threshold=liquidation_threshold,
                updated_by=self._env.caller,
                timestamp=self._now(),
            )
        )

    def calculate_liquidation_amounts(
        self,
        debt_to_cover: int,
        total_debt: int,
        collateral_value: int,
        liquidation_bonus: int,
    ) -> tuple[int, int]:
        """Return ``(actual_debt_covered, collateral_value_to_seize)``.

        The covered debt is capped at ``total_debt * close_factor``; the seized
        value adds the bonus on top and must not exceed ``collateral_value``.
        """
        params = self._state.params
        max_covered = mul_div(total_debt, params.max_liquidation_close_factor, SCALE)
        actual = min(debt_to_cover, max_covered)
        to_seize = mul_div(actual, add(SCALE, liquidation_bonus), SCALE)

        if to_seize > collateral_value:
            raise InsufficientCollateralForLiquidation(
                f"seizing {to_seize} exceeds collateral value {collateral_value}"
            )
        return actual, to_seize

    def can_liquidate(self, health_factor: int) -> bool:
        """Strictly below the threshold; equality is healthy."""
        return health_factor < self._state.params.liquidation_threshold
