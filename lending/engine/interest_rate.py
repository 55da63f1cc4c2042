"""Two-slope interest rate model driven by pool utilization.

- ``u <= optimal``: ``base_rate + u / optimal * slope1``
- ``u > optimal``:  ``base_rate + slope1 + (u - optimal) / (1 - optimal) * slope2``

Supply rate is the borrow rate net of the reserve factor, weighted by
utilization. All rates are annual and scaled by 1e18; divisions truncate.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from ..constants import SCALE
from ..errors import InvalidInterestRateParams
from ..events import InterestRateParamsUpdated
from ..fixed_point import add, check_uint, mul_div, sub
from ..models import InterestRateParams
from ..runtime import Contract, Environment, atomic

logger = logging.getLogger(__name__)


@dataclass
class _StrategyState:
    params: InterestRateParams


def validate_params(params: InterestRateParams) -> InterestRateParams:
    for name in ("base_rate", "optimal_utilization", "slope1", "slope2"):
        check_uint(getattr(params, name), name)
    if not 0 < params.optimal_utilization < SCALE:
        raise InvalidInterestRateParams(
            f"optimal_utilization must be in (0, {SCALE}), got {params.optimal_utilization}"
        )
    return params


class InterestRateStrategy(Contract):
    def __init__(
        self,
        env: Environment,
        params: InterestRateParams,
        address: str = "interest-rate-strategy",
    ) -> None:
        super().__init__(env, address)
        self._state = _StrategyState(params=validate_params(params))

    def get_params(self) -> InterestRateParams:
        return self._state.params

    @atomic
    def update_params(
        self,
        base_rate: int,
        optimal_utilization: int,
        slope1: int,
        slope2: int,
    ) -> None:
        self._only_admin()
        params = validate_params(
            InterestRateParams(base_rate, optimal_utilization, slope1, slope2)
        )
        self._state.params = params
        logger.info("Interest rate params updated: %s", params)
        self._env.emit(
            InterestRateParamsUpdated(
                base_rate=base_rate,
                optimal_utilization=optimal_utilization,
                slope1=slope1,
                slope2=slope2,
                updated_by=self._env.caller,
                timestamp=self._now(),
            )
        )

    def calculate_utilization_rate(self, total_borrows: int, total_liquidity: int) -> int:
        """``total_borrows / (total_borrows + total_liquidity)``, zero when nothing is borrowed."""
        if total_borrows == 0:
            return 0
        return mul_div(total_borrows, SCALE, add(total_borrows, total_liquidity))

    def calculate_borrow_rate(self, total_borrows: int, total_liquidity: int) -> int:
        params = self._state.params
        utilization = self.calculate_utilization_rate(total_borrows, total_liquidity)

        if utilization <= params.optimal_utilization:
            increase = mul_div(utilization, params.slope1, params.optimal_utilization)
            return add(params.base_rate, increase)

        excess = sub(utilization, params.optimal_utilization)
        excess_ratio = mul_div(excess, SCALE, SCALE - params.optimal_utilization)
        excess_rate = mul_div(excess_ratio, params.slope2, SCALE)
        return add(add(params.base_rate, params.slope1), excess_rate)

    def calculate_supply_rate(
        self,
        borrow_rate: int,
        total_borrows: int,
        total_liquidity: int,
        reserve_factor: int,
    ) -> int:
        utilization = self.calculate_utilization_rate(total_borrows, total_liquidity)
        if utilization == 0:
            return 0
        rate_to_pool = mul_div(borrow_rate, sub(SCALE, reserve_factor), SCALE)
        return mul_div(rate_to_pool, utilization, SCALE)
