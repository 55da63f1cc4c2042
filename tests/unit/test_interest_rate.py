"""Unit tests for the two-slope interest rate strategy."""
from __future__ import annotations

import pytest

from lending.constants import SCALE
from lending.engine import InterestRateStrategy
from lending.errors import InvalidInterestRateParams, Unauthorized
from lending.events import InterestRateParamsUpdated
from lending.models import InterestRateParams
from lending.runtime import Environment

PCT = SCALE // 100


@pytest.fixture()
def strategy(env: Environment, rate_params: InterestRateParams) -> InterestRateStrategy:
    with env.as_caller("admin"):
        return InterestRateStrategy(env, rate_params)


class TestUtilization:
    def test_zero_borrows(self, strategy: InterestRateStrategy) -> None:
        assert strategy.calculate_utilization_rate(0, 0) == 0
        assert strategy.calculate_utilization_rate(0, 1_000) == 0

    def test_ratio(self, strategy: InterestRateStrategy) -> None:
        assert strategy.calculate_utilization_rate(800, 200) == 80 * PCT

    def test_fully_utilized(self, strategy: InterestRateStrategy) -> None:
        assert strategy.calculate_utilization_rate(500, 0) == SCALE


class TestBorrowRate:
    def test_base_rate_when_idle(self, strategy: InterestRateStrategy) -> None:
        assert strategy.calculate_borrow_rate(0, 1_000) == 2 * PCT

    def test_pre_optimal_slope(self, strategy: InterestRateStrategy) -> None:
        # u = 40% -> 2% + 40/80 * 4%
        assert strategy.calculate_borrow_rate(400, 600) == 4 * PCT

    def test_optimal_boundary_uses_pre_optimal_branch(
        self, strategy: InterestRateStrategy
    ) -> None:
        # u == optimal -> base + slope1 exactly, no slope2 contribution
        assert strategy.calculate_borrow_rate(800, 200) == 6 * PCT

    def test_post_optimal_slope(self, strategy: InterestRateStrategy) -> None:
        # u = 90% -> 2% + 4% + (10/20) * 75%
        assert strategy.calculate_borrow_rate(900, 100) == 6 * PCT + 375 * PCT // 10

    def test_full_utilization(self, strategy: InterestRateStrategy) -> None:
        assert strategy.calculate_borrow_rate(1_000, 0) == 81 * PCT


class TestSupplyRate:
    def test_zero_when_unutilized(self, strategy: InterestRateStrategy) -> None:
        assert strategy.calculate_supply_rate(2 * PCT, 0, 1_000, 10 * PCT) == 0

    def test_net_of_reserve_factor(self, strategy: InterestRateStrategy) -> None:
        borrow_rate = strategy.calculate_borrow_rate(800, 200)
        # 6% * 90% * 80%
        expected = 6 * PCT * 9 // 10 * 8 // 10
        assert strategy.calculate_supply_rate(borrow_rate, 800, 200, 10 * PCT) == expected

    def test_supply_never_exceeds_borrow(self, strategy: InterestRateStrategy) -> None:
        for borrows in (1, 250, 800, 999, 1_000):
            liquidity = 1_000 - borrows
            borrow_rate = strategy.calculate_borrow_rate(borrows, liquidity)
            supply_rate = strategy.calculate_supply_rate(borrow_rate, borrows, liquidity, 0)
            assert supply_rate <= borrow_rate


class TestParams:
    @pytest.mark.parametrize("optimal", [0, SCALE, SCALE + 1])
    def test_invalid_optimal_rejected(self, env: Environment, optimal: int) -> None:
        with env.as_caller("admin"):
            with pytest.raises(InvalidInterestRateParams):
                InterestRateStrategy(env, InterestRateParams(0, optimal, 0, 0))

    def test_update_params(self, env: Environment, strategy: InterestRateStrategy) -> None:
        with env.as_caller("admin"):
            strategy.update_params(PCT, 50 * PCT, 10 * PCT, 100 * PCT)
        assert strategy.get_params() == InterestRateParams(PCT, 50 * PCT, 10 * PCT, 100 * PCT)
        event = env.events.last(InterestRateParamsUpdated)
        assert event.updated_by == "admin"
        assert event.optimal_utilization == 50 * PCT

    def test_update_params_rejects_invalid(
        self, env: Environment, strategy: InterestRateStrategy, rate_params: InterestRateParams
    ) -> None:
        with env.as_caller("admin"):
            with pytest.raises(InvalidInterestRateParams):
                strategy.update_params(PCT, 0, PCT, PCT)
        assert strategy.get_params() == rate_params

    def test_update_params_admin_only(
        self, env: Environment, strategy: InterestRateStrategy
    ) -> None:
        with env.as_caller("mallory"):
            with pytest.raises(Unauthorized):
                strategy.update_params(PCT, 50 * PCT, PCT, PCT)
