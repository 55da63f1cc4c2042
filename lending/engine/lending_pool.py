"""Lending pool: deposits, withdrawals, borrows, repayments and liquidations.

Each entry point is one atomic unit of work: validate, consult the collateral
manager / oracle / rate strategy / liquidation engine, mutate the ledger, move
tokens, refresh rates, emit. A failure anywhere rolls everything back.

Interest is accrued lazily: a position picks up
``principal * borrow_rate * elapsed / (SECONDS_PER_YEAR * 1e18)`` only when
that user next borrows, repays or is liquidated. Dormant positions keep a stale
``interest_accrued`` until then; :meth:`LendingPool.get_user_debt` evaluates the
pending amount at read time.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from ..constants import DEFAULT_RESERVE_FACTOR, MIN_HEALTH_FACTOR, SCALE, SECONDS_PER_YEAR
from ..errors import (
    ContractPaused,
    ExceedsBorrowLimit,
    HealthFactorTooLow,
    InsufficientBalance,
    InsufficientCollateral,
    InsufficientLiquidity,
    InvalidConfiguration,
    NoBorrowPosition,
    PositionHealthy,
    ZeroAmount,
)
from ..events import (
    Borrowed,
    Deposited,
    InterestAccrued,
    InterestRatesUpdated,
    Liquidated,
    Paused,
    Repaid,
    ReserveFactorUpdated,
    Unpaused,
    Withdrawn,
)
from ..fixed_point import add, check_uint, mul_div, sub
from ..interfaces.collateral import CollateralManager
from ..interfaces.interest_rate import InterestRateStrategy
from ..interfaces.liquidation import LiquidationEngine
from ..interfaces.price_oracle import PriceOracle
from ..interfaces.token import FungibleToken
from ..interfaces.vault import ShareVault
from ..models import BorrowPosition, LiquidationResult
from ..runtime import Contract, Environment, atomic
from ..tokens import safe_transfer, safe_transfer_from

logger = logging.getLogger(__name__)


@dataclass
class _PoolState:
    positions: dict[str, BorrowPosition] = field(default_factory=dict)
    total_borrows: int = 0
    total_liquidity: int = 0
    borrow_rate: int = 0
    supply_rate: int = 0
    reserve_factor: int = DEFAULT_RESERVE_FACTOR
    total_reserves: int = 0
    paused: bool = False


def accrued_interest(principal: int, borrow_rate: int, elapsed: int) -> int:
    """Simple interest on ``principal`` over ``elapsed`` seconds at an annual scaled rate."""
    if principal == 0 or borrow_rate == 0 or elapsed <= 0:
        return 0
    return mul_div(principal * borrow_rate, elapsed, SECONDS_PER_YEAR * SCALE)


class LendingPool(Contract):
    def __init__(
        self,
        env: Environment,
        base_token: FungibleToken,
        vault: ShareVault,
        collateral_manager: CollateralManager,
        interest_rate_strategy: InterestRateStrategy,
        liquidation_engine: LiquidationEngine,
        price_oracle: PriceOracle,
        reserve_factor: int = DEFAULT_RESERVE_FACTOR,
        address: str = "lending-pool",
    ) -> None:
        super().__init__(env, address)
        if check_uint(reserve_factor, "reserve_factor") > SCALE:
            raise InvalidConfiguration(f"reserve factor above {SCALE}: {reserve_factor}")
        self._base_token = base_token
        self._vault = vault
        self._collateral = collateral_manager
        self._strategy = interest_rate_strategy
        self._liquidation = liquidation_engine
        self._oracle = price_oracle
        self._state = _PoolState(reserve_factor=reserve_factor)

    # ------------------------------------------------------------------
    # Liquidity
    # ------------------------------------------------------------------

    @atomic
    def deposit(self, amount: int) -> int:
        """Supply base asset; returns the shares minted to the caller."""
        self._ensure_not_paused()
        user = self._env.caller
        self._accrue_interest(user)
        if check_uint(amount, "amount") == 0:
            raise ZeroAmount("deposit of zero")

        self._pull(user, amount)

        shares = self._vault.convert_to_shares(amount)
        if shares == 0:
            raise ZeroAmount(f"deposit of {amount} is too small to mint a share")

        self._state.total_liquidity = add(self._state.total_liquidity, amount)
        with self._env.as_caller(self.address):
            self._vault.mint(user, shares)
        self._sync_vault_assets()
        self._update_interest_rates()

        self._env.emit(Deposited(user=user, amount=amount, shares=shares, timestamp=self._now()))
        return shares

    @atomic
    def withdraw(self, amount: int) -> int:
        """Redeem ``amount`` of base asset; returns the shares burned."""
        self._ensure_not_paused()
        user = self._env.caller
        self._accrue_interest(user)
        if check_uint(amount, "amount") == 0:
            raise ZeroAmount("withdrawal of zero")

        liquidity = self._state.total_liquidity
        if amount > liquidity:
            raise InsufficientLiquidity(f"requested {amount}, available {liquidity}")

        shares = self._vault.preview_withdraw(amount)
        held = self._vault.balance_of(user)
        if shares > held:
            raise InsufficientBalance(f"{user} holds {held} shares, needs {shares}")

        with self._env.as_caller(self.address):
            self._vault.burn(user, shares)
        self._state.total_liquidity = liquidity - amount
        self._sync_vault_assets()
        self._push(user, amount)
        self._update_interest_rates()

        self._env.emit(Withdrawn(user=user, amount=amount, shares=shares, timestamp=self._now()))
        return shares

    # ------------------------------------------------------------------
    # Borrowing
    # ------------------------------------------------------------------

    @atomic
    def borrow(self, amount: int, collateral_asset: str) -> None:
        self._ensure_not_paused()
        borrower = self._env.caller
        self._accrue_interest(borrower)

        if check_uint(amount, "amount") == 0:
            raise ZeroAmount("borrow of zero")

        liquidity = self._state.total_liquidity
        if amount > liquidity:
            raise InsufficientLiquidity(f"requested {amount}, available {liquidity}")

        if self._collateral.get_user_collateral(borrower, collateral_asset) == 0:
            raise InsufficientCollateral(f"{borrower} holds no {collateral_asset}")

        position = self._state.positions.get(borrower)
        current_debt = position.total_debt if position else 0
        new_debt = add(current_debt, amount)

        max_borrow = self._collateral.get_max_borrow_amount(borrower)
        if new_debt > max_borrow:
            raise ExceedsBorrowLimit(f"debt {new_debt} exceeds borrow limit {max_borrow}")

        health_factor = self._collateral.calculate_health_factor(borrower, new_debt)
        if health_factor < MIN_HEALTH_FACTOR:
            raise HealthFactorTooLow(f"health factor would be {health_factor}")

        # Outstanding interest is folded into principal.
        self._state.positions[borrower] = BorrowPosition(
            user=borrower,
            principal=new_debt,
            interest_accrued=0,
            last_update=self._now(),
        )
        self._state.total_borrows = add(self._state.total_borrows, amount)
        self._state.total_liquidity = liquidity - amount
        self._sync_vault_assets()
        self._push(borrower, amount)
        self._update_interest_rates()

        self._env.emit(
            Borrowed(
                borrower=borrower,
                amount=amount,
                collateral_asset=collateral_asset,
                borrow_rate=self._state.borrow_rate,
                timestamp=self._now(),
            )
        )

    @atomic
    def repay(self, amount: int) -> int:
        """Repay up to ``amount``, interest first. Returns the amount actually repaid."""
        self._ensure_not_paused()
        borrower = self._env.caller
        self._accrue_interest(borrower)
        if check_uint(amount, "amount") == 0:
            raise ZeroAmount("repayment of zero")

        position = self._state.positions.get(borrower)
        if position is None or not position.is_active:
            raise NoBorrowPosition(f"{borrower} has no debt")

        total_debt = position.total_debt
        repay_amount = min(amount, total_debt)
        self._pull(borrower, repay_amount)

        interest_paid = min(repay_amount, position.interest_accrued)
        principal_paid = repay_amount - interest_paid

        if repay_amount == total_debt:
            self._state.positions[borrower] = BorrowPosition(
                user=borrower, last_update=self._now()
            )
        else:
            self._state.positions[borrower] = replace(
                position,
                principal=sub(position.principal, principal_paid),
                interest_accrued=sub(position.interest_accrued, interest_paid),
                last_update=self._now(),
            )

        self._state.total_borrows = sub(self._state.total_borrows, repay_amount)
        self._state.total_liquidity = add(self._state.total_liquidity, repay_amount)
        reserves_added = mul_div(interest_paid, self._state.reserve_factor, SCALE)
        self._state.total_reserves = add(self._state.total_reserves, reserves_added)
        self._sync_vault_assets()
        self._update_interest_rates()

        self._env.emit(
            Repaid(
                borrower=borrower,
                amount=repay_amount,
                interest=interest_paid,
                timestamp=self._now(),
            )
        )
        return repay_amount

    # ------------------------------------------------------------------
    # Liquidation
    # ------------------------------------------------------------------

    @atomic
    def liquidate(
        self, borrower: str, debt_to_cover: int, collateral_asset: str
    ) -> LiquidationResult:
        """Repay part of an unhealthy position and seize collateral plus bonus."""
        self._ensure_not_paused()
        liquidator = self._env.caller
        self._accrue_interest(borrower)
        if check_uint(debt_to_cover, "debt_to_cover") == 0:
            raise ZeroAmount("liquidation of zero debt")

        position = self._state.positions.get(borrower)
        if position is None or not position.is_active:
            raise NoBorrowPosition(f"{borrower} has no debt")
        total_debt = position.total_debt

        if not self._collateral.can_liquidate(borrower, total_debt):
            raise PositionHealthy(f"{borrower} is not liquidatable")

        config = self._collateral.get_collateral_config(collateral_asset)
        borrower_collateral = self._collateral.get_user_collateral(borrower, collateral_asset)
        collateral_value = self._oracle.get_asset_value(collateral_asset, borrower_collateral)

        debt_covered, seize_value = self._liquidation.calculate_liquidation_amounts(
            debt_to_cover,
            total_debt,
            collateral_value,
            config.liquidation_bonus,
        )
        if debt_covered == 0:
            raise ZeroAmount(f"close factor leaves no coverable debt for {borrower}")

        self._pull(liquidator, debt_covered)

        if debt_covered == total_debt:
            self._state.positions[borrower] = BorrowPosition(
                user=borrower, last_update=self._now()
            )
        else:
            principal_covered = mul_div(position.principal, debt_covered, total_debt)
            interest_covered = debt_covered - principal_covered
            self._state.positions[borrower] = replace(
                position,
                principal=sub(position.principal, principal_covered),
                interest_accrued=sub(position.interest_accrued, interest_covered),
                last_update=self._now(),
            )

        seized = min(
            self._oracle.get_asset_amount(collateral_asset, seize_value),
            borrower_collateral,
        )

        self._state.total_borrows = sub(self._state.total_borrows, debt_covered)
        self._state.total_liquidity = add(self._state.total_liquidity, debt_covered)
        self._sync_vault_assets()

        with self._env.as_caller(self.address):
            self._collateral.seize_collateral(borrower, collateral_asset, seized, liquidator)

        self._update_interest_rates()

        bonus = seize_value - debt_covered
        logger.info(
            "Liquidated %s: covered %d, seized %d %s (bonus value %d)",
            borrower,
            debt_covered,
            seized,
            collateral_asset,
            bonus,
        )
        self._env.emit(
            Liquidated(
                borrower=borrower,
                liquidator=liquidator,
                collateral_asset=collateral_asset,
                debt_covered=debt_covered,
                collateral_seized=seized,
                liquidation_bonus=bonus,
                timestamp=self._now(),
            )
        )
        return LiquidationResult(
            borrower=borrower,
            liquidator=liquidator,
            collateral_asset=collateral_asset,
            debt_covered=debt_covered,
            collateral_seized=seized,
            collateral_seized_value=seize_value,
            liquidation_bonus=bonus,
        )

    # ------------------------------------------------------------------
    # Interest and rates
    # ------------------------------------------------------------------

    def _accrue_interest(self, user: str) -> None:
        """Bring ``user``'s position up to the current block time."""
        position = self._state.positions.get(user)
        if position is None:
            return
        now = self._now()
        interest = accrued_interest(
            position.principal, self._state.borrow_rate, now - position.last_update
        )
        if interest == 0:
            return

        self._state.positions[user] = replace(
            position,
            interest_accrued=add(position.interest_accrued, interest),
            last_update=now,
        )
        self._state.total_borrows = add(self._state.total_borrows, interest)
        self._sync_vault_assets()
        logger.debug("Accrued %d interest for %s", interest, user)
        self._env.emit(
            InterestAccrued(
                user=user,
                interest_amount=interest,
                total_borrows=self._state.total_borrows,
                timestamp=now,
            )
        )

    def _update_interest_rates(self) -> None:
        borrows = self._state.total_borrows
        liquidity = self._state.total_liquidity

        borrow_rate = self._strategy.calculate_borrow_rate(borrows, liquidity)
        supply_rate = self._strategy.calculate_supply_rate(
            borrow_rate, borrows, liquidity, self._state.reserve_factor
        )
        self._state.borrow_rate = borrow_rate
        self._state.supply_rate = supply_rate

        self._env.emit(
            InterestRatesUpdated(
                borrow_rate=borrow_rate,
                supply_rate=supply_rate,
                utilization_rate=self._strategy.calculate_utilization_rate(borrows, liquidity),
                timestamp=self._now(),
            )
        )

    def _sync_vault_assets(self) -> None:
        total = add(self._state.total_liquidity, self._state.total_borrows)
        with self._env.as_caller(self.address):
            self._vault.update_total_assets(total)

    # ------------------------------------------------------------------
    # Token movements
    # ------------------------------------------------------------------

    def _pull(self, owner: str, amount: int) -> None:
        with self._env.as_caller(self.address):
            safe_transfer_from(self._base_token, owner, self.address, amount)

    def _push(self, to: str, amount: int) -> None:
        with self._env.as_caller(self.address):
            safe_transfer(self._base_token, to, amount)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def get_borrow_position(self, user: str) -> BorrowPosition | None:
        return self._state.positions.get(user)

    def get_user_debt(self, user: str) -> int:
        """Outstanding debt including interest pending since the last interaction."""
        position = self._state.positions.get(user)
        if position is None:
            return 0
        pending = accrued_interest(
            position.principal,
            self._state.borrow_rate,
            self._now() - position.last_update,
        )
        return position.total_debt + pending

    def get_health_factor(self, user: str) -> int:
        return self._collateral.calculate_health_factor(user, self.get_user_debt(user))

    def get_total_borrows(self) -> int:
        return self._state.total_borrows

    def get_total_liquidity(self) -> int:
        return self._state.total_liquidity

    def get_borrow_rate(self) -> int:
        return self._state.borrow_rate

    def get_supply_rate(self) -> int:
        return self._state.supply_rate

    def get_utilization_rate(self) -> int:
        return self._strategy.calculate_utilization_rate(
            self._state.total_borrows, self._state.total_liquidity
        )

    def get_reserve_factor(self) -> int:
        return self._state.reserve_factor

    def get_total_reserves(self) -> int:
        return self._state.total_reserves

    def is_paused(self) -> bool:
        return self._state.paused

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    @atomic
    def pause(self) -> None:
        self._only_admin()
        self._state.paused = True
        logger.warning("Lending pool %s paused by %s", self.address, self._env.caller)
        self._env.emit(Paused(paused_by=self._env.caller, timestamp=self._now()))

    @atomic
    def unpause(self) -> None:
        self._only_admin()
        self._state.paused = False
        logger.info("Lending pool %s unpaused by %s", self.address, self._env.caller)
        self._env.emit(Unpaused(unpaused_by=self._env.caller, timestamp=self._now()))

    @atomic
    def set_reserve_factor(self, new_factor: int) -> None:
        self._only_admin()
        if check_uint(new_factor, "new_factor") > SCALE:
            raise InvalidConfiguration(f"reserve factor above {SCALE}: {new_factor}")
        old_factor = self._state.reserve_factor
        self._state.reserve_factor = new_factor
        self._env.emit(
            ReserveFactorUpdated(
                old_factor=old_factor,
                new_factor=new_factor,
                updated_by=self._env.caller,
                timestamp=self._now(),
            )
        )
        self._update_interest_rates()

    def _ensure_not_paused(self) -> None:
        if self._state.paused:
            raise ContractPaused("lending pool is paused")
