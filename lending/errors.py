"""Failure kinds raised by the lending engine.

Every kind carries a stable integer ``code`` so integrators can branch on it
without string matching. Kinds are grouped by the phase that raises them.
"""
from __future__ import annotations


class LendingError(Exception):
    """Base class for every lending failure."""

    code: int = 0

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


# ---------------------------------------------------------------------------
# Deposit / withdraw
# ---------------------------------------------------------------------------


class DepositError(LendingError):
    pass


class InsufficientBalance(DepositError):
    code = 1


class InsufficientLiquidity(DepositError):
    code = 4


# ---------------------------------------------------------------------------
# Borrow
# ---------------------------------------------------------------------------


class BorrowError(LendingError):
    pass


class InsufficientCollateral(BorrowError):
    code = 5


class ExceedsBorrowLimit(BorrowError):
    code = 8


class NoBorrowPosition(BorrowError):
    code = 9


class HealthFactorTooLow(BorrowError):
    code = 16


# ---------------------------------------------------------------------------
# Collateral
# ---------------------------------------------------------------------------


class CollateralError(LendingError):
    pass


class UnsupportedCollateral(CollateralError):
    code = 10


class InsufficientCollateralDeposit(CollateralError):
    code = 11


class CannotWithdrawCollateral(CollateralError):
    code = 12


class CollateralDisabled(CollateralError):
    code = 13


# ---------------------------------------------------------------------------
# Liquidation
# ---------------------------------------------------------------------------


class LiquidationError(LendingError):
    pass


class PositionHealthy(LiquidationError):
    code = 15


class ExceedsDebtAmount(LiquidationError):
    code = 17


class InsufficientCollateralForLiquidation(LiquidationError):
    code = 19


# ---------------------------------------------------------------------------
# Rates / oracle / configuration
# ---------------------------------------------------------------------------


class RateOracleError(LendingError):
    pass


class InvalidInterestRateParams(RateOracleError):
    code = 20


class PriceFeedNotAvailable(RateOracleError):
    code = 22


class InvalidPrice(RateOracleError):
    code = 23


class InvalidConfiguration(RateOracleError):
    code = 28


# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------


class AccessError(LendingError):
    pass


class Unauthorized(AccessError):
    code = 25


class ContractPaused(AccessError):
    code = 26


# ---------------------------------------------------------------------------
# Arithmetic / general
# ---------------------------------------------------------------------------


class ArithmeticFault(LendingError):
    pass


class ZeroAmount(ArithmeticFault):
    code = 31


class MathOverflow(ArithmeticFault):
    code = 33


class MathUnderflow(ArithmeticFault):
    code = 34


class DivisionByZero(ArithmeticFault):
    code = 35


class TransferFailed(LendingError):
    """A collaborator token reported a failed transfer."""

    code = 36
