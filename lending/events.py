"""Domain events: the audit log of every committed state transition."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Iterator, TypeVar

E = TypeVar("E", bound="Event")


@dataclass(frozen=True)
class Event:
    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.name, **asdict(self)}


# ---------------------------------------------------------------------------
# Pool liquidity
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Deposited(Event):
    user: str
    amount: int
    shares: int
    timestamp: int


@dataclass(frozen=True)
class Withdrawn(Event):
    user: str
    amount: int
    shares: int
    timestamp: int


# ---------------------------------------------------------------------------
# Borrowing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Borrowed(Event):
    borrower: str
    amount: int
    collateral_asset: str
    borrow_rate: int
    timestamp: int


@dataclass(frozen=True)
class Repaid(Event):
    borrower: str
    amount: int
    interest: int
    timestamp: int


@dataclass(frozen=True)
class InterestAccrued(Event):
    user: str
    interest_amount: int
    total_borrows: int
    timestamp: int


@dataclass(frozen=True)
class InterestRatesUpdated(Event):
    borrow_rate: int
    supply_rate: int
    utilization_rate: int
    timestamp: int


# ---------------------------------------------------------------------------
# Collateral
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CollateralDeposited(Event):
    user: str
    asset: str
    amount: int
    timestamp: int


@dataclass(frozen=True)
class CollateralWithdrawn(Event):
    user: str
    asset: str
    amount: int
    timestamp: int


@dataclass(frozen=True)
class CollateralSeized(Event):
    borrower: str
    recipient: str
    asset: str
    amount: int
    timestamp: int


@dataclass(frozen=True)
class Liquidated(Event):
    borrower: str
    liquidator: str
    collateral_asset: str
    debt_covered: int
    collateral_seized: int
    liquidation_bonus: int
    timestamp: int


# ---------------------------------------------------------------------------
# Configuration / admin
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CollateralAdded(Event):
    asset: str
    ltv: int
    liquidation_threshold: int
    liquidation_bonus: int
    added_by: str
    timestamp: int


@dataclass(frozen=True)
class CollateralUpdated(Event):
    asset: str
    ltv: int
    liquidation_threshold: int
    liquidation_bonus: int
    updated_by: str
    timestamp: int


@dataclass(frozen=True)
class CollateralStatusUpdated(Event):
    asset: str
    is_enabled: bool
    updated_by: str
    timestamp: int


@dataclass(frozen=True)
class InterestRateParamsUpdated(Event):
    base_rate: int
    optimal_utilization: int
    slope1: int
    slope2: int
    updated_by: str
    timestamp: int


@dataclass(frozen=True)
class LiquidationParamsUpdated(Event):
    max_liquidation_close_factor: int
    liquidation_threshold: int
    updated_by: str
    timestamp: int


@dataclass(frozen=True)
class ReserveFactorUpdated(Event):
    old_factor: int
    new_factor: int
    updated_by: str
    timestamp: int


@dataclass(frozen=True)
class Paused(Event):
    paused_by: str
    timestamp: int


@dataclass(frozen=True)
class Unpaused(Event):
    unpaused_by: str
    timestamp: int


@dataclass(frozen=True)
class PriceUpdated(Event):
    asset: str
    price: int
    timestamp: int


@dataclass(frozen=True)
class PriceFeedStatusChanged(Event):
    asset: str
    is_active: bool
    timestamp: int


@dataclass(frozen=True)
class MaxStalenessUpdated(Event):
    max_staleness: int
    timestamp: int


# ---------------------------------------------------------------------------
# Log
# ---------------------------------------------------------------------------


class EventLog:
    """Append-only sequence of committed events."""

    def __init__(self) -> None:
        self._events: list[Event] = []

    def append(self, event: Event) -> None:
        self._events.append(event)

    def of_type(self, kind: type[E]) -> list[E]:
        return [e for e in self._events if isinstance(e, kind)]

    def last(self, kind: type[E] | None = None) -> E | Event | None:
        for event in reversed(self._events):
            if kind is None or isinstance(event, kind):
                return event
        return None

    def __iter__(self) -> Iterator[Event]:
        return iter(self._events)

    def __len__(self) -> int:
        return len(self._events)
