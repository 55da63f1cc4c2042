"""In-process execution host: caller identity, block time, atomic transactions.

Every hosted :class:`Contract` keeps its mutable ledger in ``self._state``.
The outermost :meth:`Environment.transaction` snapshots the state of every
registered contract and restores all of them if the unit of work raises, so a
failed call leaves no partial effect and emits no event.
"""
from __future__ import annotations

import copy
import functools
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

from .errors import InvalidConfiguration, LendingError, Unauthorized
from .events import Event, EventLog

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class Environment:
    """Host for a set of contracts sharing one clock and one event log."""

    def __init__(self, block_time: int = 0) -> None:
        self._block_time = block_time
        self._callers: list[str] = []
        self._contracts: dict[str, Contract] = {}
        self._depth = 0
        self._pending: list[Event] = []
        self.events = EventLog()

    # ------------------------------------------------------------------
    # Caller identity
    # ------------------------------------------------------------------

    @property
    def caller(self) -> str:
        if not self._callers:
            raise Unauthorized("no calling principal")
        return self._callers[-1]

    @contextmanager
    def as_caller(self, address: str) -> Iterator[str]:
        self._callers.append(address)
        try:
            yield address
        finally:
            self._callers.pop()

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    @property
    def block_time(self) -> int:
        return self._block_time

    def set_block_time(self, timestamp: int) -> None:
        if timestamp < self._block_time:
            raise ValueError(
                f"block time cannot move backwards ({timestamp} < {self._block_time})"
            )
        self._block_time = timestamp

    def advance_time(self, seconds: int) -> int:
        self.set_block_time(self._block_time + seconds)
        return self._block_time

    # ------------------------------------------------------------------
    # Contracts
    # ------------------------------------------------------------------

    def register(self, contract: Contract) -> None:
        if contract.address in self._contracts:
            raise InvalidConfiguration(f"address already in use: {contract.address}")
        self._contracts[contract.address] = contract

    def contract(self, address: str) -> Contract:
        return self._contracts[address]

    # ------------------------------------------------------------------
    # Transactions and events
    # ------------------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run the enclosed block all-or-nothing. Nested blocks join the outer one."""
        outermost = self._depth == 0
        snapshots: dict[str, Any] = {}
        if outermost:
            snapshots = {
                address: c._snapshot() for address, c in self._contracts.items()
            }
            self._pending = []
        self._depth += 1
        try:
            yield
        except BaseException as e:
            if outermost:
                for address, snapshot in snapshots.items():
                    self._contracts[address]._restore(snapshot)
                discarded = len(self._pending)
                self._pending = []
                if isinstance(e, LendingError):
                    logger.info(
                        "Transaction reverted (%s, code %s), %d event(s) discarded",
                        type(e).__name__,
                        e.code,
                        discarded,
                    )
                else:
                    logger.warning("Transaction reverted: %r", e)
            raise
        else:
            if outermost:
                pending, self._pending = self._pending, []
                for event in pending:
                    self._commit(event)
        finally:
            self._depth -= 1

    def emit(self, event: Event) -> None:
        if self._depth > 0:
            self._pending.append(event)
        else:
            self._commit(event)

    def _commit(self, event: Event) -> None:
        self.events.append(event)
        logger.info("%s %s", event.name, event.to_dict())


class Contract:
    """A ledger component hosted by an :class:`Environment`.

    The deploying caller becomes the admin.
    """

    def __init__(self, env: Environment, address: str) -> None:
        self._env = env
        self.address = address
        self.admin = env.caller
        self._state: Any = None
        env.register(self)

    @property
    def env(self) -> Environment:
        return self._env

    def _snapshot(self) -> Any:
        return copy.deepcopy(self._state)

    def _restore(self, snapshot: Any) -> None:
        self._state = snapshot

    def _only_admin(self) -> None:
        if self._env.caller != self.admin:
            raise Unauthorized(f"{self._env.caller} is not the admin of {self.address}")

    def _now(self) -> int:
        return self._env.block_time


def atomic(method: F) -> F:
    """Run a contract method inside a transaction of its environment."""

    @functools.wraps(method)
    def wrapper(self: Contract, *args: Any, **kwargs: Any) -> Any:
        with self._env.transaction():
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]
