"""In-memory fungible token used for the base asset and collateral assets."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .errors import InsufficientBalance, TransferFailed
from .fixed_point import add, check_uint
from .interfaces.token import FungibleToken as FungibleTokenProtocol
from .runtime import Contract, Environment, atomic

logger = logging.getLogger(__name__)


@dataclass
class _TokenState:
    total_supply: int = 0
    balances: dict[str, int] = field(default_factory=dict)
    allowances: dict[tuple[str, str], int] = field(default_factory=dict)


class FungibleToken(Contract):
    """Balance/allowance token. Failed transfers return ``False`` rather than raise."""

    def __init__(
        self,
        env: Environment,
        address: str,
        name: str,
        symbol: str,
        decimals: int = 18,
    ) -> None:
        super().__init__(env, address)
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self._state = _TokenState()

    def total_supply(self) -> int:
        return self._state.total_supply

    def balance_of(self, owner: str) -> int:
        return self._state.balances.get(owner, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._state.allowances.get((owner, spender), 0)

    @atomic
    def transfer(self, to: str, amount: int) -> bool:
        return self._move(self._env.caller, to, check_uint(amount, "amount"))

    @atomic
    def approve(self, spender: str, amount: int) -> bool:
        self._state.allowances[(self._env.caller, spender)] = check_uint(amount, "amount")
        return True

    @atomic
    def transfer_from(self, owner: str, to: str, amount: int) -> bool:
        check_uint(amount, "amount")
        spender = self._env.caller
        allowed = self.allowance(owner, spender)
        if allowed < amount or self.balance_of(owner) < amount:
            logger.debug(
                "%s: transfer_from %s -> %s of %d refused (allowance %d)",
                self.symbol,
                owner,
                to,
                amount,
                allowed,
            )
            return False
        self._state.allowances[(owner, spender)] = allowed - amount
        return self._move(owner, to, amount)

    @atomic
    def mint(self, to: str, amount: int) -> None:
        self._only_admin()
        check_uint(amount, "amount")
        self._state.total_supply = add(self._state.total_supply, amount)
        self._state.balances[to] = self.balance_of(to) + amount

    @atomic
    def burn(self, owner: str, amount: int) -> None:
        self._only_admin()
        check_uint(amount, "amount")
        balance = self.balance_of(owner)
        if balance < amount:
            raise InsufficientBalance(f"{owner} holds {balance} {self.symbol}")
        self._state.balances[owner] = balance - amount
        self._state.total_supply -= amount

    def _move(self, sender: str, to: str, amount: int) -> bool:
        balance = self.balance_of(sender)
        if balance < amount:
            return False
        self._state.balances[sender] = balance - amount
        self._state.balances[to] = self.balance_of(to) + amount
        return True


def safe_transfer(token: FungibleTokenProtocol, to: str, amount: int) -> None:
    """Transfer from the current caller; a ``False`` result aborts the operation."""
    if not token.transfer(to, amount):
        raise TransferFailed(f"transfer of {amount} to {to} failed")


def safe_transfer_from(
    token: FungibleTokenProtocol, owner: str, to: str, amount: int
) -> None:
    """Pull ``amount`` from ``owner``; a ``False`` result aborts the operation."""
    if not token.transfer_from(owner, to, amount):
        raise TransferFailed(f"transfer of {amount} from {owner} to {to} failed")
