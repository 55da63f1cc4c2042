"""Share vault: yield-bearing claims on pooled base-asset liquidity.

Shares convert to assets at ``total_assets / total_supply`` (1:1 while either
side is zero). Conversions round down so a round trip never creates value;
``preview_withdraw`` rounds up so a withdrawal never burns too few shares.
Minting, burning and ``total_assets`` updates are reserved for the registered
lending pool.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..errors import InsufficientBalance, Unauthorized
from ..fixed_point import add, check_uint, mul_div, mul_div_up
from ..runtime import Contract, Environment, atomic

logger = logging.getLogger(__name__)


@dataclass
class _VaultState:
    total_supply: int = 0
    total_assets: int = 0
    balances: dict[str, int] = field(default_factory=dict)
    allowances: dict[tuple[str, str], int] = field(default_factory=dict)
    lending_pool: str | None = None


class ShareVault(Contract):
    def __init__(
        self,
        env: Environment,
        asset: str,
        name: str = "Lending Pool Share",
        symbol: str = "lpSHARE",
        decimals: int = 18,
        address: str = "share-vault",
    ) -> None:
        super().__init__(env, address)
        self.asset = asset
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self._state = _VaultState()

    @atomic
    def set_lending_pool(self, pool_address: str) -> None:
        self._only_admin()
        self._state.lending_pool = pool_address
        logger.info("Share vault %s bound to lending pool %s", self.address, pool_address)

    @property
    def lending_pool(self) -> str | None:
        return self._state.lending_pool

    # ------------------------------------------------------------------
    # Share token
    # ------------------------------------------------------------------

    def total_supply(self) -> int:
        return self._state.total_supply

    def balance_of(self, owner: str) -> int:
        return self._state.balances.get(owner, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._state.allowances.get((owner, spender), 0)

    @atomic
    def transfer(self, to: str, amount: int) -> None:
        self._move(self._env.caller, to, check_uint(amount, "amount"))

    @atomic
    def approve(self, spender: str, amount: int) -> None:
        self._state.allowances[(self._env.caller, spender)] = check_uint(amount, "amount")

    @atomic
    def transfer_from(self, owner: str, to: str, amount: int) -> None:
        spender = self._env.caller
        allowed = self.allowance(owner, spender)
        if allowed < check_uint(amount, "amount"):
            raise InsufficientBalance(f"allowance of {spender} over {owner} is {allowed}")
        self._state.allowances[(owner, spender)] = allowed - amount
        self._move(owner, to, amount)

    def _move(self, sender: str, to: str, amount: int) -> None:
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalance(f"{sender} holds {balance} shares")
        self._state.balances[sender] = balance - amount
        self._state.balances[to] = self.balance_of(to) + amount

    # ------------------------------------------------------------------
    # Pool-only accounting
    # ------------------------------------------------------------------

    @atomic
    def mint(self, to: str, amount: int) -> None:
        self._only_lending_pool()
        check_uint(amount, "amount")
        self._state.total_supply = add(self._state.total_supply, amount)
        self._state.balances[to] = self.balance_of(to) + amount

    @atomic
    def burn(self, owner: str, amount: int) -> None:
        self._only_lending_pool()
        balance = self.balance_of(owner)
        if balance < check_uint(amount, "amount"):
            raise InsufficientBalance(f"{owner} holds {balance} shares, cannot burn {amount}")
        self._state.balances[owner] = balance - amount
        self._state.total_supply -= amount

    @atomic
    def update_total_assets(self, new_total: int) -> None:
        self._only_lending_pool()
        self._state.total_assets = check_uint(new_total, "new_total")

    def _only_lending_pool(self) -> None:
        pool = self._state.lending_pool
        if pool is None or self._env.caller != pool:
            raise Unauthorized(f"{self._env.caller} is not the lending pool")

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    def get_total_assets(self) -> int:
        return self._state.total_assets

    def convert_to_shares(self, assets: int) -> int:
        supply, total = self._state.total_supply, self._state.total_assets
        if supply == 0 or total == 0:
            return assets
        return mul_div(assets, supply, total)

    def convert_to_assets(self, shares: int) -> int:
        supply, total = self._state.total_supply, self._state.total_assets
        if supply == 0 or total == 0:
            return shares
        return mul_div(shares, total, supply)

    def preview_deposit(self, assets: int) -> int:
        return self.convert_to_shares(assets)

    def preview_withdraw(self, assets: int) -> int:
        """Shares to burn for ``assets``, rounded up."""
        supply, total = self._state.total_supply, self._state.total_assets
        if supply == 0 or total == 0:
            return assets
        return mul_div_up(assets, supply, total)

    def max_redeem(self, owner: str) -> int:
        return self.balance_of(owner)

    def max_withdraw(self, owner: str) -> int:
        return self.convert_to_assets(self.balance_of(owner))
