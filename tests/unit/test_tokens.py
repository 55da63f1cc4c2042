"""Unit tests for the in-memory fungible token and safe transfer helpers."""
from __future__ import annotations

import pytest

from lending.errors import InsufficientBalance, MathUnderflow, TransferFailed, Unauthorized
from lending.runtime import Environment
from lending.tokens import FungibleToken, safe_transfer, safe_transfer_from


@pytest.fixture()
def token(env: Environment) -> FungibleToken:
    with env.as_caller("admin"):
        token = FungibleToken(env, "USDC", "USD Coin", "USDC", decimals=6)
        token.mint("alice", 1_000)
    return token


class TestFungibleToken:
    def test_mint_tracks_supply(self, token: FungibleToken) -> None:
        assert token.total_supply() == 1_000
        assert token.balance_of("alice") == 1_000
        assert token.decimals == 6

    def test_mint_is_admin_only(self, env: Environment, token: FungibleToken) -> None:
        with env.as_caller("alice"):
            with pytest.raises(Unauthorized):
                token.mint("alice", 1)

    def test_transfer(self, env: Environment, token: FungibleToken) -> None:
        with env.as_caller("alice"):
            assert token.transfer("bob", 400) is True
        assert token.balance_of("alice") == 600
        assert token.balance_of("bob") == 400

    def test_transfer_over_balance_returns_false(
        self, env: Environment, token: FungibleToken
    ) -> None:
        with env.as_caller("alice"):
            assert token.transfer("bob", 1_001) is False
        assert token.balance_of("alice") == 1_000

    def test_transfer_from_consumes_allowance(
        self, env: Environment, token: FungibleToken
    ) -> None:
        with env.as_caller("alice"):
            token.approve("pool", 300)
        with env.as_caller("pool"):
            assert token.transfer_from("alice", "pool", 200) is True
        assert token.allowance("alice", "pool") == 100
        assert token.balance_of("pool") == 200

    def test_transfer_from_without_allowance_returns_false(
        self, env: Environment, token: FungibleToken
    ) -> None:
        with env.as_caller("pool"):
            assert token.transfer_from("alice", "pool", 1) is False
        assert token.balance_of("alice") == 1_000

    def test_burn(self, env: Environment, token: FungibleToken) -> None:
        with env.as_caller("admin"):
            token.burn("alice", 250)
            with pytest.raises(InsufficientBalance):
                token.burn("alice", 10_000)
        assert token.total_supply() == 750

    def test_burn_rejects_negative_amount(self, env: Environment, token: FungibleToken) -> None:
        with env.as_caller("admin"):
            with pytest.raises(MathUnderflow):
                token.burn("alice", -5)
        assert token.balance_of("alice") == 1_000
        assert token.total_supply() == 1_000


class TestSafeTransfer:
    def test_failed_transfer_raises(self, env: Environment, token: FungibleToken) -> None:
        with env.as_caller("bob"):
            with pytest.raises(TransferFailed):
                safe_transfer(token, "alice", 1)

    def test_failed_transfer_from_raises(self, env: Environment, token: FungibleToken) -> None:
        with env.as_caller("pool"):
            with pytest.raises(TransferFailed):
                safe_transfer_from(token, "alice", "pool", 5)

    def test_successful_transfer_from(self, env: Environment, token: FungibleToken) -> None:
        with env.as_caller("alice"):
            token.approve("pool", 5)
        with env.as_caller("pool"):
            safe_transfer_from(token, "alice", "pool", 5)
        assert token.balance_of("pool") == 5
