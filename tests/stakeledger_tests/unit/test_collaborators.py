"""
Tests for the reward vault and fee treasury collaborators.
"""
import pytest

from stakeledger.core.collaborator_interfaces import FeeSink, RewardSource, Snapshottable, TokenLedger
from stakeledger.core.contracts.erc20 import ERC20Token
from stakeledger.core.defi.reward_vault import RewardVault
from stakeledger.core.ledger_exceptions import (
    NotAuthorizedError,
    TransferFailedError,
    ZeroAmountError,
)
from stakeledger.treasury.fee_treasury import FeeTreasury

ADMIN = "0xadmin"


@pytest.fixture
def token():
    return ERC20Token(name="Reward Token", symbol="RWD", owner=ADMIN, address="0xreward")


@pytest.fixture
def funded_vault(token):
    vault = RewardVault(token=token, owner=ADMIN, address="0xvault")
    token.mint(ADMIN, ADMIN, 10_000)
    token.approve(ADMIN, vault.address, 10_000)
    vault.fund(ADMIN, 10_000)
    return vault


class TestInterfaces:
    def test_collaborators_satisfy_protocols(self, token, funded_vault):
        treasury = FeeTreasury(token=token, owner=ADMIN)
        assert isinstance(token, TokenLedger)
        assert isinstance(funded_vault, RewardSource)
        assert isinstance(treasury, FeeSink)
        for obj in (token, funded_vault, treasury):
            assert isinstance(obj, Snapshottable)


class TestRewardVault:
    def test_fund_moves_tokens_into_vault(self, token, funded_vault):
        assert funded_vault.available_rewards() == 10_000
        assert token.balance_of(ADMIN) == 0

    def test_fund_zero_rejected(self, funded_vault):
        with pytest.raises(ZeroAmountError):
            funded_vault.fund(ADMIN, 0)

    def test_only_distributors_can_pay(self, funded_vault):
        with pytest.raises(NotAuthorizedError):
            funded_vault.transfer_reward("0xledger", "0xalice", 10)

        funded_vault.add_distributor(ADMIN, "0xLedger")
        funded_vault.transfer_reward("0xledger", "0xalice", 10)

        assert funded_vault.token.balance_of("0xalice") == 10
        assert funded_vault.total_distributed == 10
        assert funded_vault.available_rewards() == 9_990

    def test_distributor_management_is_owner_only(self, funded_vault):
        with pytest.raises(NotAuthorizedError):
            funded_vault.add_distributor("0xmallory", "0xmallory")

        funded_vault.add_distributor(ADMIN, "0xledger")
        funded_vault.remove_distributor(ADMIN, "0xledger")
        assert not funded_vault.is_distributor("0xledger")

    def test_payout_beyond_balance_fails(self, funded_vault):
        funded_vault.add_distributor(ADMIN, "0xledger")
        with pytest.raises(TransferFailedError):
            funded_vault.transfer_reward("0xledger", "0xalice", 10_001)
        assert funded_vault.total_distributed == 0


class TestFeeTreasury:
    def test_credits_tokens_already_pushed(self, token):
        treasury = FeeTreasury(token=token, owner=ADMIN, address="0xtreasury")
        token.mint(ADMIN, "0xpayer", 50)
        token.transfer("0xpayer", treasury.address, 50)

        treasury.deposit("0xpayer", 50)

        assert treasury.get_balance() == 50
        assert treasury.deposits[-1]["pulled"] == 0

    def test_pulls_shortfall_with_allowance(self, token):
        treasury = FeeTreasury(token=token, owner=ADMIN, address="0xtreasury")
        token.mint(ADMIN, "0xpayer", 100)
        token.transfer("0xpayer", treasury.address, 30)
        token.approve("0xpayer", treasury.address, 20)

        treasury.deposit("0xpayer", 50)

        assert treasury.get_balance(token) == 50
        assert token.balance_of(treasury.address) == 50
        assert treasury.deposits[-1]["pulled"] == 20

    def test_shortfall_without_allowance_fails(self, token):
        treasury = FeeTreasury(token=token, owner=ADMIN, address="0xtreasury")
        token.mint(ADMIN, "0xpayer", 10)

        with pytest.raises(TransferFailedError):
            treasury.deposit("0xpayer", 10)
        assert treasury.get_balance() == 0

    def test_zero_deposit_rejected(self, token):
        treasury = FeeTreasury(token=token, owner=ADMIN)
        with pytest.raises(ZeroAmountError):
            treasury.deposit("0xpayer", 0)

    def test_balances_are_tracked_per_token(self, token):
        other = ERC20Token(name="Stake Token", symbol="STK", owner=ADMIN, address="0xstake")
        treasury = FeeTreasury(token=token, owner=ADMIN, address="0xtreasury")
        other.mint(ADMIN, treasury.address, 7)

        treasury.deposit("0xledger", 7, token=other)

        assert treasury.get_balance(other) == 7
        assert treasury.get_balance() == 0

    def test_restore(self, token):
        treasury = FeeTreasury(token=token, owner=ADMIN, address="0xtreasury")
        state = treasury.snapshot()
        token.mint(ADMIN, treasury.address, 5)
        treasury.deposit("0xledger", 5)

        treasury.restore(state)

        assert treasury.get_balance() == 0
        assert treasury.deposits == []
