import pytest

from stakeledger.core.contracts.erc20 import ERC20Token
from stakeledger.core.defi.reward_vault import RewardVault
from stakeledger.staking.fees import NO_FEE, STANDARD_FEE
from stakeledger.staking.ledger import StakingLedger
from stakeledger.treasury.fee_treasury import FeeTreasury

ADMIN = "0xadmin"
ALICE = "0xalice"
BOB = "0xbob"
START = 1_700_000_000
YEAR = 365 * 24 * 3600
VAULT_FUNDING = 1_000_000


class ManualClock:
    def __init__(self, start_time: int):
        self.current_time = start_time

    def now(self) -> int:
        return self.current_time

    def advance(self, seconds: int):
        self.current_time += seconds


@pytest.fixture
def clock():
    return ManualClock(start_time=START)


@pytest.fixture
def stake_token():
    return ERC20Token(name="Stake Token", symbol="STK", owner=ADMIN, address="0xstake")


@pytest.fixture
def reward_token():
    return ERC20Token(name="Reward Token", symbol="RWD", owner=ADMIN, address="0xreward")


@pytest.fixture
def vault(reward_token):
    vault = RewardVault(token=reward_token, owner=ADMIN, address="0xvault")
    reward_token.mint(ADMIN, ADMIN, VAULT_FUNDING)
    reward_token.approve(ADMIN, vault.address, VAULT_FUNDING)
    vault.fund(ADMIN, VAULT_FUNDING)
    return vault


@pytest.fixture
def treasury(stake_token):
    return FeeTreasury(token=stake_token, owner=ADMIN, address="0xtreasury")


@pytest.fixture
def make_ledger(clock, stake_token, vault, treasury):
    """Factory for ledgers wired to the shared token, vault and treasury."""

    def _make(fee_policy=STANDARD_FEE, rate=10, **overrides):
        kwargs = dict(
            owner=ADMIN,
            token=stake_token,
            reward_source=vault,
            fee_sink=treasury,
            fee_policy=fee_policy,
            rate=rate,
            seconds_per_year=YEAR,
            time_provider=clock.now,
            address="0xledger",
        )
        kwargs.update(overrides)
        ledger = StakingLedger(**kwargs)
        if ledger.reward_source is not None:
            ledger.reward_source.add_distributor(ADMIN, ledger.address)
        return ledger

    return _make


@pytest.fixture
def ledger(make_ledger):
    """Fee-charging ledger (2%) at 10% per year."""
    return make_ledger()


@pytest.fixture
def no_fee_ledger(make_ledger):
    return make_ledger(fee_policy=NO_FEE)


@pytest.fixture
def stake_for(stake_token):
    """Mint, approve and stake in one call; returns the new position index."""

    def _stake(ledger, account, amount):
        stake_token.mint(ADMIN, account, amount)
        stake_token.approve(account, ledger.address, amount)
        return ledger.stake(account, amount)

    return _stake
