"""
Tests for the in-process ERC20 token ledger used for principal and rewards.
"""
import pytest

from stakeledger.core.contracts.erc20 import ERC20Token, ZERO_ADDRESS
from stakeledger.core.ledger_exceptions import NotAuthorizedError, TransferFailedError
from stakeledger.core.safe_math import MAX_UINT256

OWNER = "0xOwner"


@pytest.fixture
def token():
    token = ERC20Token(name="Stake Token", symbol="STK", owner=OWNER, address="0xToken")
    token.mint(OWNER, "0xAlice", 1000)
    return token


class TestERC20Basics:
    def test_addresses_are_normalized(self, token):
        assert token.address == "0xtoken"
        assert token.owner == "0xowner"
        assert token.balance_of("0xALICE") == 1000

    def test_derived_address_when_omitted(self):
        token = ERC20Token(name="Reward", symbol="RWD", owner=OWNER)
        assert token.address.startswith("0x")
        assert len(token.address) == 42

    def test_transfer_moves_balance_and_records_event(self, token):
        token.transfer("0xAlice", "0xBob", 400)

        assert token.balance_of("0xalice") == 600
        assert token.balance_of("0xbob") == 400
        last = token.events[-1]
        assert last.event_type == "Transfer"
        assert (last.from_address, last.to_address, last.value) == ("0xalice", "0xbob", 400)

    def test_transfer_exceeding_balance_fails(self, token):
        with pytest.raises(TransferFailedError):
            token.transfer("0xAlice", "0xBob", 1001)
        assert token.balance_of("0xalice") == 1000

    def test_transfer_to_zero_address_fails(self, token):
        with pytest.raises(TransferFailedError):
            token.transfer("0xAlice", ZERO_ADDRESS, 1)


class TestAllowances:
    def test_transfer_from_consumes_allowance(self, token):
        token.approve("0xAlice", "0xLedger", 500)
        token.transfer_from("0xLedger", "0xAlice", "0xLedger", 300)

        assert token.allowance("0xalice", "0xledger") == 200
        assert token.balance_of("0xledger") == 300

    def test_transfer_from_without_allowance_fails(self, token):
        with pytest.raises(TransferFailedError) as exc_info:
            token.transfer_from("0xLedger", "0xAlice", "0xLedger", 1)
        assert exc_info.value.kind == "TransferFailed"

    def test_unlimited_allowance_is_not_decremented(self, token):
        token.approve("0xAlice", "0xLedger", MAX_UINT256)
        token.transfer_from("0xLedger", "0xAlice", "0xBob", 100)
        assert token.allowance("0xAlice", "0xLedger") == MAX_UINT256


class TestMintingAndSnapshots:
    def test_only_owner_can_mint(self, token):
        with pytest.raises(NotAuthorizedError):
            token.mint("0xAlice", "0xAlice", 1)
        assert token.total_supply == 1000

    def test_restore_reverts_balances_and_events(self, token):
        state = token.snapshot()
        token.approve("0xAlice", "0xBob", 10)
        token.transfer("0xAlice", "0xBob", 250)
        token.mint(OWNER, "0xCarol", 5)

        token.restore(state)

        assert token.balance_of("0xalice") == 1000
        assert token.balance_of("0xbob") == 0
        assert token.allowance("0xalice", "0xbob") == 0
        assert token.total_supply == 1000
        assert len(token.events) == 1

    def test_restore_truncates_events_in_place(self, token):
        events = token.events
        first = events[0]
        state = token.snapshot()
        token.transfer("0xAlice", "0xBob", 1)
        token.transfer("0xAlice", "0xBob", 2)

        token.restore(state)

        assert token.events is events
        assert token.events == [first]

    def test_to_dict(self, token):
        data = token.to_dict()
        assert data["symbol"] == "STK"
        assert data["balances"] == {"0xalice": 1000}
