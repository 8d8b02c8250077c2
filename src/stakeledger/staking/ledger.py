"""
Multi-position Staking Ledger.

Accounts stake principal into any number of positions, each earning linear
simple interest at the rate in force when it was opened. Rewards accrue
lazily into a per-account reward debt and are paid from a separate reward
source; withdrawals return principal from the ledger's own custody. Both
payouts can be charged a fee that goes to a fee sink.

Every state-mutating entry point:
1. checks authorization (admin operations only)
2. acquires the whole-ledger reentrancy guard and snapshots the touched state
3. flushes the caller's accrual (account operations only)
4. applies its own effects
5. calls external collaborators last
and rolls everything back if any step raises.

Position indices are not stable across withdrawals; see
``stakeledger.staking.positions``.
"""

from __future__ import annotations

import hashlib
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator

from ..core.collaborator_interfaces import FeeSink, RewardSource, TokenLedger
from ..core.config import Config
from ..core.ledger_exceptions import NotAuthorizedError, ZeroAmountError
from ..core.safe_math import checked_add, require_uint
from .accrual import AccrualEngine
from .fees import FeePolicy, FeeSplit
from .guard import ReentrancyGuard, transactional
from .payout import PayoutCoordinator
from .positions import AccountState, PositionLedger, StakePosition

logger = logging.getLogger(__name__)


@dataclass
class LedgerEvent:
    """Notification recorded by a successful entry point."""

    event_type: str
    account: str
    amount: int = 0
    index: int | None = None
    timestamp: int = 0
    data: dict[str, Any] = field(default_factory=dict)


class _AccountScope:
    """Rollback participant for the ledger, limited to the accounts one entry point touches."""

    def __init__(self, ledger: StakingLedger, accounts: tuple[str, ...]):
        self.ledger = ledger
        self.accounts = accounts

    def snapshot(self) -> dict[str, Any]:
        return self.ledger.snapshot(self.accounts)

    def restore(self, state: dict[str, Any]) -> None:
        self.ledger.restore(state)


class StakingLedger:
    def __init__(
        self,
        owner: str,
        token: TokenLedger,
        reward_source: RewardSource | None = None,
        fee_sink: FeeSink | None = None,
        fee_policy: FeePolicy | None = None,
        rate: int | None = None,
        seconds_per_year: int | None = None,
        time_provider: Callable[[], int] | None = None,
        address: str | None = None,
        accrual_engine: AccrualEngine | None = None,
    ):
        """
        Args:
            owner: Privileged identity allowed to call admin operations
            token: Token ledger holding staked principal
            reward_source: Vault rewards are paid from
            fee_sink: Treasury receiving payout fees
            fee_policy: Fee applied to claims and withdrawals
            rate: Initial rate in percent per year
            seconds_per_year: Accrual year length
            time_provider: Returns the current time as integer seconds
            address: Ledger address in the token ledger (derived when omitted)
            accrual_engine: Override the accrual engine
        """
        if not owner:
            raise ValueError("Ledger owner cannot be empty.")

        self.owner = owner.lower()
        self.token = token
        self.reward_source = reward_source
        self.fee_sink = fee_sink
        self.fee_policy = fee_policy or FeePolicy.from_config()

        initial_rate = Config.DEFAULT_RATE if rate is None else rate
        self.current_rate = require_uint(initial_rate, "rate")
        self.total_rewards_paid = 0

        if not address:
            addr_hash = hashlib.sha3_256(f"staking:{token.address}:{time.time()}".encode()).digest()
            address = f"0x{addr_hash[-20:].hex()}"
        self.address = address.lower()

        self.positions = PositionLedger()
        self.accrual = accrual_engine or AccrualEngine(
            seconds_per_year=seconds_per_year or Config.SECONDS_PER_YEAR
        )
        self.payout = PayoutCoordinator(self.positions, self.fee_policy)
        self.events: list[LedgerEvent] = []

        self._guard = ReentrancyGuard(name=f"ledger:{self.address[:10]}")
        self._time_provider = time_provider or (lambda: int(time.time()))

        logger.info(
            "StakingLedger initialized",
            extra={
                "event": "staking.initialized",
                "ledger": self.address[:10],
                "rate": self.current_rate,
                "fee_percent": self.fee_policy.fee_percent,
            },
        )

    # ==================== Depositor Entry Points ====================

    def stake(self, caller: str, amount: int) -> int:
        """
        Open a new position for ``caller``.

        The caller must have approved the ledger for ``amount`` on the token.

        Returns:
            Index of the new position
        """
        with self._transaction("stake", caller):
            now = self._now()
            self.accrual.flush(self.positions.account(caller), now)

            index = self.positions.open_position(caller, amount, now, self.current_rate)
            self._emit("StakeOpened", caller, amount, index, now, rate=self.current_rate)

            self.token.transfer_from(self.address, caller, self.address, amount)

        logger.info(
            "Stake opened",
            extra={
                "event": "staking.stake",
                "account": caller[:10],
                "amount": amount,
                "index": index,
                "rate": self.current_rate,
            },
        )
        return index

    def claim_reward(self, caller: str) -> FeeSplit:
        """
        Pay out the caller's entire reward debt, net of fee.

        Returns:
            The gross/fee/net split that was paid
        """
        with self._transaction("claim_reward", caller):
            now = self._now()
            self.accrual.flush(self.positions.account(caller), now)

            reward_source = self.reward_source
            fee_sink = self.fee_sink
            split = self.payout.settle_claim(caller, reward_source, fee_sink)
            self.total_rewards_paid = checked_add(self.total_rewards_paid, split.net)
            self._emit("RewardClaimed", caller, split.net, None, now, fee=split.fee)

            self.payout.disburse_reward(self.address, caller, split, reward_source, fee_sink)

        logger.info(
            "Reward claimed",
            extra={
                "event": "staking.claim",
                "account": caller[:10],
                "gross": split.gross,
                "fee": split.fee,
                "net": split.net,
            },
        )
        return split

    def withdraw_stake(self, caller: str, index: int) -> FeeSplit:
        """
        Close the position at ``index`` and return its principal, net of fee.

        The last position of the caller moves into ``index``; re-fetch the
        position list before withdrawing again.

        Returns:
            The gross/fee/net split that was paid
        """
        with self._transaction("withdraw_stake", caller):
            now = self._now()
            self.accrual.flush(self.positions.account(caller), now)

            fee_sink = self.fee_sink
            split = self.payout.settle_withdrawal(caller, index, fee_sink)
            self._emit("StakeWithdrawn", caller, split.net, index, now, fee=split.fee)

            self.payout.disburse_principal(self.address, caller, split, self.token, fee_sink)

        logger.info(
            "Stake withdrawn",
            extra={
                "event": "staking.withdraw",
                "account": caller[:10],
                "index": index,
                "gross": split.gross,
                "fee": split.fee,
                "net": split.net,
            },
        )
        return split

    # ==================== Views ====================

    def get_total_rewards_paid(self) -> int:
        return self.total_rewards_paid

    def get_participants(self) -> list[str]:
        """Every account that ever held principal, in order of first stake."""
        return list(self.positions.participants)

    def get_positions(self, account: str) -> tuple[StakePosition, ...]:
        """Current positions of ``account``; indices are valid until the next withdrawal."""
        return self.positions.positions_of(account)

    def get_account(self, account: str) -> AccountState:
        state = self.positions.peek(account)
        if state is None:
            return AccountState()
        return AccountState(
            positions=list(state.positions),
            total_principal=state.total_principal,
            reward_debt=state.reward_debt,
            last_flushed_at=state.last_flushed_at,
        )

    def get_total_staked(self) -> int:
        return self.positions.total_staked

    def get_current_rate(self) -> int:
        return self.current_rate

    def get_pending_reward(self, account: str) -> int:
        """Reward debt plus accrual since the last flush, without flushing."""
        state = self.positions.peek(account)
        if state is None:
            return 0
        return checked_add(state.reward_debt, self.accrual.pending(state, self._now()))

    # ==================== Admin Surface ====================

    def set_rate(self, caller: str, new_rate: int) -> None:
        """
        Change the rate for positions opened from now on.

        Ownership and argument checks run before the reentrancy guard, so a
        non-owner calling while another entry point is in flight gets
        NotAuthorizedError rather than ReentrancyBlockedError.
        """
        self._require_owner(caller)
        require_uint(new_rate, "rate")
        with self._transaction("set_rate"):
            old_rate = self.current_rate
            self.current_rate = new_rate
            self._emit("RateChanged", caller, new_rate, None, self._now(), old_rate=old_rate)

        logger.info(
            "Reward rate changed",
            extra={"event": "staking.admin.set_rate", "old_rate": old_rate, "new_rate": new_rate},
        )

    def set_reward_source(self, caller: str, reward_source: RewardSource) -> None:
        """
        Point reward payouts at ``reward_source``.

        Owner-only. As with ``set_rate``, the owner check precedes the guard.
        """
        self._require_owner(caller)
        if reward_source is None:
            raise ValueError("Reward source cannot be None.")
        with self._transaction("set_reward_source"):
            self.reward_source = reward_source
            self._emit(
                "RewardSourceChanged", caller, 0, None, self._now(), address=reward_source.address
            )

        logger.info(
            "Reward source changed",
            extra={
                "event": "staking.admin.set_reward_source",
                "reward_source": reward_source.address[:10],
            },
        )

    def set_fee_sink(self, caller: str, fee_sink: FeeSink) -> None:
        """
        Send payout fees to ``fee_sink``.

        Owner-only. As with ``set_rate``, the owner check precedes the guard.
        """
        self._require_owner(caller)
        if fee_sink is None:
            raise ValueError("Fee sink cannot be None.")
        with self._transaction("set_fee_sink"):
            self.fee_sink = fee_sink
            self._emit("FeeSinkChanged", caller, 0, None, self._now(), address=fee_sink.address)

        logger.info(
            "Fee sink changed",
            extra={"event": "staking.admin.set_fee_sink", "fee_sink": fee_sink.address[:10]},
        )

    def emergency_sweep(self, caller: str, amount: int) -> None:
        """
        Transfer ``amount`` of custodied principal tokens to the owner.

        Bypasses all accounting: account principal totals are left as they
        are even though custody no longer covers them.

        The owner and amount checks precede the guard, as in ``set_rate``.
        """
        self._require_owner(caller)
        require_uint(amount, "amount")
        if amount == 0:
            raise ZeroAmountError("Cannot sweep a zero amount")
        with self._transaction("emergency_sweep"):
            self._emit("EmergencySweep", caller, amount, None, self._now())
            self.token.transfer(self.address, self.owner, amount)

        logger.warning(
            "Emergency sweep executed",
            extra={
                "event": "staking.admin.emergency_sweep",
                "amount": amount,
                "total_staked": self.positions.total_staked,
                "custody": self.token.balance_of(self.address),
            },
        )

    # ==================== Snapshots & Serialization ====================

    def snapshot(self, accounts: Iterable[str] | None = None) -> dict[str, Any]:
        """
        Capture ledger state for ``restore``.

        Args:
            accounts: Limit the copied account state to these accounts.
                Every account is copied when omitted.
        """
        return {
            "positions": self.positions.snapshot(accounts),
            "current_rate": self.current_rate,
            "total_rewards_paid": self.total_rewards_paid,
            "reward_source": self.reward_source,
            "fee_sink": self.fee_sink,
            "event_count": len(self.events),
        }

    def restore(self, state: dict[str, Any]) -> None:
        self.positions.restore(state["positions"])
        self.current_rate = state["current_rate"]
        self.total_rewards_paid = state["total_rewards_paid"]
        self.reward_source = state["reward_source"]
        self.fee_sink = state["fee_sink"]
        del self.events[state["event_count"]:]

    def to_dict(self) -> dict[str, Any]:
        """Serialize the persisted ledger layout."""
        return {
            "address": self.address,
            "owner": self.owner,
            "current_rate": self.current_rate,
            "fee_percent": self.fee_policy.fee_percent,
            "total_rewards_paid": self.total_rewards_paid,
            "total_staked": self.positions.total_staked,
            "participants": self.get_participants(),
            "reward_source": self.reward_source.address if self.reward_source else None,
            "fee_sink": self.fee_sink.address if self.fee_sink else None,
            "accounts": {
                address: state.to_dict() for address, state in self.positions.accounts.items()
            },
        }

    # ==================== Helpers ====================

    @contextmanager
    def _transaction(self, entry_point: str, *accounts: str) -> Iterator[None]:
        """Guarded scope rolling back ``accounts``, ledger scalars and every collaborator."""
        participants = [
            _AccountScope(self, accounts),
            self.token,
            self.reward_source,
            self.fee_sink,
        ]
        if self.reward_source is not None:
            participants.append(self.reward_source.token)
        with transactional(self._guard, entry_point, participants):
            yield

    def _require_owner(self, caller: str) -> None:
        if not caller or caller.lower() != self.owner:
            raise NotAuthorizedError(
                "Caller is not the ledger owner",
                details={"caller": caller},
            )

    def _now(self) -> int:
        timestamp = self._time_provider()
        try:
            return int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError("time_provider must return an integer timestamp") from exc

    def _emit(
        self,
        event_type: str,
        account: str,
        amount: int,
        index: int | None,
        timestamp: int,
        **data: Any,
    ) -> None:
        self.events.append(
            LedgerEvent(
                event_type=event_type,
                account=account.lower(),
                amount=amount,
                index=index,
                timestamp=timestamp,
                data=data,
            )
        )
