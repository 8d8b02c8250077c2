"""
Position Ledger.

Owns every account's open stake positions and their lifecycle:
- Positions are appended by a stake and never modified afterwards
- A withdrawal removes a position by swap-and-remove: the last position
  moves into the freed slot and the list shrinks by one

Index contract: a position index is only valid until the next withdrawal
on the same account. After ``close_position(account, i)`` the position
that was last is now addressable at ``i``; callers must re-fetch the
position list after every withdrawal instead of caching indices.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from ..core.ledger_exceptions import InvalidIndexError, ZeroAmountError
from ..core.safe_math import checked_add, checked_sub, require_uint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StakePosition:
    """One stake deposit with its own locked-in rate and opening time."""

    principal: int
    opened_at: int
    rate_at_open: int  # percent per year, captured when the position opened

    def to_dict(self) -> dict[str, int]:
        return {
            "principal": self.principal,
            "opened_at": self.opened_at,
            "rate_at_open": self.rate_at_open,
        }


@dataclass
class AccountState:
    """
    Per-account staking state.

    ``total_principal`` always equals the sum of the positions' principal.
    ``reward_debt`` is reward accrued but not yet paid. ``last_flushed_at``
    is the clock reading of the most recent accrual flush.
    """

    positions: list[StakePosition] = field(default_factory=list)
    total_principal: int = 0
    reward_debt: int = 0
    last_flushed_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "positions": [p.to_dict() for p in self.positions],
            "total_principal": self.total_principal,
            "reward_debt": self.reward_debt,
            "last_flushed_at": self.last_flushed_at,
        }


class PositionLedger:
    def __init__(self) -> None:
        self.accounts: dict[str, AccountState] = {}
        # Insertion-ordered set; membership is historical and never pruned
        self.participants: dict[str, None] = {}
        self.total_staked = 0

    def account(self, address: str) -> AccountState:
        """Return the state for ``address``, creating an empty one if needed."""
        key = address.lower()
        state = self.accounts.get(key)
        if state is None:
            state = AccountState()
            self.accounts[key] = state
        return state

    def peek(self, address: str) -> AccountState | None:
        """Return the state for ``address`` without creating it."""
        return self.accounts.get(address.lower())

    def positions_of(self, address: str) -> tuple[StakePosition, ...]:
        state = self.peek(address)
        return tuple(state.positions) if state else ()

    def position_at(self, address: str, index: int) -> StakePosition:
        """Return the position at ``index``, raising InvalidIndexError when out of bounds."""
        state = self.peek(address)
        length = len(state.positions) if state else 0
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < length:
            raise InvalidIndexError(
                f"Position index {index} out of bounds for {length} positions",
                index=index if isinstance(index, int) else None,
                length=length,
                details={"account": address.lower()},
            )
        return state.positions[index]

    def open_position(self, address: str, principal: int, now: int, rate: int) -> int:
        """
        Append a new position and return its index.

        Args:
            address: Owning account
            principal: Amount staked, must be positive
            now: Opening timestamp
            rate: Current global rate, locked into the position

        Returns:
            Index of the new position (last slot of the account's list)
        """
        require_uint(principal, "principal")
        if principal == 0:
            raise ZeroAmountError("Cannot stake a zero amount")

        state = self.account(address)
        state.positions.append(StakePosition(principal=principal, opened_at=now, rate_at_open=rate))
        state.total_principal = checked_add(state.total_principal, principal)
        self.total_staked = checked_add(self.total_staked, principal)

        key = address.lower()
        if key not in self.participants:
            self.participants[key] = None
            logger.debug("New participant %s registered", key[:10])

        return len(state.positions) - 1

    def close_position(self, address: str, index: int) -> int:
        """
        Remove the position at ``index`` by swap-and-remove.

        Returns:
            The removed position's gross principal
        """
        position = self.position_at(address, index)
        if position.principal == 0:
            raise ZeroAmountError(
                f"Position {index} has no principal",
                details={"account": address.lower(), "index": index},
            )

        state = self.account(address)
        last = state.positions.pop()
        if index < len(state.positions):
            state.positions[index] = last

        state.total_principal = checked_sub(state.total_principal, position.principal)
        self.total_staked = checked_sub(self.total_staked, position.principal)
        return position.principal

    def snapshot(self, accounts: Iterable[str] | None = None) -> dict[str, Any]:
        """
        Capture state for a later ``restore``.

        With ``accounts``, only those accounts, their participant membership
        and the staked total are captured. Restoring such a snapshot assumes
        no other account changed in between.
        """
        if accounts is None:
            return {
                "accounts": copy.deepcopy(self.accounts),
                "participants": dict(self.participants),
                "total_staked": self.total_staked,
            }

        keys = [address.lower() for address in accounts]
        return {
            "scoped": {key: copy.deepcopy(self.accounts.get(key)) for key in keys},
            "members": [key for key in keys if key in self.participants],
            "total_staked": self.total_staked,
        }

    def restore(self, state: dict[str, Any]) -> None:
        self.total_staked = state["total_staked"]
        if "scoped" not in state:
            self.accounts = copy.deepcopy(state["accounts"])
            self.participants = dict(state["participants"])
            return

        for key, saved in state["scoped"].items():
            if saved is None:
                self.accounts.pop(key, None)
            else:
                self.accounts[key] = copy.deepcopy(saved)
            if key not in state["members"]:
                self.participants.pop(key, None)
