"""
Collaborator Protocol Interfaces - Decoupling the ledger from concrete services.

The staking ledger never imports the token, vault or treasury classes it
talks to. It depends on these protocols instead, which enables:
- Substituting external services (or test doubles) without subclassing
- Interface segregation (the ledger only sees the methods it calls)
- Optional transactional rollback for collaborators that can snapshot

The acting identity is always passed explicitly as the first argument, the
way a contract call carries ``msg.sender``.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class TokenLedger(Protocol):
    """
    Protocol for a fungible token balance service.

    Every state-changing call fails with TransferFailedError when the caller
    lacks balance or allowance.
    """

    address: str

    def balance_of(self, account: str) -> int:
        """Return the balance held by ``account``."""
        ...

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """Move ``amount`` from ``sender`` to ``recipient``."""
        ...

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """Allow ``spender`` to move up to ``amount`` of ``owner``'s tokens."""
        ...

    def transfer_from(self, spender: str, from_addr: str, to_addr: str, amount: int) -> bool:
        """Move ``amount`` from ``from_addr`` to ``to_addr`` using ``spender``'s allowance."""
        ...


@runtime_checkable
class RewardSource(Protocol):
    """
    Protocol for the vault that holds the reward-token balance.

    ``transfer_reward`` is authorization-gated: only registered distributors
    may pull rewards out of the vault.
    """

    address: str
    token: TokenLedger

    def transfer_reward(self, caller: str, to: str, amount: int) -> bool:
        """Pay ``amount`` reward tokens to ``to`` on behalf of ``caller``."""
        ...

    def available_rewards(self) -> int:
        """Return the reward balance currently held by the vault."""
        ...


@runtime_checkable
class FeeSink(Protocol):
    """Protocol for the treasury that receives the fee portion of payouts."""

    address: str

    def deposit(self, depositor: str, amount: int, token: TokenLedger | None = None) -> bool:
        """Account for ``amount`` fee tokens delivered by ``depositor``."""
        ...


@runtime_checkable
class Snapshottable(Protocol):
    """
    Protocol for collaborators whose state can be captured and restored.

    The ledger snapshots every collaborator implementing this protocol at the
    start of an entry point and restores it if the entry point fails.
    """

    def snapshot(self) -> dict[str, Any]:
        """Return a deep copy of the mutable state."""
        ...

    def restore(self, state: dict[str, Any]) -> None:
        """Replace the mutable state with a snapshot taken earlier."""
        ...


__all__ = [
    "TokenLedger",
    "RewardSource",
    "FeeSink",
    "Snapshottable",
]
