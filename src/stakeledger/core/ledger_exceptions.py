"""
Staking-ledger exception hierarchy.

Every failure surfaced by the ledger or one of its in-process collaborators
is a LedgerError subclass with a stable ``kind`` string, so callers can
distinguish failures without parsing messages.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class LedgerError(Exception):
    """Base exception for all staking-ledger errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the caller may retry the operation later
    """

    kind = "LedgerError"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "details": dict(self.details),
            "recoverable": self.recoverable,
        }


# ==================== Input Errors ====================


class ZeroAmountError(LedgerError):
    """Raised when a stake, withdrawal, claim or sweep would move zero tokens."""

    kind = "ZeroAmount"


class InvalidIndexError(LedgerError):
    """Raised when a position index is outside the account's position list."""

    kind = "InvalidIndex"

    def __init__(
        self,
        message: str,
        index: Optional[int] = None,
        length: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.index = index
        self.length = length


class ArithmeticOverflowError(LedgerError):
    """Raised when checked fixed-width arithmetic leaves the unsigned range."""

    kind = "ArithmeticOverflow"


# ==================== Payout Errors ====================


class NoRewardError(LedgerError):
    """Raised when a claim finds no accrued reward."""

    kind = "NoReward"


class InsufficientVaultSourceError(LedgerError):
    """Raised when the reward source cannot cover the reward being claimed.

    The reward source may be refilled, so the claim can succeed later.
    """

    kind = "InsufficientVaultSource"

    def __init__(
        self,
        message: str,
        required: int = 0,
        available: int = 0,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)
        self.required = required
        self.available = available


class TransferFailedError(LedgerError):
    """Raised when a token movement performed by a collaborator fails."""

    kind = "TransferFailed"


class CollaboratorNotConfiguredError(TransferFailedError):
    """Raised when a payout needs a reward source or fee sink that is unset."""

    pass


# ==================== Access Errors ====================


class NotAuthorizedError(LedgerError):
    """Raised when the caller lacks the capability required by an operation."""

    kind = "NotAuthorized"


class ReentrancyBlockedError(LedgerError):
    """Raised when an entry point is invoked while another is in flight."""

    kind = "ReentrancyBlocked"


ERROR_KINDS = (
    ZeroAmountError,
    InvalidIndexError,
    NoRewardError,
    InsufficientVaultSourceError,
    NotAuthorizedError,
    ReentrancyBlockedError,
    ArithmeticOverflowError,
    TransferFailedError,
)


__all__ = [
    "LedgerError",
    "ZeroAmountError",
    "InvalidIndexError",
    "ArithmeticOverflowError",
    "NoRewardError",
    "InsufficientVaultSourceError",
    "TransferFailedError",
    "CollaboratorNotConfiguredError",
    "NotAuthorizedError",
    "ReentrancyBlockedError",
    "ERROR_KINDS",
]
