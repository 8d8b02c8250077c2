"""
Reward Vault.

Holds the reward-token balance the staking ledger pays claims from. The
vault's balance lives in the reward token's own ledger under the vault's
address; only distributors registered by the vault owner may move it.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from ..collaborator_interfaces import TokenLedger
from ..ledger_exceptions import NotAuthorizedError, ZeroAmountError
from ..safe_math import require_uint

logger = logging.getLogger(__name__)


@dataclass
class RewardVault:
    """
    Reward source with a whitelist of authorized distributors.

    Usage:
        vault = RewardVault(token=reward_token, owner="0xadmin")
        vault.add_distributor("0xadmin", ledger.address)
        vault.fund("0xtreasurer", 1_000_000)
    """

    token: TokenLedger
    owner: str
    address: str = ""

    distributors: set[str] = field(default_factory=set)
    total_distributed: int = 0

    def __post_init__(self) -> None:
        if not self.owner:
            raise ValueError("Vault owner cannot be empty.")
        if not self.address:
            addr_hash = hashlib.sha3_256(
                f"vault:{self.token.address}:{time.time()}".encode()
            ).digest()
            self.address = f"0x{addr_hash[-20:].hex()}"
        self.address = self.address.lower()
        self.owner = self.owner.lower()

    # ==================== Access Control ====================

    def add_distributor(self, caller: str, distributor: str) -> None:
        """Authorize ``distributor`` to pull rewards (owner only)."""
        self._require_owner(caller)
        if not distributor:
            raise ValueError("Distributor address cannot be empty.")
        self.distributors.add(distributor.lower())
        logger.info(
            "Vault distributor added",
            extra={
                "event": "vault.distributor_added",
                "vault": self.address[:10],
                "distributor": distributor[:10],
            }
        )

    def remove_distributor(self, caller: str, distributor: str) -> None:
        """Revoke a distributor (owner only)."""
        self._require_owner(caller)
        self.distributors.discard(distributor.lower())
        logger.info(
            "Vault distributor removed",
            extra={
                "event": "vault.distributor_removed",
                "vault": self.address[:10],
                "distributor": distributor[:10],
            }
        )

    def is_distributor(self, address: str) -> bool:
        return address.lower() in self.distributors

    # ==================== Funding & Payout ====================

    def fund(self, funder: str, amount: int) -> bool:
        """
        Move ``amount`` reward tokens from ``funder`` into the vault.

        The funder must have approved the vault on the reward token.
        """
        require_uint(amount, "amount")
        if amount == 0:
            raise ZeroAmountError("Cannot fund the vault with zero rewards")
        self.token.transfer_from(self.address, funder, self.address, amount)
        logger.info(
            "Vault funded",
            extra={
                "event": "vault.funded",
                "vault": self.address[:10],
                "funder": funder[:10],
                "amount": amount,
                "available": self.available_rewards(),
            }
        )
        return True

    def transfer_reward(self, caller: str, to: str, amount: int) -> bool:
        """
        Pay ``amount`` reward tokens to ``to``.

        Args:
            caller: Distributor requesting the payout
            to: Recipient
            amount: Reward amount

        Raises:
            NotAuthorizedError: If caller is not a registered distributor
            TransferFailedError: If the vault balance is insufficient
        """
        if not self.is_distributor(caller):
            raise NotAuthorizedError(
                f"Vault: {caller} is not an authorized distributor",
                details={"vault": self.address, "caller": caller},
            )
        require_uint(amount, "amount")

        self.token.transfer(self.address, to, amount)
        self.total_distributed += amount

        logger.info(
            "Vault reward transferred",
            extra={
                "event": "vault.transfer_reward",
                "vault": self.address[:10],
                "to": to[:10],
                "amount": amount,
            }
        )
        return True

    def available_rewards(self) -> int:
        """Return the reward balance currently held by the vault."""
        return self.token.balance_of(self.address)

    # ==================== Snapshots ====================

    def snapshot(self) -> dict[str, Any]:
        return {
            "distributors": set(self.distributors),
            "total_distributed": self.total_distributed,
        }

    def restore(self, state: dict[str, Any]) -> None:
        self.distributors = set(state["distributors"])
        self.total_distributed = state["total_distributed"]

    def _require_owner(self, caller: str) -> None:
        if caller.lower() != self.owner:
            raise NotAuthorizedError("Vault: caller is not owner")
