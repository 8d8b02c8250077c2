"""
ERC20-style Token Ledger.

In-process implementation of the token balance service the staking ledger
custodies principal and rewards in:
- Basic token operations (transfer, approve, transferFrom)
- Owner-only minting for funding deployments and tests
- Events (Transfer, Approval)
- Snapshot/restore so a failed ledger call can roll token movements back

Security features:
- Overflow protection (256-bit arithmetic)
- Zero address checks
- Balance underflow prevention
- Allowance validation
"""

from __future__ import annotations

import copy
import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from ..ledger_exceptions import NotAuthorizedError, TransferFailedError
from ..safe_math import MAX_UINT256, checked_add, require_uint

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "0" * 40


@dataclass
class TokenEvent:
    """Represents an ERC20 event."""

    event_type: str  # "Transfer" or "Approval"
    from_address: str
    to_address: str
    value: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ERC20Token:
    """
    ERC20 token ledger.

    All balances and allowances are stored in-memory. Failed transfers raise
    TransferFailedError and leave balances untouched.
    """

    # Token metadata
    name: str
    symbol: str
    decimals: int = 18
    total_supply: int = 0

    # Contract address
    address: str = ""

    # Owner (for minting permissions)
    owner: str = ""

    # State
    balances: dict[str, int] = field(default_factory=dict)
    allowances: dict[str, dict[str, int]] = field(default_factory=dict)

    # Event log
    events: list[TokenEvent] = field(default_factory=list)

    UINT256_MAX: int = MAX_UINT256

    def __post_init__(self) -> None:
        """Initialize token after dataclass creation."""
        if not self.address:
            addr_input = f"{self.name}{self.symbol}{time.time()}".encode()
            addr_hash = hashlib.sha3_256(addr_input).digest()
            self.address = f"0x{addr_hash[-20:].hex()}"
        self.address = self._normalize(self.address)
        self.owner = self._normalize(self.owner)

    # ==================== View Functions ====================

    def balance_of(self, account: str) -> int:
        """Get the token balance of an account."""
        return self.balances.get(self._normalize(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        """Get the allowance granted by owner to spender."""
        owner_norm = self._normalize(owner)
        spender_norm = self._normalize(spender)
        return self.allowances.get(owner_norm, {}).get(spender_norm, 0)

    # ==================== State-Changing Functions ====================

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Transfer tokens from sender to recipient.

        Args:
            sender: Address sending tokens (msg.sender)
            recipient: Address receiving tokens
            amount: Amount to transfer

        Returns:
            True if successful

        Raises:
            TransferFailedError: If the sender's balance is insufficient
        """
        sender_norm = self._normalize(sender)
        recipient_norm = self._normalize(recipient)

        self._validate_address(recipient_norm, "recipient")
        self._validate_amount(amount)

        sender_balance = self.balances.get(sender_norm, 0)
        if sender_balance < amount:
            raise TransferFailedError(
                f"ERC20: transfer amount exceeds balance ({amount} > {sender_balance})",
                details={"token": self.symbol, "from": sender_norm, "amount": amount},
            )

        self.balances[sender_norm] = sender_balance - amount
        self.balances[recipient_norm] = checked_add(self.balances.get(recipient_norm, 0), amount)

        self._emit_transfer(sender_norm, recipient_norm, amount)

        logger.debug(
            "ERC20 transfer",
            extra={
                "event": "erc20.transfer",
                "token": self.symbol,
                "from": sender_norm[:10],
                "to": recipient_norm[:10],
                "amount": amount,
            }
        )

        return True

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """
        Approve spender to spend tokens on behalf of owner.

        Args:
            owner: Token owner (msg.sender)
            spender: Address being approved
            amount: Amount to approve

        Returns:
            True if successful
        """
        owner_norm = self._normalize(owner)
        spender_norm = self._normalize(spender)

        self._validate_address(spender_norm, "spender")
        self._validate_amount(amount)

        self.allowances.setdefault(owner_norm, {})[spender_norm] = amount
        self._emit_approval(owner_norm, spender_norm, amount)

        return True

    def transfer_from(
        self, spender: str, from_addr: str, to_addr: str, amount: int
    ) -> bool:
        """
        Transfer tokens using an allowance.

        Args:
            spender: Address executing transfer (msg.sender)
            from_addr: Token owner
            to_addr: Recipient
            amount: Amount to transfer

        Returns:
            True if successful

        Raises:
            TransferFailedError: If allowance or balance is insufficient
        """
        spender_norm = self._normalize(spender)
        from_norm = self._normalize(from_addr)
        to_norm = self._normalize(to_addr)

        self._validate_address(to_norm, "recipient")
        self._validate_amount(amount)

        current_allowance = self.allowance(from_norm, spender_norm)
        if current_allowance < amount:
            raise TransferFailedError(
                f"ERC20: insufficient allowance ({current_allowance} < {amount})",
                details={"token": self.symbol, "owner": from_norm, "spender": spender_norm},
            )

        from_balance = self.balances.get(from_norm, 0)
        if from_balance < amount:
            raise TransferFailedError(
                f"ERC20: transfer amount exceeds balance ({amount} > {from_balance})",
                details={"token": self.symbol, "from": from_norm, "amount": amount},
            )

        # Unlimited allowances are never decremented
        if current_allowance != self.UINT256_MAX:
            self.allowances[from_norm][spender_norm] = current_allowance - amount

        self.balances[from_norm] = from_balance - amount
        self.balances[to_norm] = checked_add(self.balances.get(to_norm, 0), amount)

        self._emit_transfer(from_norm, to_norm, amount)

        return True

    # ==================== Minting ====================

    def mint(self, minter: str, to: str, amount: int) -> bool:
        """
        Mint new tokens (owner only).

        Args:
            minter: Address calling mint (must be owner)
            to: Recipient of minted tokens
            amount: Amount to mint

        Returns:
            True if successful
        """
        self._require_owner(minter)

        to_norm = self._normalize(to)
        self._validate_address(to_norm, "recipient")
        self._validate_amount(amount)

        self.total_supply = checked_add(self.total_supply, amount)
        self.balances[to_norm] = checked_add(self.balances.get(to_norm, 0), amount)

        self._emit_transfer(ZERO_ADDRESS, to_norm, amount)

        logger.info(
            "ERC20 mint",
            extra={
                "event": "erc20.mint",
                "token": self.symbol,
                "to": to_norm[:10],
                "amount": amount,
                "new_supply": self.total_supply,
            }
        )

        return True

    # ==================== Snapshots ====================

    def snapshot(self) -> dict[str, Any]:
        """
        Capture balances, allowances and supply for rollback.

        Events are append-only, so only their count is kept and ``restore``
        truncates back to it.
        """
        return {
            "total_supply": self.total_supply,
            "balances": dict(self.balances),
            "allowances": copy.deepcopy(self.allowances),
            "event_count": len(self.events),
        }

    def restore(self, state: dict[str, Any]) -> None:
        """Restore token state from a snapshot."""
        self.total_supply = state["total_supply"]
        self.balances = dict(state["balances"])
        self.allowances = copy.deepcopy(state["allowances"])
        del self.events[state["event_count"]:]

    # ==================== Helpers ====================

    def _normalize(self, address: str) -> str:
        """Normalize address to lowercase."""
        return address.lower()

    def _validate_address(self, address: str, field: str) -> None:
        """Validate address is not zero."""
        if address == ZERO_ADDRESS or not address:
            raise TransferFailedError(f"ERC20: {field} is zero address")

    def _validate_amount(self, amount: int) -> None:
        """Validate amount is inside the uint256 range."""
        require_uint(amount, "amount")

    def _require_owner(self, caller: str) -> None:
        """Require caller is owner."""
        if self._normalize(caller) != self.owner:
            raise NotAuthorizedError("ERC20: caller is not owner")

    def _emit_transfer(self, from_addr: str, to_addr: str, amount: int) -> None:
        self.events.append(
            TokenEvent(
                event_type="Transfer",
                from_address=from_addr,
                to_address=to_addr,
                value=amount,
            )
        )

    def _emit_approval(self, owner: str, spender: str, amount: int) -> None:
        self.events.append(
            TokenEvent(
                event_type="Approval",
                from_address=owner,
                to_address=spender,
                value=amount,
            )
        )

    # ==================== Serialization ====================

    def to_dict(self) -> dict[str, Any]:
        """Serialize token state to dictionary."""
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "total_supply": self.total_supply,
            "address": self.address,
            "owner": self.owner,
            "balances": dict(self.balances),
            "allowances": {k: dict(v) for k, v in self.allowances.items()},
        }
