from __future__ import annotations

import hashlib
import logging
import threading
import time
from typing import Any, Dict, List, Optional

from ..core.collaborator_interfaces import TokenLedger
from ..core.ledger_exceptions import ZeroAmountError
from ..core.safe_math import checked_add, require_uint

logger = logging.getLogger(__name__)


class FeeTreasury:
    def __init__(self, token: TokenLedger, owner: str, address: Optional[str] = None):
        """
        Initialize the fee sink.

        Args:
            token: Default token fees are denominated in
            owner: Treasury owner address
            address: Treasury address (derived when omitted)
        """
        if not owner:
            raise ValueError("Treasury owner cannot be empty.")

        self.token = token
        self.owner = owner.lower()
        if not address:
            addr_hash = hashlib.sha3_256(f"treasury:{token.address}:{time.time()}".encode()).digest()
            address = f"0x{addr_hash[-20:].hex()}"
        self.address = address.lower()

        # Fees accounted per token address
        self.accounted: Dict[str, int] = {}
        self.deposits: List[Dict[str, Any]] = []

        self._lock = threading.RLock()

        logger.info(
            "FeeTreasury initialized",
            extra={"event": "treasury.initialized", "treasury": self.address[:10]},
        )

    def deposit(self, depositor: str, amount: int, token: Optional[TokenLedger] = None) -> bool:
        """
        Account for a fee deposit.

        Tokens already transferred to the treasury and not yet accounted are
        credited first; any remainder is pulled from the depositor, who must
        have approved the treasury for it.

        Args:
            depositor: Address the fee comes from
            amount: Fee amount
            token: Token the fee is denominated in (defaults to the treasury token)
        """
        require_uint(amount, "amount")
        if amount == 0:
            raise ZeroAmountError("Deposit amount must be positive.")

        fee_token = token or self.token

        with self._lock:
            accounted = self.accounted.get(fee_token.address, 0)
            unaccounted = max(0, fee_token.balance_of(self.address) - accounted)
            credited = min(unaccounted, amount)
            pulled = amount - credited
            if pulled:
                fee_token.transfer_from(self.address, depositor, self.address, pulled)

            self.accounted[fee_token.address] = checked_add(accounted, amount)
            self.deposits.append(
                {
                    "depositor": depositor.lower(),
                    "token": fee_token.address,
                    "amount": amount,
                    "pulled": pulled,
                    "timestamp": time.time(),
                }
            )
            logger.info(
                "Fee deposited",
                extra={
                    "event": "treasury.deposit",
                    "treasury": self.address[:10],
                    "depositor": depositor[:10],
                    "amount": amount,
                    "pulled": pulled,
                    "balance": self.accounted[fee_token.address],
                },
            )
        return True

    def get_balance(self, token: Optional[TokenLedger] = None) -> int:
        """Returns the fees accounted for ``token`` (defaults to the treasury token)."""
        fee_token = token or self.token
        return self.accounted.get(fee_token.address, 0)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "accounted": dict(self.accounted),
                "deposit_count": len(self.deposits),
            }

    def restore(self, state: Dict[str, Any]) -> None:
        with self._lock:
            self.accounted = dict(state["accounted"])
            del self.deposits[state["deposit_count"]:]
