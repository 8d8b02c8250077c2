"""
Staking core: positions, accrual, fees, payout and the ledger facade.
"""

from .accrual import AccrualEngine, accrued_reward
from .fees import NO_FEE, STANDARD_FEE, FeePolicy, FeeSplit
from .guard import ReentrancyGuard, transactional
from .ledger import LedgerEvent, StakingLedger
from .payout import PayoutCoordinator
from .positions import AccountState, PositionLedger, StakePosition

__all__ = [
    "StakingLedger",
    "LedgerEvent",
    # Positions
    "StakePosition",
    "AccountState",
    "PositionLedger",
    # Accrual
    "AccrualEngine",
    "accrued_reward",
    # Fees & payout
    "FeePolicy",
    "FeeSplit",
    "NO_FEE",
    "STANDARD_FEE",
    "PayoutCoordinator",
    # Guard
    "ReentrancyGuard",
    "transactional",
]
