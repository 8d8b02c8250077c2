"""
Stake Ledger - Multi-position staking with time-weighted rewards

Main Components:
- Staking: position ledger, accrual engine, payout coordinator, admin surface
- Collaborators: ERC20-style token ledger, reward vault, fee treasury
- CLI: scenario replay and reward previews
"""

__version__ = "0.1.0"
__author__ = "Stake Ledger Development Team"

__all__ = []
