"""
DeFi collaborators of the staking ledger.

- Reward Vault: reward-token custody with an authorized-distributor set
"""

from .reward_vault import RewardVault

__all__ = [
    "RewardVault",
]
