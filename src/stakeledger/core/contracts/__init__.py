"""
Token contract implementations backing the staking ledger.
"""

from .erc20 import ERC20Token, TokenEvent, ZERO_ADDRESS

__all__ = [
    "ERC20Token",
    "TokenEvent",
    "ZERO_ADDRESS",
]
