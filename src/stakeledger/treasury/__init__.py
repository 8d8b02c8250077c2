from .fee_treasury import FeeTreasury

__all__ = ["FeeTreasury"]
