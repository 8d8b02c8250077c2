"""Fee policy applied to reward claims and principal withdrawals."""

from __future__ import annotations

from dataclasses import dataclass

from ..core.config import Config
from ..core.safe_math import checked_sub, mul_div, require_uint


@dataclass(frozen=True)
class FeeSplit:
    """Gross payout divided into the fee sink's share and the account's share."""

    gross: int
    fee: int
    net: int

    def to_dict(self) -> dict[str, int]:
        return {"gross": self.gross, "fee": self.fee, "net": self.net}


@dataclass(frozen=True)
class FeePolicy:
    fee_percent: int = 0

    def __post_init__(self) -> None:
        if isinstance(self.fee_percent, bool) or not isinstance(self.fee_percent, int):
            raise TypeError("fee_percent must be an integer")
        if not 0 <= self.fee_percent <= 100:
            raise ValueError("fee_percent must be between 0 and 100")

    @property
    def charges_fee(self) -> bool:
        return self.fee_percent > 0

    def split(self, gross: int) -> FeeSplit:
        """Floor the fee, the account receives the remainder."""
        require_uint(gross, "gross")
        fee = mul_div(gross, self.fee_percent, 100)
        return FeeSplit(gross=gross, fee=fee, net=checked_sub(gross, fee))

    @classmethod
    def from_config(cls, config=Config) -> "FeePolicy":
        return cls(fee_percent=config.FEE_PERCENT)


NO_FEE = FeePolicy(0)
STANDARD_FEE = FeePolicy(2)
