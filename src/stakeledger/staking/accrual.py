"""
Accrual Engine.

Linear simple interest, floored, no compounding:

    reward = principal * rate_at_open * elapsed / (seconds_per_year * 100)

``flush`` folds the reward accrued since the account's last flush into its
reward debt. It must run as the first step of every entry point that
mutates the account, so accrual is frozen at the position set that
actually earned it.
"""

from __future__ import annotations

import logging

from ..core.config import Config
from ..core.safe_math import checked_add, checked_mul, mul_div
from .positions import AccountState, StakePosition

logger = logging.getLogger(__name__)


def accrued_reward(
    position: StakePosition,
    now: int,
    seconds_per_year: int,
    since: int | None = None,
) -> int:
    """
    Reward earned by ``position`` between ``since`` (or its opening) and ``now``.

    Returns 0 for an empty or uninitialized position, and when ``now`` is
    not after the start of the window.
    """
    if position.principal == 0 or position.opened_at == 0:
        return 0
    start = position.opened_at if since is None else max(position.opened_at, since)
    elapsed = max(0, now - start)
    return mul_div(
        checked_mul(position.principal, position.rate_at_open),
        elapsed,
        checked_mul(seconds_per_year, 100),
    )


class AccrualEngine:
    def __init__(
        self,
        seconds_per_year: int = Config.SECONDS_PER_YEAR,
        recompute_from_open: bool = False,
    ):
        """
        Args:
            seconds_per_year: Length of the accrual year
            recompute_from_open: Re-derive every flush from ``opened_at``
                instead of from the account's last flush. Accrual already
                flushed is then counted again on the next flush.
        """
        if not isinstance(seconds_per_year, int) or seconds_per_year <= 0:
            raise ValueError("seconds_per_year must be a positive integer.")
        self.seconds_per_year = seconds_per_year
        self.recompute_from_open = recompute_from_open
        if recompute_from_open:
            logger.warning(
                "Accrual engine recomputes from opened_at on every flush",
                extra={"event": "accrual.recompute_from_open"},
            )

    def reward(self, position: StakePosition, now: int, since: int | None = None) -> int:
        if self.recompute_from_open:
            since = None
        return accrued_reward(position, now, self.seconds_per_year, since)

    def pending(self, account: AccountState, now: int) -> int:
        """Reward accrued since the last flush. Never mutates ``account``."""
        since = account.last_flushed_at or None
        total = 0
        for position in account.positions:
            total = checked_add(total, self.reward(position, now, since))
        return total

    def flush(self, account: AccountState, now: int) -> int:
        """
        Add pending reward to ``account.reward_debt`` and advance its checkpoint.

        Returns:
            The amount added to the reward debt
        """
        accrued = self.pending(account, now)
        account.reward_debt = checked_add(account.reward_debt, accrued)
        account.last_flushed_at = max(account.last_flushed_at, now)
        return accrued
