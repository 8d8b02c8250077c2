"""
Payout Coordinator.

Splits claims and withdrawals into two phases so the ledger can keep
checks-effects-interactions ordering:

- ``settle_*`` validates and applies every internal state change and
  returns the resulting FeeSplit; it never calls a collaborator that moves
  tokens.
- ``disburse_*`` performs the external token movements for a settled
  payout and must run after all ledger state is final.
"""

from __future__ import annotations

import logging

from ..core.collaborator_interfaces import FeeSink, RewardSource, TokenLedger
from ..core.ledger_exceptions import (
    CollaboratorNotConfiguredError,
    InsufficientVaultSourceError,
    NoRewardError,
)
from .fees import FeePolicy, FeeSplit
from .positions import PositionLedger

logger = logging.getLogger(__name__)


class PayoutCoordinator:
    def __init__(self, positions: PositionLedger, fee_policy: FeePolicy):
        self.positions = positions
        self.fee_policy = fee_policy

    # ==================== Claims ====================

    def settle_claim(
        self,
        account: str,
        reward_source: RewardSource | None,
        fee_sink: FeeSink | None,
    ) -> FeeSplit:
        """
        Clear the account's reward debt and return the split to pay out.

        The whole debt is cleared even though only the net share reaches the
        account; the fee share goes to the fee sink.
        """
        state = self.positions.account(account)
        reward = state.reward_debt
        if reward == 0:
            raise NoRewardError(
                "No reward accrued",
                details={"account": account.lower()},
            )
        if reward_source is None:
            raise CollaboratorNotConfiguredError("Reward source is not configured")

        available = reward_source.available_rewards()
        if available < reward:
            raise InsufficientVaultSourceError(
                f"Reward source holds {available}, claim needs {reward}",
                required=reward,
                available=available,
                details={"account": account.lower()},
            )

        split = self.fee_policy.split(reward)
        self._require_fee_sink(split, fee_sink)

        state.reward_debt = 0
        return split

    def disburse_reward(
        self,
        payer: str,
        account: str,
        split: FeeSplit,
        reward_source: RewardSource,
        fee_sink: FeeSink | None,
    ) -> None:
        reward_source.transfer_reward(payer, account, split.net)
        if split.fee > 0:
            reward_source.transfer_reward(payer, fee_sink.address, split.fee)
            fee_sink.deposit(payer, split.fee, token=reward_source.token)

        logger.debug(
            "Reward disbursed",
            extra={
                "event": "payout.reward",
                "account": account[:10],
                "net": split.net,
                "fee": split.fee,
            },
        )

    # ==================== Withdrawals ====================

    def settle_withdrawal(self, account: str, index: int, fee_sink: FeeSink | None) -> FeeSplit:
        """Remove the position at ``index`` and return the principal split."""
        position = self.positions.position_at(account, index)
        split = self.fee_policy.split(position.principal)
        self._require_fee_sink(split, fee_sink)

        self.positions.close_position(account, index)
        return split

    def disburse_principal(
        self,
        payer: str,
        account: str,
        split: FeeSplit,
        token: TokenLedger,
        fee_sink: FeeSink | None,
    ) -> None:
        token.transfer(payer, account, split.net)
        if split.fee > 0:
            token.transfer(payer, fee_sink.address, split.fee)
            fee_sink.deposit(payer, split.fee, token=token)

        logger.debug(
            "Principal disbursed",
            extra={
                "event": "payout.principal",
                "account": account[:10],
                "net": split.net,
                "fee": split.fee,
            },
        )

    def _require_fee_sink(self, split: FeeSplit, fee_sink: FeeSink | None) -> None:
        if split.fee > 0 and fee_sink is None:
            raise CollaboratorNotConfiguredError(
                "Fee sink is not configured",
                details={"fee": split.fee},
            )
