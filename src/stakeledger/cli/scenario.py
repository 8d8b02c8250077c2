"""
Scenario replay for the staking ledger.

Builds an in-process deployment (principal token, reward token, reward
vault, fee treasury, ledger) on a manual clock and replays a list of
timed steps against it. Used by the ``stakeledger simulate`` command.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..core.config import Config
from ..core.contracts.erc20 import ERC20Token
from ..core.defi.reward_vault import RewardVault
from ..core.ledger_exceptions import LedgerError
from ..staking.fees import FeePolicy
from ..staking.ledger import StakingLedger
from ..treasury.fee_treasury import FeeTreasury

logger = logging.getLogger(__name__)

ADMIN = "admin"
DEFAULT_START_TIME = 1_700_000_000


class ScenarioError(ValueError):
    """Raised when a scenario file or step is malformed."""
    pass


class ManualClock:
    def __init__(self, start_time: int):
        self.current_time = start_time

    def now(self) -> int:
        return self.current_time

    def advance(self, seconds: int) -> None:
        if seconds < 0:
            raise ScenarioError("Cannot advance the clock backwards")
        self.current_time += seconds


@dataclass
class StepResult:
    number: int
    op: str
    ok: bool
    detail: str = ""
    error_kind: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.number,
            "op": self.op,
            "ok": self.ok,
            "detail": self.detail,
            "error_kind": self.error_kind,
        }


@dataclass
class Deployment:
    clock: ManualClock
    stake_token: ERC20Token
    reward_token: ERC20Token
    vault: RewardVault
    treasury: FeeTreasury
    ledger: StakingLedger
    accounts: list[str] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        start_time: int = DEFAULT_START_TIME,
        rate: int | None = None,
        fee_percent: int | None = None,
        seconds_per_year: int | None = None,
        vault_funding: int = 0,
        balances: dict[str, int] | None = None,
    ) -> "Deployment":
        clock = ManualClock(start_time)
        stake_token = ERC20Token(name="Stake Token", symbol="STK", owner=ADMIN, address="0xstake")
        reward_token = ERC20Token(name="Reward Token", symbol="RWD", owner=ADMIN, address="0xreward")
        vault = RewardVault(token=reward_token, owner=ADMIN, address="0xvault")
        treasury = FeeTreasury(token=stake_token, owner=ADMIN, address="0xtreasury")
        policy = FeePolicy(fee_percent) if fee_percent is not None else FeePolicy.from_config()
        ledger = StakingLedger(
            owner=ADMIN,
            token=stake_token,
            reward_source=vault,
            fee_sink=treasury,
            fee_policy=policy,
            rate=rate if rate is not None else Config.DEFAULT_RATE,
            seconds_per_year=seconds_per_year,
            time_provider=clock.now,
            address="0xledger",
        )
        vault.add_distributor(ADMIN, ledger.address)

        if vault_funding:
            reward_token.mint(ADMIN, ADMIN, vault_funding)
            reward_token.approve(ADMIN, vault.address, vault_funding)
            vault.fund(ADMIN, vault_funding)

        deployment = cls(clock, stake_token, reward_token, vault, treasury, ledger)
        for account, amount in (balances or {}).items():
            deployment.add_account(account, amount)
        return deployment

    def add_account(self, account: str, amount: int) -> None:
        account = account.lower()
        if amount:
            self.stake_token.mint(ADMIN, account, amount)
        if account not in self.accounts:
            self.accounts.append(account)

    def summary(self) -> dict[str, Any]:
        accounts = {}
        for account in self.accounts:
            state = self.ledger.get_account(account)
            accounts[account] = {
                "positions": [p.to_dict() for p in state.positions],
                "total_principal": state.total_principal,
                "reward_debt": state.reward_debt,
                "pending_reward": self.ledger.get_pending_reward(account),
                "stake_balance": self.stake_token.balance_of(account),
                "reward_balance": self.reward_token.balance_of(account),
            }
        return {
            "time": self.clock.now(),
            "rate": self.ledger.get_current_rate(),
            "participants": self.ledger.get_participants(),
            "total_staked": self.ledger.get_total_staked(),
            "total_rewards_paid": self.ledger.get_total_rewards_paid(),
            "vault_available": self.vault.available_rewards(),
            "ledger_custody": self.stake_token.balance_of(self.ledger.address),
            "treasury_stake_fees": self.treasury.get_balance(self.stake_token),
            "treasury_reward_fees": self.treasury.get_balance(self.reward_token),
            "accounts": accounts,
        }


def load_scenario(path: str | Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ScenarioError("Scenario file must contain a mapping")
    if not isinstance(data.get("steps", []), list):
        raise ScenarioError("'steps' must be a list")
    return data


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ScenarioError(f"{name!r} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ScenarioError(f"{name!r} must be an integer, got {value!r}") from exc


def build_from_scenario(data: dict[str, Any]) -> Deployment:
    return Deployment.build(
        start_time=_as_int(data.get("start_time", DEFAULT_START_TIME), "start_time"),
        rate=data.get("rate"),
        fee_percent=data.get("fee_percent"),
        seconds_per_year=data.get("seconds_per_year"),
        vault_funding=_as_int(data.get("vault_funding", 0), "vault_funding"),
        balances={
            str(k): _as_int(v, f"accounts.{k}") for k, v in (data.get("accounts") or {}).items()
        },
    )


def _require(step: dict[str, Any], key: str) -> Any:
    if key not in step:
        raise ScenarioError(f"missing {key!r}")
    return step[key]


def _require_int(step: dict[str, Any], key: str) -> int:
    return _as_int(_require(step, key), key)


def run_step(deployment: Deployment, number: int, step: dict[str, Any]) -> StepResult:
    """
    Execute one scenario step.

    Ledger errors are recorded in the result; the ledger has already rolled
    back, so replay continues with the next step.
    """
    if not isinstance(step, dict) or "op" not in step:
        raise ScenarioError(f"Step {number} must be a mapping with an 'op' key")

    op = str(step["op"])
    ledger = deployment.ledger
    try:
        if op == "advance":
            deployment.clock.advance(_require_int(step, "seconds"))
            detail = f"t={deployment.clock.now()}"
        elif op == "mint":
            deployment.add_account(str(_require(step, "account")), _require_int(step, "amount"))
            detail = f"{step['amount']} STK"
        elif op == "fund_vault":
            amount = _require_int(step, "amount")
            deployment.reward_token.mint(ADMIN, ADMIN, amount)
            deployment.reward_token.approve(ADMIN, deployment.vault.address, amount)
            deployment.vault.fund(ADMIN, amount)
            detail = f"vault={deployment.vault.available_rewards()}"
        elif op == "stake":
            account = str(_require(step, "account")).lower()
            amount = _require_int(step, "amount")
            deployment.add_account(account, 0)
            deployment.stake_token.approve(account, ledger.address, amount)
            index = ledger.stake(account, amount)
            detail = f"index={index}"
        elif op == "claim":
            split = ledger.claim_reward(str(_require(step, "account")))
            detail = f"gross={split.gross} fee={split.fee} net={split.net}"
        elif op == "withdraw":
            split = ledger.withdraw_stake(str(_require(step, "account")), _require_int(step, "index"))
            detail = f"gross={split.gross} fee={split.fee} net={split.net}"
        elif op == "set_rate":
            ledger.set_rate(str(step.get("caller", ADMIN)), _require_int(step, "rate"))
            detail = f"rate={ledger.get_current_rate()}"
        elif op == "sweep":
            ledger.emergency_sweep(str(step.get("caller", ADMIN)), _require_int(step, "amount"))
            detail = f"custody={deployment.stake_token.balance_of(ledger.address)}"
        else:
            raise ScenarioError(f"Unknown step op {op!r}")
    except LedgerError as exc:
        logger.info(
            "Scenario step failed",
            extra={"event": "scenario.step_failed", "step": number, "op": op, "kind": exc.kind},
        )
        return StepResult(number, op, False, exc.message, exc.kind)
    except ScenarioError as exc:
        raise ScenarioError(f"Step {number} ({op}): {exc}") from exc

    return StepResult(number, op, True, detail)


def run_scenario(data: dict[str, Any]) -> tuple[Deployment, list[StepResult]]:
    deployment = build_from_scenario(data)
    results = [
        run_step(deployment, number, step)
        for number, step in enumerate(data.get("steps") or [], start=1)
    ]
    return deployment, results
