"""
Tests for the stakeledger command line and scenario replay.
"""
import json
import logging
from pathlib import Path

import pytest
from click.testing import CliRunner

from stakeledger.cli.main import cli
from stakeledger.cli.scenario import (
    Deployment,
    ScenarioError,
    load_scenario,
    run_scenario,
    run_step,
)

SCENARIO = Path(__file__).resolve().parents[3] / "scenarios" / "one_year_claim.yaml"


@pytest.fixture(autouse=True)
def reset_package_logger():
    """The CLI attaches handlers to the package logger; drop them after each test."""
    yield
    package_logger = logging.getLogger("stakeledger")
    package_logger.handlers = []
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def runner():
    return CliRunner()


class TestScenarioReplay:
    def test_bundled_scenario(self):
        deployment, results = run_scenario(load_scenario(SCENARIO))

        assert [r.ok for r in results] == [True] * 7 + [False, False]
        assert results[2].detail == "gross=100 fee=2 net=98"
        assert results[7].error_kind == "NoReward"
        assert results[8].error_kind == "NotAuthorized"

        summary = deployment.summary()
        alice = summary["accounts"]["alice"]
        assert alice["stake_balance"] == 5000 - 1000 - 500 + 980
        assert alice["reward_balance"] == 98
        assert alice["positions"] == [
            {"principal": 500, "opened_at": 1_700_000_000 + 31_536_000, "rate_at_open": 5}
        ]
        assert summary["total_staked"] == summary["ledger_custody"] == 2500
        assert summary["treasury_stake_fees"] == 20
        assert summary["treasury_reward_fees"] == 2
        assert summary["participants"] == ["alice", "bob"]
        assert summary["rate"] == 5

    def test_unknown_op(self):
        deployment = Deployment.build()
        with pytest.raises(ScenarioError):
            run_step(deployment, 1, {"op": "teleport"})

    def test_missing_key(self):
        deployment = Deployment.build()
        with pytest.raises(ScenarioError):
            run_step(deployment, 1, {"op": "stake", "account": "alice"})

    def test_clock_cannot_go_backwards(self):
        deployment = Deployment.build()
        with pytest.raises(ScenarioError):
            run_step(deployment, 1, {"op": "advance", "seconds": -5})

    @pytest.mark.parametrize(
        "step",
        [
            {"op": "advance", "seconds": "soon"},
            {"op": "stake", "account": "alice", "amount": None},
            {"op": "withdraw", "account": "alice", "index": True},
        ],
    )
    def test_malformed_value_names_the_step(self, step):
        deployment = Deployment.build()
        with pytest.raises(ScenarioError, match=rf"^Step 3 \({step['op']}\)"):
            run_step(deployment, 3, step)

    def test_scenario_file_must_be_mapping(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ScenarioError):
            load_scenario(path)


class TestSimulateCommand:
    def test_json_output(self, runner):
        result = runner.invoke(
            cli, ["--json-output", "--log-level", "ERROR", "simulate", str(SCENARIO)]
        )

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert len(payload["steps"]) == 9
        assert payload["steps"][2]["detail"] == "gross=100 fee=2 net=98"
        assert payload["summary"]["total_rewards_paid"] == 98

    def test_table_output(self, runner):
        result = runner.invoke(cli, ["--log-level", "ERROR", "simulate", str(SCENARIO)])

        assert result.exit_code == 0, result.output
        assert "NotAuthorized" in result.stdout
        assert "Ledger" in result.stdout

    def test_malformed_scenario(self, runner, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("steps:\n  - {op: teleport}\n")

        result = runner.invoke(cli, ["--log-level", "ERROR", "simulate", str(path)])

        assert result.exit_code == 1
        assert "Unknown step op" in result.output

    def test_malformed_step_value(self, runner, tmp_path):
        path = tmp_path / "bad_value.yaml"
        path.write_text("steps:\n  - {op: advance, seconds: 10}\n  - {op: advance, seconds: soon}\n")

        result = runner.invoke(cli, ["--log-level", "ERROR", "simulate", str(path)])

        assert result.exit_code == 1
        assert "Step 2 (advance)" in result.output
        assert "'seconds' must be an integer" in result.output

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["simulate", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 2


class TestPreviewCommand:
    def test_json_preview(self, runner):
        result = runner.invoke(
            cli,
            [
                "--json-output",
                "--log-level",
                "ERROR",
                "preview",
                "--principal",
                "1000",
                "--rate",
                "10",
                "--seconds",
                "31536000",
                "--fee-percent",
                "2",
            ],
        )

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"gross": 100, "fee": 2, "net": 98}

    def test_rejects_zero_principal(self, runner):
        result = runner.invoke(cli, ["preview", "--principal", "0"])
        assert result.exit_code == 2
