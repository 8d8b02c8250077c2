"""
Tests for the reentrancy guard and transactional rollback scope.
"""
import pytest

from stakeledger.core.ledger_exceptions import (
    LedgerError,
    ReentrancyBlockedError,
    ZeroAmountError,
)
from stakeledger.staking.guard import ReentrancyGuard, transactional


class Counter:
    def __init__(self):
        self.value = 0
        self.restored = 0

    def snapshot(self):
        return {"value": self.value}

    def restore(self, state):
        self.value = state["value"]
        self.restored += 1


class TestReentrancyGuard:
    def test_nested_hold_is_blocked(self):
        guard = ReentrancyGuard("test")
        with guard.hold("outer"):
            assert guard.locked
            with pytest.raises(ReentrancyBlockedError) as exc_info:
                with guard.hold("inner"):
                    pass
        assert exc_info.value.details == {"entry_point": "inner", "in_flight": "outer"}
        assert not guard.locked

    def test_released_after_exception(self):
        guard = ReentrancyGuard("test")
        with pytest.raises(RuntimeError):
            with guard.hold("outer"):
                raise RuntimeError("boom")

        assert not guard.locked
        with guard.hold("again"):
            assert guard.locked


class TestTransactional:
    def test_success_keeps_changes(self):
        guard = ReentrancyGuard()
        counter = Counter()
        with transactional(guard, "op", [counter]):
            counter.value = 5

        assert counter.value == 5
        assert counter.restored == 0

    def test_failure_restores_every_participant(self):
        guard = ReentrancyGuard()
        first, second = Counter(), Counter()

        with pytest.raises(ZeroAmountError):
            with transactional(guard, "op", [first, second]):
                first.value = 1
                second.value = 2
                raise ZeroAmountError("nothing to move")

        assert (first.value, second.value) == (0, 0)
        assert not guard.locked

    def test_non_ledger_errors_also_roll_back(self):
        guard = ReentrancyGuard()
        counter = Counter()

        with pytest.raises(KeyError):
            with transactional(guard, "op", [counter]):
                counter.value = 3
                raise KeyError("missing")

        assert counter.value == 0

    def test_duplicates_and_plain_objects_are_skipped(self):
        guard = ReentrancyGuard()
        counter = Counter()

        with pytest.raises(LedgerError):
            with transactional(guard, "op", [counter, None, object(), counter]):
                counter.value = 1
                raise LedgerError("fail")

        assert counter.restored == 1

    def test_reentry_from_inside_the_scope(self):
        guard = ReentrancyGuard()
        with transactional(guard, "outer", []):
            with pytest.raises(ReentrancyBlockedError):
                with transactional(guard, "inner", []):
                    pass
