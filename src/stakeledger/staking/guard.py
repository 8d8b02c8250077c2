"""
Reentrancy guard and transactional scope.

The guard is a single flag over the whole ledger: an entry point invoked
while another is in flight (typically from inside a collaborator callback)
fails with ReentrancyBlockedError. The transactional scope adds
all-or-nothing semantics on top: state captured after the guard is
acquired is restored if the entry point raises.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterable, Iterator

from ..core.collaborator_interfaces import Snapshottable
from ..core.ledger_exceptions import LedgerError, ReentrancyBlockedError

logger = logging.getLogger(__name__)


class ReentrancyGuard:
    def __init__(self, name: str = "ledger"):
        self.name = name
        self._locked = False
        self._entry_point: str | None = None

    @property
    def locked(self) -> bool:
        return self._locked

    @contextmanager
    def hold(self, entry_point: str) -> Iterator[None]:
        """Hold the lock for the duration of ``entry_point``; released on every exit path."""
        self._require_not_locked(entry_point)

        try:
            self._locked = True
            self._entry_point = entry_point
            yield
        finally:
            self._locked = False
            self._entry_point = None

    def _require_not_locked(self, entry_point: str) -> None:
        if self._locked:
            logger.error(
                "Reentrant call blocked",
                extra={
                    "event": "guard.reentrancy_blocked",
                    "guard": self.name,
                    "entry_point": entry_point,
                    "in_flight": self._entry_point,
                },
            )
            raise ReentrancyBlockedError(
                f"{self.name} is locked by {self._entry_point}; {entry_point} rejected",
                details={"entry_point": entry_point, "in_flight": self._entry_point},
            )


@contextmanager
def transactional(
    guard: ReentrancyGuard,
    entry_point: str,
    participants: Iterable[object],
) -> Iterator[None]:
    """
    Run a block under ``guard`` with rollback of every snapshot-capable participant.

    Participants are deduplicated by identity; objects that do not implement
    snapshot/restore are skipped.
    """
    with guard.hold(entry_point):
        seen: set[int] = set()
        saved: list[tuple[Snapshottable, dict]] = []
        for participant in participants:
            if participant is None or id(participant) in seen:
                continue
            seen.add(id(participant))
            if isinstance(participant, Snapshottable):
                saved.append((participant, participant.snapshot()))

        try:
            yield
        except Exception as exc:
            for participant, state in reversed(saved):
                participant.restore(state)
            if isinstance(exc, LedgerError):
                logger.warning(
                    "Operation rejected and rolled back",
                    extra={
                        "event": "staking.rejected",
                        "entry_point": entry_point,
                        "kind": exc.kind,
                        "reason": exc.message,
                    },
                )
            else:
                logger.error(
                    "Operation failed and rolled back: %s",
                    type(exc).__name__,
                    extra={"event": "staking.failed", "entry_point": entry_point},
                )
            raise
