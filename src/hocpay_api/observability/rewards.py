from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from threading import Lock
from typing import Dict


@dataclass
class RewardsSnapshot:
    strategies: Dict[str, Dict[str, int]]
    failures: Dict[str, Dict[str, int]]
    exhausted: Dict[str, int]
    plan_changes: Dict[str, int]

    def as_dict(self) -> Dict[str, object]:
        return {
            "strategies": {key: dict(value) for key, value in self.strategies.items()},
            "failures": {key: dict(value) for key, value in self.failures.items()},
            "exhausted": dict(self.exhausted),
            "plan_changes": dict(self.plan_changes),
        }


class RewardsObservabilityStore:
    """Count which aggregation strategy served each dashboard operation."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._strategies: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self._failures: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self._exhausted: Dict[str, int] = defaultdict(int)
        self._plan_changes: Dict[str, int] = defaultdict(int)

    def record_strategy(self, operation: str, strategy: str) -> None:
        with self._lock:
            self._strategies[operation][strategy] += 1

    def record_failure(self, operation: str, strategy: str) -> None:
        with self._lock:
            self._failures[operation][strategy] += 1

    def record_exhausted(self, operation: str) -> None:
        with self._lock:
            self._exhausted[operation] += 1

    def record_plan_change(self, outcome: str) -> None:
        with self._lock:
            self._plan_changes[outcome] += 1

    def snapshot(self) -> RewardsSnapshot:
        with self._lock:
            strategies = {key: dict(value) for key, value in self._strategies.items()}
            failures = {key: dict(value) for key, value in self._failures.items()}
            exhausted = dict(self._exhausted)
            plan_changes = dict(self._plan_changes)
        return RewardsSnapshot(
            strategies=strategies,
            failures=failures,
            exhausted=exhausted,
            plan_changes=plan_changes,
        )

    def reset(self) -> None:
        with self._lock:
            self._strategies.clear()
            self._failures.clear()
            self._exhausted.clear()
            self._plan_changes.clear()


_STORE = RewardsObservabilityStore()


def get_rewards_store() -> RewardsObservabilityStore:
    return _STORE


__all__ = ["get_rewards_store", "RewardsObservabilityStore", "RewardsSnapshot"]
