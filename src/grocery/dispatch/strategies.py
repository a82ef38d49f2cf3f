"""Worker selection strategies for the dispatch coordinator.

A strategy receives workers that are already known to be eligible (online,
with free capacity, in the right place) and returns the one to assign.
DISPATCH_STRATEGY selects the default: "least_recent" (default),
"least_loaded" or "performance".
"""

import os
from abc import ABC, abstractmethod
from datetime import datetime

from grocery.workforce.worker import Worker

_NEVER = datetime.min


def _assigned_at(worker: Worker) -> datetime:
    value = worker.last_assigned_at
    if value is None:
        return _NEVER
    return value.replace(tzinfo=None)


class SelectionStrategy(ABC):
    name: str = ""

    @abstractmethod
    def choose(self, order, candidates: list[Worker]) -> Worker | None:
        ...


class LeastRecentlyAssigned(SelectionStrategy):
    """Round-robin in effect: whoever has waited longest since their last order."""

    name = "least_recent"

    def choose(self, order, candidates):
        if not candidates:
            return None
        return min(candidates, key=lambda w: (_assigned_at(w), str(w.id)))


class LeastLoaded(SelectionStrategy):
    """Fewest open orders first, ties broken by least recent assignment."""

    name = "least_loaded"

    def choose(self, order, candidates):
        if not candidates:
            return None
        return min(candidates, key=lambda w: (len(w.active_orders), _assigned_at(w), str(w.id)))


class PerformanceScore(SelectionStrategy):
    """Weighted score of rating, current load, experience and store affiliation."""

    name = "performance"

    def score(self, order, worker: Worker) -> float:
        score = 100.0
        score += (worker.rating or 0.0) * 10
        score -= len(worker.active_orders) * 5
        score += (worker.completed_orders or 0) * 0.1
        if str(order.vendor_id) in worker.stores:
            score += 20
        return score

    def choose(self, order, candidates):
        if not candidates:
            return None
        return max(candidates, key=lambda w: (self.score(order, w), str(w.id)))


STRATEGIES = {
    LeastRecentlyAssigned.name: LeastRecentlyAssigned,
    LeastLoaded.name: LeastLoaded,
    PerformanceScore.name: PerformanceScore,
}

_current_strategy: SelectionStrategy | None = None


def get_strategy() -> SelectionStrategy:
    global _current_strategy
    if _current_strategy is None:
        name = os.environ.get("DISPATCH_STRATEGY", LeastRecentlyAssigned.name)
        if name not in STRATEGIES:
            raise ValueError(f"Unknown dispatch strategy: {name}")
        _current_strategy = STRATEGIES[name]()
    return _current_strategy


def set_strategy(strategy: SelectionStrategy) -> None:
    global _current_strategy
    _current_strategy = strategy


def reset_strategy() -> None:
    global _current_strategy
    _current_strategy = None
