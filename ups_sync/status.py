"""Processing outcome log - what happened to recent watch events."""

import threading
from collections import Counter, deque

from .models import Outcome, ProcessingOutcome


class OutcomeLog:
    """Keeps counters and the most recent outcomes for the status endpoint."""

    def __init__(self, history: int = 100):
        self._recent: deque[ProcessingOutcome] = deque(maxlen=history)
        self._counts: Counter = Counter()
        self._lock = threading.Lock()

    def record(self, outcome: ProcessingOutcome) -> None:
        with self._lock:
            self._recent.append(outcome)
            self._counts[outcome.outcome] += 1

    def counts(self) -> dict[str, int]:
        with self._lock:
            return {o.value: self._counts.get(o, 0) for o in Outcome}

    def recent(self) -> list[ProcessingOutcome]:
        """Most recent outcomes, newest first."""
        with self._lock:
            return list(reversed(self._recent))

    def failures(self) -> list[ProcessingOutcome]:
        return [o for o in self.recent() if o.outcome == Outcome.FAILED]
