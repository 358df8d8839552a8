"""In-memory sequence counter for development and testing."""

import threading
from collections import defaultdict

from ordering.errors import Unavailable
from ordering.sequence.port import SequenceCounter


class InMemorySequenceCounter(SequenceCounter):
    def __init__(self, timeout: float = 5.0) -> None:
        self.timeout = timeout
        self._values: dict[str, int] = defaultdict(int)
        self._lock = threading.Lock()

    def next_value(self, key: str) -> int:
        if not self._lock.acquire(timeout=self.timeout):
            raise Unavailable("Sequence storage timed out", identifier=key)
        try:
            self._values[key] += 1
            return self._values[key]
        finally:
            self._lock.release()

    def current_value(self, key: str) -> int:
        return self._values.get(key, 0)
