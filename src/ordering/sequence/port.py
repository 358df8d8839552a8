"""Order-number counter port.

A counter hands out strictly increasing integers per key (one key per
calendar day). ``next_value`` must be a single atomic increment in storage so
that two concurrent checkouts never observe the same value.
"""

from abc import ABC, abstractmethod


class SequenceCounter(ABC):
    @abstractmethod
    def next_value(self, key: str) -> int:
        """Atomically increment the counter for ``key`` and return the new value.

        The first call for a key returns 1.
        """
        ...
