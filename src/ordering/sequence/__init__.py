"""Sequence counter factory.

Provides get_sequence_counter() / set_sequence_counter() to swap implementations:
- InMemorySequenceCounter for development and testing
- SqlSequenceCounter when ORDERING_SEQUENCE_URI points at a database
"""

from ordering.sequence.fake_adapter import InMemorySequenceCounter
from ordering.sequence.port import SequenceCounter
from ordering.settings import get_settings

_current_counter: SequenceCounter | None = None


def _counter_from_settings() -> SequenceCounter:
    settings = get_settings()
    if settings.sequence_uri:
        from ordering.sequence.sql_adapter import SqlSequenceCounter
        from ordering.utils.db import build_engine

        return SqlSequenceCounter(build_engine(settings.sequence_uri, settings.storage_timeout))
    return InMemorySequenceCounter(timeout=settings.storage_timeout)


def get_sequence_counter() -> SequenceCounter:
    """Return the current counter. Defaults to the configured adapter."""
    global _current_counter
    if _current_counter is None:
        _current_counter = _counter_from_settings()
    return _current_counter


def set_sequence_counter(counter: SequenceCounter) -> None:
    """Override the active counter (useful for tests)."""
    global _current_counter
    _current_counter = counter


def reset_sequence_counter() -> None:
    """Reset to the configured counter."""
    global _current_counter
    _current_counter = None
