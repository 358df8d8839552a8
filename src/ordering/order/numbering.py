"""Order number generation: ``ORD-YYMMDD-SEQ``.

SEQ comes from an atomic per-day counter, so concurrent checkouts never share
a number. It is zero-padded to three digits and simply grows wider after 999.
"""

from datetime import UTC, datetime

from ordering.sequence import get_sequence_counter
from ordering.sequence.port import SequenceCounter
from ordering.settings import get_settings


def _utcnow():
    return datetime.now(UTC)


class OrderNumberGenerator:
    def __init__(self, counter: SequenceCounter | None = None, clock=_utcnow, prefix: str | None = None) -> None:
        self.counter = counter or get_sequence_counter()
        self.clock = clock
        self.prefix = prefix or get_settings().order_number_prefix

    def next_number(self) -> str:
        day = self.clock().astimezone(UTC).strftime("%y%m%d")
        seq = self.counter.next_value(f"{self.prefix}-{day}")
        return f"{self.prefix}-{day}-{seq:03d}"
