"""SQL-backed sequence counter.

Each key is one row in ``order_sequences``. The increment is an
``UPDATE ... SET value = value + 1`` inside a transaction, so the database
serializes concurrent callers on the row lock. The first caller for a key
inserts the row; losing that insert race falls back to the update.
"""

import structlog
from sqlalchemy import Engine, Integer, String, insert, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Mapped, mapped_column

from ordering.errors import Unavailable
from ordering.sequence.port import SequenceCounter
from ordering.utils.db import Base

logger = structlog.get_logger(__name__)


class SequenceRecord(Base):
    __tablename__ = "order_sequences"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class SqlSequenceCounter(SequenceCounter):
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def _increment(self, conn, key):
        result = conn.execute(
            update(SequenceRecord).where(SequenceRecord.key == key).values(value=SequenceRecord.value + 1)
        )
        return result.rowcount == 1

    def next_value(self, key: str) -> int:
        try:
            try:
                with self.engine.begin() as conn:
                    if not self._increment(conn, key):
                        conn.execute(insert(SequenceRecord).values(key=key, value=1))
                    return conn.execute(select(SequenceRecord.value).where(SequenceRecord.key == key)).scalar_one()
            except IntegrityError:
                # Another caller created the row first
                with self.engine.begin() as conn:
                    self._increment(conn, key)
                    return conn.execute(select(SequenceRecord.value).where(SequenceRecord.key == key)).scalar_one()
        except (OperationalError, PoolTimeoutError) as exc:
            logger.error("sequence_storage_unavailable", key=key, error=str(exc))
            raise Unavailable("Sequence storage unavailable", identifier=key) from exc
