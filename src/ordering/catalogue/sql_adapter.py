"""SQL-backed product catalogue.

Stock adjustments are single ``UPDATE ... WHERE`` statements so the database
performs the compare-and-decrement; there is no read-then-write window in
application code. Status flips are computed in the same statement.
"""

from dataclasses import asdict
from decimal import Decimal

import structlog
from sqlalchemy import Engine, Integer, Numeric, String, case, select, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Mapped, mapped_column

from ordering.catalogue.port import ProductCatalogue, ProductSnapshot, ProductStatus, StockChange
from ordering.errors import Unavailable
from ordering.utils.db import Base

logger = structlog.get_logger(__name__)


class ProductRecord(Base):
    __tablename__ = "catalogue_products"

    product_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ProductStatus.ACTIVE.value)
    available_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    image: Mapped[str | None] = mapped_column(String(500), nullable=True)


def _to_snapshot(row) -> ProductSnapshot:
    return ProductSnapshot(
        product_id=row.product_id,
        name=row.name,
        price=Decimal(str(row.price)),
        status=row.status,
        available_quantity=row.available_quantity,
        discount_percent=Decimal(str(row.discount_percent)),
        image=row.image,
    )


_ACTIVE = ProductStatus.ACTIVE.value
_OUT_OF_STOCK = ProductStatus.OUT_OF_STOCK.value


class SqlCatalogue(ProductCatalogue):
    """Catalogue adapter over a ``catalogue_products`` table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def _fetch(self, conn, product_id) -> ProductSnapshot | None:
        row = conn.execute(select(ProductRecord.__table__).where(ProductRecord.product_id == product_id)).first()
        return _to_snapshot(row) if row is not None else None

    def add_product(
        self,
        product_id,
        name,
        price,
        available_quantity=0,
        status=_ACTIVE,
        discount_percent=0,
        image=None,
    ) -> ProductSnapshot:
        if available_quantity == 0 and status == _ACTIVE:
            status = _OUT_OF_STOCK

        snapshot = ProductSnapshot(
            product_id=str(product_id),
            name=name,
            price=Decimal(str(price)),
            status=status,
            available_quantity=available_quantity,
            discount_percent=Decimal(str(discount_percent)),
            image=image,
        )
        try:
            with self.engine.begin() as conn:
                conn.execute(ProductRecord.__table__.delete().where(ProductRecord.product_id == snapshot.product_id))
                conn.execute(ProductRecord.__table__.insert().values(**asdict(snapshot)))
        except (OperationalError, PoolTimeoutError) as exc:
            raise Unavailable("Catalogue storage unavailable", identifier=str(product_id)) from exc
        return snapshot

    def get_product(self, product_id: str) -> ProductSnapshot | None:
        try:
            with self.engine.connect() as conn:
                snapshot = self._fetch(conn, str(product_id))
        except (OperationalError, PoolTimeoutError) as exc:
            raise Unavailable("Catalogue storage unavailable", identifier=str(product_id)) from exc
        return snapshot

    def _apply(self, product_id, statement) -> StockChange:
        try:
            with self.engine.begin() as conn:
                result = conn.execute(statement)
                record = self._fetch(conn, product_id)
        except (OperationalError, PoolTimeoutError) as exc:
            logger.error("stock_storage_unavailable", product_id=product_id, error=str(exc))
            raise Unavailable("Catalogue storage unavailable", identifier=product_id) from exc

        if record is None:
            return StockChange(success=False, product_id=product_id)

        return StockChange(
            success=result.rowcount == 1,
            product_id=product_id,
            available_quantity=record.available_quantity,
            status=record.status,
        )

    def decrement_if_available(self, product_id: str, quantity: int) -> StockChange:
        product_id = str(product_id)
        available = ProductRecord.available_quantity
        # Status is listed first so every dialect evaluates it against the pre-update quantity
        statement = (
            update(ProductRecord)
            .where(ProductRecord.product_id == product_id, available >= quantity)
            .ordered_values(
                (
                    ProductRecord.status,
                    case(
                        ((available == quantity) & (ProductRecord.status == _ACTIVE), _OUT_OF_STOCK),
                        else_=ProductRecord.status,
                    ),
                ),
                (available, available - quantity),
            )
        )
        return self._apply(product_id, statement)

    def increment(self, product_id: str, quantity: int) -> StockChange:
        product_id = str(product_id)
        available = ProductRecord.available_quantity
        statement = (
            update(ProductRecord)
            .where(ProductRecord.product_id == product_id)
            .ordered_values(
                (
                    ProductRecord.status,
                    case(
                        ((available + quantity > 0) & (ProductRecord.status == _OUT_OF_STOCK), _ACTIVE),
                        else_=ProductRecord.status,
                    ),
                ),
                (available, available + quantity),
            )
        )
        return self._apply(product_id, statement)
