"""Stock ledger: availability checks, reservations and releases.

The ledger is a thin policy layer over the catalogue port. ``reserve`` relies
entirely on the port's atomic compare-and-decrement and reports failure as a
value so checkout can unwind cleanly. ``release`` is an unconditional
increment; callers are responsible for never releasing the same order twice.
"""

from dataclasses import dataclass

import structlog

from ordering.catalogue import get_catalogue
from ordering.catalogue.port import ProductCatalogue

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Reservation:
    """Result of a reservation attempt."""

    product_id: str
    quantity: int
    success: bool
    available_quantity: int = 0

    def __bool__(self) -> bool:
        return self.success


class StockLedger:
    def __init__(self, catalogue: ProductCatalogue | None = None) -> None:
        self.catalogue = catalogue or get_catalogue()

    def available_quantity(self, product_id) -> int:
        """Quantity that can be sold now; 0 for missing or inactive products."""
        product = self.catalogue.get_product(str(product_id))
        if product is None or not product.is_active:
            return 0
        return product.available_quantity

    def check_available(self, product_id, quantity: int) -> bool:
        return self.available_quantity(product_id) >= quantity

    def reserve(self, product_id, quantity: int) -> Reservation:
        change = self.catalogue.decrement_if_available(str(product_id), quantity)
        if not change.success:
            logger.warning(
                "stock_reservation_failed",
                product_id=str(product_id),
                requested=quantity,
                available=change.available_quantity,
            )
            return Reservation(str(product_id), quantity, False, change.available_quantity)

        logger.info(
            "stock_reserved",
            product_id=str(product_id),
            quantity=quantity,
            remaining=change.available_quantity,
            status=change.status,
        )
        return Reservation(str(product_id), quantity, True, change.available_quantity)

    def release(self, product_id, quantity: int) -> Reservation:
        change = self.catalogue.increment(str(product_id), quantity)
        if not change.success:
            # Product removed from the catalogue since the order was placed
            logger.warning("stock_release_skipped", product_id=str(product_id), quantity=quantity)
        else:
            logger.info(
                "stock_released",
                product_id=str(product_id),
                quantity=quantity,
                available=change.available_quantity,
                status=change.status,
            )
        return Reservation(str(product_id), quantity, change.success, change.available_quantity)

    # -------------------------------------------------------------------
    # Undoing stock moves of a failed operation
    # -------------------------------------------------------------------
    def _undo(self, step, event, entries) -> list[str]:
        outstanding = []
        for product_id, quantity in entries:
            try:
                done = step(product_id, quantity)
            except Exception as exc:  # reported through the returned ids
                logger.error(event, product_id=str(product_id), quantity=quantity, error=str(exc))
                outstanding.append(str(product_id))
                continue
            if not done:
                logger.error(event, product_id=str(product_id), quantity=quantity)
                outstanding.append(str(product_id))
        return outstanding

    def release_each(self, entries) -> list[str]:
        """Give back ``(product_id, quantity)`` pairs taken by a failed operation.

        Returns the product ids that could not be given back.
        """
        return self._undo(self.release, "stock_release_undo_failed", entries)

    def reserve_each(self, entries) -> list[str]:
        """Take back ``(product_id, quantity)`` pairs released by a failed operation.

        Returns the product ids whose units were sold in the meantime.
        """
        return self._undo(self.reserve, "stock_reserve_undo_failed", entries)
