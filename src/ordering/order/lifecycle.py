"""Order lifecycle: status transitions and their stock side effects.

Cancelling releases every line's quantity back to the catalogue exactly once.
The cancelled status is terminal, so a second cancellation is rejected by the
state machine before anything is released.

Releases are catalogue writes outside the unit of work. If the catalogue fails
half way through, or the status change fails to commit, the released lines are
reserved again and the error propagates. When a line cannot be reserved again
because its units were sold in the meantime, ``StockRollbackIncomplete`` is
raised instead.
"""

import structlog
from protean.core.unit_of_work import UnitOfWork
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import NotFoundError, StockRollbackIncomplete
from ordering.order.order import Order, OrderStatus
from ordering.stock.ledger import StockLedger

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class TransitionOrder:
    order_id = Identifier(required=True)
    target_status = String(required=True, choices=OrderStatus)
    tracking_number = String(max_length=255)
    notes = Text()


def restore_released_stock(order_id, released, ledger: StockLedger, exc):
    """Reserve ``released`` lines again after a failed cancellation."""
    outstanding = ledger.reserve_each(released)
    if outstanding:
        logger.error(
            "order_stock_restore_incomplete",
            order_id=str(order_id),
            product_ids=outstanding,
            error=str(exc),
        )
        raise StockRollbackIncomplete(
            "Cancellation failed and released stock could not all be reserved again",
            identifier=str(order_id),
            product_ids=outstanding,
        ) from exc


def release_order_stock(order, ledger: StockLedger) -> list:
    """Release every line of ``order``. Returns the ``(product_id, quantity)`` pairs released."""
    released = []
    try:
        for item in order.items:
            ledger.release(item.product_id, item.quantity)
            released.append((str(item.product_id), item.quantity))
    except Exception as exc:
        logger.error(
            "order_stock_release_failed",
            order_id=str(order.id),
            released=len(released),
            pending=len(order.items) - len(released),
        )
        restore_released_stock(order.id, released, ledger, exc)
        raise
    return released


def change_order_status(command: TransitionOrder, ledger: StockLedger | None = None) -> dict:
    """Move an order to ``command.target_status`` and return it.

    Must be called outside any active unit of work.
    """
    ledger = ledger or StockLedger()
    released = []
    try:
        with UnitOfWork():
            repo = current_domain.repository_for(Order)
            try:
                order = repo.get(command.order_id)
            except ObjectNotFoundError:
                raise NotFoundError("Order not found", identifier=str(command.order_id)) from None

            previous = order.status
            order.transition_to(
                command.target_status,
                tracking_number=command.tracking_number,
                notes=command.notes,
            )
            repo.add(order)

            if order.status == OrderStatus.CANCELLED.value:
                released = release_order_stock(order, ledger)
    except Exception as exc:
        if released:
            # Only a failed commit gets here with lines released
            restore_released_stock(command.order_id, released, ledger, exc)
        raise

    logger.info(
        "order_transitioned",
        order_id=str(order.id),
        order_number=order.order_number,
        previous_status=previous,
        status=order.status,
    )
    return order.to_dict()
