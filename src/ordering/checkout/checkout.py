"""Checkout: turn an owner's cart into a pending order.

Steps, each a hard precondition for the next:

    1. Every product in the cart is active with enough stock (no reservation yet)
    2. Totals are priced from the cart's current lines and coupon
    3. An order number is drawn from the per-day counter
    4. The order is staged with item snapshots copied from the cart
    5. Every line is reserved with an atomic compare-and-decrement
    6. The cart is cleared

Reservations are catalogue writes and live outside the unit of work, so
``place_order`` opens the unit of work itself and keeps a record of every
reservation it takes. If anything fails after the first reservation, including
the commit (a concurrent cart change surfaces there as ``ExpectedVersionError``),
the unit of work discards the order and the cart change, the recorded
reservations are released, and the original error is raised. The caller sees
either a complete checkout or none at all. When a release cannot be completed
``StockRollbackIncomplete`` is raised instead, naming the products to correct.

``place_order`` must be called outside any active unit of work: a nested unit
of work would join the outer one and the commit would happen after the
reservations are no longer tracked.
"""

import json
from collections import defaultdict

import structlog
from protean.core.unit_of_work import UnitOfWork
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain, current_uow

from ordering.cart.cart import ShoppingCart
from ordering.cart.management import load_or_create_cart
from ordering.domain import ordering
from ordering.errors import EmptyCart, InsufficientStock, StockRollbackIncomplete
from ordering.order.numbering import OrderNumberGenerator
from ordering.order.order import Order, PaymentMethod
from ordering.stock.ledger import StockLedger

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class PlaceOrder:
    owner_id = Identifier(required=True)
    shipping_address = Text(required=True)  # JSON: address dict
    billing_address = Text()  # JSON: address dict, defaults to shipping
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.CASH.value)
    notes = Text()


def _as_dict(value):
    if value is None:
        return None
    return json.loads(value) if isinstance(value, str) else value


class CheckoutOrchestrator:
    """Runs one checkout. Not reused across requests."""

    def __init__(self, ledger: StockLedger | None = None, numbers: OrderNumberGenerator | None = None) -> None:
        self.ledger = ledger or StockLedger()
        self.numbers = numbers or OrderNumberGenerator()
        self.taken = []

    def _check_stock(self, cart):
        wanted = defaultdict(int)
        for line in cart.items:
            wanted[str(line.product_id)] += line.quantity

        for product_id, quantity in wanted.items():
            available = self.ledger.available_quantity(product_id)
            if available < quantity:
                logger.warning(
                    "checkout_insufficient_stock",
                    product_id=product_id,
                    requested=quantity,
                    available=available,
                )
                raise InsufficientStock(
                    f"Insufficient stock for product {product_id}",
                    identifier=product_id,
                    requested=quantity,
                    available=available,
                )

    def _reserve_all(self, order):
        for item in order.items:
            reservation = self.ledger.reserve(item.product_id, item.quantity)
            if not reservation:
                raise InsufficientStock(
                    f"Insufficient stock for product {reservation.product_id}",
                    identifier=reservation.product_id,
                    requested=reservation.quantity,
                    available=reservation.available_quantity,
                )
            self.taken.append(reservation)

    def _compensate(self, owner_id, exc):
        taken = [(reservation.product_id, reservation.quantity) for reservation in self.taken]
        self.taken = []
        outstanding = self.ledger.release_each(taken)
        if outstanding:
            logger.error(
                "checkout_compensation_incomplete",
                owner_id=str(owner_id),
                product_ids=outstanding,
                error=str(exc),
            )
            raise StockRollbackIncomplete(
                "Checkout failed and its stock reservations could not all be released",
                identifier=str(owner_id),
                product_ids=outstanding,
            ) from exc

        if taken:
            logger.warning(
                "checkout_compensated",
                owner_id=str(owner_id),
                released=len(taken),
                error=str(exc),
            )

    def place(self, cart, shipping_address, billing_address=None, payment_method=None, notes=None) -> Order:
        """Stage the order and take the stock for ``cart``.

        Runs inside the caller's unit of work. Successful reservations are
        recorded on ``self.taken`` as they happen.
        """
        if not cart.items:
            raise EmptyCart("Cart is empty", identifier=str(cart.owner_id))

        self._check_stock(cart)
        totals = cart.totals()
        order_number = self.numbers.next_number()

        order = Order.place(
            order_number=order_number,
            owner_id=cart.owner_id,
            lines=cart.items,
            totals=totals,
            shipping_address=shipping_address,
            billing_address=billing_address,
            payment_method=payment_method or PaymentMethod.CASH.value,
            coupon_code=cart.coupon.code if cart.coupon else None,
            notes=notes,
        )
        current_domain.repository_for(Order).add(order)

        self._reserve_all(order)

        cart.clear()
        current_domain.repository_for(ShoppingCart).add(cart)
        return order

    def run(self, command) -> Order:
        if current_uow and current_uow.in_progress:
            raise RuntimeError("place_order must not run inside another unit of work")

        try:
            with UnitOfWork():
                cart = load_or_create_cart(command.owner_id)
                order = self.place(
                    cart,
                    shipping_address=_as_dict(command.shipping_address),
                    billing_address=_as_dict(command.billing_address),
                    payment_method=command.payment_method,
                    notes=command.notes,
                )
        except Exception as exc:
            self._compensate(command.owner_id, exc)
            raise

        logger.info(
            "order_placed",
            order_id=str(order.id),
            order_number=order.order_number,
            owner_id=order.owner_id,
            total=order.total,
            item_count=len(order.items),
        )
        return order


def place_order(command: PlaceOrder) -> dict:
    """Check out the owner's cart and return the placed order."""
    return CheckoutOrchestrator().run(command).to_dict()
