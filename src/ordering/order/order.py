"""Order aggregate (CQRS): the immutable result of a checkout.

Items, addresses and the five money fields are copied in once, at placement,
and never recomputed from the catalogue afterwards. The only thing that moves
is the status, along an explicit and total transition table:

    PENDING → PROCESSING → SHIPPED → DELIVERED
    PENDING, PROCESSING → CANCELLED

DELIVERED and CANCELLED are terminal. Every pair not listed is rejected with
``InvalidTransition``.
"""

import calendar
import json
from collections import defaultdict
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from ordering.domain import ordering
from ordering.errors import InvalidTransition, NotFoundError
from ordering.order.events import OrderCancelled, OrderDelivered, OrderPlaced, OrderProcessing, OrderShipped


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    CASH = "cash"
    CARD = "card"
    MOBILE_MONEY = "mobile_money"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}


def can_transition(current, target) -> bool:
    return OrderStatus(target) in _VALID_TRANSITIONS[OrderStatus(current)]


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class Address:
    """A delivery or billing address captured at checkout time."""

    name = String(max_length=255)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    zip_code = String(max_length=20)
    country = String(required=True, max_length=100)
    phone = String(max_length=30)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A line copied verbatim from the cart: name and price as the customer saw them."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    color = String(max_length=50)
    size = String(max_length=50)
    image = String(max_length=500)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(required=True, unique=True, max_length=50)
    owner_id = Identifier(required=True)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(Address)
    billing_address = ValueObject(Address)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.CASH.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    subtotal = Float(default=0.0, min_value=0.0)
    shipping_fee = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0, min_value=0.0)
    coupon_code = String(max_length=100)
    notes = Text()
    tracking_number = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()
    delivered_at = DateTime()
    cancelled_at = DateTime()

    @invariant.post
    def total_must_reconcile(self):
        expected = round(self.subtotal + self.shipping_fee + self.tax - self.discount, 2)
        if abs(expected - self.total) > 0.005:
            raise ValidationError({"total": ["Total must equal subtotal + shipping fee + tax - discount"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number,
        owner_id,
        lines,
        totals,
        shipping_address,
        billing_address=None,
        payment_method=PaymentMethod.CASH.value,
        coupon_code=None,
        notes=None,
    ):
        """Create a pending order from cart lines and precomputed ``Totals``.

        ``lines`` are objects exposing product_id, name, price, quantity,
        color, size and image (cart lines). The billing address defaults to
        the shipping address.
        """
        now = datetime.now(UTC)
        items = [
            OrderItem(
                product_id=str(line.product_id),
                name=line.name,
                price=line.price,
                quantity=line.quantity,
                color=line.color,
                size=line.size,
                image=line.image,
            )
            for line in lines
        ]
        money = totals.as_floats()

        order = cls(
            order_number=order_number,
            owner_id=str(owner_id),
            items=items,
            shipping_address=Address(**shipping_address),
            billing_address=Address(**(billing_address or shipping_address)),
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING.value,
            status=OrderStatus.PENDING.value,
            coupon_code=coupon_code,
            notes=notes,
            created_at=now,
            updated_at=now,
            **money,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                owner_id=order.owner_id,
                items=json.dumps([order._line_dict(item) for item in order.items]),
                item_count=sum(item.quantity for item in order.items),
                payment_method=order.payment_method,
                coupon_code=coupon_code,
                placed_at=now,
                **money,
            )
        )
        return order

    @staticmethod
    def _line_dict(item):
        return {
            "product_id": str(item.product_id),
            "name": item.name,
            "price": item.price,
            "quantity": item.quantity,
            "color": item.color,
            "size": item.size,
        }

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target):
        current = OrderStatus(self.status)
        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidTransition(
                f"Cannot transition from {current.value} to {target.value}",
                identifier=str(self.id),
                current=current.value,
                target=target.value,
            )

    def transition_to(self, target_status, tracking_number=None, notes=None):
        """Move to ``target_status`` and stamp/record what that transition requires."""
        try:
            target = OrderStatus(target_status)
        except ValueError:
            raise ValidationError({"status": [f"Unknown order status '{target_status}'"]}) from None

        if target == OrderStatus.PROCESSING:
            self.mark_processing(notes=notes)
        elif target == OrderStatus.SHIPPED:
            self.ship(tracking_number=tracking_number, notes=notes)
        elif target == OrderStatus.DELIVERED:
            self.deliver(notes=notes)
        elif target == OrderStatus.CANCELLED:
            self.cancel(notes=notes)
        else:
            # Nothing transitions back to pending
            self._assert_can_transition(target)

    def _record(self, target, notes):
        self.status = target.value
        if notes:
            self.notes = notes
        self.updated_at = datetime.now(UTC)

    def mark_processing(self, notes=None):
        self._assert_can_transition(OrderStatus.PROCESSING)
        self._record(OrderStatus.PROCESSING, notes)
        self.raise_(OrderProcessing(order_id=str(self.id), order_number=self.order_number, notes=notes))

    def ship(self, tracking_number=None, notes=None):
        self._assert_can_transition(OrderStatus.SHIPPED)
        if tracking_number:
            self.tracking_number = tracking_number
        self._record(OrderStatus.SHIPPED, notes)
        self.raise_(
            OrderShipped(
                order_id=str(self.id),
                order_number=self.order_number,
                tracking_number=self.tracking_number,
                notes=notes,
            )
        )

    def deliver(self, notes=None):
        self._assert_can_transition(OrderStatus.DELIVERED)
        self._record(OrderStatus.DELIVERED, notes)
        self.delivered_at = self.updated_at
        self.raise_(
            OrderDelivered(
                order_id=str(self.id),
                order_number=self.order_number,
                delivered_at=self.delivered_at,
            )
        )

    def cancel(self, notes=None):
        """Cancel the order. Stock release is the caller's job, done exactly once."""
        self._assert_can_transition(OrderStatus.CANCELLED)
        previous = self.status
        self._record(OrderStatus.CANCELLED, notes)
        self.cancelled_at = self.updated_at
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=previous,
                items=json.dumps([{"product_id": str(i.product_id), "quantity": i.quantity} for i in self.items]),
                notes=notes,
                cancelled_at=self.cancelled_at,
            )
        )


def _months_before(moment, months):
    month_index = moment.year * 12 + moment.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------
@ordering.repository(part_of=Order)
class OrderRepository:
    """Order queries for owners and back-office screens."""

    page_size = 100

    def _collect(self, query):
        results, offset = [], 0
        while True:
            page = query.offset(offset).limit(self.page_size).all()
            results.extend(page.items)
            offset += self.page_size
            if offset >= page.total:
                return results

    def for_owner(self, owner_id) -> list[Order]:
        """All orders of one owner, newest first."""
        return self._collect(self._dao.query.filter(owner_id=str(owner_id)).order_by("-created_at"))

    def get_for_owner(self, order_id, owner_id) -> Order:
        """Fetch an order only if it belongs to ``owner_id``."""
        orders = self._dao.query.filter(id=str(order_id), owner_id=str(owner_id)).all().items
        if not orders:
            raise NotFoundError("Order not found", identifier=str(order_id))
        return orders[0]

    def search(self, status=None, date_from=None, date_to=None, page=1, limit=20):
        """One page of orders matching the filters, newest first.

        Returns ``(orders, total)`` where ``total`` counts every match.
        """
        criteria = {}
        if status:
            try:
                criteria["status"] = OrderStatus(status).value
            except ValueError:
                raise ValidationError({"status": [f"Unknown order status '{status}'"]}) from None
        if date_from:
            criteria["created_at__gte"] = date_from
        if date_to:
            criteria["created_at__lte"] = date_to

        query = self._dao.query.filter(**criteria) if criteria else self._dao.query
        result = query.order_by("-created_at").offset((page - 1) * limit).limit(limit).all()
        return result.items, result.total

    def recent(self, count=5) -> list[Order]:
        return self._dao.query.order_by("-created_at").limit(count).all().items

    def monthly_revenue(self, months=6, now=None) -> list[dict]:
        """Delivered revenue per calendar month of placement, oldest month first.

        Covers orders placed in the last ``months`` months, counted back from
        ``now`` to the same day of the month (clamped to the month's length).
        """
        since = _months_before(now or datetime.now(UTC), months)
        delivered = self._collect(
            self._dao.query.filter(status=OrderStatus.DELIVERED.value, created_at__gte=since)
        )

        buckets = defaultdict(lambda: {"revenue": 0.0, "orders": 0})
        for order in delivered:
            bucket = buckets[order.created_at.strftime("%Y-%m")]
            bucket["revenue"] += order.total
            bucket["orders"] += 1

        return [
            {"month": month, "revenue": round(bucket["revenue"], 2), "orders": bucket["orders"]}
            for month, bucket in sorted(buckets.items())
        ]

    def stats(self) -> dict:
        delivered = self._collect(self._dao.query.filter(status=OrderStatus.DELIVERED.value))
        return {
            "total_orders": self._dao.query.all().total,
            "total_revenue": round(sum(order.total for order in delivered), 2),
            "by_status": {
                status.value: self._dao.query.filter(status=status.value).all().total for status in OrderStatus
            },
            "recent_orders": self.recent(),
            "monthly_revenue": self.monthly_revenue(),
        }
