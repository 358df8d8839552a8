"""Domain events for the Order aggregate.

Versioned, immutable facts about order placement and status transitions.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A cart was checked out into a new pending order."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    owner_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, name, price, quantity, color, size}
    item_count = Integer(required=True)
    payment_method = String(required=True)
    subtotal = Float(required=True)
    shipping_fee = Float(required=True)
    tax = Float(required=True)
    discount = Float(required=True)
    total = Float(required=True)
    coupon_code = String()
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderProcessing:
    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    notes = String()


@ordering.event(part_of="Order")
class OrderShipped:
    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    tracking_number = String()
    notes = String()


@ordering.event(part_of="Order")
class OrderDelivered:
    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    delivered_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled; its stock is released once, by the lifecycle handler."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    items = Text(required=True)  # JSON: list of {product_id, quantity}
    notes = String()
    cancelled_at = DateTime(required=True)
