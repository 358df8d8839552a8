"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to the cart, or its line quantity was increased."""

    __version__ = "v1"

    owner_id = Identifier(required=True)
    product_id = Identifier(required=True)
    color = String()
    size = String()
    quantity = Integer(required=True)
    line_quantity = Integer(required=True)
    price = Float(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemQuantityUpdated:
    """The quantity of a cart line was overwritten."""

    __version__ = "v1"

    owner_id = Identifier(required=True)
    product_id = Identifier(required=True)
    color = String()
    size = String()
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemRemoved:
    __version__ = "v1"

    owner_id = Identifier(required=True)
    product_id = Identifier(required=True)
    color = String()
    size = String()


@ordering.event(part_of="ShoppingCart")
class CartCleared:
    """All lines and the coupon were dropped, manually or after checkout."""

    __version__ = "v1"

    owner_id = Identifier(required=True)
    item_count = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartCouponApplied:
    __version__ = "v1"

    owner_id = Identifier(required=True)
    code = String(required=True)
    discount_value = Float(required=True)
    discount_kind = String(required=True)


@ordering.event(part_of="ShoppingCart")
class CartCouponRemoved:
    __version__ = "v1"

    owner_id = Identifier(required=True)
    code = String(required=True)


@ordering.event(part_of="ShoppingCart")
class CartReconciled:
    """Lines were pruned or clamped because the catalogue changed under the cart."""

    __version__ = "v1"

    owner_id = Identifier(required=True)
    removed = Text()  # JSON: list of {product_id, color, size}
    adjusted = Text()  # JSON: list of {product_id, color, size, from, to}
