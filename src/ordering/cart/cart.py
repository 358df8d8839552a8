"""Shopping Cart aggregate (CQRS): one mutable cart per owner.

The cart is identified by its owner, so "get my cart" never needs a lookup
table. Lines are keyed by product and variant (color + size). Totals are
derived by the pricing engine after every mutation and are never edited
directly, so ``total_price`` always equals the engine's ``total`` for the
current lines and coupon.

Catalogue checks (active status, stock) happen in the command handlers; the
aggregate only receives snapshots of what the catalogue said.
"""

import json
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from ordering.cart.events import (
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
    CartReconciled,
)
from ordering.domain import ordering
from ordering.errors import NotFoundError
from ordering.pricing import get_pricing_policy
from ordering.pricing.engine import HUNDRED, ZERO, DiscountKind, price_lines, to_decimal


def variant_key(color=None, size=None):
    """Normalize a (color, size) pair; blanks count as "no variant"."""
    return (color or None, size or None)


@ordering.value_object(part_of="ShoppingCart")
class AppliedCoupon:
    """Discount terms attached to a cart. Validity is not looked up anywhere."""

    code = String(required=True, max_length=100)
    discount_value = Float(required=True)
    discount_kind = String(choices=DiscountKind, default=DiscountKind.PERCENTAGE.value)


@ordering.entity(part_of="ShoppingCart")
class CartItem:
    """A cart line with the name and price the catalogue quoted at add-time."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    color = String(max_length=50)
    size = String(max_length=50)
    image = String(max_length=500)
    added_at = DateTime()

    @property
    def variant(self):
        return variant_key(self.color, self.size)

    @property
    def line_total(self):
        return float(to_decimal(self.price) * self.quantity)


@ordering.aggregate
class ShoppingCart:
    owner_id = Identifier(identifier=True)
    items = HasMany(CartItem)
    coupon = ValueObject(AppliedCoupon)
    total_items = Integer(default=0)
    subtotal = Float(default=0.0)
    discount = Float(default=0.0)
    tax = Float(default=0.0)
    shipping_fee = Float(default=0.0)
    total_price = Float(default=0.0)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, owner_id):
        now = datetime.now(UTC)
        return cls(owner_id=str(owner_id), created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def find_line(self, product_id, color=None, size=None):
        key = (str(product_id), variant_key(color, size))
        return next((i for i in self.items if (str(i.product_id), i.variant) == key), None)

    def quantity_of(self, product_id, exclude=None):
        """Units of ``product_id`` across all variants, optionally skipping one line."""
        return sum(i.quantity for i in self.items if str(i.product_id) == str(product_id) and i is not exclude)

    def totals(self):
        """Run the pricing engine over the current lines and coupon."""
        return price_lines(self.items, self.coupon, get_pricing_policy())

    def _recompute_totals(self):
        totals = self.totals()
        self.total_items = sum(i.quantity for i in self.items)
        self.subtotal = float(totals.subtotal)
        self.discount = float(totals.discount)
        self.tax = float(totals.tax)
        self.shipping_fee = float(totals.shipping_fee)
        self.total_price = float(totals.total)
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Line management
    # -------------------------------------------------------------------
    def add_item(self, product_id, name, price, quantity, color=None, size=None, image=None):
        """Add a line, or increase the quantity of the matching (product, variant) line.

        The snapshot price of an existing line is kept; only quantity grows.
        """
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        color, size = variant_key(color, size)
        line = self.find_line(product_id, color, size)
        if line:
            line.quantity += quantity
        else:
            line = CartItem(
                product_id=str(product_id),
                name=name,
                price=float(price),
                quantity=quantity,
                color=color,
                size=size,
                image=image,
                added_at=datetime.now(UTC),
            )
            self.add_items(line)

        self._recompute_totals()
        self.raise_(
            CartItemAdded(
                owner_id=self.owner_id,
                product_id=str(product_id),
                color=color,
                size=size,
                quantity=quantity,
                line_quantity=line.quantity,
                price=line.price,
            )
        )
        return line

    def update_quantity(self, product_id, quantity, color=None, size=None):
        """Overwrite a line's quantity. Zero or less removes the line."""
        line = self._require_line(product_id, color, size)
        if quantity <= 0:
            self.remove_item(product_id, color, size)
            return

        previous = line.quantity
        line.quantity = quantity
        self._recompute_totals()
        self.raise_(
            CartItemQuantityUpdated(
                owner_id=self.owner_id,
                product_id=str(product_id),
                color=line.color,
                size=line.size,
                previous_quantity=previous,
                new_quantity=quantity,
            )
        )

    def remove_item(self, product_id, color=None, size=None):
        line = self._require_line(product_id, color, size)
        self.remove_items(line)
        self._recompute_totals()
        self.raise_(
            CartItemRemoved(
                owner_id=self.owner_id,
                product_id=str(product_id),
                color=line.color,
                size=line.size,
            )
        )

    def clear(self):
        """Drop every line and the coupon. Clearing an empty cart is a no-op."""
        count = len(self.items)
        if count == 0 and self.coupon is None:
            return

        for line in list(self.items):
            self.remove_items(line)
        self.coupon = None
        self._recompute_totals()
        self.raise_(CartCleared(owner_id=self.owner_id, item_count=count))

    def _require_line(self, product_id, color, size):
        line = self.find_line(product_id, color, size)
        if line is None:
            raise NotFoundError("Item not found in cart", identifier=str(product_id))
        return line

    # -------------------------------------------------------------------
    # Coupons
    # -------------------------------------------------------------------
    def apply_coupon(self, code, discount_value, discount_kind=DiscountKind.PERCENTAGE.value):
        """Attach coupon terms, replacing any previous coupon.

        Re-applying identical terms leaves the cart untouched.
        """
        if not code or not str(code).strip():
            raise ValidationError({"code": ["Coupon code is required"]})
        try:
            kind = DiscountKind(discount_kind)
        except ValueError:
            raise ValidationError({"discount_kind": [f"Unknown discount kind '{discount_kind}'"]}) from None

        value = to_decimal(discount_value)
        if value <= ZERO:
            raise ValidationError({"discount_value": ["Discount must be greater than zero"]})
        if kind == DiscountKind.PERCENTAGE and value > HUNDRED:
            raise ValidationError({"discount_value": ["Percentage discount cannot exceed 100"]})

        coupon = AppliedCoupon(code=str(code).strip(), discount_value=float(value), discount_kind=kind.value)
        if self.coupon == coupon:
            return

        self.coupon = coupon
        self._recompute_totals()
        self.raise_(
            CartCouponApplied(
                owner_id=self.owner_id,
                code=coupon.code,
                discount_value=coupon.discount_value,
                discount_kind=coupon.discount_kind,
            )
        )

    def remove_coupon(self):
        if self.coupon is None:
            return

        code = self.coupon.code
        self.coupon = None
        self._recompute_totals()
        self.raise_(CartCouponRemoved(owner_id=self.owner_id, code=code))

    # -------------------------------------------------------------------
    # Reconciliation against the catalogue
    # -------------------------------------------------------------------
    def reconcile(self, lookup):
        """Prune lines for inactive or missing products and clamp to current stock.

        ``lookup`` maps a product id to a catalogue snapshot (or None). Stock is
        shared by all variant lines of a product, in line order. Returns True
        when anything changed.
        """
        removed, adjusted = [], []
        remaining = {}

        for line in list(self.items):
            product_id = str(line.product_id)
            if product_id not in remaining:
                product = lookup(product_id)
                remaining[product_id] = product.available_quantity if product and product.is_active else 0

            budget = remaining[product_id]
            if budget <= 0:
                self.remove_items(line)
                removed.append({"product_id": product_id, "color": line.color, "size": line.size})
            elif line.quantity > budget:
                adjusted.append(
                    {"product_id": product_id, "color": line.color, "size": line.size, "from": line.quantity, "to": budget}
                )
                line.quantity = budget
                remaining[product_id] = 0
            else:
                remaining[product_id] = budget - line.quantity

        if not removed and not adjusted:
            return False

        self._recompute_totals()
        self.raise_(
            CartReconciled(
                owner_id=self.owner_id,
                removed=json.dumps(removed),
                adjusted=json.dumps(adjusted),
            )
        )
        return True
