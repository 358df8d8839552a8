"""Cart coupon management: commands and handler.

Coupon terms arrive with the command. There is no coupon registry lookup;
plugging one in means resolving ``code`` to terms here before applying.
"""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.management import load_or_create_cart
from ordering.domain import ordering
from ordering.pricing.engine import DiscountKind


@ordering.command(part_of="ShoppingCart")
class ApplyCouponToCart:
    owner_id = Identifier(required=True)
    code = String(required=True, max_length=100)
    discount_value = Float(required=True)
    discount_kind = String(max_length=20, default=DiscountKind.PERCENTAGE.value)


@ordering.command(part_of="ShoppingCart")
class RemoveCouponFromCart:
    owner_id = Identifier(required=True)


@ordering.command_handler(part_of=ShoppingCart)
class CartCouponsHandler:
    @handle(ApplyCouponToCart)
    def apply_coupon(self, command):
        cart = load_or_create_cart(command.owner_id)
        cart.apply_coupon(
            code=command.code,
            discount_value=command.discount_value,
            discount_kind=command.discount_kind,
        )
        current_domain.repository_for(ShoppingCart).add(cart)
        return cart.to_dict()

    @handle(RemoveCouponFromCart)
    def remove_coupon(self, command):
        cart = load_or_create_cart(command.owner_id)
        cart.remove_coupon()
        current_domain.repository_for(ShoppingCart).add(cart)
        return cart.to_dict()
