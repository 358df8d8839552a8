"""BDD tests for cart coupon management."""

from ordering.cart.coupons import ApplyCouponToCart, RemoveCouponFromCart
from pytest_bdd import parsers, scenarios, when

scenarios("features/cart_coupons.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('coupon "{code}" worth {value:d} "{kind}" is applied'))
def coupon_applied(owner_id, run, code, value, kind):
    run(ApplyCouponToCart(owner_id=owner_id, code=code, discount_value=value, discount_kind=kind))


@when("the coupon is removed")
def coupon_removed(owner_id, run):
    run(RemoveCouponFromCart(owner_id=owner_id))
