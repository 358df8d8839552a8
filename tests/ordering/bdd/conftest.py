"""Shared BDD fixtures and step definitions for the Ordering domain."""

import json

import pytest
from ordering.cart.cart import ShoppingCart
from ordering.cart.coupons import ApplyCouponToCart
from ordering.cart.items import AddToCart
from ordering.checkout.checkout import PlaceOrder, place_order
from ordering.errors import OrderingError
from ordering.order.lifecycle import TransitionOrder, change_order_status
from ordering.order.order import Order
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then, when


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def owner_id():
    return "cust-001"


@pytest.fixture()
def outcome():
    """Container for the last command result or the error it raised."""
    return {"result": None, "exc": None}


@pytest.fixture()
def run(outcome):
    """Process a command, recording its result or the domain error it raised.

    Commands without a handler are passed to their application service.
    """

    def _run(command, service=None):
        try:
            if service is None:
                outcome["result"] = current_domain.process(command, asynchronous=False)
            else:
                outcome["result"] = service(command)
            outcome["exc"] = None
        except (OrderingError, ValidationError) as exc:
            outcome["exc"] = exc
        return outcome

    return _run


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{product_id}" priced {price:f} with {stock:d} in stock'))
def product_in_catalogue(catalogue, product_id, price, stock):
    catalogue.add_product(product_id, product_id.title(), price, available_quantity=stock)


@given(parsers.cfparse('the cart holds {quantity:d} of "{product_id}"'))
def cart_holds(owner_id, quantity, product_id):
    current_domain.process(
        AddToCart(owner_id=owner_id, product_id=product_id, quantity=quantity),
        asynchronous=False,
    )


@given(parsers.cfparse('a {percent:d}% coupon "{code}" is applied'))
def percentage_coupon_applied(owner_id, percent, code):
    current_domain.process(
        ApplyCouponToCart(owner_id=owner_id, code=code, discount_value=percent, discount_kind="percentage"),
        asynchronous=False,
    )


@given("the order has been placed", target_fixture="order_id")
def order_placed(owner_id, shipping_address):
    result = place_order(PlaceOrder(owner_id=owner_id, shipping_address=json.dumps(shipping_address)))
    return result["id"]


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the customer checks out")
def customer_checks_out(owner_id, shipping_address, run):
    run(PlaceOrder(owner_id=owner_id, shipping_address=json.dumps(shipping_address)), place_order)


@when(parsers.cfparse('the order is moved to "{status}"'))
def order_moved(order_id, status, run):
    run(TransitionOrder(order_id=order_id, target_status=status), change_order_status)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the request fails with "{kind}"'))
def request_fails(outcome, kind):
    exc = outcome["exc"]
    assert exc is not None
    if isinstance(exc, ValidationError):
        assert kind == "validation_error"
    else:
        assert exc.kind == kind


@then("the request succeeds")
def request_succeeds(outcome):
    assert outcome["exc"] is None


@then(parsers.cfparse('"{product_id}" has {stock:d} in stock'))
def product_stock(catalogue, product_id, stock):
    assert catalogue.get_product(product_id).available_quantity == stock


@then(parsers.cfparse('the order status is "{status}"'))
def order_status(order_id, status):
    assert current_domain.repository_for(Order).get(order_id).status == status


@then(parsers.cfparse("the cart total is {total:f}"))
def cart_total(owner_id, total):
    assert current_domain.repository_for(ShoppingCart).get(owner_id).total_price == total
