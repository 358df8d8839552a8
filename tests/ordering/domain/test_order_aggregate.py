"""Tests for Order placement: snapshots, money fields and addresses."""

import json
from decimal import Decimal
from types import SimpleNamespace

import pytest
from ordering.order.events import OrderPlaced
from ordering.order.order import Address, Order, OrderStatus, PaymentStatus
from ordering.pricing.engine import Coupon, price_lines
from protean.exceptions import ValidationError

ADDRESS = {"street": "12 Ring Road", "city": "Accra", "country": "GH"}


def _lines():
    return [
        SimpleNamespace(product_id="prod-1", name="Shirt", price=100.0, quantity=2, color="red", size="M", image=None),
        SimpleNamespace(product_id="prod-2", name="Hat", price=20.0, quantity=1, color=None, size=None, image="h.png"),
    ]


def _place(**overrides):
    lines = _lines()
    kwargs = {
        "order_number": "ORD-261019-001",
        "owner_id": "cust-001",
        "lines": lines,
        "totals": price_lines(lines, Coupon("SAVE10", Decimal("10"))),
        "shipping_address": ADDRESS,
        "coupon_code": "SAVE10",
    }
    kwargs.update(overrides)
    return Order.place(**kwargs)


class TestOrderPlacement:
    def test_starts_pending(self):
        order = _place()
        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == PaymentStatus.PENDING.value

    def test_copies_line_snapshots(self):
        order = _place()
        assert [(i.name, i.price, i.quantity, i.color) for i in order.items] == [
            ("Shirt", 100.0, 2, "red"),
            ("Hat", 20.0, 1, None),
        ]

    def test_money_fields(self):
        order = _place()
        assert order.subtotal == 220.0
        assert order.discount == 22.0
        assert order.tax == 33.0
        assert order.shipping_fee == 0.0
        assert order.total == 231.0
        assert order.total == order.subtotal + order.shipping_fee + order.tax - order.discount

    def test_billing_defaults_to_shipping(self):
        order = _place()
        assert order.billing_address == order.shipping_address == Address(**ADDRESS)

    def test_explicit_billing_address(self):
        billing = {"street": "1 Oxford St", "city": "Accra", "country": "GH"}
        order = _place(billing_address=billing)
        assert order.billing_address.street == "1 Oxford St"
        assert order.shipping_address.street == "12 Ring Road"

    def test_records_coupon_and_notes(self):
        order = _place(notes="Leave at the gate")
        assert order.coupon_code == "SAVE10"
        assert order.notes == "Leave at the gate"

    def test_unknown_payment_method_rejected(self):
        with pytest.raises(ValidationError):
            _place(payment_method="cheque")

    def test_mismatched_totals_rejected(self):
        totals = SimpleNamespace(
            as_floats=lambda: {"subtotal": 100.0, "discount": 0.0, "tax": 15.0, "shipping_fee": 0.0, "total": 99.0}
        )
        with pytest.raises(ValidationError) as exc:
            _place(totals=totals)
        assert "total" in exc.value.messages

    def test_raises_order_placed(self):
        order = _place(payment_method="mobile_money")

        event = order._events[-1]
        assert isinstance(event, OrderPlaced)
        assert event.order_number == "ORD-261019-001"
        assert event.payment_method == "mobile_money"
        assert event.item_count == 3
        assert event.total == 231.0
        assert [line["product_id"] for line in json.loads(event.items)] == ["prod-1", "prod-2"]
