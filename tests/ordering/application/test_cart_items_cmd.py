"""Application tests for cart item commands against the catalogue."""

import pytest
from ordering.cart.cart import ShoppingCart
from ordering.cart.items import AddToCart, RemoveFromCart, UpdateCartItem
from ordering.errors import InsufficientStock, NotAvailable, NotFoundError
from protean import current_domain
from protean.exceptions import ValidationError


@pytest.fixture(autouse=True)
def products(catalogue):
    catalogue.add_product("prod-1", "Shirt", 100, available_quantity=5, image="shirt.png")
    catalogue.add_product("prod-sale", "Jacket", "80.00", available_quantity=3, discount_percent=25)
    catalogue.add_product("prod-off", "Retired", 10, available_quantity=9, status="inactive")
    catalogue.add_product("prod-gone", "Sold out", 10, available_quantity=0)
    return catalogue


def _add(product_id="prod-1", quantity=1, owner_id="cust-001", **variant):
    return current_domain.process(
        AddToCart(owner_id=owner_id, product_id=product_id, quantity=quantity, **variant),
        asynchronous=False,
    )


def _cart(owner_id="cust-001"):
    return current_domain.repository_for(ShoppingCart).get(owner_id)


class TestAddToCart:
    def test_first_add_creates_cart(self):
        _add(quantity=2)

        cart = _cart()
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 2
        assert cart.total_items == 2
        assert cart.total_price == 230.0

    def test_snapshots_name_image_and_effective_price(self):
        _add("prod-sale")

        line = _cart().items[0]
        assert line.name == "Jacket"
        assert line.price == 60.0
        assert line.image is None

        _add("prod-1")
        assert _cart().find_line("prod-1").image == "shirt.png"

    def test_snapshot_survives_catalogue_price_change(self, catalogue):
        _add("prod-1")
        catalogue.update_product("prod-1", price=250)
        _add("prod-1")

        line = _cart().items[0]
        assert line.quantity == 2
        assert line.price == 100.0

    def test_returns_cart_state(self):
        result = _add(quantity=2)
        assert result["owner_id"] == "cust-001"
        assert result["total_items"] == 2

    def test_one_cart_per_owner(self):
        _add(owner_id="cust-001")
        _add(owner_id="cust-002", quantity=3)

        assert _cart("cust-001").total_items == 1
        assert _cart("cust-002").total_items == 3

    def test_inactive_product(self):
        with pytest.raises(NotAvailable) as exc:
            _add("prod-off")
        assert exc.value.identifier == "prod-off"

    def test_out_of_stock_product(self):
        with pytest.raises(NotAvailable):
            _add("prod-gone")

    def test_unknown_product(self):
        with pytest.raises(NotFoundError):
            _add("prod-404")

    def test_requested_exceeds_stock(self):
        with pytest.raises(InsufficientStock) as exc:
            _add(quantity=6)
        assert exc.value.requested == 6
        assert exc.value.available == 5

    def test_running_total_checked_against_stock(self):
        _add(quantity=4)
        with pytest.raises(InsufficientStock) as exc:
            _add(quantity=2)

        assert exc.value.requested == 6
        assert _cart().total_items == 4

    def test_running_total_spans_variants(self):
        _add(quantity=3, color="red")
        with pytest.raises(InsufficientStock):
            _add(quantity=3, color="blue")

    def test_zero_quantity_rejected(self):
        with pytest.raises(ValidationError):
            _add(quantity=0)


class TestUpdateCartItem:
    def test_overwrite_quantity(self):
        _add(quantity=1)
        current_domain.process(
            UpdateCartItem(owner_id="cust-001", product_id="prod-1", quantity=4),
            asynchronous=False,
        )

        assert _cart().items[0].quantity == 4
        assert _cart().total_items == 4

    def test_quantity_above_stock(self):
        _add(quantity=1)
        with pytest.raises(InsufficientStock):
            current_domain.process(
                UpdateCartItem(owner_id="cust-001", product_id="prod-1", quantity=6),
                asynchronous=False,
            )
        assert _cart().items[0].quantity == 1

    def test_other_variant_lines_count_against_stock(self):
        _add(quantity=2, color="red")
        _add(quantity=1, color="blue")
        with pytest.raises(InsufficientStock):
            current_domain.process(
                UpdateCartItem(owner_id="cust-001", product_id="prod-1", color="blue", quantity=4),
                asynchronous=False,
            )

        current_domain.process(
            UpdateCartItem(owner_id="cust-001", product_id="prod-1", color="blue", quantity=3),
            asynchronous=False,
        )
        assert _cart().total_items == 5

    def test_zero_removes_line(self):
        _add(quantity=2)
        current_domain.process(
            UpdateCartItem(owner_id="cust-001", product_id="prod-1", quantity=0),
            asynchronous=False,
        )
        assert len(_cart().items) == 0

    def test_removing_line_of_deactivated_product(self, catalogue):
        _add(quantity=2)
        catalogue.update_product("prod-1", status="inactive")

        current_domain.process(
            UpdateCartItem(owner_id="cust-001", product_id="prod-1", quantity=0),
            asynchronous=False,
        )
        assert len(_cart().items) == 0

    def test_missing_line(self):
        _add()
        with pytest.raises(NotFoundError):
            current_domain.process(
                UpdateCartItem(owner_id="cust-001", product_id="prod-sale", quantity=1),
                asynchronous=False,
            )


class TestRemoveFromCart:
    def test_remove(self):
        _add("prod-1")
        _add("prod-sale")
        current_domain.process(RemoveFromCart(owner_id="cust-001", product_id="prod-1"), asynchronous=False)

        cart = _cart()
        assert [str(i.product_id) for i in cart.items] == ["prod-sale"]
        assert cart.subtotal == 60.0

    def test_remove_specific_variant(self):
        _add(color="red")
        _add(color="blue")
        current_domain.process(
            RemoveFromCart(owner_id="cust-001", product_id="prod-1", color="red"),
            asynchronous=False,
        )

        assert [i.color for i in _cart().items] == ["blue"]

    def test_remove_missing(self):
        with pytest.raises(NotFoundError):
            current_domain.process(RemoveFromCart(owner_id="cust-001", product_id="prod-1"), asynchronous=False)
