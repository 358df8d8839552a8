"""Cart item management: commands and handler.

Handlers consult the catalogue before touching the cart: the product must
exist and be active, and the cart's running quantity for the product (across
all its variant lines) must not exceed available stock.
"""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.management import load_or_create_cart
from ordering.catalogue import get_catalogue
from ordering.domain import ordering
from ordering.errors import InsufficientStock, NotAvailable, NotFoundError


@ordering.command(part_of="ShoppingCart")
class AddToCart:
    owner_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    color = String(max_length=50)
    size = String(max_length=50)


@ordering.command(part_of="ShoppingCart")
class UpdateCartItem:
    """Overwrite a line's quantity; zero or less removes the line."""

    owner_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    color = String(max_length=50)
    size = String(max_length=50)


@ordering.command(part_of="ShoppingCart")
class RemoveFromCart:
    owner_id = Identifier(required=True)
    product_id = Identifier(required=True)
    color = String(max_length=50)
    size = String(max_length=50)


def _active_product(product_id):
    product = get_catalogue().get_product(str(product_id))
    if product is None:
        raise NotFoundError("Product not found", identifier=str(product_id))
    if not product.is_active:
        raise NotAvailable(f"Product is {product.status.replace('_', ' ')}", identifier=str(product_id))
    return product


def _ensure_stock(product, wanted):
    if wanted > product.available_quantity:
        raise InsufficientStock(
            f"Only {product.available_quantity} units of {product.name} available",
            identifier=product.product_id,
            requested=wanted,
            available=product.available_quantity,
        )


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        product = _active_product(command.product_id)
        cart = load_or_create_cart(command.owner_id)
        _ensure_stock(product, cart.quantity_of(product.product_id) + command.quantity)

        cart.add_item(
            product_id=product.product_id,
            name=product.name,
            price=product.effective_price,
            quantity=command.quantity,
            color=command.color,
            size=command.size,
            image=product.image,
        )
        current_domain.repository_for(ShoppingCart).add(cart)
        return cart.to_dict()

    @handle(UpdateCartItem)
    def update_cart_item(self, command):
        cart = load_or_create_cart(command.owner_id)
        line = cart.find_line(command.product_id, command.color, command.size)
        if line is None:
            raise NotFoundError("Item not found in cart", identifier=str(command.product_id))

        if command.quantity > 0:
            product = _active_product(command.product_id)
            _ensure_stock(product, cart.quantity_of(product.product_id, exclude=line) + command.quantity)

        cart.update_quantity(
            product_id=command.product_id,
            quantity=command.quantity,
            color=command.color,
            size=command.size,
        )
        current_domain.repository_for(ShoppingCart).add(cart)
        return cart.to_dict()

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = load_or_create_cart(command.owner_id)
        cart.remove_item(
            product_id=command.product_id,
            color=command.color,
            size=command.size,
        )
        current_domain.repository_for(ShoppingCart).add(cart)
        return cart.to_dict()
