"""Cart management: loading, refreshing against the catalogue, and clearing.

A cart is created lazily the first time its owner touches it, so every cart
command starts from ``load_or_create_cart``.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.catalogue import get_catalogue
from ordering.domain import ordering

logger = structlog.get_logger(__name__)


def load_or_create_cart(owner_id) -> ShoppingCart:
    try:
        return current_domain.repository_for(ShoppingCart).get(str(owner_id))
    except ObjectNotFoundError:
        return ShoppingCart.create(owner_id=owner_id)


@ordering.command(part_of="ShoppingCart")
class RefreshCart:
    """Reconcile a cart with the live catalogue before it is shown to its owner."""

    owner_id = Identifier(required=True)


@ordering.command(part_of="ShoppingCart")
class ClearCart:
    owner_id = Identifier(required=True)


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(RefreshCart)
    def refresh_cart(self, command):
        cart = load_or_create_cart(command.owner_id)
        if cart.reconcile(get_catalogue().get_product):
            logger.info(
                "cart_reconciled",
                owner_id=str(command.owner_id),
                total_items=cart.total_items,
                total_price=cart.total_price,
            )
        current_domain.repository_for(ShoppingCart).add(cart)
        return cart.to_dict()

    @handle(ClearCart)
    def clear_cart(self, command):
        cart = load_or_create_cart(command.owner_id)
        cart.clear()
        current_domain.repository_for(ShoppingCart).add(cart)
        return cart.to_dict()
