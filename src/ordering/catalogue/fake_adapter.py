"""In-memory product catalogue for development and testing.

Stock records live in a dict guarded by one lock, so every adjustment is a
single indivisible step even when many threads race for the same product.
Lock acquisition is bounded by ``timeout``; a stuck lock surfaces as
``Unavailable`` instead of blocking the caller forever.
"""

import threading
from contextlib import contextmanager
from dataclasses import replace

from ordering.catalogue.port import ProductCatalogue, ProductSnapshot, ProductStatus, StockChange
from ordering.errors import Unavailable
from ordering.pricing.engine import to_decimal


class InMemoryCatalogue(ProductCatalogue):
    """Thread-safe in-memory catalogue."""

    def __init__(self, timeout: float = 5.0) -> None:
        self.timeout = timeout
        self._products: dict[str, ProductSnapshot] = {}
        self._lock = threading.Lock()

    @contextmanager
    def _locked(self, product_id=None):
        if not self._lock.acquire(timeout=self.timeout):
            raise Unavailable("Catalogue storage timed out", identifier=product_id)
        try:
            yield
        finally:
            self._lock.release()

    # -------------------------------------------------------------------
    # Seeding and catalogue edits
    # -------------------------------------------------------------------
    def add_product(
        self,
        product_id,
        name,
        price,
        available_quantity=0,
        status=ProductStatus.ACTIVE.value,
        discount_percent=0,
        image=None,
    ) -> ProductSnapshot:
        if available_quantity == 0 and status == ProductStatus.ACTIVE.value:
            status = ProductStatus.OUT_OF_STOCK.value

        product = ProductSnapshot(
            product_id=str(product_id),
            name=name,
            price=to_decimal(price),
            status=status,
            available_quantity=available_quantity,
            discount_percent=to_decimal(discount_percent),
            image=image,
        )
        with self._locked(product_id):
            self._products[product.product_id] = product
        return product

    def update_product(self, product_id, **changes) -> ProductSnapshot:
        """Apply catalogue edits (price, status, stock...) to an existing product."""
        for money_field in ("price", "discount_percent"):
            if money_field in changes:
                changes[money_field] = to_decimal(changes[money_field])

        with self._locked(product_id):
            product = replace(self._products[str(product_id)], **changes)
            self._products[product.product_id] = product
        return product

    # -------------------------------------------------------------------
    # Port implementation
    # -------------------------------------------------------------------
    def get_product(self, product_id: str) -> ProductSnapshot | None:
        with self._locked(product_id):
            return self._products.get(str(product_id))

    def decrement_if_available(self, product_id: str, quantity: int) -> StockChange:
        with self._locked(product_id):
            product = self._products.get(str(product_id))
            if product is None:
                return StockChange(success=False, product_id=str(product_id))

            if product.available_quantity < quantity:
                return StockChange(
                    success=False,
                    product_id=product.product_id,
                    available_quantity=product.available_quantity,
                    status=product.status,
                )

            remaining = product.available_quantity - quantity
            status = product.status
            if remaining == 0 and status == ProductStatus.ACTIVE.value:
                status = ProductStatus.OUT_OF_STOCK.value

            self._products[product.product_id] = replace(product, available_quantity=remaining, status=status)
            return StockChange(
                success=True,
                product_id=product.product_id,
                available_quantity=remaining,
                status=status,
            )

    def increment(self, product_id: str, quantity: int) -> StockChange:
        with self._locked(product_id):
            product = self._products.get(str(product_id))
            if product is None:
                return StockChange(success=False, product_id=str(product_id))

            restored = product.available_quantity + quantity
            status = product.status
            if restored > 0 and status == ProductStatus.OUT_OF_STOCK.value:
                status = ProductStatus.ACTIVE.value

            self._products[product.product_id] = replace(product, available_quantity=restored, status=status)
            return StockChange(
                success=True,
                product_id=product.product_id,
                available_quantity=restored,
                status=status,
            )
