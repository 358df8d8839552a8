"""Product catalogue port (abstract interface).

The catalogue owns products and their stock records; ordering only reads
product snapshots and adjusts available quantity. Adjustments must be single
atomic storage operations: a conditional compare-and-decrement for sales and
an unconditional increment for releases. Both flip the product status between
``active`` and ``out_of_stock`` as part of the same operation.

Adapters raise ``ordering.errors.Unavailable`` when storage does not answer
within its time bound.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from ordering.pricing.engine import HUNDRED, to_cents, to_decimal


class ProductStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    OUT_OF_STOCK = "out_of_stock"


@dataclass(frozen=True)
class ProductSnapshot:
    """Read-only view of a catalogue product at one point in time."""

    product_id: str
    name: str
    price: Decimal
    status: str
    available_quantity: int
    discount_percent: Decimal = Decimal("0")
    image: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE.value

    @property
    def effective_price(self) -> Decimal:
        """List price with the catalogue discount applied, in cents."""
        discount = to_decimal(self.discount_percent)
        return to_cents(to_decimal(self.price) * (HUNDRED - discount) / HUNDRED)


@dataclass(frozen=True)
class StockChange:
    """Outcome of a stock adjustment.

    ``available_quantity`` and ``status`` describe the record after the
    operation, or its unchanged state when ``success`` is False.
    """

    success: bool
    product_id: str
    available_quantity: int = 0
    status: str | None = None


class ProductCatalogue(ABC):
    """Abstract product catalogue interface."""

    @abstractmethod
    def get_product(self, product_id: str) -> ProductSnapshot | None:
        """Return the product, or None when it does not exist."""
        ...

    @abstractmethod
    def decrement_if_available(self, product_id: str, quantity: int) -> StockChange:
        """Atomically subtract ``quantity`` only if at least that much is available."""
        ...

    @abstractmethod
    def increment(self, product_id: str, quantity: int) -> StockChange:
        """Atomically add ``quantity`` back to available stock."""
        ...
