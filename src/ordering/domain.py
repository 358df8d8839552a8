"""Ordering bounded context: Shopping Cart, Checkout and Order Lifecycle.

Turns a mutable shopping cart into an immutable order while keeping stock
correct, coupon math reconciled and order numbers unique. Stock records and
order-number counters live behind ports (see ``ordering.catalogue`` and
``ordering.sequence``) because they are owned by external storage that offers
atomic single-row updates.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
