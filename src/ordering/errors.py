"""Structured error taxonomy for cart, checkout and order operations.

Every error carries a machine-readable ``kind``, a human message and the
identifier of the offending object (product, order, cart line) so callers can
branch on ``kind`` instead of parsing text. Malformed input is reported with
protean's ``ValidationError``, the same way aggregates reject bad state.
"""


class OrderingError(Exception):
    kind = "error"

    def __init__(self, message, identifier=None):
        super().__init__(message)
        self.message = message
        self.identifier = identifier

    def to_dict(self):
        return {
            "kind": self.kind,
            "message": self.message,
            "identifier": self.identifier,
        }


class NotFoundError(OrderingError):
    """A cart line, order or product does not exist."""

    kind = "not_found"


class NotAvailable(OrderingError):
    """The product exists but is not active in the catalogue."""

    kind = "not_available"


class InsufficientStock(OrderingError):
    """Requested quantity exceeds what can be sold.

    Recoverable: the caller can retry with a smaller quantity.
    """

    kind = "insufficient_stock"

    def __init__(self, message, identifier=None, requested=None, available=None):
        super().__init__(message, identifier)
        self.requested = requested
        self.available = available

    def to_dict(self):
        return {
            **super().to_dict(),
            "requested": self.requested,
            "available": self.available,
        }


class EmptyCart(OrderingError):
    kind = "empty_cart"


class InvalidTransition(OrderingError):
    """The order state machine does not allow the requested transition."""

    kind = "invalid_transition"

    def __init__(self, message, identifier=None, current=None, target=None):
        super().__init__(message, identifier)
        self.current = current
        self.target = target

    def to_dict(self):
        return {
            **super().to_dict(),
            "current": self.current,
            "target": self.target,
        }


class Unavailable(OrderingError):
    """Storage did not answer within its time bound. Safe to retry with backoff."""

    kind = "unavailable"


class StockRollbackIncomplete(OrderingError):
    """Stock moved for an operation that failed, and could not be moved back.

    ``product_ids`` lists the products whose stock records now disagree with
    the orders that reference them. They need manual correction.
    """

    kind = "stock_rollback_incomplete"

    def __init__(self, message, identifier=None, product_ids=None):
        super().__init__(message, identifier)
        self.product_ids = list(product_ids or [])

    def to_dict(self):
        return {
            **super().to_dict(),
            "product_ids": self.product_ids,
        }
