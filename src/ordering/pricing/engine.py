"""Pricing engine: a pure function from cart lines and a coupon to money totals.

No I/O and no hidden state: the same lines, coupon and policy always produce
the same ``Totals``. Carts call it after every mutation and checkout calls it
once more right before the order is created.

Each component is rounded to cents before ``total`` is derived, so
``total == subtotal + shipping_fee + tax - discount`` holds exactly.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

ZERO = Decimal("0")
ONE_CENT = Decimal("0.01")
HUNDRED = Decimal("100")


class DiscountKind(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def to_decimal(value) -> Decimal:
    """Convert floats/ints/strings to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_cents(value: Decimal) -> Decimal:
    return value.quantize(ONE_CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Coupon:
    """Discount terms applied to a cart. Validity lookups happen elsewhere."""

    code: str
    discount_value: Decimal
    discount_kind: str = DiscountKind.PERCENTAGE.value


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    shipping_fee: Decimal
    total: Decimal

    def as_floats(self) -> dict:
        return {
            "subtotal": float(self.subtotal),
            "discount": float(self.discount),
            "tax": float(self.tax),
            "shipping_fee": float(self.shipping_fee),
            "total": float(self.total),
        }


# ---------------------------------------------------------------------------
# Shipping policies
# ---------------------------------------------------------------------------
class ShippingPolicy(ABC):
    """Extension point for shipping fees. Carrier rate lookups are not done here."""

    @abstractmethod
    def fee(self, subtotal: Decimal) -> Decimal: ...


@dataclass(frozen=True)
class FlatRateShipping(ShippingPolicy):
    amount: Decimal = ZERO

    def fee(self, subtotal: Decimal) -> Decimal:
        if subtotal <= ZERO:
            return ZERO
        return self.amount


@dataclass(frozen=True)
class FreeShippingOver(ShippingPolicy):
    """Charge ``amount`` below ``threshold``; shipping is free at or above it."""

    threshold: Decimal
    amount: Decimal

    def fee(self, subtotal: Decimal) -> Decimal:
        if subtotal <= ZERO or subtotal >= self.threshold:
            return ZERO
        return self.amount


@dataclass(frozen=True)
class PricingPolicy:
    tax_rate: Decimal = Decimal("0.15")
    shipping: ShippingPolicy = field(default_factory=FlatRateShipping)
    currency: str = "USD"


# ---------------------------------------------------------------------------
# Computation
# ---------------------------------------------------------------------------
def items_total(items) -> Decimal:
    """Sum of ``price × quantity`` over lines exposing ``price`` and ``quantity``."""
    return sum((to_decimal(item.price) * item.quantity for item in items), ZERO)


def calculate_discount(amount: Decimal, coupon) -> Decimal:
    """Discount granted by ``coupon`` on ``amount``, never negative and never above it."""
    if coupon is None:
        return ZERO

    value = to_decimal(coupon.discount_value)
    if DiscountKind(coupon.discount_kind) == DiscountKind.PERCENTAGE:
        discount = amount * value / HUNDRED
    else:
        discount = value

    return min(max(discount, ZERO), amount)


def price_lines(items, coupon=None, policy: PricingPolicy | None = None) -> Totals:
    """Compute subtotal, discount, tax, shipping and total for cart lines."""
    policy = policy or PricingPolicy()

    subtotal = to_cents(items_total(items))
    discount = to_cents(calculate_discount(subtotal, coupon))
    tax = to_cents(subtotal * to_decimal(policy.tax_rate))
    shipping_fee = to_cents(policy.shipping.fee(subtotal))
    total = max(ZERO, subtotal + shipping_fee + tax - discount)

    return Totals(
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        shipping_fee=shipping_fee,
        total=total,
    )
