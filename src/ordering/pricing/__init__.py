"""Pricing policy factory.

Provides get_pricing_policy() / set_pricing_policy() to swap the tax rate and
shipping policy:
- Built from ORDERING_* settings by default
- Overridden in tests or by deployments with custom shipping rules
"""

from ordering.pricing.engine import FlatRateShipping, FreeShippingOver, PricingPolicy
from ordering.settings import get_settings

_current_policy: PricingPolicy | None = None


def _policy_from_settings() -> PricingPolicy:
    settings = get_settings()
    if settings.free_shipping_threshold is not None:
        shipping = FreeShippingOver(threshold=settings.free_shipping_threshold, amount=settings.shipping_fee)
    else:
        shipping = FlatRateShipping(amount=settings.shipping_fee)

    return PricingPolicy(tax_rate=settings.tax_rate, shipping=shipping, currency=settings.currency)


def get_pricing_policy() -> PricingPolicy:
    """Return the current pricing policy. Defaults to the configured one."""
    global _current_policy
    if _current_policy is None:
        _current_policy = _policy_from_settings()
    return _current_policy


def set_pricing_policy(policy: PricingPolicy) -> None:
    """Override the active pricing policy (useful for tests)."""
    global _current_policy
    _current_policy = policy


def reset_pricing_policy() -> None:
    """Reset to the configured policy."""
    global _current_policy
    _current_policy = None
