"""Product catalogue factory.

Provides get_catalogue() / set_catalogue() to swap implementations:
- InMemoryCatalogue for development and testing
- SqlCatalogue when ORDERING_CATALOGUE_URI points at a database
"""

from ordering.catalogue.fake_adapter import InMemoryCatalogue
from ordering.catalogue.port import ProductCatalogue
from ordering.settings import get_settings

_current_catalogue: ProductCatalogue | None = None


def _catalogue_from_settings() -> ProductCatalogue:
    settings = get_settings()
    if settings.catalogue_uri:
        from ordering.catalogue.sql_adapter import SqlCatalogue
        from ordering.utils.db import build_engine

        return SqlCatalogue(build_engine(settings.catalogue_uri, settings.storage_timeout))
    return InMemoryCatalogue(timeout=settings.storage_timeout)


def get_catalogue() -> ProductCatalogue:
    """Return the current catalogue. Defaults to the configured adapter."""
    global _current_catalogue
    if _current_catalogue is None:
        _current_catalogue = _catalogue_from_settings()
    return _current_catalogue


def set_catalogue(catalogue: ProductCatalogue) -> None:
    """Override the active catalogue (useful for tests)."""
    global _current_catalogue
    _current_catalogue = catalogue


def reset_catalogue() -> None:
    """Reset to the configured catalogue."""
    global _current_catalogue
    _current_catalogue = None
