"""SQL schema helpers.

Carts and orders are persisted through protean providers; their tables are
created from the provider metadata when the domain is configured with an SQL
provider. Stock records and order-number counters use plain SQLAlchemy tables
because they need single-statement conditional updates.
"""

from protean.domain import Domain
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def connect_args(uri: str, timeout: float) -> dict:
    """Driver arguments that bound connecting and each statement by ``timeout`` seconds."""
    if uri.startswith("sqlite"):
        # SQLite's busy timeout: how long a writer waits for the lock
        return {"timeout": timeout, "check_same_thread": False}
    if uri.startswith("postgresql"):
        return {
            "connect_timeout": max(1, int(timeout)),
            "options": f"-c statement_timeout={int(timeout * 1000)}",
        }
    return {}


def build_engine(uri: str, timeout: float) -> Engine:
    """Create an engine whose connections give up after ``timeout`` seconds."""
    if uri.startswith("sqlite"):
        return create_engine(uri, connect_args=connect_args(uri, timeout))
    return create_engine(uri, connect_args=connect_args(uri, timeout), pool_timeout=timeout, pool_pre_ping=True)


def _load_tables():
    # Importing the adapters registers their tables on Base.metadata
    import ordering.catalogue.sql_adapter  # noqa: F401
    import ordering.sequence.sql_adapter  # noqa: F401


def setup_db(engine: Engine):
    """Create the adapter tables."""
    _load_tables()
    Base.metadata.create_all(engine)


def drop_db(engine: Engine):
    """Drop the adapter tables."""
    _load_tables()
    Base.metadata.drop_all(engine)


def _sql_providers(domain: Domain):
    for _, provider in domain.providers.items():
        if provider.conn_info["provider"] in ("sqlite", "postgresql"):
            yield provider


def setup_domain_db(domain: Domain):
    """Create tables for carts and orders when the domain uses an SQL provider."""
    with domain.domain_context():
        for provider in _sql_providers(domain):
            # Accessing the DAO registers the aggregate/entity tables with the provider's metadata
            for _, aggregate_record in domain.registry.aggregates.items():
                if aggregate_record.cls.meta_.provider == provider.name:
                    domain.repository_for(aggregate_record.cls)._dao  # noqa: B018

            for _, entity_record in domain.registry.entities.items():
                if entity_record.cls.meta_.provider == provider.name:
                    domain.repository_for(entity_record.cls)._dao  # noqa: B018

            provider._metadata.create_all(create_engine(provider.conn_info["database_uri"]))


def drop_domain_db(domain: Domain):
    """Drop cart and order tables from SQL providers."""
    with domain.domain_context():
        for provider in _sql_providers(domain):
            provider._metadata.drop_all(create_engine(provider.conn_info["database_uri"]))
