"""Ordering database management CLI.

Creates or drops the tables behind the Ordering domain: protean provider
tables for carts and orders (when an SQL provider is configured) and the
catalogue/sequence adapter tables at ORDERING_CATALOGUE_URI and
ORDERING_SEQUENCE_URI.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys

import structlog

logger = structlog.get_logger(__name__)

TARGETS = ["domain", "catalogue", "sequence"]


def _adapter_engines(targets):
    from ordering.settings import get_settings
    from ordering.utils.db import build_engine

    settings = get_settings()
    uris = {"catalogue": settings.catalogue_uri, "sequence": settings.sequence_uri}
    for name in ("catalogue", "sequence"):
        if name not in targets:
            continue
        if not uris[name]:
            logger.info("adapter_in_memory_skipped", adapter=name)
            continue
        yield name, build_engine(uris[name], settings.storage_timeout)


def setup_databases(targets=None):
    """Create schemas for the specified (or all) targets."""
    from ordering.domain import ordering
    from ordering.utils.db import setup_db, setup_domain_db

    targets = targets or TARGETS

    if "domain" in targets:
        ordering.init()
        setup_domain_db(ordering)
        logger.info("schema_ready", target="domain")

    for name, engine in _adapter_engines(targets):
        setup_db(engine)
        logger.info("schema_ready", target=name)


def drop_databases(targets=None):
    """Drop schemas for the specified (or all) targets."""
    from ordering.domain import ordering
    from ordering.utils.db import drop_db, drop_domain_db

    targets = targets or TARGETS

    if "domain" in targets:
        ordering.init()
        drop_domain_db(ordering)
        logger.info("schema_dropped", target="domain")

    for name, engine in _adapter_engines(targets):
        drop_db(engine)
        logger.info("schema_dropped", target=name)


def main():
    from ordering.utils.logging import configure_logging

    configure_logging()

    parser = argparse.ArgumentParser(description="Ordering database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    setup_parser = subparsers.add_parser("setup-db", help="Create all database tables")
    setup_parser.add_argument(
        "--target",
        choices=TARGETS,
        nargs="*",
        help="Specific schema(s) to set up (default: all)",
    )

    drop_parser = subparsers.add_parser("drop-db", help="Drop all database tables")
    drop_parser.add_argument(
        "--target",
        choices=TARGETS,
        nargs="*",
        help="Specific schema(s) to drop (default: all)",
    )

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_databases(args.target)
    elif args.command == "drop-db":
        drop_databases(args.target)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
