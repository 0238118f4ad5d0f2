"""CellarStream database management CLI.

Creates and drops the ordering schema on SQL-backed providers.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys

import structlog

logger = structlog.get_logger(__name__)


def _initialized_domain():
    from ordering.domain import ordering

    ordering.init()
    return ordering


def setup_database():
    from ordering.utils.db import setup_db

    domain = _initialized_domain()
    setup_db(domain)
    logger.info("schema_created", domain=domain.name)


def drop_database():
    from ordering.utils.db import drop_db

    domain = _initialized_domain()
    drop_db(domain)
    logger.info("schema_dropped", domain=domain.name)


def main(argv=None):
    from ordering.utils.logging import configure_logging

    configure_logging()

    parser = argparse.ArgumentParser(description="CellarStream database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args(argv)

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
