"""Ordering service management CLI.

Creates and drops the database schema, and checks that the environment
carries everything the selected payment, carrier and email adapters need.

Usage:
    python src/manage.py setup-db      # Create all tables
    python src/manage.py drop-db       # Drop all tables
    python src/manage.py check-config  # Validate settings from the environment
"""

import argparse
import sys


def setup_database():
    """Create the ordering database schema."""
    from ordering.domain import ordering
    from ordering.utils.db import setup_db

    print("Initializing ordering domain...")
    ordering.init()
    print("Creating ordering database schema...")
    setup_db(ordering)
    print("Done.")


def drop_database():
    """Drop the ordering database schema."""
    from ordering.domain import ordering
    from ordering.utils.db import drop_db

    print("Initializing ordering domain...")
    ordering.init()
    print("Dropping ordering database schema...")
    drop_db(ordering)
    print("Done.")


def check_config():
    from ordering.config import ConfigurationError, Settings

    try:
        settings = Settings.from_env().validate()
    except ConfigurationError as exc:
        print(f"Configuration invalid: {exc}")
        sys.exit(1)
    print(
        f"Configuration ok: environment={settings.environment} "
        f"payments={settings.payment_gateway} carrier={settings.carrier_adapter} email={settings.email_adapter}"
    )


def main():
    parser = argparse.ArgumentParser(description="Ordering service management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("check-config", help="Validate settings from the environment")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "check-config":
        check_config()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
