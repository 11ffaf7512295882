"""Workshop database management CLI.

Creates and drops the database schema of the workshop domain through the
setup_db/drop_db utilities. Only SQL-backed providers are touched; with the
default in-memory configuration both commands report that nothing was done.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def setup_databases() -> list[str]:
    """Create the workshop schema. Returns the providers that were set up."""
    from workshop.domain import workshop
    from workshop.utils.db import setup_db

    print("Initializing workshop domain...")
    workshop.init()
    print("Creating workshop database schema...")
    providers = setup_db(workshop)
    if providers:
        print(f"  schema ready on: {', '.join(providers)}")
    else:
        print("  no SQL providers configured, nothing to create.")
    print("Done.")
    return providers


def drop_databases() -> list[str]:
    """Drop the workshop schema. Returns the providers that were dropped."""
    from workshop.domain import workshop
    from workshop.utils.db import drop_db

    print("Initializing workshop domain...")
    workshop.init()
    print("Dropping workshop database schema...")
    providers = drop_db(workshop)
    if providers:
        print(f"  schema dropped on: {', '.join(providers)}")
    else:
        print("  no SQL providers configured, nothing to drop.")
    print("Done.")
    return providers


def main(argv=None):
    parser = argparse.ArgumentParser(description="Workshop database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args(argv)

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
