#!/usr/bin/env python3
"""
Initialize the Little Library database.

This script:
1. Creates all database tables
2. Makes sure the configured organization exists
3. Optionally loads sample data

Usage:
    python scripts/init_database.py [--drop-existing] [--sample-data]
        [--database-url URL] [--organization-id ID]
"""

import argparse
import logging
import sys

from sqlalchemy import inspect

from little_library.config import get_config
from little_library.database import Base, RecordStore, ensure_organization
from little_library.database.seed import seed_database
from little_library.tenancy import TenantScope

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    """Main entry point for database initialization."""
    parser = argparse.ArgumentParser(description="Initialize the Little Library database")
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before creating new ones",
    )
    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Load sample data after creating tables",
    )
    parser.add_argument(
        "--database-url",
        help="Override the configured database URL",
    )
    parser.add_argument(
        "--organization-id",
        help="Organization to create/seed (defaults to LITTLE_LIBRARY_ORGANIZATION_ID)",
    )

    args = parser.parse_args()
    config = get_config()

    org_id = args.organization_id or config.organization_id
    if not org_id:
        logger.error("No organization given; pass --organization-id or set it in the environment")
        sys.exit(2)
    tenant = TenantScope(org_id=org_id)

    store = RecordStore(args.database_url or config.get_database_url())
    if not store.verify_connection():
        logger.error("Failed to connect to database")
        sys.exit(1)

    try:
        store.init_database(drop_existing=args.drop_existing)

        tables = set(inspect(store.engine).get_table_names())
        missing_tables = set(Base.metadata.tables) - tables
        if missing_tables:
            logger.error("Missing expected tables: %s", missing_tables)
            sys.exit(1)
        logger.info("Tables: %s", ", ".join(sorted(tables)))

        if args.sample_data:
            counts = seed_database(store, tenant, organization_name=config.organization_name)
            logger.info("Sample data loaded: %s", counts)
        else:
            with store.unit_of_work() as session:
                ensure_organization(session, tenant, config.organization_name)

        logger.info("Database initialization complete for organization %s", tenant)

    except Exception:
        logger.exception("Database initialization failed")
        sys.exit(1)
    finally:
        store.close()


if __name__ == "__main__":
    main()
