#!/usr/bin/env python3
"""
Initialize the portal database and import the legacy config.json once.

Re-running against a populated database is a no-op. Exits with status 1 when
the legacy document cannot be read or the schema cannot be created.
"""
import argparse
import logging
import sys
from pathlib import Path

from portal.core.config import settings
from portal.core.database import create_db_engine
from portal.core.exceptions import FatalInitError
from portal.services.migration_runner import MigrationRunner

logger = logging.getLogger("portal.migrate")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create the portal schema and import legacy settings")
    parser.add_argument("--database-url", default=settings.DATABASE_URL, help="SQLAlchemy database URL")
    parser.add_argument("--legacy-config", default=settings.LEGACY_CONFIG_PATH, help="Path to legacy config.json")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    logger.info("Initializing database at %s", args.database_url)
    engine = create_db_engine(args.database_url)
    runner = MigrationRunner(
        engine,
        legacy_path=Path(args.legacy_config) if args.legacy_config else None,
        default_password=settings.DEFAULT_ACCESS_PASSWORD,
    )
    try:
        result = runner.run()
    except FatalInitError as error:
        logger.error("Migration aborted: %s", error)
        return 1
    finally:
        engine.dispose()

    logger.info("Database ready (%s, %d product(s) imported)", result.status, result.products_imported)
    if result.placeholder_credential:
        logger.warning("The access password is a placeholder; set one with PUT /api/admin/settings")
    return 0


if __name__ == "__main__":
    sys.exit(main())
