#!/usr/bin/env python3
"""Database initialization script."""

import sys

from flowbuilder.config import load_config
from flowbuilder.storage.database import create_tables, get_database_engine
from flowbuilder.storage.migrations import run_migrations
from flowbuilder.core.logging import setup_logging


def main():
    """Initialize the database."""
    config = load_config()

    logger = setup_logging(level=config.log_level.value)

    try:
        logger.info(f"Initializing database at {config.database_url}...")

        engine = get_database_engine(
            database_url=config.database_url,
            echo=config.database_echo,
            connect_args=config.get_database_connect_args()
        )

        create_tables(engine)
        logger.info("Database tables created successfully")

        run_migrations(engine)
        logger.info("Database migrations completed successfully")

        logger.info("Database initialization completed")

    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
