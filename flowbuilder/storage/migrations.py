"""Database migrations for execution log and chat history queries."""

from typing import Optional
from sqlalchemy import Engine, text
from .database import get_database_engine
from ..core.logging import get_logger

logger = get_logger(__name__)


def create_indexes_for_history_queries(engine: Engine) -> None:
    """Create composite indexes used when replaying sessions and their logs."""
    try:
        with engine.connect() as connection:
            # Execution logs of a session in execution order
            connection.execute(text("""
                CREATE INDEX IF NOT EXISTS idx_execution_logs_session_created
                ON execution_logs(session_id, created_at)
            """))

            # Execution logs of a workflow filtered by outcome
            connection.execute(text("""
                CREATE INDEX IF NOT EXISTS idx_execution_logs_workflow_status
                ON execution_logs(workflow_id, status)
            """))

            # Chat transcript of a session
            connection.execute(text("""
                CREATE INDEX IF NOT EXISTS idx_chat_messages_session_created
                ON chat_messages(session_id, created_at)
            """))

            connection.commit()
            logger.info("Created database indexes for history queries")

    except Exception as e:
        logger.error(f"Failed to create database indexes: {str(e)}")
        raise


def optimize_sqlite(engine: Engine) -> None:
    """Apply SQLite pragmas for concurrent readers. No-op on other backends."""
    if engine.dialect.name != "sqlite" or ":memory:" in str(engine.url):
        return

    try:
        with engine.connect() as connection:
            connection.execute(text("PRAGMA journal_mode=WAL"))
            connection.execute(text("PRAGMA cache_size=10000"))
            connection.commit()
            logger.info("Applied SQLite optimizations")

    except Exception as e:
        logger.error(f"Failed to optimize database: {str(e)}")
        raise


def run_migrations(engine: Optional[Engine] = None) -> None:
    """Run all storage migrations."""
    engine = engine or get_database_engine()
    logger.info("Starting storage migrations")
    create_indexes_for_history_queries(engine)
    optimize_sqlite(engine)
    logger.info("Storage migrations completed successfully")


if __name__ == "__main__":
    run_migrations()
