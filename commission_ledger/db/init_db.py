"""Database initialization utilities."""
from typing import Optional

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from commission_ledger.core.logging import get_logger
from commission_ledger.db.base import Base, import_models
from commission_ledger.db.session import engine as default_engine

logger = get_logger(__name__)


def init_db(bind: Optional[Engine] = None) -> None:
    """
    Initialize the database by creating all tables.

    Note: This is suitable for development/testing only.
    For production, use migrations instead.
    """
    bind = bind or default_engine
    try:
        import_models()

        existing_tables = set(inspect(bind).get_table_names())
        missing = set(Base.metadata.tables) - existing_tables

        if missing:
            Base.metadata.create_all(bind=bind)
            logger.info("Database tables created", extra={"tables": sorted(missing)})
        else:
            logger.info(f"Database already initialized with {len(existing_tables)} tables")

    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        raise


def drop_db(bind: Optional[Engine] = None) -> None:
    """
    Drop all database tables.

    WARNING: This will delete all data! Use with caution.
    """
    bind = bind or default_engine
    try:
        Base.metadata.drop_all(bind=bind)
        logger.warning("All database tables dropped")
    except Exception as e:
        logger.error(f"Error dropping database: {e}")
        raise


def reset_db(bind: Optional[Engine] = None) -> None:
    """
    Reset the database by dropping and recreating all tables.

    WARNING: This will delete all data! Use with caution.
    """
    logger.warning("Resetting database...")
    drop_db(bind)
    init_db(bind)
    logger.info("Database reset complete")
