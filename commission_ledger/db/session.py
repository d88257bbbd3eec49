"""Database session management."""
from typing import Any, Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from commission_ledger.config.settings import Settings, settings


def build_engine(config: Settings = settings) -> Engine:
    """Create an engine for the configured database URL."""
    options: Dict[str, Any] = {
        "pool_pre_ping": True,
        "echo": config.DB_ECHO,
    }
    if config.is_sqlite():
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_size"] = config.DB_POOL_SIZE
        options["max_overflow"] = config.DB_MAX_OVERFLOW
    return create_engine(config.get_database_url(), **options)


engine = build_engine()

# Create SessionLocal class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Yield a database session and close it afterwards.

    Usage:
        for db in get_db():
            services = ServiceContainer(db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
