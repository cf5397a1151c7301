"""Database engine and session factory shared by the managers."""

import os
from typing import Callable, Optional
from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///./flowbuilder.db"

# Process-wide engine, created on first use
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_database_engine(database_url: Optional[str] = None,
                        echo: bool = False,
                        connect_args: Optional[dict] = None) -> Engine:
    """
    Return the process engine, creating it on the first call.

    Later calls return the existing engine and ignore their arguments; call
    ``reset_database_engine`` first to switch databases.
    """
    global _engine, _session_factory

    if _engine is not None:
        return _engine

    url = database_url or os.getenv("FLOWBUILDER_DATABASE_URL", DEFAULT_DATABASE_URL)
    options = {"echo": echo}
    if url.startswith("sqlite"):
        # One shared connection keeps in-memory databases alive across sessions
        options["poolclass"] = StaticPool
        options["connect_args"] = connect_args if connect_args is not None else {"check_same_thread": False}
    elif connect_args:
        options["connect_args"] = connect_args

    _engine = create_engine(url, **options)
    _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=_engine)
    return _engine


def reset_database_engine() -> None:
    """Dispose the process engine (mainly for testing)."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


def get_session_factory() -> Callable[[], Session]:
    if _session_factory is None:
        get_database_engine()
    return _session_factory


def create_tables(engine: Optional[Engine] = None) -> None:
    from . import models  # noqa: F401  registers the tables on Base.metadata
    Base.metadata.create_all(bind=engine or get_database_engine())


def drop_tables(engine: Optional[Engine] = None) -> None:
    Base.metadata.drop_all(bind=engine or get_database_engine())
