"""Engine and session helpers for callers that do not manage their own session.

Repositories only need a Session. These helpers build one from a database
URL for scripts and tests, and clean up the engine they create.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from ..utils.logging import get_logger
from .schema import create_all

logger = get_logger(__name__)


def get_engine(database_url: str, create_schema: bool = True) -> Engine:
    """
    Create an engine for database_url.

    Args:
        database_url: SQLAlchemy URL, e.g. "sqlite:///depot.db"
        create_schema: Create tables for every model on Base first

    Returns:
        Engine (caller must dispose it)
    """
    engine = create_engine(database_url, future=True)
    if create_schema:
        create_all(engine)
    return engine


@contextmanager
def session_context(
    database_url: str,
    create_schema: bool = True,
    commit: bool = False,
) -> Generator[Session, None, None]:
    """
    Session bound to a private engine, for one unit of work.

    Rolls back and re-raises on error. With commit=True a clean exit commits;
    otherwise commits stay with the caller (or with repositories configured
    with writes.commit). The session is closed and the engine disposed on exit.

    Usage:
        with session_context("sqlite:///depot.db", commit=True) as session:
            PostRepository(session).create({"title": "x"})
    """
    engine = get_engine(database_url, create_schema=create_schema)
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
        if commit:
            session.commit()
    except Exception:
        logger.debug(f"Rolling back session on {engine.url!r} after error")
        session.rollback()
        raise
    finally:
        session.close()
        engine.dispose()
