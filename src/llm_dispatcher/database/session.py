"""Database session management."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker


def create_engine_for_url(database_url: str, echo: bool = False) -> Engine:
    """Create an engine, sizing the pool only for server databases."""
    if not database_url:
        raise ValueError("database_url is required")

    kwargs = {"echo": echo, "pool_pre_ping": True}
    if not database_url.startswith("sqlite"):
        kwargs.update(
            pool_size=20 if "postgresql" in database_url else 5,
            max_overflow=40 if "postgresql" in database_url else 10,
            pool_recycle=3600,
        )
    return create_engine(database_url, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autoflush=False, bind=engine)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Yield a session, closing it afterwards."""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
