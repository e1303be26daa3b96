"""
SQLAlchemy engine, session factory and declarative base for the sync backend.
"""
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from vocab_api.config import settings


def _connect_args(url: str) -> dict:
    # SQLite connections are handed across TestClient / threadpool threads
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


def enable_sqlite_foreign_keys(target_engine: Engine) -> None:
    """Turn on ON DELETE CASCADE support for SQLite engines (off by default)."""
    if target_engine.dialect.name != "sqlite":
        return

    @event.listens_for(target_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.DATABASE_URL),
)
enable_sqlite_foreign_keys(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    """Request-scoped session; services commit, this only closes."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
