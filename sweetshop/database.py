"""
Database configuration and session management for the Sweet Shop service.

The engine and session factory are built by the application factory and kept
on ``app.state``; request handlers receive a session through ``get_db``.
"""
from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def create_db_engine(database_url: str) -> Engine:
    """
    Create a SQLAlchemy engine for the given URL.

    SQLite engines get foreign key enforcement switched on, and in-memory
    SQLite databases share a single connection so every session sees the
    same data.

    Args:
        database_url: SQLAlchemy database URL

    Returns:
        Engine: configured SQLAlchemy engine
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    options = {"connect_args": {"check_same_thread": False}}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        options["poolclass"] = StaticPool
    engine = create_engine(database_url, **options)

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request):
    """
    Dependency function that provides a database session.

    Yields:
        Session: SQLAlchemy database session bound to the application's engine

    Usage:
        Use as a FastAPI dependency to inject database sessions into route handlers.
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
