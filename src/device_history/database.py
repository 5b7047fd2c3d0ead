"""
Database configuration and session management for SQLAlchemy.

Provides the database engine, session factory, declarative base and the
conditional-insert primitive used by the registry and recorder.
"""
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from .config import settings


def build_engine(url: str) -> Engine:
    """Create an engine for ``url`` with the options this service relies on."""
    connect_args: Dict[str, Any] = {}
    if url.startswith("sqlite"):
        # Sub-aggregations run on worker threads with their own sessions
        connect_args = {"check_same_thread": False, "timeout": 30}
    return create_engine(
        url,
        pool_pre_ping=True,  # Enable connection health checks
        echo=False,  # Set to True for SQL query logging during development
        connect_args=connect_args,
    )


# Create SQLAlchemy engine
engine = build_engine(settings.DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Declarative base for models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Yield a request-scoped session and close it once the response is sent.
    
    Services receive it through the dependencies in ``dependencies.py``; the
    detail resolver opens sessions of its own from ``SessionLocal``.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Optional[Engine] = None) -> None:
    """Create all tables that do not exist yet."""
    from . import models  # noqa: F401  (registers mappers on Base.metadata)

    Base.metadata.create_all(bind=bind or engine)


def insert_ignore(db: Session, model, **values) -> int:
    """
    Insert a row unless it collides with a unique key, as one statement.
    
    Returns the number of rows actually inserted (0 or 1).
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql_insert(model).values(**values).on_conflict_do_nothing()
    elif dialect == "sqlite":
        stmt = sqlite_insert(model).values(**values).on_conflict_do_nothing()
    else:
        raise RuntimeError(f"Unsupported database dialect for conditional insert: {dialect}")
    return db.execute(stmt).rowcount
