"""
Database connection and session management.
"""

from contextlib import contextmanager
from sqlalchemy import create_engine as sa_create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi import Request
from typing import Generator, Iterator
import logging
import os

from ..config import DatabaseConfig
from ..models.base import Base

logger = logging.getLogger(__name__)


def create_engine(config: DatabaseConfig) -> Engine:
    """Create SQLAlchemy engine."""
    database_url = config.url

    logger.debug(f"Creating database engine with URL: {database_url}")

    if database_url.startswith("sqlite"):
        return sa_create_engine(
            database_url,
            echo=config.echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False}
        )

    connect_args = {}
    if database_url.startswith("postgresql"):
        connect_args.update({
            "connect_timeout": int(os.getenv("DATABASE_CONNECTION_TIMEOUT", "30")),
            "application_name": "esme",
        })

    return sa_create_engine(
        database_url,
        echo=config.echo,
        connect_args=connect_args,
        pool_timeout=int(os.getenv("DATABASE_POOL_TIMEOUT", "30")),
        pool_recycle=int(os.getenv("DATABASE_POOL_RECYCLE", "3600")),
        pool_pre_ping=True
    )


class Database:
    """Engine plus session factory, constructed once per process and passed to whoever needs it."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> "Database":
        return cls(create_engine(config))

    def init_schema(self) -> None:
        """Create all tables that do not exist yet."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables ready")

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Session scope for work that runs outside a request (background tasks)."""
        session = self.session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


def get_database(request: Request) -> Database:
    """FastAPI dependency returning the application's database handle."""
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database not initialized. Create the app with create_app first.")
    return database


def get_session(request: Request) -> Generator[Session, None, None]:
    """Get database session - FastAPI dependency."""
    database = get_database(request)
    session = database.session_factory()
    try:
        yield session
    finally:
        session.close()
