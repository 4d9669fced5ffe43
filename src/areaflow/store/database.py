"""SQLAlchemy engine and session handling for the automation store."""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, inspect, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..core.logger import get_logger
from .models import Base

logger = get_logger("store.database")

DEFAULT_DATABASE_URL = "sqlite:///./areaflow.db"


def _engine_options(database_url: str) -> dict[str, Any]:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return {"pool_pre_ping": True}
    # polling passes and durable runs share the engine across threads
    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        # every connection to an in-memory database gets its own empty schema
        options["poolclass"] = StaticPool
    return options


def display_url(database_url: str) -> str:
    """The URL with any password masked, for logs and CLI output."""
    return make_url(database_url).render_as_string(hide_password=True)


class DatabaseManager:
    """Owns the engine for one database URL and hands out sessions."""

    def __init__(self, database_url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> None:
        """Initialize the database manager.

        Args:
            database_url: SQLAlchemy database URL
            echo: Echo SQL statements
        """
        self.database_url = database_url
        self._engine = create_engine(database_url, echo=echo, **_engine_options(database_url))
        self._session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self._engine,
        )
        logger.info("Using database %s", self.safe_url)

    @property
    def safe_url(self) -> str:
        return display_url(self.database_url)

    def create_tables(self) -> list[str]:
        """Create the workflow, credential and execution tables if missing.

        Returns:
            Names of the tables present afterwards
        """
        Base.metadata.create_all(bind=self._engine)
        tables = sorted(inspect(self._engine).get_table_names())
        logger.debug("Tables ready: %s", ", ".join(tables))
        return tables

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Yield a session that commits on success and rolls back on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        """Release pooled connections."""
        self._engine.dispose()


def init_database(database_url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> DatabaseManager:
    """Open a database and make sure every table exists."""
    db = DatabaseManager(database_url, echo=echo)
    db.create_tables()
    return db
