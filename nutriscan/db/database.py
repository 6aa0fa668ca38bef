"""
==============================================================================
Installation Store Module
==============================================================================

SQLite storage for the per-installation identifier.

- DatabaseManager: lazily built engine and session factory (singleton)
- get_db: FastAPI dependency yielding a request-scoped session

URL handling:
------------
    sqlite:///path/file.db   file next to the service (directory created
                             by Settings.ensure_directories)
    sqlite:// or :memory:    one shared in-memory connection

==============================================================================
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from functools import lru_cache
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from nutriscan.config import get_settings


# Module logger
logger = logging.getLogger(__name__)

# SQLAlchemy declarative base for all models
Base = declarative_base()

IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def engine_options(database_url: str) -> Dict[str, Any]:
    """Keyword arguments for create_engine."""
    options: Dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        # Sessions are used from FastAPI's threadpool
        options["connect_args"] = {"check_same_thread": False}
    if database_url in IN_MEMORY_URLS:
        # Every session must see the same in-memory database
        options["poolclass"] = StaticPool
    return options


class DatabaseManager:
    """
    Owner of the engine and session factory.

    Nothing touches the database until the engine is first needed.
    """

    _instance: Optional[DatabaseManager] = None

    def __new__(cls) -> DatabaseManager:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if getattr(self, '_initialized', False):
            return

        self._database_url = get_settings().database_url
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._initialized = True

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = create_engine(self._database_url, **engine_options(self._database_url))
            logger.info(f"🗄️ Installation store: {self._database_url}")
        return self._engine

    def new_session(self) -> Session:
        """A session the caller must close."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Commit on success, roll back on error, always close."""
        session = self.new_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_tables(self) -> None:
        Base.metadata.create_all(bind=self.engine)
        logger.info("Installation tables created/verified")

    def dispose(self) -> None:
        """Close pooled connections on shutdown."""
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Installation store closed")


@lru_cache(maxsize=1)
def get_database_manager() -> DatabaseManager:
    return DatabaseManager()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency that yields a database session."""
    session = get_database_manager().new_session()
    try:
        yield session
    finally:
        session.close()
