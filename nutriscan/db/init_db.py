"""
==============================================================================
Database Initialization Module
==============================================================================

Creates tables and makes sure the installation identifier exists.

Initialization Flow:
-------------------
1. Create all tables from ORM models
2. Generate the installation identifier if not present
3. Log initialization status

Usage:
------
    from nutriscan.db import init_db

    init_db()

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Optional

from nutriscan.db.database import DatabaseManager


# Module logger
logger = logging.getLogger(__name__)


class DatabaseInitializer:
    """
    Database initialization manager.

    Example:
        >>> initializer = DatabaseInitializer()
        >>> initializer.initialize()
    """

    def __init__(self, db_manager: Optional[DatabaseManager] = None) -> None:
        self._db_manager = db_manager or DatabaseManager()

    def create_tables(self) -> None:
        """Create all tables defined in the models."""
        # Import models so they register on Base.metadata
        from nutriscan.db import models  # noqa: F401

        self._db_manager.create_tables()

    def ensure_identity(self) -> str:
        """Generate and persist the installation identifier if missing."""
        from nutriscan.services.identity_service import InstallationIdentityService

        with self._db_manager.session_scope() as session:
            return InstallationIdentityService(session).get_or_create_app_uuid()

    def initialize(self) -> None:
        """Run the full initialization sequence."""
        logger.info("🗄️ Initializing database...")
        self.create_tables()
        app_uuid = self.ensure_identity()
        logger.info(f"✅ Database ready (installation {app_uuid[:8]}…)")


def init_db() -> None:
    """Initialize the database with tables and the installation identifier."""
    DatabaseInitializer().initialize()
