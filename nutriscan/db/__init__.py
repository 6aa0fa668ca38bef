"""
==============================================================================
Database Package
==============================================================================

SQLAlchemy database infrastructure and ORM models.

Architecture:
------------
├── database.py   - DatabaseManager (engine, sessions), get_db
├── models.py     - SQLAlchemy ORM model classes
└── init_db.py    - DatabaseInitializer for setup

==============================================================================
"""

from .database import Base, DatabaseManager, engine_options, get_database_manager, get_db
from .models import APP_UUID_KEY, InstallationSetting
from .init_db import DatabaseInitializer, init_db

__all__ = [
    "DatabaseManager",
    "Base",
    "get_db",
    "get_database_manager",
    "engine_options",
    "APP_UUID_KEY",
    "InstallationSetting",
    "DatabaseInitializer",
    "init_db",
]
