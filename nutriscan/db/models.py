"""
==============================================================================
SQLAlchemy ORM Models Module
==============================================================================

ORM models for local service state.

Database Schema:
---------------

    ┌─────────────────────────────────────────────────────────────────┐
    │                    installation_settings                         │
    ├─────────────────────────────────────────────────────────────────┤
    │ key (VARCHAR, PK)                                               │
    │ value (VARCHAR, NOT NULL)                                       │
    │ created_at (DATETIME, DEFAULT now)                              │
    │ updated_at (DATETIME, AUTO UPDATE)                              │
    └─────────────────────────────────────────────────────────────────┘

Known keys:
-----------
- app_uuid: stable identifier sent with every product contribution

=============================================================================
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, String, func

from nutriscan.db.database import Base


# Key under which the installation identifier is stored
APP_UUID_KEY = "app_uuid"


class InstallationSetting(Base):
    """
    Key-value pair persisted for this installation.

    Attributes:
        key: Setting name (primary key)
        value: Stored string value
        created_at: When the key was first written
        updated_at: When the value last changed
    """

    __tablename__ = "installation_settings"

    key = Column(String(64), primary_key=True)
    value = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    def to_dict(self) -> dict:
        """Serialize for API responses."""
        return {
            "key": self.key,
            "value": self.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"InstallationSetting(key={self.key!r})"
