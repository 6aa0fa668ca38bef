"""
==============================================================================
Installation Identity Service Module
==============================================================================

Stable per-installation identifier sent as ``app_uuid`` with every product
contribution. Generated once (uuid4) and persisted in the
installation_settings table.

==============================================================================
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from nutriscan.db.models import APP_UUID_KEY, InstallationSetting


# Module logger
logger = logging.getLogger(__name__)


class InstallationIdentityService:
    """
    Service reading and creating the installation identifier.

    Example:
        >>> service = InstallationIdentityService(db_session)
        >>> service.get_or_create_app_uuid()
        '5f0c...'
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def get_app_uuid(self) -> Optional[str]:
        """Return the stored identifier, or None if never generated."""
        setting = self._db.get(InstallationSetting, APP_UUID_KEY)
        return setting.value if setting else None

    def get_or_create_app_uuid(self) -> str:
        """
        Return the stored identifier, generating and persisting it first
        if this installation has none yet.
        """
        existing = self.get_app_uuid()
        if existing:
            return existing

        app_uuid = str(uuid.uuid4())
        self._db.add(InstallationSetting(key=APP_UUID_KEY, value=app_uuid))
        self._db.commit()

        logger.info(f"🆔 Generated installation identifier {app_uuid}")
        return app_uuid
