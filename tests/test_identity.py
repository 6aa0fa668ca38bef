"""
==============================================================================
Installation Identity Tests
==============================================================================
"""

import uuid

from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from nutriscan.db.database import engine_options
from nutriscan.db.models import APP_UUID_KEY, InstallationSetting
from nutriscan.services import InstallationIdentityService


class TestInstallationIdentity:
    """app_uuid generation and persistence."""

    def test_missing_until_created(self, db: Session):
        service = InstallationIdentityService(db)
        assert service.get_app_uuid() is None

    def test_generated_once(self, db: Session):
        service = InstallationIdentityService(db)
        first = service.get_or_create_app_uuid()
        second = InstallationIdentityService(db).get_or_create_app_uuid()

        assert first == second
        assert str(uuid.UUID(first)) == first

    def test_persisted_as_setting(self, db: Session):
        app_uuid = InstallationIdentityService(db).get_or_create_app_uuid()
        setting = db.get(InstallationSetting, APP_UUID_KEY)
        assert setting.value == app_uuid
        assert setting.to_dict()["key"] == APP_UUID_KEY


class TestEngineOptions:
    """Engine settings derived from the database URL."""

    def test_in_memory_shares_one_connection(self):
        for url in ("sqlite://", "sqlite:///:memory:"):
            options = engine_options(url)
            assert options["poolclass"] is StaticPool
            assert options["connect_args"] == {"check_same_thread": False}

    def test_file_database(self):
        options = engine_options("sqlite:///./storage/db/nutriscan.db")
        assert "poolclass" not in options
        assert options["connect_args"] == {"check_same_thread": False}
