"""
==============================================================================
Settings and Validator Tests
==============================================================================
"""

import pytest
from pydantic import ValidationError

from nutriscan.config import Settings
from nutriscan.utils import BarcodeTextValidator, ImageUploadValidator


class TestSettings:
    """URL composition and validation."""

    def test_urls(self):
        settings = Settings(off_base_url="https://world.openfoodfacts.net/", off_product_path="api/v2/product/")
        assert settings.product_url("42") == "https://world.openfoodfacts.net/api/v2/product/42.json"
        assert settings.contribution_url == "https://world.openfoodfacts.net/cgi/product_jqm2.pl"

    def test_user_agent_without_contact(self):
        settings = Settings(contact_email="")
        assert settings.user_agent == "FoodFactsApp/1.1"

    def test_unknown_environment_falls_back(self):
        assert Settings(app_env="qa").app_env == "development"

    def test_symbologies(self):
        settings = Settings(scanner_symbologies='["EAN_13", "code_128"]')
        assert settings.symbology_names == ["ean_13", "code_128"]

        with pytest.raises(ValidationError):
            Settings(scanner_symbologies='["qr_code"]')

    def test_in_memory_database_has_no_path(self):
        assert Settings(database_url="sqlite://").get_database_path() is None


class TestValidators:
    """Upload and typed barcode validation."""

    def test_image_upload(self):
        validator = ImageUploadValidator(max_bytes=10)
        assert validator.is_valid("a.png", "image/png", 10)
        assert not validator.is_valid("a.png", "image/png", 11)
        assert not validator.is_valid("a.png", "image/png", 0)
        assert not validator.is_valid("a.pdf", "application/pdf", 5)
        assert not validator.is_valid("a", None, 5)

    def test_barcode_text(self):
        validator = BarcodeTextValidator()
        assert validator.validate(" 123 ") == (True, "123", None)
        assert validator.validate("") == (True, None, None)
        assert not validator.is_valid("12 34")
        assert not validator.is_valid("1" * 49)
