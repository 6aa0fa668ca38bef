"""
==============================================================================
Application Settings Module
==============================================================================

Configuration management using Pydantic Settings.

The Settings object is created once and cached (see get_settings), so the
whole service shares a single configuration instance.

Features:
---------
- Environment variable loading with type validation
- .env file support for local development
- Configurable Open Food Facts host (world.openfoodfacts.org in production,
  world.openfoodfacts.net for the staging server)
- Barcode symbology selection for the decoder

Configuration Priority (highest to lowest):
------------------------------------------
1. Environment variables
2. .env file
3. Default values

==============================================================================
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Module logger
logger = logging.getLogger(__name__)


# Symbology names accepted in SCANNER_SYMBOLOGIES
SUPPORTED_SYMBOLOGIES = ("ean_13", "ean_8", "code_128", "code_39", "upc_a", "upc_e")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Display name for the application
        app_env: Environment mode (development/staging/production)
        debug: Enable debug mode for verbose logging
        host: Server bind address
        port: Server port number
        database_url: SQLAlchemy database connection string
        off_base_url: Open Food Facts host used for lookups and contributions
        off_product_path: Path prefix of the product endpoint
        off_contribution_path: Path of the product write endpoint
        lookup_timeout_seconds: Timeout applied to each product lookup
        contribution_timeout_seconds: Timeout applied to contribution uploads
        client_app_name: Application name sent in User-Agent and contributions
        client_app_version: Application version sent in User-Agent
        contact_email: Contact address sent in User-Agent
        camera_index: Local camera device index for OpenCV capture
        scanner_symbologies: Barcode symbologies (JSON array string)
        manual_entry_stops_live_scan: Typing a barcode ends a running live scan
        max_image_bytes: Size limit for contributed product images
        cors_origins: Allowed CORS origins (JSON array string)

    Example:
        >>> settings = Settings()
        >>> settings.product_url("5000112637922")
        'https://world.openfoodfacts.org/api/v2/product/5000112637922.json'
    """

    # =========================================================================
    # PYDANTIC SETTINGS CONFIGURATION
    # =========================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    # =========================================================================
    # APPLICATION SETTINGS
    # =========================================================================
    app_name: str = Field(
        default="Nutriscan API",
        description="Display name for the application"
    )

    app_env: str = Field(
        default="development",
        description="Environment mode: development, staging, production"
    )

    debug: bool = Field(
        default=True,
        description="Enable debug mode for verbose logging"
    )

    # =========================================================================
    # SERVER SETTINGS
    # =========================================================================
    host: str = Field(
        default="0.0.0.0",
        description="Server bind address"
    )

    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Server port number"
    )

    # =========================================================================
    # DATABASE SETTINGS
    # =========================================================================
    database_url: str = Field(
        default="sqlite:///./storage/db/nutriscan.db",
        description="SQLAlchemy database connection string"
    )

    # =========================================================================
    # OPEN FOOD FACTS SETTINGS
    # =========================================================================
    off_base_url: str = Field(
        default="https://world.openfoodfacts.org",
        description="Open Food Facts host"
    )

    off_product_path: str = Field(
        default="/api/v2/product",
        description="Path prefix of the product read endpoint"
    )

    off_contribution_path: str = Field(
        default="/cgi/product_jqm2.pl",
        description="Path of the product write endpoint"
    )

    lookup_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Timeout for product lookups in seconds"
    )

    contribution_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Timeout for contribution uploads in seconds"
    )

    client_app_name: str = Field(
        default="FoodFactsApp",
        min_length=1,
        description="Application name reported to Open Food Facts"
    )

    client_app_version: str = Field(
        default="1.1",
        min_length=1,
        description="Application version reported to Open Food Facts"
    )

    contact_email: str = Field(
        default="",
        description="Contact address included in the User-Agent header"
    )

    # =========================================================================
    # SCANNER SETTINGS
    # =========================================================================
    camera_index: int = Field(
        default=0,
        ge=0,
        description="Local camera device index"
    )

    scanner_symbologies: str = Field(
        default=json.dumps(list(SUPPORTED_SYMBOLOGIES)),
        description="Recognized barcode symbologies as JSON array string"
    )

    manual_entry_stops_live_scan: bool = Field(
        default=True,
        description="Stop a running live scan when a barcode is typed"
    )

    max_image_bytes: int = Field(
        default=5 * 1024 * 1024,
        ge=1024,
        description="Maximum size of a contributed image"
    )

    # =========================================================================
    # CORS SETTINGS
    # =========================================================================
    cors_origins: str = Field(
        default='["*"]',
        description="Allowed CORS origins as JSON array string"
    )

    # =========================================================================
    # VALIDATORS
    # =========================================================================
    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, value: str) -> str:
        """
        Validate and normalize application environment.

        Unknown values fall back to 'development'.
        """
        valid_envs = {"development", "staging", "production"}
        normalized = value.lower().strip()

        if normalized not in valid_envs:
            logger.warning(
                f"Unknown environment '{value}', defaulting to 'development'"
            )
            return "development"

        return normalized

    @field_validator("off_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Normalize the host URL so paths can be appended directly."""
        return value.strip().rstrip("/")

    @field_validator("off_product_path", "off_contribution_path")
    @classmethod
    def ensure_leading_slash(cls, value: str) -> str:
        """Paths always start with a slash and never end with one."""
        value = value.strip().rstrip("/")
        return value if value.startswith("/") else f"/{value}"

    @field_validator("scanner_symbologies")
    @classmethod
    def validate_symbologies(cls, value: str) -> str:
        """
        Validate the symbology list.

        Raises:
            ValueError: If the value is not a JSON array of known names
        """
        try:
            names = json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid symbology JSON: {value}") from e

        if not isinstance(names, list) or not names:
            raise ValueError("At least one symbology is required")

        unknown = [n for n in names if str(n).lower() not in SUPPORTED_SYMBOLOGIES]
        if unknown:
            raise ValueError(
                f"Unsupported symbologies: {', '.join(map(str, unknown))}. "
                f"Supported: {', '.join(SUPPORTED_SYMBOLOGIES)}"
            )

        return value

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================
    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def user_agent(self) -> str:
        """User-Agent header value sent to Open Food Facts."""
        agent = f"{self.client_app_name}/{self.client_app_version}"
        if self.contact_email:
            agent = f"{agent} ({self.contact_email})"
        return agent

    @property
    def product_base_url(self) -> str:
        """Base URL of the product read endpoint."""
        return f"{self.off_base_url}{self.off_product_path}"

    @property
    def contribution_url(self) -> str:
        """Full URL of the product write endpoint."""
        return f"{self.off_base_url}{self.off_contribution_path}"

    @property
    def symbology_names(self) -> List[str]:
        """Parsed, lower-cased symbology names."""
        return [str(name).lower() for name in json.loads(self.scanner_symbologies)]

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Parse CORS origins from JSON string to list.

        Returns:
            List of allowed origin strings
        """
        try:
            origins = json.loads(self.cors_origins)
            if isinstance(origins, list):
                return origins
            return ["*"]
        except json.JSONDecodeError:
            logger.warning(
                f"Invalid CORS origins JSON: {self.cors_origins}, "
                "defaulting to ['*']"
            )
            return ["*"]

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================
    def product_url(self, barcode: str) -> str:
        """Full lookup URL for one barcode."""
        return f"{self.product_base_url}/{barcode}.json"

    def get_database_path(self) -> Optional[Path]:
        """
        Extract database file path for SQLite databases.

        Returns:
            Path to database file, or None for non-SQLite or in-memory databases
        """
        if self.database_url.startswith("sqlite:///"):
            db_path = self.database_url.replace("sqlite:///", "")
            if db_path.startswith("./"):
                db_path = db_path[2:]
            return Path(db_path) if db_path and db_path != ":memory:" else None
        return None

    def ensure_directories(self) -> None:
        """Create the SQLite database directory if needed."""
        db_path = self.get_database_path()
        if db_path:
            db_path.parent.mkdir(parents=True, exist_ok=True)

        logger.debug("Required directories created/verified")

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"Settings(app_name={self.app_name!r}, "
            f"app_env={self.app_env!r}, "
            f"off_base_url={self.off_base_url!r}, "
            f"debug={self.debug})"
        )


# =============================================================================
# SINGLETON INSTANCE MANAGEMENT
# =============================================================================

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the global Settings instance.

    Uses lru_cache so only one Settings instance is created
    throughout the application lifecycle.

    Returns:
        Global Settings instance
    """
    settings = Settings()

    settings.ensure_directories()

    if settings.debug:
        logger.info(f"Configuration loaded: {settings}")

    return settings
