"""
==============================================================================
Configuration Package
==============================================================================

Centralized configuration management using Pydantic Settings.

Usage:
------
    from nutriscan.config import get_settings

    settings = get_settings()
    print(settings.off_base_url)

==============================================================================
"""

from .settings import SUPPORTED_SYMBOLOGIES, Settings, get_settings

__all__ = [
    "SUPPORTED_SYMBOLOGIES",
    "Settings",
    "get_settings",
]
