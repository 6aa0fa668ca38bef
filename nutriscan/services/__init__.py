"""
==============================================================================
Services Package - Business Logic Layer
==============================================================================

Service classes sitting between API endpoints and the database.

- InstallationIdentityService: per-installation identifier

==============================================================================
"""

from .identity_service import InstallationIdentityService

__all__ = [
    "InstallationIdentityService",
]
