"""
==============================================================================
API v1 Endpoints
==============================================================================

Version 1 of the REST API.

Routers:
--------
- health: Health check endpoints
- products: Product lookup
- scan: One-shot image and manual scans
- contributions: Product contributions

==============================================================================
"""

from . import contributions, health, products, scan

__all__ = ["health", "products", "scan", "contributions"]
