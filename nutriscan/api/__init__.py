"""
API Package - REST endpoints.
"""

from .router import api_router

__all__ = ["api_router"]
