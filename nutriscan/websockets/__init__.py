"""
==============================================================================
WebSocket Package
==============================================================================

Real-time WebSocket handlers for barcode acquisition.

Handlers:
---------
- scanner: Interactive acquisition session (image, live, manual, clear)

==============================================================================
"""

from .scanner import router as scanner_router

__all__ = ["scanner_router"]
