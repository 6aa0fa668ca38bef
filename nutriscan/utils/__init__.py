"""
==============================================================================
Utilities Package
==============================================================================

Utility classes for the application.

Modules:
--------
- validators: Image upload and typed barcode validation

==============================================================================
"""

from .validators import BarcodeTextValidator, ImageUploadValidator

__all__ = [
    "BarcodeTextValidator",
    "ImageUploadValidator",
]
