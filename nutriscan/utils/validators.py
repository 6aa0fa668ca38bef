"""
==============================================================================
Validation Utilities Module
==============================================================================

Validation classes for user-supplied input.

This module implements:
- ImageUploadValidator: size and content-type checks for uploaded images
- BarcodeTextValidator: sanity checks for typed barcodes

Validation Rules for Images:
---------------------------
- Size: at most max_bytes (5 MiB by default), not empty
- Content type: image/*

==============================================================================
"""

from __future__ import annotations

from typing import Optional, Tuple


class ImageUploadValidator:
    """
    Validator for uploaded image files.

    Example:
        >>> validator = ImageUploadValidator(max_bytes=1024)
        >>> validator.validate("label.png", "image/png", 2048)
        (False, 'File label.png is too large or not an image')
    """

    DEFAULT_MAX_BYTES = 5 * 1024 * 1024

    def __init__(self, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
        self.max_bytes = max_bytes

    def validate(
        self, filename: str, content_type: Optional[str], size: int
    ) -> Tuple[bool, Optional[str]]:
        """
        Validate one image upload.

        Args:
            filename: Client-side file name (used in the message)
            content_type: MIME type reported by the client
            size: Payload size in bytes

        Returns:
            Tuple of (is_valid, error_message)
        """
        is_image = bool(content_type) and content_type.lower().startswith("image/")
        if size <= 0 or size > self.max_bytes or not is_image:
            return False, f"File {filename} is too large or not an image"
        return True, None

    def is_valid(self, filename: str, content_type: Optional[str], size: int) -> bool:
        """Quick validation check."""
        is_valid, _ = self.validate(filename, content_type, size)
        return is_valid


class BarcodeTextValidator:
    """
    Validator for typed barcodes.

    Only rejects text that cannot be a product code; checksum digits are
    left to the remote database.
    """

    MAX_LENGTH = 48

    def validate(self, text: Optional[str]) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate and normalize a typed barcode.

        Returns:
            Tuple of (is_valid, normalized_code, error_message)
            - Blank text is valid and normalizes to None
        """
        code = (text or "").strip()
        if not code:
            return True, None, None

        if len(code) > self.MAX_LENGTH:
            return False, None, f"Barcode must be at most {self.MAX_LENGTH} characters"

        if any(ch.isspace() or ch == "/" for ch in code):
            return False, None, "Barcode cannot contain spaces or slashes"

        return True, code, None

    def is_valid(self, text: Optional[str]) -> bool:
        """Quick validation check."""
        is_valid, _, _ = self.validate(text)
        return is_valid
