"""
==============================================================================
Scan Schemas Module
==============================================================================

Request and response schemas for one-shot scanning endpoints.

==============================================================================
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator

from nutriscan.lookup.models import ProductViewModel


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class ManualEntryRequest(BaseModel):
    """Barcode typed by the user."""
    barcode: str = Field(..., max_length=48)

    @field_validator("barcode")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        return v.strip()


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class SessionState(BaseModel):
    """Acquisition session snapshot."""
    mode: str
    barcode: Optional[str] = None
    error: Optional[str] = None
    image_preview: Optional[str] = None
    product_found: bool = False
    loading: bool = False
    lookup_error: Optional[str] = None


class ScanResponse(BaseModel):
    """Outcome of a one-shot scan: final session plus product, if found."""
    success: bool
    session: SessionState
    product: Optional[ProductViewModel] = None
