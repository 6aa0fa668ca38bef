"""
==============================================================================
Schemas Package
==============================================================================

Pydantic request/response models for the HTTP API.

==============================================================================
"""

from .common import MessageResponse, SuccessResponse
from .contribution import ContributionResponse, NutriScoreInput
from .scan import ManualEntryRequest, ScanResponse, SessionState

__all__ = [
    "SuccessResponse",
    "MessageResponse",
    "ContributionResponse",
    "NutriScoreInput",
    "ManualEntryRequest",
    "ScanResponse",
    "SessionState",
]
