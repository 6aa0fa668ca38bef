"""
==============================================================================
Contribution Package - New Products
==============================================================================

Drafting and uploading products missing from Open Food Facts.

Classes:
--------
- ContributionDraft: editable product draft (pydantic)
- ContributionClient: multipart upload (httpx)

==============================================================================
"""

from .client import SUCCESS_MESSAGE, ContributionClient
from .draft import (
    FLAG_KEYS,
    NUTRIENT_KEYS,
    TAG_FIELDS,
    ContributionDraft,
    ImageAttachment,
    NutriScoreDraft,
    make_tag,
)
from .form import build_multipart, format_number, multipart_parts

__all__ = [
    "ContributionClient",
    "ContributionDraft",
    "ImageAttachment",
    "NutriScoreDraft",
    "SUCCESS_MESSAGE",
    "FLAG_KEYS",
    "NUTRIENT_KEYS",
    "TAG_FIELDS",
    "build_multipart",
    "format_number",
    "multipart_parts",
    "make_tag",
]
