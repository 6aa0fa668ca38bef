"""
==============================================================================
Lookup Package - Product Data
==============================================================================

Open Food Facts product lookup and normalization.

Classes:
--------
- ProductLookupClient: HTTP adapter (httpx)
- LookupWorkflow: loading/result/error state around one lookup
- ProductViewModel: normalized product record

==============================================================================
"""

from .client import ProductLookupClient
from .models import (
    ComponentNutriScore,
    LegacyNutriScore,
    LookupFailure,
    NutrientComponent,
    NutritionFacts,
    ProductViewModel,
    UnavailableNutriScore,
)
from .normalizer import (
    format_value,
    grade_css_class,
    normalize_grade,
    normalize_product,
    select_image_url,
    select_nutriscore,
    split_tags,
    tag_label,
)
from .workflow import LookupResult, LookupWorkflow

__all__ = [
    "ProductLookupClient",
    "LookupWorkflow",
    "LookupResult",
    "LookupFailure",
    "ProductViewModel",
    "NutritionFacts",
    "NutrientComponent",
    "ComponentNutriScore",
    "LegacyNutriScore",
    "UnavailableNutriScore",
    "format_value",
    "grade_css_class",
    "normalize_grade",
    "normalize_product",
    "select_image_url",
    "select_nutriscore",
    "split_tags",
    "tag_label",
]
