"""
==============================================================================
Product View Models Module
==============================================================================

Pydantic models for the normalized, display-ready projection of an
Open Food Facts product record.

Nutri-Score schemas (tagged by ``kind``):
----------------------------------------
- component:   2023+ algorithm, negative/positive component lists
- legacy:      pre-2023 flat ``*_value`` / ``*_points`` block, or plain
               ``nutriments`` + ``nutrition_grades`` fields
- unavailable: nothing usable in the response; grade is "unknown"

==============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


UNKNOWN_GRADE = "unknown"


class NutrientComponent(BaseModel):
    """One Nutri-Score input with its contribution to the score."""

    value: Optional[float] = None
    points: Optional[float] = None
    max_points: Optional[float] = None
    unit: Optional[str] = None


class ComponentNutriScore(BaseModel):
    """Nutri-Score computed with the 2023+ component-based algorithm."""

    kind: Literal["component"] = "component"
    source: str
    version: str
    grade: str = UNKNOWN_GRADE
    score: Optional[float] = None
    components: Dict[str, NutrientComponent] = Field(default_factory=dict)
    negative_points: Optional[float] = None
    negative_points_max: Optional[float] = None
    positive_points: Optional[float] = None
    positive_points_max: Optional[float] = None
    count_proteins: Optional[bool] = None
    count_proteins_reason: Optional[str] = None
    product_type: Dict[str, Optional[bool]] = Field(default_factory=dict)
    applicable: bool = False
    computed: bool = False


class LegacyNutriScore(BaseModel):
    """Nutri-Score from the pre-2023 flat formula or plain product fields."""

    kind: Literal["legacy"] = "legacy"
    source: str
    version: Optional[str] = None
    grade: str = UNKNOWN_GRADE
    score: Optional[float] = None
    components: Dict[str, NutrientComponent] = Field(default_factory=dict)
    negative_points: Optional[float] = None
    positive_points: Optional[float] = None
    product_type: Dict[str, Optional[bool]] = Field(default_factory=dict)
    applicable: bool = False
    computed: bool = False


class UnavailableNutriScore(BaseModel):
    """No Nutri-Score information in the response."""

    kind: Literal["unavailable"] = "unavailable"
    source: str = "none"
    grade: str = UNKNOWN_GRADE
    score: Optional[float] = None


NutriScore = Annotated[
    Union[ComponentNutriScore, LegacyNutriScore, UnavailableNutriScore],
    Field(discriminator="kind"),
]


class NutritionFacts(BaseModel):
    """
    Nutrition facts per ``per`` (usually 100g).

    Values are None when the product record does not carry them.
    """

    per: str = "100g"
    energy_kcal: Optional[float] = None
    energy_kj: Optional[float] = None
    proteins: Optional[float] = None
    carbohydrates: Optional[float] = None
    sugars: Optional[float] = None
    fat: Optional[float] = None
    saturated_fat: Optional[float] = None
    salt: Optional[float] = None
    sodium: Optional[float] = None
    fiber: Optional[float] = None
    units: Dict[str, str] = Field(default_factory=dict)


class ProductViewModel(BaseModel):
    """
    Normalized product record.

    Attributes:
        barcode: Code the product was looked up with
        name: Product name ("Unknown Product" when missing)
        brands: Brand names
        categories: Category names split from the comma-separated field
        ingredients: Ingredient tags
        allergens: Allergen tags
        labels: Label tags
        keywords: Search keywords
        nutrition_grade: a-e or "unknown"
        grade_class: Presentation class for the grade ("" when unknown)
        nutrition: Nutrition facts
        nutriscore: Nutri-Score breakdown (schema depends on the response)
        image_url: Best available front image
        nutrition_data_per: Reference quantity of the nutrition facts
    """

    model_config = ConfigDict(from_attributes=True)

    barcode: str = ""
    name: str
    brands: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    ingredients: List[str] = Field(default_factory=list)
    allergens: List[str] = Field(default_factory=list)
    labels: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    nutrition_grade: str = UNKNOWN_GRADE
    grade_class: str = ""
    nutrition: NutritionFacts = Field(default_factory=NutritionFacts)
    nutriscore: NutriScore = Field(default_factory=UnavailableNutriScore)
    image_url: Optional[str] = None
    nutrition_data_per: str = "100g"


@dataclass(frozen=True)
class LookupFailure:
    """
    Outcome of a lookup that produced no product.

    Attributes:
        code: Error code (LOOKUP_NOT_FOUND, LOOKUP_HTTP_ERROR, ...)
        message: User-facing message
        status_code: HTTP status the REST API answers with
    """

    code: str
    message: str
    status_code: int = 502
