"""
==============================================================================
Contribution Draft Module
==============================================================================

Editable draft of a new product submitted to Open Food Facts.

Tag Rules:
----------
- Trimmed, lower-cased, whitespace runs become "-"
- Taxonomy fields get the "en:" prefix; data_sources does not
- Duplicates are ignored, insertion order is kept

Nutri-Score 2023 data:
---------------------
- Nutrients are numbers; anything non-numeric is stored as 0
- Product-type flags (is_beverage, is_cheese, is_fat, is_water) are 0/1
- Components are free-form dicts under "negative" and "positive"

==============================================================================
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from nutriscan.core import exceptions
from nutriscan.utils.validators import ImageUploadValidator


# Module logger
logger = logging.getLogger(__name__)


TAG_FIELDS: Tuple[str, ...] = (
    "brands",
    "categories",
    "labels",
    "allergens",
    "ingredients",
    "data_sources",
)
UNPREFIXED_TAG_FIELDS = frozenset({"data_sources"})
TAG_LANGUAGE_PREFIX = "en:"

NUTRIENT_KEYS: Tuple[str, ...] = (
    "energy",
    "fiber",
    "proteins",
    "saturated_fat",
    "sodium",
    "sugars",
    "fruits_vegetables_nuts_colza_walnut_olive_oils",
)
FLAG_KEYS: Tuple[str, ...] = ("is_beverage", "is_cheese", "is_fat", "is_water")
COMPONENT_TYPES: Tuple[str, ...] = ("negative", "positive")

_WHITESPACE = re.compile(r"\s+")


def make_tag(field: str, value: str) -> Optional[str]:
    """Normalize raw text into a tag for the given field, None when blank."""
    text = _WHITESPACE.sub("-", (value or "").strip().lower())
    if not text:
        return None
    if field in UNPREFIXED_TAG_FIELDS:
        return text
    return f"{TAG_LANGUAGE_PREFIX}{text}"


def _to_number(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


class ImageAttachment(BaseModel):
    """Image file waiting to be uploaded with the draft."""

    filename: str
    content_type: str
    data: bytes = Field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


class NutriScoreDraft(BaseModel):
    """Nutri-Score 2023 block of a contribution."""

    nutrients: Dict[str, float] = Field(
        default_factory=lambda: {key: 0.0 for key in NUTRIENT_KEYS}
    )
    flags: Dict[str, int] = Field(default_factory=lambda: {key: 0 for key in FLAG_KEYS})
    components: Dict[str, List[Dict[str, Any]]] = Field(
        default_factory=lambda: {kind: [] for kind in COMPONENT_TYPES}
    )
    grade: str = ""
    score: float = 0


class ContributionDraft(BaseModel):
    """
    Product contribution being edited by the user.

    Example:
        >>> draft = ContributionDraft(barcode="3017620422003")
        >>> draft.product_name = "Hazelnut Spread"
        >>> draft.add_tag("brands", "Nutella Ferrero")
        >>> draft.brands
        ['en:nutella-ferrero']
        >>> draft.validate_draft()
    """

    model_config = ConfigDict(validate_assignment=False)

    barcode: str
    product_name: str = ""
    creator: str = ""
    brands: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    labels: List[str] = Field(default_factory=list)
    allergens: List[str] = Field(default_factory=list)
    ingredients: List[str] = Field(default_factory=list)
    data_sources: List[str] = Field(default_factory=list)
    nutriscore: NutriScoreDraft = Field(default_factory=NutriScoreDraft)
    images: List[ImageAttachment] = Field(default_factory=list)

    @field_validator("barcode", "product_name", "creator")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        return (v or "").strip()

    # =========================================================================
    # TAGS
    # =========================================================================

    def _tags(self, field: str) -> List[str]:
        if field not in TAG_FIELDS:
            raise ValueError(f"Unknown tag field: {field}")
        return getattr(self, field)

    def add_tag(self, field: str, value: str) -> Optional[str]:
        """Add a tag. Returns the stored tag, or None when blank."""
        tags = self._tags(field)
        tag = make_tag(field, value)
        if tag is None:
            return None
        if tag not in tags:
            tags.append(tag)
        return tag

    def add_tags(self, field: str, values: Iterable[str]) -> None:
        for value in values:
            self.add_tag(field, value)

    def remove_tag(self, field: str, tag: str) -> None:
        tags = self._tags(field)
        setattr(self, field, [t for t in tags if t != tag])

    # =========================================================================
    # NUTRI-SCORE
    # =========================================================================

    def set_nutrient(self, key: str, value: Any) -> float:
        number = _to_number(value)
        self.nutriscore.nutrients[key] = number
        return number

    def set_flag(self, key: str, value: Any) -> int:
        flag = 1 if value else 0
        self.nutriscore.flags[key] = flag
        return flag

    def add_component(self, kind: str, component: Dict[str, Any]) -> None:
        if kind not in COMPONENT_TYPES:
            raise ValueError(f"Unknown component type: {kind}")
        self.nutriscore.components[kind].append(dict(component))

    def set_result(self, grade: str = "", score: Any = 0) -> None:
        self.nutriscore.grade = (grade or "").strip().lower()
        self.nutriscore.score = _to_number(score)

    # =========================================================================
    # IMAGES
    # =========================================================================

    def add_images(
        self,
        files: Iterable[Tuple[str, Optional[str], bytes]],
        max_bytes: int = ImageUploadValidator.DEFAULT_MAX_BYTES,
    ) -> List[str]:
        """
        Attach image files given as (filename, content_type, data).

        Invalid files are skipped; valid ones are still added.

        Returns:
            Rejection messages, one per skipped file
        """
        validator = ImageUploadValidator(max_bytes=max_bytes)
        rejected: List[str] = []

        for filename, content_type, data in files:
            is_valid, error = validator.validate(filename, content_type, len(data))
            if not is_valid:
                logger.warning(error)
                rejected.append(error)
                continue
            self.images.append(
                ImageAttachment(filename=filename, content_type=content_type, data=data)
            )

        return rejected

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def is_complete(self) -> bool:
        return bool(self.product_name) and len(self.brands) > 0

    def validate_draft(self) -> None:
        """
        Raises:
            AppException: CONTRIBUTION_VALIDATION_ERROR without a name or brand
        """
        if not self.is_complete():
            raise exceptions.contribution_validation_error()

    def reset(self) -> None:
        """Back to an empty draft for the same barcode."""
        fresh = ContributionDraft(barcode=self.barcode)
        for name in type(self).model_fields:
            setattr(self, name, getattr(fresh, name))
