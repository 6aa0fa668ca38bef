"""
==============================================================================
Contribution Schemas Module
==============================================================================

Schemas for the product contribution endpoint.

The Nutri-Score block travels as a JSON string in the multipart form
(field "nutriscore") next to the image files.

==============================================================================
"""

from typing import Any, Dict, List
from pydantic import BaseModel, Field, field_validator


class NutriScoreInput(BaseModel):
    """Nutri-Score 2023 values entered by the contributor."""
    nutrients: Dict[str, Any] = Field(default_factory=dict)
    flags: Dict[str, bool] = Field(default_factory=dict)
    components: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)
    grade: str = Field(default="", max_length=1)
    score: float = Field(default=0)

    @field_validator("grade")
    @classmethod
    def normalize_grade(cls, v: str) -> str:
        v = v.strip().lower()
        if v and v not in "abcde":
            raise ValueError("Grade must be one of a, b, c, d, e")
        return v

    @field_validator("components")
    @classmethod
    def known_component_types(cls, v: Dict[str, List[Dict[str, Any]]]):
        unknown = set(v) - {"negative", "positive"}
        if unknown:
            raise ValueError(f"Unknown component types: {', '.join(sorted(unknown))}")
        return v


class ContributionResponse(BaseModel):
    """Result of a contribution upload."""
    success: bool = Field(default=True)
    message: str
    rejected_images: List[str] = Field(default_factory=list)
