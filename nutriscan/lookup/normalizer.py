"""
==============================================================================
Product Normalizer Module
==============================================================================

Maps an Open Food Facts ``product`` object onto ProductViewModel.

Nutri-Score schema selection:
----------------------------
1. ``nutriscore[<version>]`` with version >= 2023 and
   ``data.components``                              -> ComponentNutriScore
2. ``nutriscore[<version>]`` with any other
   ``data`` block (``*_value`` / ``*_points``)      -> LegacyNutriScore
3. neither, but ``nutriments`` or
   ``nutrition_grades`` present                     -> LegacyNutriScore
4. none of the above                                -> UnavailableNutriScore

The version is ``nutriscore_version`` when present, otherwise the newest
year key found in the nutriscore block.

==============================================================================
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

from nutriscan.lookup.models import (
    UNKNOWN_GRADE,
    ComponentNutriScore,
    LegacyNutriScore,
    NutrientComponent,
    NutritionFacts,
    ProductViewModel,
    UnavailableNutriScore,
)


# Module logger
logger = logging.getLogger(__name__)


GRADES = ("a", "b", "c", "d", "e")

COMPONENT_SCHEMA_YEAR = 2023

DEFAULT_PRODUCT_NAME = "Unknown Product"

# (view key, component list, component id)
COMPONENT_FIELDS = (
    ("energy", "negative", "energy"),
    ("sugars", "negative", "sugars"),
    ("saturated_fat", "negative", "saturated_fat"),
    ("salt", "negative", "salt"),
    ("fiber", "positive", "fiber"),
    ("fruits_vegetables", "positive", "fruits_vegetables_legumes"),
    ("proteins", "positive", "proteins"),
)

# (view key, data field prefix, max points, unit)
LEGACY_BLOCK_FIELDS = (
    ("energy", "energy", 10, "kJ"),
    ("sugars", "sugars", 10, "g"),
    ("saturated_fat", "saturated_fat", 10, "g"),
    ("sodium", "sodium", 10, "mg"),
    ("fiber", "fiber", 5, "g"),
    ("fruits_vegetables", "fruits_vegetables_nuts_colza_walnut_olive_oils", 5, "%"),
    ("proteins", "proteins", 5, "g"),
)

# (view key, nutriments key, unit)
LEGACY_NUTRIMENT_FIELDS = (
    ("energy", "energy", "kJ"),
    ("sugars", "sugars", "g"),
    ("saturated_fat", "saturated-fat", "g"),
    ("sodium", "sodium", "g"),
    ("fiber", "fiber", "g"),
    ("fruits_vegetables", "fruits-vegetables-nuts-estimate-from-ingredients", "%"),
    ("proteins", "proteins", "g"),
)

# (NutritionFacts field, nutriments key, default unit)
NUTRITION_FIELDS = (
    ("energy_kcal", "energy-kcal", "kcal"),
    ("energy_kj", "energy-kj", "kJ"),
    ("proteins", "proteins", "g"),
    ("carbohydrates", "carbohydrates", "g"),
    ("sugars", "sugars", "g"),
    ("fat", "fat", "g"),
    ("saturated_fat", "saturated-fat", "g"),
    ("salt", "salt", "g"),
    ("sodium", "sodium", "g"),
    ("fiber", "fiber", "g"),
)

PRODUCT_TYPE_FLAGS = (
    "is_beverage",
    "is_cheese",
    "is_fat",
    "is_fat_oil_nuts_seeds",
    "is_red_meat_product",
    "is_water",
)

IMAGE_URL_FIELDS = (
    "image_front_url",
    "image_url",
    "image_front_small_url",
    "image_small_url",
)

_LANGUAGE_PREFIX = re.compile(r"^[a-z]{2,3}:")


# =============================================================================
# SMALL HELPERS
# =============================================================================

def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    return bool(value)


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def normalize_grade(value: Any) -> str:
    """Return a lower-case grade letter a-e, or "unknown"."""
    grade = str(value or "").strip().lower()
    return grade if grade in GRADES else UNKNOWN_GRADE


def grade_css_class(grade: Any) -> str:
    """Presentation class for a grade; empty for unknown grades."""
    letter = normalize_grade(grade)
    return f"nutrition-grade-{letter}" if letter != UNKNOWN_GRADE else ""


def split_tags(value: Any) -> List[str]:
    """
    Split a comma-separated string (or clean a list) into tag strings.

    Example:
        >>> split_tags("Beverages, Sodas,, Colas")
        ['Beverages', 'Sodas', 'Colas']
    """
    if isinstance(value, str):
        items: Sequence[Any] = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        return []
    return [str(item).strip() for item in items if str(item).strip()]


def tag_label(tag: str) -> str:
    """
    Display label for a taxonomy tag.

    Example:
        >>> tag_label("en:sea-salt")
        'sea salt'
    """
    return _LANGUAGE_PREFIX.sub("", tag.strip()).replace("-", " ").strip()


def format_value(value: Any, unit: Optional[str], default: str = "N/A") -> str:
    """Render a nutrient value with its unit, or the default when missing."""
    if value is None or value == "":
        return default
    return f"{value} {unit}".strip() if unit else str(value)


def select_image_url(product: Mapping[str, Any], language: str = "en") -> Optional[str]:
    """
    Pick the best available front image.

    Order: selected_images.front.display[language], any other display
    language, then the flat image URL fields.
    """
    selected = _as_mapping(_as_mapping(product.get("selected_images")).get("front"))
    display = _as_mapping(selected.get("display"))

    if display.get(language):
        return display[language]
    for url in display.values():
        if url:
            return url

    for field in IMAGE_URL_FIELDS:
        if product.get(field):
            return product[field]

    return None


# =============================================================================
# NUTRITION FACTS
# =============================================================================

def extract_nutrition(product: Mapping[str, Any]) -> NutritionFacts:
    """
    Read nutrition facts from the ``nutriments`` map.

    Per-serving values are preferred when ``nutrition_data_per`` is
    "serving", per-100g values otherwise; unsuffixed keys are the fallback.
    """
    nutriments = _as_mapping(product.get("nutriments"))
    per = str(product.get("nutrition_data_per") or "100g")
    suffixes = ("_serving", "_100g", "") if per == "serving" else ("_100g", "")

    values: Dict[str, Optional[float]] = {}
    units: Dict[str, str] = {}

    for field, key, default_unit in NUTRITION_FIELDS:
        value = None
        for suffix in suffixes:
            value = _to_float(nutriments.get(f"{key}{suffix}"))
            if value is not None:
                break
        values[field] = value
        units[field] = str(nutriments.get(f"{key}_unit") or default_unit)

    # Older records only carry "energy" (kJ)
    if values["energy_kj"] is None:
        for suffix in suffixes:
            value = _to_float(nutriments.get(f"energy{suffix}"))
            if value is not None:
                values["energy_kj"] = value
                break

    return NutritionFacts(per=per, units=units, **values)


# =============================================================================
# NUTRI-SCORE SCHEMAS
# =============================================================================

def _version_year(version: Any) -> int:
    try:
        return int(str(version)[:4])
    except (TypeError, ValueError):
        return 0


def _resolve_version(product: Mapping[str, Any], nutriscore: Mapping[str, Any]) -> Optional[str]:
    version = product.get("nutriscore_version")
    if version is not None and str(version) in nutriscore:
        return str(version)

    years = [key for key in nutriscore if _version_year(key) > 0]
    if not years:
        return None
    return max(years, key=_version_year)


def _product_type(data: Mapping[str, Any]) -> Dict[str, Optional[bool]]:
    return {flag: _as_bool(data[flag]) for flag in PRODUCT_TYPE_FLAGS if flag in data}


def _fallback_grade(product: Mapping[str, Any]) -> str:
    return normalize_grade(product.get("nutriscore_grade") or product.get("nutrition_grades"))


def _component_schema(
    product: Mapping[str, Any], version: str, entry: Mapping[str, Any]
) -> ComponentNutriScore:
    data = _as_mapping(entry.get("data"))
    groups = _as_mapping(data.get("components"))

    components: Dict[str, NutrientComponent] = {}
    for view_key, group, component_id in COMPONENT_FIELDS:
        for item in groups.get(group) or []:
            if isinstance(item, Mapping) and item.get("id") == component_id:
                components[view_key] = NutrientComponent(
                    value=_to_float(item.get("value")),
                    points=_to_float(item.get("points")),
                    max_points=_to_float(item.get("points_max")),
                    unit=item.get("unit"),
                )
                break

    return ComponentNutriScore(
        source=f"nutriscore_{version}",
        version=version,
        grade=normalize_grade(entry.get("grade")) if entry.get("grade") else _fallback_grade(product),
        score=_to_float(entry.get("score")),
        components=components,
        negative_points=_to_float(data.get("negative_points")),
        negative_points_max=_to_float(data.get("negative_points_max")),
        positive_points=_to_float(data.get("positive_points")),
        positive_points_max=_to_float(data.get("positive_points_max")),
        count_proteins=_as_bool(data.get("count_proteins")),
        count_proteins_reason=data.get("count_proteins_reason"),
        product_type=_product_type(data),
        applicable=bool(entry.get("nutriscore_applicable")),
        computed=bool(entry.get("nutriscore_computed")),
    )


def _legacy_block_schema(
    product: Mapping[str, Any], version: str, entry: Mapping[str, Any]
) -> LegacyNutriScore:
    data = _as_mapping(entry.get("data"))

    components = {
        view_key: NutrientComponent(
            value=_to_float(data.get(f"{prefix}_value")),
            points=_to_float(data.get(f"{prefix}_points")),
            max_points=max_points,
            unit=unit,
        )
        for view_key, prefix, max_points, unit in LEGACY_BLOCK_FIELDS
    }

    return LegacyNutriScore(
        source=f"nutriscore_{version}",
        version=version,
        grade=normalize_grade(entry.get("grade")) if entry.get("grade") else _fallback_grade(product),
        score=_to_float(entry.get("score")),
        components=components,
        negative_points=_to_float(data.get("negative_points")),
        positive_points=_to_float(data.get("positive_points")),
        product_type=_product_type(data),
        applicable=bool(entry.get("nutriscore_applicable")),
        computed=bool(entry.get("nutriscore_computed")),
    )


def _legacy_nutriments_schema(product: Mapping[str, Any]) -> LegacyNutriScore:
    nutriments = _as_mapping(product.get("nutriments"))

    components: Dict[str, NutrientComponent] = {}
    for view_key, key, unit in LEGACY_NUTRIMENT_FIELDS:
        value = _to_float(nutriments.get(f"{key}_100g"))
        if value is None:
            value = _to_float(nutriments.get(key))
        if value is not None:
            components[view_key] = NutrientComponent(
                value=value,
                unit=str(nutriments.get(f"{key}_unit") or unit),
            )

    score = _to_float(product.get("nutriscore_score"))
    if score is None:
        score = _to_float(nutriments.get("nutrition-score-fr"))

    grade = _fallback_grade(product)
    return LegacyNutriScore(
        source="nutriments",
        grade=grade,
        score=score,
        components=components,
        applicable=grade != UNKNOWN_GRADE,
        computed=score is not None,
    )


def _has_legacy_fields(product: Mapping[str, Any]) -> bool:
    return bool(
        _as_mapping(product.get("nutriments"))
        or product.get("nutrition_grades")
        or product.get("nutriscore_grade")
    )


def select_nutriscore(product: Mapping[str, Any]):
    """
    Pick the Nutri-Score schema matching what the response carries.

    Returns:
        ComponentNutriScore, LegacyNutriScore or UnavailableNutriScore
    """
    nutriscore = _as_mapping(product.get("nutriscore"))

    if nutriscore:
        version = _resolve_version(product, nutriscore)
        entry = _as_mapping(nutriscore.get(version)) if version else {}
        if entry:
            data = _as_mapping(entry.get("data"))
            if _version_year(version) >= COMPONENT_SCHEMA_YEAR and _as_mapping(data.get("components")):
                return _component_schema(product, version, entry)
            # Newer versions without a component list still carry the flat block
            if data:
                return _legacy_block_schema(product, version, entry)

    if _has_legacy_fields(product):
        return _legacy_nutriments_schema(product)

    logger.debug("No Nutri-Score data in product record")
    return UnavailableNutriScore()


# =============================================================================
# ENTRY POINT
# =============================================================================

def normalize_product(product: Mapping[str, Any], barcode: str = "") -> ProductViewModel:
    """
    Build the view model for one product record.

    Args:
        product: The ``product`` object of a lookup response
        barcode: Code the product was looked up with

    Returns:
        ProductViewModel
    """
    nutriscore = select_nutriscore(product)

    allergens = split_tags(product.get("allergens_hierarchy"))
    if not allergens:
        allergens = split_tags(product.get("allergens_from_ingredients"))

    name = (
        product.get("product_name")
        or product.get("product_name_en")
        or product.get("generic_name")
        or DEFAULT_PRODUCT_NAME
    )

    return ProductViewModel(
        barcode=barcode or str(product.get("code") or ""),
        name=str(name).strip() or DEFAULT_PRODUCT_NAME,
        brands=split_tags(product.get("brands")),
        categories=split_tags(product.get("categories")),
        ingredients=split_tags(product.get("ingredients_tags")),
        allergens=allergens,
        labels=split_tags(product.get("labels_hierarchy")),
        keywords=split_tags(product.get("_keywords")),
        nutrition_grade=nutriscore.grade,
        grade_class=grade_css_class(nutriscore.grade),
        nutrition=extract_nutrition(product),
        nutriscore=nutriscore,
        image_url=select_image_url(product),
        nutrition_data_per=str(product.get("nutrition_data_per") or "100g"),
    )
