"""
Multipart form layout for product contributions.

Field order:
    code, product_name, creator,
    brands_tags[] ... data_sources_tags[], informers_tags[],
    nutriscore[2023][data][...], nutriscore[2023][grade], nutriscore[2023][score],
    app_name, app_version, app_uuid
Files:
    images[0], images[1], ...
"""

from __future__ import annotations

from typing import List, Optional, Tuple, Union

from nutriscan.contribution.draft import COMPONENT_TYPES, TAG_FIELDS, ContributionDraft


NUTRISCORE_VERSION = "2023"

FormFields = List[Tuple[str, str]]
FormFiles = List[Tuple[str, Tuple[str, bytes, str]]]
FormParts = List[Tuple[str, Tuple[Optional[str], bytes, Optional[str]]]]


def format_number(value: Union[int, float, str, bool, None]) -> str:
    """Render numbers the way a browser form would (1.0 -> "1")."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_multipart(
    draft: ContributionDraft,
    app_name: str,
    app_version: str,
    app_uuid: str,
) -> Tuple[FormFields, FormFiles]:
    """
    Flatten a draft into multipart fields and file parts.

    Returns:
        (fields, files) ready for httpx (files as name -> (filename, data, type))
    """
    prefix = f"nutriscore[{NUTRISCORE_VERSION}]"
    fields: FormFields = [
        ("code", draft.barcode),
        ("product_name", draft.product_name),
        ("creator", draft.creator),
    ]

    for field in TAG_FIELDS:
        for tag in getattr(draft, field):
            fields.append((f"{field}_tags[]", tag))

    if draft.creator:
        fields.append(("informers_tags[]", draft.creator))

    nutriscore = draft.nutriscore
    for key, value in nutriscore.nutrients.items():
        fields.append((f"{prefix}[data][{key}]", format_number(value)))
    for key, value in nutriscore.flags.items():
        fields.append((f"{prefix}[data][{key}]", format_number(value)))
    for kind in COMPONENT_TYPES:
        for index, component in enumerate(nutriscore.components.get(kind, [])):
            for name, value in component.items():
                fields.append(
                    (f"{prefix}[data][components][{kind}][{index}][{name}]", format_number(value))
                )

    fields.append((f"{prefix}[grade]", nutriscore.grade))
    fields.append((f"{prefix}[score]", format_number(nutriscore.score)))

    fields.extend([
        ("app_name", app_name),
        ("app_version", app_version),
        ("app_uuid", app_uuid),
    ])

    files: FormFiles = [
        (f"images[{index}]", (image.filename, image.data, image.content_type))
        for index, image in enumerate(draft.images)
    ]

    return fields, files


def multipart_parts(fields: FormFields, files: FormFiles) -> FormParts:
    """
    Every field as a multipart part, files last.

    Plain fields become parts without a filename, so the body is
    multipart/form-data even when no image is attached.
    """
    parts: FormParts = [
        (name, (None, value.encode("utf-8"), None)) for name, value in fields
    ]
    parts.extend(files)
    return parts
