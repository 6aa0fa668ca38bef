"""
==============================================================================
Contribution Endpoints
==============================================================================

Submit a product that is missing from Open Food Facts.

Form Layout (multipart/form-data):
---------------------------------
- barcode, product_name, creator: text
- brands, categories, labels, allergens, ingredients, data_sources:
  repeated text fields, one raw value each (tags are derived server-side)
- nutriscore: JSON object (see NutriScoreInput), optional
- images: repeated image files, optional

==============================================================================
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import ValidationError
from sqlalchemy.orm import Session

from nutriscan.config import Settings, get_settings
from nutriscan.contribution import ContributionClient, ContributionDraft
from nutriscan.core import exceptions
from nutriscan.core.dependencies import get_contribution_client
from nutriscan.db.database import get_db
from nutriscan.schemas.contribution import ContributionResponse, NutriScoreInput
from nutriscan.services.identity_service import InstallationIdentityService


# Module logger
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contributions", tags=["Contributions"])


class ContributionController:
    """Controller for product contributions."""

    def __init__(self, db: Session, client: ContributionClient, settings: Settings):
        self._identity = InstallationIdentityService(db)
        self._client = client
        self._settings = settings

    @staticmethod
    def parse_nutriscore(raw: Optional[str]) -> Optional[NutriScoreInput]:
        if not raw:
            return None
        try:
            return NutriScoreInput.model_validate_json(raw)
        except ValidationError as e:
            raise exceptions.validation_error(f"Invalid nutriscore field: {e.errors()[0]['msg']}") from e

    async def build_draft(
        self,
        barcode: str,
        product_name: str,
        creator: str,
        tags: dict,
        nutriscore: Optional[NutriScoreInput],
        images: List[UploadFile],
    ) -> tuple:
        """Assemble a draft; returns (draft, rejected image messages)."""
        draft = ContributionDraft(barcode=barcode, product_name=product_name, creator=creator)

        for field, values in tags.items():
            draft.add_tags(field, values)

        if nutriscore is not None:
            for key, value in nutriscore.nutrients.items():
                draft.set_nutrient(key, value)
            for key, value in nutriscore.flags.items():
                draft.set_flag(key, value)
            for kind, components in nutriscore.components.items():
                for component in components:
                    draft.add_component(kind, component)
            draft.set_result(nutriscore.grade, nutriscore.score)

        files = [
            (image.filename or f"image_{index}", image.content_type, await image.read())
            for index, image in enumerate(images)
        ]
        rejected = draft.add_images(files, max_bytes=self._settings.max_image_bytes)
        return draft, rejected

    async def submit(self, draft: ContributionDraft, rejected: List[str]) -> ContributionResponse:
        draft.validate_draft()
        app_uuid = self._identity.get_or_create_app_uuid()
        message = await self._client.submit(draft, app_uuid)
        return ContributionResponse(success=True, message=message, rejected_images=rejected)


@router.post("", response_model=ContributionResponse)
async def contribute_product(
    barcode: str = Form(..., min_length=1, max_length=48),
    product_name: str = Form(""),
    creator: str = Form(""),
    brands: List[str] = Form(default=[]),
    categories: List[str] = Form(default=[]),
    labels: List[str] = Form(default=[]),
    allergens: List[str] = Form(default=[]),
    ingredients: List[str] = Form(default=[]),
    data_sources: List[str] = Form(default=[]),
    nutriscore: Optional[str] = Form(None),
    images: List[UploadFile] = File(default=[]),
    db: Session = Depends(get_db),
    client: ContributionClient = Depends(get_contribution_client),
    settings: Settings = Depends(get_settings)
):
    """
    Validate and upload a product contribution.

    Requires a product name and at least one brand. Oversized or non-image
    files are skipped and listed in ``rejected_images``.
    """
    controller = ContributionController(db, client, settings)
    draft, rejected = await controller.build_draft(
        barcode,
        product_name,
        creator,
        {
            "brands": brands,
            "categories": categories,
            "labels": labels,
            "allergens": allergens,
            "ingredients": ingredients,
            "data_sources": data_sources,
        },
        controller.parse_nutriscore(nutriscore),
        images,
    )
    return await controller.submit(draft, rejected)
