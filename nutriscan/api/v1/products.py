"""
==============================================================================
Product Lookup Endpoints
==============================================================================

Look a barcode up in Open Food Facts and return the normalized record.

==============================================================================
"""

from fastapi import APIRouter, Depends

from nutriscan.core import exceptions
from nutriscan.core.dependencies import get_lookup_workflow
from nutriscan.core.exceptions import AppException
from nutriscan.lookup.models import LookupFailure
from nutriscan.lookup.workflow import LookupWorkflow
from nutriscan.utils.validators import BarcodeTextValidator


router = APIRouter(prefix="/products", tags=["Products"])


class ProductController:
    """Controller for product lookups."""

    def __init__(self, workflow: LookupWorkflow):
        self._workflow = workflow
        self._validator = BarcodeTextValidator()

    async def get_by_barcode(self, barcode: str) -> dict:
        """Get the normalized product for a barcode."""
        is_valid, code, error = self._validator.validate(barcode)
        if not is_valid:
            raise exceptions.validation_error(error)
        if code is None:
            raise exceptions.lookup_not_found(barcode)

        result = await self._workflow.lookup(code)
        if isinstance(result, LookupFailure):
            raise AppException(result.message, result.code, result.status_code)

        return {
            "success": True,
            "product": result.model_dump()
        }


@router.get("/{barcode}")
async def get_product(
    barcode: str,
    workflow: LookupWorkflow = Depends(get_lookup_workflow)
):
    """Get product data by barcode."""
    controller = ProductController(workflow)
    return await controller.get_by_barcode(barcode)
