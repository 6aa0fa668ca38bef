"""
==============================================================================
Scan Endpoints
==============================================================================

One-shot acquisition over plain HTTP: each request runs a fresh session
to completion (decode or manual entry, then lookup) and returns the final
snapshot. Live scanning needs a persistent connection; see /ws/scan.

==============================================================================
"""

from fastapi import APIRouter, Depends, File, UploadFile

from nutriscan.acquisition import AcquisitionController
from nutriscan.config import Settings, get_settings
from nutriscan.core import exceptions
from nutriscan.core.dependencies import (
    get_camera_provider,
    get_decoder,
    get_decoder_config,
    get_lookup_workflow,
)
from nutriscan.decoder import CameraProvider, Decoder, DecoderConfig
from nutriscan.lookup.workflow import LookupWorkflow
from nutriscan.schemas.scan import ManualEntryRequest, ScanResponse, SessionState
from nutriscan.utils.validators import BarcodeTextValidator, ImageUploadValidator


router = APIRouter(prefix="/scan", tags=["Scan"])


class ScanController:
    """Controller for one-shot scans."""

    def __init__(
        self,
        decoder: Decoder,
        camera: CameraProvider,
        workflow: LookupWorkflow,
        config: DecoderConfig,
        settings: Settings,
    ):
        self._settings = settings
        self._session = AcquisitionController(
            decoder,
            camera,
            workflow,
            config=config,
            manual_entry_stops_live_scan=settings.manual_entry_stops_live_scan,
        )

    async def _finish(self) -> ScanResponse:
        await self._session.wait_for_lookup()
        await self._session.close()
        snapshot = self._session.snapshot()
        return ScanResponse(
            success=snapshot["product_found"],
            session=SessionState(**snapshot),
            product=self._session.workflow.product,
        )

    async def scan_image(self, file: UploadFile) -> ScanResponse:
        """Decode an uploaded image and look the code up."""
        data = await file.read()
        validator = ImageUploadValidator(max_bytes=self._settings.max_image_bytes)
        is_valid, error = validator.validate(file.filename or "upload", file.content_type, len(data))
        if not is_valid:
            raise exceptions.validation_error(error)

        await self._session.choose_image(data, file.content_type)
        return await self._finish()

    async def manual(self, request: ManualEntryRequest) -> ScanResponse:
        """Look a typed barcode up."""
        is_valid, _, error = BarcodeTextValidator().validate(request.barcode)
        if not is_valid:
            raise exceptions.validation_error(error)

        await self._session.manual_entry(request.barcode)
        return await self._finish()


def get_scan_controller(
    decoder: Decoder = Depends(get_decoder),
    camera: CameraProvider = Depends(get_camera_provider),
    workflow: LookupWorkflow = Depends(get_lookup_workflow),
    config: DecoderConfig = Depends(get_decoder_config),
    settings: Settings = Depends(get_settings),
) -> ScanController:
    return ScanController(decoder, camera, workflow, config, settings)


@router.post("/image", response_model=ScanResponse)
async def scan_image(
    file: UploadFile = File(...),
    controller: ScanController = Depends(get_scan_controller)
):
    """Decode a barcode from an uploaded image and look it up."""
    return await controller.scan_image(file)


@router.post("/manual", response_model=ScanResponse)
async def scan_manual(
    request: ManualEntryRequest,
    controller: ScanController = Depends(get_scan_controller)
):
    """Look up a manually entered barcode."""
    return await controller.manual(request)
