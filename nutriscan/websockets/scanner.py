"""
==============================================================================
Scanner WebSocket Module
==============================================================================

Interactive barcode acquisition over a WebSocket connection. Each
connection owns one AcquisitionController; the client's browser owns the
camera and pushes frames.

Protocol:
---------
Client -> server (JSON, "type" field):
    image        {"data": base64, "content_type": "image/png"}
    start_live   {"camera": "granted" | "denied" | "unsupported"}
    frame        {"frame": base64 JPEG/PNG}
    stop_live    {}
    stream_error {"reason": "..."}
    manual       {"barcode": "..."}
    clear        {}
    stop         {}

Server -> client:
    state        {"mode", "barcode", "error", "image_preview",
                  "product_found", "loading", "lookup_error"}
    product      {"product": {...}}
    error        {"code", "message"}  (protocol errors only)

The controller is closed when the connection ends, releasing any camera
stream still held.

==============================================================================
"""

import asyncio
import base64
import binascii
import logging
from typing import Any, Dict, Optional, Set

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from nutriscan.acquisition import AcquisitionController
from nutriscan.config import Settings, get_settings
from nutriscan.core.dependencies import (
    get_decoder,
    get_decoder_config,
    get_lookup_workflow,
    get_remote_camera,
)
from nutriscan.decoder import CameraPermission, Decoder, DecoderConfig, RemoteCameraProvider
from nutriscan.lookup.models import ProductViewModel
from nutriscan.lookup.workflow import LookupWorkflow
from nutriscan.utils.validators import ImageUploadValidator


# Module logger
logger = logging.getLogger(__name__)

router = APIRouter()


class ScannerWebSocketHandler:
    """
    Handler for one scanning WebSocket connection.

    Manages the lifecycle of an acquisition session including:
    - Image decoding (run concurrently so later actions can supersede it)
    - Live scanning from client-pushed frames
    - Manual entry and clearing
    - Pushing state and product updates
    """

    def __init__(
        self,
        websocket: WebSocket,
        decoder: Decoder,
        workflow: LookupWorkflow,
        config: DecoderConfig,
        settings: Settings,
        camera: Optional[RemoteCameraProvider] = None,
    ):
        self._websocket = websocket
        self._decoder = decoder
        self._settings = settings
        self._camera = camera or RemoteCameraProvider()
        self._tasks: Set[asyncio.Task] = set()
        self._controller = AcquisitionController(
            decoder,
            self._camera,
            workflow,
            config=config,
            manual_entry_stops_live_scan=settings.manual_entry_stops_live_scan,
            on_change=self.send_state,
            on_product=self.send_product,
        )

    @property
    def controller(self) -> AcquisitionController:
        return self._controller

    # =========================================================================
    # OUTGOING
    # =========================================================================

    async def send_state(self, snapshot: Dict[str, Any]) -> None:
        await self._websocket.send_json({"type": "state", **snapshot})

    async def send_product(self, product: ProductViewModel) -> None:
        await self._websocket.send_json({"type": "product", "product": product.model_dump()})

    async def send_error(self, message: str, code: str = "ERROR") -> None:
        """Send error message to client."""
        await self._websocket.send_json({
            "type": "error",
            "code": code,
            "message": message
        })

    # =========================================================================
    # INCOMING
    # =========================================================================

    def _decode_payload(self, value: Optional[str]) -> Optional[bytes]:
        if not value:
            return None
        # Accept data URLs as well as bare base64
        if value.startswith("data:") and "," in value:
            value = value.split(",", 1)[1]
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            return None

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def handle_image(self, data: dict) -> None:
        payload = self._decode_payload(data.get("data"))
        if payload is None:
            await self.send_error("Image payload is not valid base64", "VALIDATION_ERROR")
            return

        content_type = data.get("content_type") or "image/jpeg"
        validator = ImageUploadValidator(max_bytes=self._settings.max_image_bytes)
        is_valid, error = validator.validate(data.get("filename") or "image", content_type, len(payload))
        if not is_valid:
            await self.send_error(error, "VALIDATION_ERROR")
            return

        self._spawn(self._controller.choose_image(payload, content_type))

    async def handle_start_live(self, data: dict) -> None:
        try:
            self._camera.permission = CameraPermission(data.get("camera", "granted"))
        except ValueError:
            await self.send_error(f"Unknown camera state: {data.get('camera')}", "VALIDATION_ERROR")
            return
        await self._controller.start_live_scan()

    async def handle_frame(self, data: dict) -> None:
        """Decode a pushed frame and hand it to the live stream."""
        if not self._controller.is_live:
            return

        payload = self._decode_payload(data.get("frame"))
        if payload is None:
            return

        try:
            frame = await asyncio.to_thread(self._decoder.load_image, payload)
        except Exception as e:
            logger.error(f"Frame processing error: {e}")
            return

        if frame is not None:
            self._camera.push_frame(frame)

    async def dispatch(self, data: dict) -> bool:
        """Handle one client message. Returns False when the client asked to stop."""
        kind = data.get("type")

        if kind == "image":
            await self.handle_image(data)
        elif kind == "start_live":
            await self.handle_start_live(data)
        elif kind == "frame":
            await self.handle_frame(data)
        elif kind == "stop_live":
            await self._controller.stop_live_scan()
        elif kind == "stream_error":
            await self._controller.report_stream_error(data.get("reason"))
        elif kind == "manual":
            await self._controller.manual_entry(data.get("barcode"))
        elif kind == "clear":
            await self._controller.clear()
        elif kind == "stop":
            logger.info("🛑 Client requested stop")
            return False
        else:
            await self.send_error(f"Unknown message type: {kind}", "UNKNOWN_MESSAGE")

        return True

    async def run(self) -> None:
        """Main handler loop."""
        await self._websocket.accept()
        logger.info("📱 Scanner WebSocket connected")

        try:
            await self.send_state(self._controller.snapshot())

            while True:
                data = await self._websocket.receive_json()
                if not isinstance(data, dict):
                    await self.send_error("Messages must be JSON objects", "UNKNOWN_MESSAGE")
                    continue
                if not await self.dispatch(data):
                    break

        except WebSocketDisconnect:
            logger.info("📱 Client disconnected")
        except Exception as e:
            logger.error(f"WebSocket error: {e}")
        finally:
            await self._controller.close()
            for task in list(self._tasks):
                task.cancel()
            logger.info("✅ Scanner WebSocket closed")


@router.websocket("/ws/scan")
async def websocket_scan(
    websocket: WebSocket,
    decoder: Decoder = Depends(get_decoder),
    workflow: LookupWorkflow = Depends(get_lookup_workflow),
    config: DecoderConfig = Depends(get_decoder_config),
    settings: Settings = Depends(get_settings),
    camera: RemoteCameraProvider = Depends(get_remote_camera)
):
    """Interactive barcode acquisition via WebSocket."""
    handler = ScannerWebSocketHandler(websocket, decoder, workflow, config, settings, camera)
    await handler.run()
