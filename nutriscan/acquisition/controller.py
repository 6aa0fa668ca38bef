"""
==============================================================================
Acquisition Controller Module
==============================================================================

Drives one user's acquisition session: image decoding, live scanning,
manual entry and clearing, plus the product lookup that follows whenever
the barcode changes.

Rules:
------
- At most one live capture exists; starting anything new releases it.
- The most recent user action wins. Results of superseded image decodes,
  camera opens and detections are discarded.
- A lookup runs only when the barcode changes to a different non-empty
  value; an older pending lookup is cancelled.
- Every state change is pushed to the on_change listener.

Example:
--------
    >>> controller = AcquisitionController(decoder, camera, workflow)
    >>> await controller.manual_entry("5000112637922")
    >>> await controller.wait_for_lookup()
    >>> controller.session.product_found
    True

==============================================================================
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from nutriscan.acquisition.capture import LiveCaptureHandle
from nutriscan.acquisition.session import (
    AcquisitionSession,
    begin_image_decode,
    begin_live_scan,
    clear_session,
    end_live_scan,
    enter_manual,
    mark_product_found,
    record_barcode,
    record_failure,
    record_lookup_error,
    to_data_url,
)
from nutriscan.core import exceptions
from nutriscan.core.exceptions import AppException
from nutriscan.decoder.base import Decoder, DecoderConfig
from nutriscan.decoder.camera import CameraProvider
from nutriscan.lookup.models import ProductViewModel
from nutriscan.lookup.workflow import LookupWorkflow


# Module logger
logger = logging.getLogger(__name__)


ChangeListener = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]
ProductListener = Callable[[ProductViewModel], Union[None, Awaitable[None]]]


class AcquisitionController:
    """
    Acquisition state machine bound to a decoder, a camera and a lookup.

    Args:
        decoder: Barcode decoder capability
        camera: Camera capability used for live scanning
        workflow: Lookup workflow run on every new barcode
        config: Symbology selection for decoding
        manual_entry_stops_live_scan: Release a running live scan when the
            user types a barcode
        on_change: Called with snapshot() after every state change
        on_product: Called with the view model when a lookup succeeds
    """

    def __init__(
        self,
        decoder: Decoder,
        camera: CameraProvider,
        workflow: LookupWorkflow,
        config: Optional[DecoderConfig] = None,
        manual_entry_stops_live_scan: bool = True,
        on_change: Optional[ChangeListener] = None,
        on_product: Optional[ProductListener] = None,
    ) -> None:
        self._decoder = decoder
        self._camera = camera
        self._workflow = workflow
        self._config = config or DecoderConfig()
        self._manual_stops_live = manual_entry_stops_live_scan
        self._on_change = on_change
        self._on_product = on_product

        self._session = AcquisitionSession()
        self._capture: Optional[LiveCaptureHandle] = None
        self._lookup_task: Optional[asyncio.Task] = None

        # Bumped whenever a pending image decode / live scan is superseded
        self._image_token = 0
        self._live_token = 0
        self._live_pending = False
        self._closed = False

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def session(self) -> AcquisitionSession:
        return self._session

    @property
    def capture(self) -> Optional[LiveCaptureHandle]:
        return self._capture

    @property
    def workflow(self) -> LookupWorkflow:
        return self._workflow

    @property
    def is_live(self) -> bool:
        return self._capture is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def snapshot(self) -> Dict[str, Any]:
        """Session state plus lookup status, JSON-ready."""
        data = self._session.to_dict()
        data["loading"] = self._workflow.loading
        data["lookup_error"] = self._workflow.error
        return data

    async def _apply(self, session: AcquisitionSession) -> None:
        # State is set before any listener gets a chance to run
        self._session = session
        await self._emit(self._on_change, self.snapshot())

    async def _emit(self, listener: Optional[Callable[[Any], Any]], value: Any) -> None:
        if listener is None:
            return
        try:
            result = listener(value)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Acquisition listener failed: {e}")

    # =========================================================================
    # RESOURCES
    # =========================================================================

    def _invalidate_image(self) -> None:
        self._image_token += 1

    def _invalidate_live(self) -> None:
        self._live_token += 1
        self._live_pending = False
        capture, self._capture = self._capture, None
        if capture is not None:
            capture.release()

    def _cancel_lookup(self) -> None:
        task, self._lookup_task = self._lookup_task, None
        if task is not None and not task.done():
            task.cancel()

    def _start_over(self) -> None:
        """Supersede everything in flight before a new acquisition."""
        self._invalidate_image()
        self._invalidate_live()
        self._cancel_lookup()
        self._workflow.reset()

    # =========================================================================
    # IMAGE DECODE
    # =========================================================================

    async def choose_image(self, data: bytes, content_type: Optional[str] = None) -> None:
        """
        Decode a still image chosen by the user.

        Releases any live capture, shows the preview, then decodes off the
        event loop. The session ends Idle with either a barcode or an error.
        """
        if self._closed:
            return

        self._start_over()
        token = self._image_token
        await self._apply(begin_image_decode(self._session, to_data_url(data, content_type)))

        try:
            code = await asyncio.to_thread(self._decoder.decode_image, data, self._config)
        except AppException as e:
            if token != self._image_token:
                return
            await self._apply(record_failure(self._session, e.message))
            return
        except Exception as e:
            logger.error(f"Image decode failed: {e}")
            if token != self._image_token:
                return
            await self._apply(record_failure(self._session, exceptions.decode_not_found().message))
            return

        if token != self._image_token:
            logger.debug(f"Discarding superseded image result {code}")
            return

        await self._set_barcode(record_barcode(self._session, code))

    # =========================================================================
    # LIVE SCAN
    # =========================================================================

    async def start_live_scan(self) -> None:
        """
        Open the camera and start continuous detection.

        The first detection releases the capture and sets the barcode.
        Camera or decoder failures end Idle with an error and no resources
        held.
        """
        if self._closed:
            return

        self._start_over()
        token = self._live_token
        self._live_pending = True

        if not self._camera.supports_live():
            self._live_pending = False
            await self._apply(record_failure(self._session, exceptions.camera_unsupported().message))
            return

        try:
            stream = await self._camera.open()
        except AppException as e:
            if token != self._live_token:
                return
            self._live_pending = False
            logger.warning(f"Camera unavailable: {e.message}")
            await self._apply(record_failure(self._session, e.message))
            return
        except Exception as e:
            if token != self._live_token:
                return
            self._live_pending = False
            logger.error(f"Camera open failed: {e}")
            await self._apply(record_failure(self._session, exceptions.stream_error().message))
            return

        if token != self._live_token or self._closed:
            # Superseded while waiting for the camera
            stream.stop()
            return

        capture = LiveCaptureHandle(self._decoder, stream)
        try:
            subscription = self._decoder.start_stream(
                stream,
                lambda code: self._on_detected(token, code),
                self._config,
                on_error=lambda error: self._on_stream_failure(token, error),
            )
        except AppException as e:
            capture.release()
            self._live_pending = False
            await self._apply(record_failure(self._session, e.message))
            return
        except Exception as e:
            capture.release()
            self._live_pending = False
            logger.error(f"Decoder start failed: {e}")
            await self._apply(
                record_failure(self._session, exceptions.decode_init_error().message)
            )
            return

        capture.bind(subscription)
        self._capture = capture
        self._live_pending = False
        logger.info("🎥 Live scan started")
        await self._apply(begin_live_scan(self._session))

    async def stop_live_scan(self) -> None:
        """Release the live capture. Safe to call at any time."""
        if self._capture is not None or self._live_pending:
            self._invalidate_live()
            logger.info("🎥 Live scan stopped")
        await self._apply(end_live_scan(self._session))

    async def report_stream_error(self, reason: Optional[str] = None) -> None:
        """The camera stream broke outside the decoder."""
        if self._capture is None and not self._live_pending:
            logger.debug("Stream error reported with no live scan running")
            return
        error = exceptions.stream_error(reason)
        self._invalidate_live()
        await self._apply(record_failure(self._session, error.message))

    async def _on_detected(self, token: int, code: str) -> None:
        if token != self._live_token or self._closed:
            return
        # Decoder and camera are released before the session goes Idle
        self._invalidate_live()
        await self._set_barcode(record_barcode(self._session, code))

    async def _on_stream_failure(self, token: int, error: AppException) -> None:
        if token != self._live_token or self._closed:
            return
        self._invalidate_live()
        await self._apply(record_failure(self._session, error.message))

    # =========================================================================
    # MANUAL ENTRY / CLEAR
    # =========================================================================

    async def manual_entry(self, text: Optional[str]) -> None:
        """Set the barcode from typed text. Blank text clears it."""
        if self._closed:
            return

        self._invalidate_image()
        session = self._session
        if self._manual_stops_live and (self._capture is not None or self._live_pending):
            self._invalidate_live()
            session = end_live_scan(session)

        await self._set_barcode(enter_manual(session, text))

    async def clear(self) -> None:
        """Release everything and return to the initial state."""
        self._start_over()
        logger.debug("Acquisition cleared")
        await self._apply(clear_session(self._session))

    async def close(self) -> None:
        """Tear the controller down for good."""
        if self._closed:
            return
        self._closed = True
        self._invalidate_image()
        self._invalidate_live()
        self._cancel_lookup()

    # =========================================================================
    # LOOKUP
    # =========================================================================

    async def _set_barcode(self, session: AcquisitionSession) -> None:
        previous = self._session.barcode
        await self._apply(session)

        barcode = session.barcode
        if barcode and barcode != previous:
            self._schedule_lookup(barcode)
        elif not barcode:
            self._cancel_lookup()
            self._workflow.reset()

    def _schedule_lookup(self, barcode: str) -> None:
        self._cancel_lookup()
        self._lookup_task = asyncio.create_task(self._run_lookup(barcode))

    async def _run_lookup(self, barcode: str) -> None:
        await self._workflow.lookup(
            barcode,
            on_found=lambda product: self._on_found(barcode, product),
            on_error=lambda message: self._on_lookup_error(barcode, message),
        )

    async def _on_found(self, barcode: str, product: ProductViewModel) -> None:
        if self._session.barcode != barcode:
            return
        await self._apply(mark_product_found(self._session))
        await self._emit(self._on_product, product)

    async def _on_lookup_error(self, barcode: str, message: str) -> None:
        if self._session.barcode != barcode:
            return
        await self._apply(record_lookup_error(self._session, message))

    async def wait_for_lookup(self) -> None:
        """Wait until the pending lookup, if any, has finished."""
        task = self._lookup_task
        if task is not None:
            await asyncio.wait({task})
