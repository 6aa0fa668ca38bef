"""
==============================================================================
Decoder Capability Module
==============================================================================

Interface every barcode decoder implements, plus the stream pump shared by
all of them.

Capabilities:
-------------
- decode_image: one still image -> code string, or DECODE_NOT_FOUND
- start_stream: push-based detection on a MediaStream, single shot
- stop: cancel a running stream subscription (idempotent)

Single-shot subscriptions:
-------------------------
A subscription accepts exactly one detection. The first decoded frame wins,
the subscription deactivates itself and then calls on_detected. Later
frames are never decoded.

==============================================================================
"""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional, Tuple, Union

from nutriscan.core import exceptions
from nutriscan.core.exceptions import AppException
from nutriscan.decoder.camera import MediaStream


# Module logger
logger = logging.getLogger(__name__)


DetectionCallback = Callable[[str], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[AppException], Union[None, Awaitable[None]]]


class Symbology(str, enum.Enum):
    """Barcode symbologies a caller can ask the decoder to recognize."""

    EAN_13 = "ean_13"
    EAN_8 = "ean_8"
    CODE_128 = "code_128"
    CODE_39 = "code_39"
    UPC_A = "upc_a"
    UPC_E = "upc_e"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class DecoderConfig:
    """Symbology subset selected by the caller."""

    symbologies: Tuple[Symbology, ...] = tuple(Symbology)

    @classmethod
    def from_names(cls, names: Iterable[str]) -> DecoderConfig:
        """Build a config from symbology names such as "ean_13"."""
        symbologies = tuple(Symbology(str(name).lower()) for name in names)
        return cls(symbologies=symbologies or tuple(Symbology))


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class StreamSubscription:
    """
    Handle for one live detection stream.

    Attributes:
        active: False once cancelled or after the accepted detection
        accepted: True once a detection was accepted
    """

    def __init__(self) -> None:
        self._task: Optional[asyncio.Task] = None
        self._active = True
        self._accepted = False

    def attach(self, task: asyncio.Task) -> None:
        self._task = task

    @property
    def active(self) -> bool:
        return self._active

    @property
    def accepted(self) -> bool:
        return self._accepted

    def accept(self) -> bool:
        """Claim the single detection slot. True only for the first caller."""
        if not self._active or self._accepted:
            return False
        self._accepted = True
        return True

    def cancel(self) -> None:
        """
        Deactivate the subscription and cancel its pump task.

        Safe to call repeatedly and from inside the pump task itself
        (a task never cancels itself here; it sees active=False and exits).
        """
        self._active = False
        task = self._task
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()


async def _maybe_await(result: Any) -> None:
    if inspect.isawaitable(result):
        await result


class Decoder(ABC):
    """
    Barcode decoder capability.

    Subclasses provide image loading and per-frame decoding; streaming and
    single-shot semantics live here.
    """

    @abstractmethod
    def load_image(self, data: bytes) -> Any:
        """Turn encoded image bytes into a frame, or None if unreadable."""

    @abstractmethod
    def decode_frame(self, frame: Any, config: DecoderConfig) -> Optional[str]:
        """Return the first code found in the frame, or None."""

    # =========================================================================
    # STILL IMAGES
    # =========================================================================

    def decode_image(self, data: bytes, config: DecoderConfig) -> str:
        """
        Decode a single still image.

        Raises:
            AppException: DECODE_NOT_FOUND if the bytes are not an image or
                hold no code of the selected symbologies
        """
        frame = self.load_image(data)
        if frame is None:
            logger.warning("Uploaded data is not a readable image")
            raise exceptions.decode_not_found()

        code = self.decode_frame(frame, config)
        if not code:
            logger.warning("No barcode detected")
            raise exceptions.decode_not_found()

        logger.info(f"Barcode detected: {code}")
        return code

    # =========================================================================
    # LIVE STREAMS
    # =========================================================================

    def start_stream(
        self,
        stream: MediaStream,
        on_detected: DetectionCallback,
        config: DecoderConfig,
        on_error: Optional[ErrorCallback] = None,
    ) -> StreamSubscription:
        """
        Start decoding frames from a stream.

        Args:
            stream: Frame source
            on_detected: Called once with the first accepted code
            config: Symbology selection
            on_error: Called with STREAM_ERROR if the stream breaks

        Raises:
            AppException: DECODE_INIT_ERROR if no event loop is running
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise exceptions.decode_init_error(str(e)) from e

        subscription = StreamSubscription()
        task = loop.create_task(
            self._pump(stream, on_detected, config, subscription, on_error)
        )
        subscription.attach(task)
        logger.debug("Stream subscription started")
        return subscription

    def stop(self, subscription: Optional[StreamSubscription]) -> None:
        """Stop a stream subscription. No-op for None or stopped ones."""
        if subscription is not None:
            subscription.cancel()

    async def _pump(
        self,
        stream: MediaStream,
        on_detected: DetectionCallback,
        config: DecoderConfig,
        subscription: StreamSubscription,
        on_error: Optional[ErrorCallback],
    ) -> None:
        while subscription.active:
            try:
                frame = await stream.read_frame()
            except AppException as e:
                logger.error(f"Stream read failed: {e.message}")
                subscription.cancel()
                if on_error is not None:
                    await _maybe_await(on_error(e))
                return

            if frame is None:
                # Stream stopped underneath us
                subscription.cancel()
                return

            if not subscription.active:
                return

            try:
                code = self.decode_frame(frame, config)
            except Exception as e:
                logger.error(f"Decode error: {e}")
                continue

            if code and subscription.accept():
                subscription.cancel()
                logger.info(f"Live detection accepted: {code}")
                await _maybe_await(on_detected(code))
                return
