"""
Live capture handle: the camera stream and decoder subscription of one
live-scanning session, released together.
"""

from __future__ import annotations

import logging
from typing import Optional

from nutriscan.decoder.base import Decoder, StreamSubscription
from nutriscan.decoder.camera import MediaStream


# Module logger
logger = logging.getLogger(__name__)


class LiveCaptureHandle:
    """
    Owns a MediaStream and the decoder subscription reading from it.

    release() stops the decoder first, then the stream. A failure in either
    step is logged and does not prevent the other.
    """

    def __init__(
        self,
        decoder: Decoder,
        stream: MediaStream,
        subscription: Optional[StreamSubscription] = None,
    ) -> None:
        self._decoder = decoder
        self._stream = stream
        self._subscription = subscription
        self._released = False

    @property
    def stream(self) -> MediaStream:
        return self._stream

    @property
    def subscription(self) -> Optional[StreamSubscription]:
        return self._subscription

    @property
    def released(self) -> bool:
        return self._released

    def bind(self, subscription: StreamSubscription) -> None:
        self._subscription = subscription

    def release(self) -> None:
        """Stop decoder and camera. Idempotent."""
        if self._released:
            return
        self._released = True

        try:
            self._decoder.stop(self._subscription)
        except Exception as e:
            logger.error(f"Failed to stop decoder: {e}")

        try:
            self._stream.stop()
        except Exception as e:
            logger.error(f"Failed to stop camera stream: {e}")

        logger.debug("Live capture released")
