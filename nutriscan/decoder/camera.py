"""
==============================================================================
Camera Capability Module
==============================================================================

Frame sources for live scanning.

Classes:
--------
- MediaStream / CameraProvider: capability interfaces
- OpenCVCameraProvider: camera attached to the host (cv2.VideoCapture)
- RemoteCameraProvider: frames pushed by a WebSocket client; the client's
  browser owns the camera and reports its permission state

A MediaStream is released with stop(); stop() is idempotent and, once
called, read_frame() returns None.

==============================================================================
"""

from __future__ import annotations

import asyncio
import enum
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from nutriscan.core import exceptions


# Module logger
logger = logging.getLogger(__name__)


class MediaStream(ABC):
    """Source of video frames owned by one live-scanning session."""

    @property
    @abstractmethod
    def stopped(self) -> bool:
        """True once stop() was called."""

    @abstractmethod
    async def read_frame(self) -> Optional[Any]:
        """
        Wait for the next frame.

        Returns:
            A frame, or None once the stream is stopped

        Raises:
            AppException: STREAM_ERROR if the device fails
        """

    @abstractmethod
    def stop(self) -> None:
        """Release the underlying tracks/device."""


class CameraProvider(ABC):
    """Platform camera capability."""

    @abstractmethod
    def supports_live(self) -> bool:
        """Whether this platform can capture live video at all."""

    @abstractmethod
    async def open(self) -> MediaStream:
        """
        Acquire a camera stream.

        Raises:
            AppException: CAMERA_UNSUPPORTED or CAMERA_PERMISSION_DENIED
        """


# =============================================================================
# LOCAL CAMERA (OpenCV)
# =============================================================================

class OpenCVMediaStream(MediaStream):
    """Frames read from a cv2.VideoCapture in a worker thread."""

    def __init__(self, capture: Any) -> None:
        self._cap = capture
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    async def read_frame(self) -> Optional[Any]:
        if self._stopped:
            return None

        ret, frame = await asyncio.to_thread(self._cap.read)

        if self._stopped:
            return None
        if not ret or frame is None:
            raise exceptions.stream_error("Failed to read frame")
        return frame

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._cap.release()
        logger.debug("📷 Camera released")


class OpenCVCameraProvider(CameraProvider):
    """
    Camera attached to the machine running the service.

    Args:
        camera_index: Device index (0 = default)
    """

    def __init__(self, camera_index: int = 0) -> None:
        self._camera_index = camera_index

    def supports_live(self) -> bool:
        try:
            import cv2  # noqa: F401
        except ImportError:
            return False
        return True

    async def open(self) -> MediaStream:
        import cv2

        device = Path(f"/dev/video{self._camera_index}")
        if device.exists() and not os.access(device, os.R_OK):
            raise exceptions.camera_permission_denied()

        cap = await asyncio.to_thread(cv2.VideoCapture, self._camera_index)
        if not cap.isOpened():
            cap.release()
            logger.error(f"Cannot open camera {self._camera_index}")
            raise exceptions.camera_unsupported()

        logger.info(f"📷 Camera {self._camera_index} opened")
        return OpenCVMediaStream(cap)


# =============================================================================
# REMOTE CAMERA (frames pushed over WebSocket)
# =============================================================================

class CameraPermission(str, enum.Enum):
    """Camera state reported by a remote client."""

    GRANTED = "granted"
    DENIED = "denied"
    UNSUPPORTED = "unsupported"

    def __str__(self) -> str:
        return self.value


class RemoteMediaStream(MediaStream):
    """
    Stream fed by push(). Keeps only the most recent frames; when the
    buffer is full the oldest pending frame is dropped.
    """

    def __init__(self, max_pending: int = 4) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_pending)
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    def push(self, frame: Any) -> bool:
        """Queue a frame. Returns False if the stream is already stopped."""
        if self._stopped or frame is None:
            return False
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(frame)
        return True

    async def read_frame(self) -> Optional[Any]:
        if self._stopped:
            return None
        frame = await self._queue.get()
        return None if self._stopped else frame

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        while not self._queue.empty():
            self._queue.get_nowait()
        # Wake a reader blocked in read_frame
        self._queue.put_nowait(None)
        logger.debug("📱 Remote stream stopped")


class RemoteCameraProvider(CameraProvider):
    """Camera living in a remote client that pushes frames to us."""

    def __init__(self, permission: CameraPermission = CameraPermission.GRANTED) -> None:
        self.permission = permission
        self._stream: Optional[RemoteMediaStream] = None

    @property
    def current_stream(self) -> Optional[RemoteMediaStream]:
        return self._stream

    def supports_live(self) -> bool:
        return self.permission != CameraPermission.UNSUPPORTED

    async def open(self) -> MediaStream:
        if self.permission == CameraPermission.UNSUPPORTED:
            raise exceptions.camera_unsupported()
        if self.permission == CameraPermission.DENIED:
            raise exceptions.camera_permission_denied()

        self._stream = RemoteMediaStream()
        return self._stream

    def push_frame(self, frame: Any) -> bool:
        """Forward a client frame to the open stream, if any."""
        stream = self._stream
        if stream is None or stream.stopped:
            return False
        return stream.push(frame)
