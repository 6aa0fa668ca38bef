"""
==============================================================================
Decoder Package - Barcode Recognition Capability
==============================================================================

Barcode decoding and camera capture behind injectable interfaces.

Classes:
--------
- Decoder: capability base (decode_image, start_stream, stop)
- StreamSubscription: single-shot live detection handle
- CameraProvider / MediaStream: camera capability
- PyzbarDecoder: OpenCV + pyzbar implementation (loaded lazily)

==============================================================================
"""

from .base import Decoder, DecoderConfig, StreamSubscription, Symbology
from .camera import (
    CameraPermission,
    CameraProvider,
    MediaStream,
    OpenCVCameraProvider,
    OpenCVMediaStream,
    RemoteCameraProvider,
    RemoteMediaStream,
)


def create_decoder() -> Decoder:
    """
    Build the production decoder.

    pyzbar needs the zbar shared library at import time, so it is only
    imported when a decoder is actually requested.
    """
    try:
        from .pyzbar_decoder import PyzbarDecoder
    except ImportError as e:
        raise ImportError(
            "pyzbar and opencv-python-headless are required for decoding "
            "(and the zbar shared library, e.g. apt install libzbar0)"
        ) from e
    return PyzbarDecoder()


__all__ = [
    "Decoder",
    "DecoderConfig",
    "StreamSubscription",
    "Symbology",
    "CameraPermission",
    "CameraProvider",
    "MediaStream",
    "OpenCVCameraProvider",
    "OpenCVMediaStream",
    "RemoteCameraProvider",
    "RemoteMediaStream",
    "create_decoder",
]
