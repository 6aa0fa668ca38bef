"""
==============================================================================
Pyzbar Decoder Module
==============================================================================

Decoder backed by OpenCV (image loading) and pyzbar (zbar symbol reader).

Symbology mapping:
-----------------
    ean_13   -> ZBarSymbol.EAN13
    ean_8    -> ZBarSymbol.EAN8
    code_128 -> ZBarSymbol.CODE128
    code_39  -> ZBarSymbol.CODE39
    upc_a    -> ZBarSymbol.UPCA
    upc_e    -> ZBarSymbol.UPCE

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import cv2
import numpy as np
from pyzbar.pyzbar import ZBarSymbol, decode

from nutriscan.decoder.base import Decoder, DecoderConfig, Symbology


# Module logger
logger = logging.getLogger(__name__)


SYMBOL_MAP: Dict[Symbology, ZBarSymbol] = {
    Symbology.EAN_13: ZBarSymbol.EAN13,
    Symbology.EAN_8: ZBarSymbol.EAN8,
    Symbology.CODE_128: ZBarSymbol.CODE128,
    Symbology.CODE_39: ZBarSymbol.CODE39,
    Symbology.UPC_A: ZBarSymbol.UPCA,
    Symbology.UPC_E: ZBarSymbol.UPCE,
}


class PyzbarDecoder(Decoder):
    """
    zbar-based decoder for still images and live frames.

    Example:
        >>> decoder = PyzbarDecoder()
        >>> decoder.decode_image(Path("can.jpg").read_bytes(), DecoderConfig())
        '5000112637922'
    """

    def load_image(self, data: bytes) -> Optional[np.ndarray]:
        """Decode JPEG/PNG/... bytes into a BGR frame."""
        if not data:
            return None

        nparr = np.frombuffer(data, np.uint8)
        frame = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
        if frame is None or frame.size == 0:
            return None
        return frame

    def decode_frame(self, frame: Any, config: DecoderConfig) -> Optional[str]:
        """Return the first readable code in the frame, or None."""
        if frame is None or getattr(frame, "size", 0) == 0:
            return None

        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY) if frame.ndim == 3 else frame
        symbols: List[ZBarSymbol] = [SYMBOL_MAP[s] for s in config.symbologies]

        for barcode in decode(gray, symbols=symbols):
            try:
                code = barcode.data.decode("utf-8").strip()
            except UnicodeDecodeError:
                logger.warning(f"Skipping non UTF-8 {barcode.type} payload")
                continue

            if code:
                logger.debug(f"Decoded {barcode.type}: {code}")
                return code

        return None
