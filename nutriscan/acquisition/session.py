"""
==============================================================================
Acquisition Session Module
==============================================================================

Immutable session state and the pure transitions between states.

State Machine:
-------------

            choose image                       decoded
    ┌──────┐ ─────────────▶ ┌────────────────┐ ─────────▶ IDLE (barcode set)
    │      │                │ DECODING_IMAGE │ ─────────▶ IDLE (error set)
    │      │                └────────────────┘  no code
    │ IDLE │  start live    ┌────────────────┐  detected
    │      │ ─────────────▶ │ LIVE_SCANNING  │ ─────────▶ IDLE (barcode set)
    │      │                └────────────────┘ ─────────▶ IDLE (error / stopped)
    │      │  typed text
    │      │ ─────────────▶  MANUAL_ENTRY ──▶ IDLE   (synchronous)
    └──────┘

Every transition returns a new AcquisitionSession; nothing here performs
I/O. Resource handling lives in the controller.

==============================================================================
"""

from __future__ import annotations

import base64
import enum
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional


class AcquisitionMode(str, enum.Enum):
    """Which acquisition activity is running."""

    IDLE = "idle"
    DECODING_IMAGE = "decoding_image"
    LIVE_SCANNING = "live_scanning"
    MANUAL_ENTRY = "manual_entry"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class AcquisitionSession:
    """
    One user's barcode acquisition state.

    Attributes:
        mode: Active acquisition mode
        barcode: Acquired barcode, None until a decode or manual entry succeeds
        error: User-facing error message, None when there is nothing to report
        image_preview: Data URL of the last chosen image
        product_found: True once the lookup for the barcode succeeded
    """

    mode: AcquisitionMode = AcquisitionMode.IDLE
    barcode: Optional[str] = None
    error: Optional[str] = None
    image_preview: Optional[str] = None
    product_found: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["mode"] = self.mode.value
        return data


def to_data_url(data: bytes, content_type: Optional[str] = None) -> str:
    """Encode image bytes as a data URL for previews."""
    mime = content_type or "application/octet-stream"
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


# =============================================================================
# TRANSITIONS
# =============================================================================

def begin_image_decode(
    session: AcquisitionSession, image_preview: Optional[str] = None
) -> AcquisitionSession:
    """Choose image: reset barcode, error and result, start decoding."""
    return replace(
        session,
        mode=AcquisitionMode.DECODING_IMAGE,
        barcode=None,
        error=None,
        image_preview=image_preview,
        product_found=False,
    )


def begin_live_scan(session: AcquisitionSession) -> AcquisitionSession:
    """Camera and decoder are running."""
    return replace(
        session,
        mode=AcquisitionMode.LIVE_SCANNING,
        barcode=None,
        error=None,
        image_preview=None,
        product_found=False,
    )


def record_barcode(session: AcquisitionSession, barcode: str) -> AcquisitionSession:
    """A decode succeeded. Detecting the barcode already shown keeps its lookup result."""
    unchanged = barcode == session.barcode
    return replace(
        session,
        mode=AcquisitionMode.IDLE,
        barcode=barcode,
        error=session.error if unchanged else None,
        product_found=session.product_found if unchanged else False,
    )


def record_failure(session: AcquisitionSession, message: str) -> AcquisitionSession:
    """An acquisition failed (no code, camera refused, stream broke...)."""
    return replace(
        session,
        mode=AcquisitionMode.IDLE,
        barcode=None,
        error=message,
        product_found=False,
    )


def end_live_scan(session: AcquisitionSession) -> AcquisitionSession:
    """Live scan stopped. Leaves other modes alone but always clears the error."""
    mode = AcquisitionMode.IDLE if session.mode == AcquisitionMode.LIVE_SCANNING else session.mode
    return replace(session, mode=mode, error=None)


def enter_manual(session: AcquisitionSession, text: Optional[str]) -> AcquisitionSession:
    """
    Typed barcode. Blank text clears the barcode.

    A live scan that is still running keeps its mode. Retyping the same
    barcode keeps its lookup result.
    """
    barcode = (text or "").strip() or None
    mode = (
        AcquisitionMode.LIVE_SCANNING
        if session.mode == AcquisitionMode.LIVE_SCANNING
        else AcquisitionMode.IDLE
    )
    unchanged = barcode is not None and barcode == session.barcode
    return replace(
        session,
        mode=mode,
        barcode=barcode,
        error=session.error if unchanged else None,
        product_found=session.product_found if unchanged else False,
    )


def mark_product_found(session: AcquisitionSession) -> AcquisitionSession:
    return replace(session, product_found=True)


def record_lookup_error(session: AcquisitionSession, message: str) -> AcquisitionSession:
    """Lookup failed. The barcode stays."""
    return replace(session, error=message, product_found=False)


def clear_session(session: AcquisitionSession) -> AcquisitionSession:
    return AcquisitionSession()
