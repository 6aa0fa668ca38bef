"""
==============================================================================
Acquisition Package - Barcode Input
==============================================================================

Session state machine for getting a barcode from the user.

Classes:
--------
- AcquisitionSession: immutable session state
- AcquisitionController: image / live / manual / clear operations
- LiveCaptureHandle: camera stream + decoder subscription pair

==============================================================================
"""

from .capture import LiveCaptureHandle
from .controller import AcquisitionController
from .session import (
    AcquisitionMode,
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

__all__ = [
    "AcquisitionController",
    "AcquisitionMode",
    "AcquisitionSession",
    "LiveCaptureHandle",
    "begin_image_decode",
    "begin_live_scan",
    "clear_session",
    "end_live_scan",
    "enter_manual",
    "mark_product_found",
    "record_barcode",
    "record_failure",
    "record_lookup_error",
    "to_data_url",
]
