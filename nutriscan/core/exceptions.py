"""
Application Exception Handling

Single AppException class for all application errors with FastAPI integration.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class AppException(Exception):
    """
    Unified application exception for all error scenarios.

    Inside an acquisition session these are caught at the action boundary and
    turned into the session's error message; REST endpoints let them reach the
    registered handler.

    Usage:
        raise AppException("No barcode detected", "DECODE_NOT_FOUND", 422)
        raise AppException("API Error: 404 - Not Found", "LOOKUP_HTTP_ERROR", 502, {"status": 404})

    Error Codes:
        Decoding:
            - DECODE_NOT_FOUND (422)
            - DECODE_INIT_ERROR (500)

        Camera:
            - CAMERA_UNSUPPORTED (400)
            - CAMERA_PERMISSION_DENIED (403)
            - STREAM_ERROR (500)

        Lookup:
            - LOOKUP_NOT_FOUND (404)
            - LOOKUP_HTTP_ERROR (502)
            - LOOKUP_NETWORK_ERROR (503)

        Contribution:
            - CONTRIBUTION_VALIDATION_ERROR (422)
            - CONTRIBUTION_SUBMIT_ERROR (502)

        General:
            - VALIDATION_ERROR (422)
            - INTERNAL_ERROR (500)
    """

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize application exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code (e.g., "DECODE_NOT_FOUND")
            status_code: HTTP status code (default: 400)
            details: Additional error context (optional)
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        error_dict = {
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "timestamp": self.timestamp
            }
        }

        if self.details:
            error_dict["error"]["details"] = self.details

        return error_dict


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    FastAPI exception handler for AppException.

    Converts AppException to consistent JSON error response.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)


# ============================================
# CONVENIENCE FACTORY FUNCTIONS
# ============================================

def decode_not_found() -> AppException:
    """Create exception for an image without a readable barcode."""
    return AppException(
        "No barcode detected. Please try a different image.",
        "DECODE_NOT_FOUND",
        422
    )


def decode_init_error(reason: Optional[str] = None) -> AppException:
    """Create exception for a decoder that failed to start."""
    details = {"reason": reason} if reason else {}
    return AppException(
        "Error initializing barcode decoder.",
        "DECODE_INIT_ERROR",
        500,
        details
    )


def camera_unsupported() -> AppException:
    """Create exception for a device without live capture support."""
    return AppException(
        "Live scanning is not supported on this device.",
        "CAMERA_UNSUPPORTED",
        400
    )


def camera_permission_denied() -> AppException:
    """Create exception for a refused camera permission prompt."""
    return AppException(
        "Camera access was denied. Allow camera access to scan live.",
        "CAMERA_PERMISSION_DENIED",
        403
    )


def stream_error(reason: Optional[str] = None) -> AppException:
    """Create exception for a video stream that failed or broke."""
    details = {"reason": reason} if reason else {}
    return AppException("Error starting video stream.", "STREAM_ERROR", 500, details)


def lookup_not_found(barcode: str) -> AppException:
    """Create exception for a lookup response without product data."""
    return AppException(
        f"No product data found for barcode: {barcode}",
        "LOOKUP_NOT_FOUND",
        404,
        {"barcode": barcode}
    )


def lookup_http_error(status: int, reason: str = "") -> AppException:
    """Create exception for a non-success HTTP status from the lookup service."""
    return AppException(
        f"API Error: {status} - {reason}".rstrip(" -"),
        "LOOKUP_HTTP_ERROR",
        502,
        {"status": status}
    )


def lookup_network_error(message: str) -> AppException:
    """Create exception for a transport failure (timeout, DNS, refused...)."""
    return AppException(message or "Network error", "LOOKUP_NETWORK_ERROR", 503)


def contribution_validation_error(
    message: str = "Please fill in at least the name and a brand"
) -> AppException:
    """Create exception for an incomplete contribution draft."""
    return AppException(message, "CONTRIBUTION_VALIDATION_ERROR", 422)


def contribution_submit_error(message: Optional[str] = None) -> AppException:
    """Create exception for a rejected or failed contribution upload."""
    return AppException(
        message or "Failed to contribute product. Please try again.",
        "CONTRIBUTION_SUBMIT_ERROR",
        502
    )


def internal_error(message: str = "Internal server error") -> AppException:
    """Create internal server error exception."""
    return AppException(message, "INTERNAL_ERROR", 500)


def validation_error(message: str) -> AppException:
    """Create exception for request input rejected before any processing."""
    return AppException(message, "VALIDATION_ERROR", 422)
