"""
Application Exception Handling

Scanner error taxonomy plus the unified AppException used by the HTTP API.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ============================================
# SCANNER ERRORS
# ============================================

class ScannerError(Exception):
    """Base class for errors raised by the scan pipeline."""


class AcquisitionError(ScannerError):
    """
    The capture source could not be opened.

    Raised synchronously to the caller of ScanController.start(); the
    scanner stays stopped and nothing is retried.
    """


class DecodeFailure(ScannerError):
    """A single decode attempt failed. Routine, never surfaced."""


class FeedbackFailure(ScannerError):
    """A beep or vibration could not be produced."""


class LookupFailure(ScannerError):
    """
    Product lookup did not produce a record.

    Covers not-found, any other non-success status and transport errors.
    """

    def __init__(self, code: str, message: str, status_code: Optional[int] = None):
        self.code = code
        self.status_code = status_code
        super().__init__(message)

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


# ============================================
# API ERRORS
# ============================================

class AppException(Exception):
    """
    Unified application exception for all HTTP error scenarios.

    Provides consistent error response format across the entire API.

    Usage:
        raise AppException("Product not found", "PRODUCT_NOT_FOUND", 404)

    Error Codes:
        Products:
            - PRODUCT_NOT_FOUND (404)
            - CATALOG_NOT_LOADED (500)

        Scanner:
            - CAMERA_UNAVAILABLE (503)
            - NO_FRAME (503)

        General:
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
            code: Machine-readable error code (e.g., "PRODUCT_NOT_FOUND")
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
    """Convert AppException to consistent JSON error response."""
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

def product_not_found(code: str) -> AppException:
    """Create product not found exception."""
    return AppException(
        f"Product not found: {code}",
        "PRODUCT_NOT_FOUND",
        404,
        {"code": code}
    )


def catalog_not_loaded() -> AppException:
    """Create catalog not loaded exception."""
    return AppException(
        "Product catalog not loaded",
        "CATALOG_NOT_LOADED",
        500
    )


def camera_unavailable(reason: str) -> AppException:
    """Create camera unavailable exception."""
    return AppException(
        f"Camera unavailable: {reason}",
        "CAMERA_UNAVAILABLE",
        503,
        {"reason": reason}
    )


def no_frame() -> AppException:
    """Create no frame captured yet exception."""
    return AppException("No frame captured yet", "NO_FRAME", 503)


def scanner_not_ready() -> AppException:
    """Create scanner not initialised exception."""
    return AppException("Scanner not initialised", "SCANNER_NOT_READY", 503)


def internal_error(message: str = "Internal server error") -> AppException:
    """Create internal server error exception."""
    return AppException(message, "INTERNAL_ERROR", 500)
