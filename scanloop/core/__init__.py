"""
==============================================================================
Core Package
==============================================================================

Error taxonomy shared by the scan pipeline and the HTTP API.

Usage:
------
    from scanloop.core import AcquisitionError, AppException

    # Or use exception factory functions via module
    from scanloop.core import exceptions
    raise exceptions.product_not_found("123")

==============================================================================
"""

from .exceptions import (
    AcquisitionError,
    AppException,
    DecodeFailure,
    FeedbackFailure,
    LookupFailure,
    ScannerError,
    register_exception_handlers,
)

__all__ = [
    "AcquisitionError",
    "AppException",
    "DecodeFailure",
    "FeedbackFailure",
    "LookupFailure",
    "ScannerError",
    "register_exception_handlers",
]
