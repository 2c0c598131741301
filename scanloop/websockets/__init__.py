"""
==============================================================================
WebSocket Package
==============================================================================

Real-time scanner events for browser clients.

==============================================================================
"""

from .scanner import ScannerEventHub, router as scanner_router

__all__ = ["ScannerEventHub", "scanner_router"]
