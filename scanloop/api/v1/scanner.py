"""
==============================================================================
Scanner Control Endpoints
==============================================================================

Start, stop and inspect the server-side scan loop.

Endpoints:
----------
- GET  /scanner/status    → run state and counters
- POST /scanner/start     → acquire camera, begin scanning
- POST /scanner/stop      → release camera
- GET  /scanner/snapshot  → latest sampled frame as JPEG

==============================================================================
"""

import logging

import cv2
from fastapi import APIRouter, Depends, Response

from scanloop.core import exceptions
from scanloop.core.dependencies import get_scan_controller
from scanloop.core.exceptions import AcquisitionError
from scanloop.scanner.controller import ScanController


# Module logger
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scanner", tags=["Scanner"])


class ScannerControlController:
    """Controller for scanner lifecycle operations."""

    def __init__(self, controller: ScanController):
        self._controller = controller

    def get_status(self) -> dict:
        """Get scanner status."""
        return {
            "success": True,
            "scanner": self._controller.status()
        }

    async def start(self) -> dict:
        """Start scanning."""
        try:
            await self._controller.start()
        except AcquisitionError as e:
            logger.warning(f"⚠️ Camera unavailable: {e}")
            raise exceptions.camera_unavailable(str(e))

        return {
            "success": True,
            "message": "Scanner started",
            "scanner": self._controller.status()
        }

    def stop(self) -> dict:
        """Stop scanning."""
        self._controller.stop()
        return {
            "success": True,
            "message": "Scanner stopped",
            "scanner": self._controller.status()
        }

    def snapshot(self) -> bytes:
        """Encode the latest sampled frame as JPEG."""
        frame = self._controller.latest_frame()
        if frame is None:
            raise exceptions.no_frame()

        ok, buffer = cv2.imencode(".jpg", frame)
        if not ok:
            raise exceptions.internal_error("Could not encode frame")
        return buffer.tobytes()


@router.get("/status")
async def scanner_status(controller: ScanController = Depends(get_scan_controller)):
    """Get scanner status."""
    return ScannerControlController(controller).get_status()


@router.post("/start")
async def start_scanner(controller: ScanController = Depends(get_scan_controller)):
    """
    Start scanning.

    Idempotent: starting a running scanner keeps the existing session.
    """
    return await ScannerControlController(controller).start()


@router.post("/stop")
async def stop_scanner(controller: ScanController = Depends(get_scan_controller)):
    """Stop scanning. Safe to call when already stopped."""
    return ScannerControlController(controller).stop()


@router.get("/snapshot")
async def scanner_snapshot(controller: ScanController = Depends(get_scan_controller)):
    """Latest sampled frame, with the last decoded code outlined."""
    image = ScannerControlController(controller).snapshot()
    return Response(content=image, media_type="image/jpeg")
