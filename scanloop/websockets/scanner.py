"""
==============================================================================
Scanner WebSocket Module
==============================================================================

Pushes scan events to browser clients and accepts scanner commands.

The ScannerEventHub is both the presenter and the feedback device of the
server-side scanner: every hook call becomes a JSON message for all
connected clients, which render results and play the beep / call
navigator.vibrate themselves.

Messages (Server → Client):
---------------------------
- {"type": "status", ...scanner status...}
- {"type": "detected", "code": "..."}
- {"type": "searching"}
- {"type": "result", "product": {...}}
- {"type": "not_found", "code": "..."}
- {"type": "feedback", "beep": true} / {"type": "feedback", "vibrate_ms": 100}
- {"type": "selected", "product": {...}}  (auto_select)
- {"type": "error", "code": "...", "message": "..."}
  (CAMERA_UNAVAILABLE, UNKNOWN_COMMAND, INVALID_MESSAGE)

Messages (Client → Server):
---------------------------
- {"type": "start"}   → start scanning
- {"type": "stop"}    → stop scanning
- {"type": "status"}  → request current status

==============================================================================
"""

import asyncio
import logging
from typing import Any, Dict, Mapping, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from scanloop.core.exceptions import AcquisitionError


# Module logger
logger = logging.getLogger(__name__)

router = APIRouter()


class ScannerEventHub:
    """
    Fan-out of scanner events to connected WebSocket clients.

    Hook methods are synchronous (the dispatcher calls them from the scan
    loop); sending happens in background tasks.
    """

    def __init__(self) -> None:
        self._clients: Set[WebSocket] = set()
        self._pending: Set[asyncio.Task] = set()

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def register(self, websocket: WebSocket) -> None:
        self._clients.add(websocket)
        logger.info(f"📱 Scanner client connected ({len(self._clients)} total)")

    def unregister(self, websocket: WebSocket) -> None:
        self._clients.discard(websocket)
        logger.info(f"📱 Scanner client disconnected ({len(self._clients)} total)")

    def publish(self, message: Dict[str, Any]) -> None:
        """Queue a message for every connected client."""
        if not self._clients:
            return
        loop = asyncio.get_running_loop()
        for websocket in list(self._clients):
            task = loop.create_task(self._send(websocket, message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _send(self, websocket: WebSocket, message: Dict[str, Any]) -> None:
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.debug(f"Dropping client after send failure: {e}")
            self._clients.discard(websocket)

    # =========================================================================
    # PRESENTER HOOKS
    # =========================================================================

    def show_detected(self, code: str) -> None:
        self.publish({"type": "detected", "code": code})

    def show_searching(self) -> None:
        self.publish({"type": "searching"})

    def show_result(self, record: Mapping[str, Any]) -> None:
        self.publish({"type": "result", "product": dict(record)})

    def show_not_found(self, code: str) -> None:
        self.publish({"type": "not_found", "code": code})

    # =========================================================================
    # FEEDBACK DEVICE
    # =========================================================================

    def beep(self) -> None:
        self.publish({"type": "feedback", "beep": True})

    def vibrate(self, duration_ms: int) -> None:
        self.publish({"type": "feedback", "vibrate_ms": duration_ms})

    # =========================================================================
    # SELECT HOOK
    # =========================================================================

    def select(self, record: Mapping[str, Any]) -> None:
        """Tell clients to pick the resolved product (auto_select)."""
        self.publish({"type": "selected", "product": dict(record)})


class ScannerWebSocketHandler:
    """
    Handler for one scanner WebSocket connection.

    Registers the client with the hub and turns client commands into
    controller calls.
    """

    def __init__(self, websocket: WebSocket):
        self._websocket = websocket
        self._controller = websocket.app.state.controller
        self._hub: ScannerEventHub = websocket.app.state.event_hub

    async def send_error(self, message: str, code: str = "ERROR") -> None:
        """Send error message to client."""
        await self._websocket.send_json({
            "type": "error",
            "code": code,
            "message": message
        })

    async def send_status(self) -> None:
        await self._websocket.send_json({"type": "status", **self._controller.status()})

    async def handle_command(self, data: dict) -> None:
        """Handle a command message from the client."""
        command = data.get("type")

        if command == "start":
            try:
                await self._controller.start()
            except AcquisitionError as e:
                await self.send_error(str(e), "CAMERA_UNAVAILABLE")
                return
            await self.send_status()

        elif command == "stop":
            self._controller.stop()
            await self.send_status()

        elif command == "status":
            await self.send_status()

        else:
            await self.send_error(f"Unknown command: {command}", "UNKNOWN_COMMAND")

    async def run(self) -> None:
        """Main handler loop."""
        await self._websocket.accept()
        self._hub.register(self._websocket)

        try:
            await self.send_status()

            while True:
                try:
                    data = await self._websocket.receive_json()
                except ValueError:
                    await self.send_error("Message is not valid JSON", "INVALID_MESSAGE")
                    continue

                if not isinstance(data, dict):
                    await self.send_error("Message must be a JSON object", "INVALID_MESSAGE")
                    continue

                await self.handle_command(data)

        except WebSocketDisconnect:
            logger.debug("Client disconnected")
        except Exception as e:
            logger.error(f"WebSocket error: {e}")
            try:
                await self.send_error(str(e))
            except Exception as report_error:
                logger.debug(f"Could not report error to client: {report_error}")
        finally:
            self._hub.unregister(self._websocket)


@router.websocket("/ws/scan")
async def websocket_scan(websocket: WebSocket):
    """Live scanner events and control."""
    handler = ScannerWebSocketHandler(websocket)
    await handler.run()
