"""
==============================================================================
Capture Source Module
==============================================================================

Camera access for the scan loop.

Interfaces:
-----------
- CaptureSource.open_stream(constraints) -> CaptureStream
- CaptureStream.get_tracks() -> [VideoTrack]   (track.stop() releases)
- CaptureStream.frame_ready() / read_frame()

OpenCVCaptureSource implements them on top of cv2.VideoCapture. Each
stream owns one reader thread that keeps only the newest frame, so the
scan loop never blocks on the camera.

==============================================================================
"""

from __future__ import annotations

import asyncio
import logging
import platform
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

import cv2
import numpy as np

from scanloop.config import FacingMode
from scanloop.core.exceptions import AcquisitionError


# Module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptureConstraints:
    """Requested capture parameters (hints, the device may ignore them)."""

    facing_mode: FacingMode = FacingMode.ENVIRONMENT
    width: int = 1280
    height: int = 720
    frame_rate: int = 30


# =============================================================================
# INTERFACES
# =============================================================================

class VideoTrack(Protocol):
    def stop(self) -> None: ...


class CaptureStream(Protocol):
    def get_tracks(self) -> List[VideoTrack]: ...

    def frame_ready(self) -> bool: ...

    def read_frame(self) -> Optional[np.ndarray]: ...


class CaptureSource(Protocol):
    async def open_stream(self, constraints: CaptureConstraints) -> CaptureStream: ...


# =============================================================================
# OPENCV IMPLEMENTATION
# =============================================================================

class OpenCVVideoTrack:
    """
    Reader thread over one cv2.VideoCapture.

    Keeps the most recent frame under a lock. stop() ends the thread and
    releases the device; it is safe to call more than once.
    """

    def __init__(self, cap: cv2.VideoCapture, label: str) -> None:
        self._cap = cap
        self.label = label
        self._lock = threading.Lock()
        self._latest: Optional[np.ndarray] = None
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._reader, name=f"capture-{label}", daemon=True
        )
        self._thread.start()

    @property
    def ready_state(self) -> str:
        return "ended" if self._stop_event.is_set() else "live"

    def _reader(self) -> None:
        failures = 0
        while not self._stop_event.is_set():
            ok, frame = self._cap.read()
            if not ok or frame is None:
                failures += 1
                if failures == 30:
                    logger.warning(f"Camera {self.label} returned no frames")
                self._stop_event.wait(0.01)
                continue
            failures = 0
            with self._lock:
                self._latest = frame

    def latest(self) -> Optional[np.ndarray]:
        with self._lock:
            return self._latest

    def stop(self) -> None:
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)
        self._cap.release()
        logger.debug(f"Track {self.label} stopped")


class OpenCVCaptureStream:
    """CaptureStream backed by a single OpenCVVideoTrack."""

    def __init__(self, track: OpenCVVideoTrack) -> None:
        self._track = track

    def get_tracks(self) -> List[OpenCVVideoTrack]:
        return [self._track]

    def frame_ready(self) -> bool:
        return self._track.ready_state == "live" and self._track.latest() is not None

    def read_frame(self) -> Optional[np.ndarray]:
        frame = self._track.latest()
        return None if frame is None else frame.copy()


class OpenCVCaptureSource:
    """
    Capture source for local cameras through OpenCV.

    Args:
        index_for: Maps a facing mode to a device index
        api_preference: cv2 backend; DirectShow on Windows, V4L2 elsewhere
    """

    def __init__(
        self,
        index_for: Callable[[FacingMode], int],
        api_preference: Optional[int] = None,
    ) -> None:
        self._index_for = index_for
        if api_preference is None:
            api_preference = (
                cv2.CAP_DSHOW if platform.system() == "Windows" else cv2.CAP_V4L2
            )
        self._api = api_preference

    async def open_stream(self, constraints: CaptureConstraints) -> OpenCVCaptureStream:
        """
        Open the device matching the constraints.

        Raises:
            AcquisitionError: Device missing, busy or permission denied
        """
        index = self._index_for(constraints.facing_mode)
        cap = await asyncio.to_thread(self._open, index, constraints)
        return OpenCVCaptureStream(OpenCVVideoTrack(cap, label=str(index)))

    def _open(self, index: int, constraints: CaptureConstraints) -> cv2.VideoCapture:
        try:
            cap = cv2.VideoCapture(index, self._api)
        except cv2.error as e:
            raise AcquisitionError(f"Cannot open camera {index}: {e}") from e

        if not cap.isOpened():
            cap.release()
            raise AcquisitionError(f"Cannot open camera {index}")

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.height)
        cap.set(cv2.CAP_PROP_FPS, constraints.frame_rate)
        # Keep latency low where the backend supports it
        if hasattr(cv2, "CAP_PROP_BUFFERSIZE"):
            cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        logger.info(
            f"📷 Camera {index} opened "
            f"({constraints.facing_mode.value}, {constraints.width}x{constraints.height}"
            f"@{constraints.frame_rate})"
        )
        return cap
