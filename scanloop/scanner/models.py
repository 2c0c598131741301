"""
==============================================================================
Scanner Models Module
==============================================================================

Value types and run state of the scan loop.

- Point / DecodeCandidate: per-tick decode result, never kept past one tick
- ConfirmedEvent: a candidate accepted by the debounce filter
- ScanState: mutable run state owned by ScanController
- CaptureSession: the live stream handle owned by ScanController

==============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class Point:
    """Pixel coordinate in frame space."""

    x: int
    y: int


@dataclass(frozen=True)
class DecodeCandidate:
    """
    Tentative decode result for a single frame.

    Attributes:
        value: Decoded text
        geometry: Four corners (top-left, top-right, bottom-right, bottom-left)
        symbology: Code type reported by the decoder (e.g. "EAN13")
    """

    value: str
    geometry: Tuple[Point, Point, Point, Point]
    symbology: Optional[str] = None


@dataclass(frozen=True)
class ConfirmedEvent:
    """A candidate accepted by the debounce filter."""

    value: str
    confirmed_at: float


@dataclass
class ScanState:
    """
    Mutable run state of one controller.

    Only the scan loop mutates this, one tick at a time. Timestamps are
    milliseconds on the controller's clock.
    """

    is_running: bool = False
    last_confirmed_value: str = ""
    last_confirmed_at: float = 0.0
    last_activity_at: float = 0.0
    ticks: int = 0
    decode_attempts: int = 0
    confirmed_count: int = 0

    def reset(self, now: float) -> None:
        """Reset per-session fields at the start of a session."""
        self.last_confirmed_value = ""
        self.last_activity_at = now
        self.ticks = 0
        self.decode_attempts = 0


@dataclass
class CaptureSession:
    """Live capture stream handle plus acquisition timestamp."""

    stream: Any
    acquired_at: float
    closed: bool = field(default=False)

    def release(self) -> None:
        """Stop every track of the underlying stream."""
        if self.closed:
            return
        self.closed = True
        for track in self.stream.get_tracks():
            track.stop()
