"""
==============================================================================
Decoder Adapter Module
==============================================================================

Wraps a decode primitive so the scan loop gets at most one candidate per
frame and never sees an exception.

Decode primitive contract:
--------------------------
    primitive(pixels, width, height, options) -> RawDecode | None

pixels is an 8-bit grayscale buffer of width * height bytes. The default
primitive is pyzbar; any callable with the same signature can be injected.

==============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import cv2
import numpy as np
from pyzbar import pyzbar

from scanloop.core.exceptions import DecodeFailure
from scanloop.scanner.models import DecodeCandidate, Point


# Module logger
logger = logging.getLogger(__name__)

# BGR, matches the outline colour of the web client
OUTLINE_COLOR = (0, 255, 0)
OUTLINE_THICKNESS = 4


@dataclass(frozen=True)
class RawDecode:
    """
    Result of one primitive call.

    Attributes:
        data: Raw decoded payload
        polygon: Outline points reported by the decoder
        rect: Bounding box as (left, top, width, height)
        symbology: Code type (e.g. "EAN13", "QRCODE")
    """

    data: bytes
    polygon: Sequence[Tuple[int, int]] = field(default_factory=tuple)
    rect: Tuple[int, int, int, int] = (0, 0, 0, 0)
    symbology: Optional[str] = None


DecodePrimitive = Callable[[bytes, int, int, Dict[str, Any]], Optional[RawDecode]]


def pyzbar_primitive(
    pixels: bytes,
    width: int,
    height: int,
    options: Dict[str, Any]
) -> Optional[RawDecode]:
    """
    Decode the first code found in a grayscale buffer with pyzbar.

    Args:
        pixels: 8-bit grayscale buffer
        width: Frame width in pixels
        height: Frame height in pixels
        options: ``symbols`` restricts the symbologies pyzbar looks for

    Returns:
        RawDecode of the first result, or None
    """
    results = pyzbar.decode((pixels, width, height), symbols=options.get("symbols"))
    if not results:
        return None

    first = results[0]
    return RawDecode(
        data=first.data,
        polygon=tuple((p.x, p.y) for p in first.polygon),
        rect=(first.rect.left, first.rect.top, first.rect.width, first.rect.height),
        symbology=first.type,
    )


class DecoderAdapter:
    """
    Turns frames into DecodeCandidates.

    Any failure inside the primitive is routine: it is logged at DEBUG and
    reported as "no candidate". The next sampled frame is the retry.

    Example:
        >>> adapter = DecoderAdapter()
        >>> candidate = adapter.decode(frame)
        >>> candidate.value if candidate else None
        '7891000100103'
    """

    def __init__(
        self,
        primitive: DecodePrimitive = pyzbar_primitive,
        options: Optional[Dict[str, Any]] = None
    ) -> None:
        self._primitive = primitive
        self._options = dict(options or {})

    def decode(self, frame: np.ndarray) -> Optional[DecodeCandidate]:
        """
        Decode a single frame.

        Args:
            frame: BGR, BGRA or grayscale image

        Returns:
            DecodeCandidate, or None when nothing readable was found
        """
        try:
            gray = self._to_gray(frame)
            height, width = gray.shape[:2]
            raw = self._primitive(gray.tobytes(), width, height, self._options)
            if raw is None:
                return None
            return self._to_candidate(raw)
        except Exception as e:
            logger.debug(f"Decode failure: {e}")
            return None

    @staticmethod
    def _to_gray(frame: np.ndarray) -> np.ndarray:
        if frame is None or frame.size == 0:
            raise DecodeFailure("empty frame")
        if frame.ndim == 2:
            gray = frame
        elif frame.shape[2] == 4:
            gray = cv2.cvtColor(frame, cv2.COLOR_BGRA2GRAY)
        else:
            gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        if gray.dtype != np.uint8:
            gray = gray.astype(np.uint8)
        return np.ascontiguousarray(gray)

    @staticmethod
    def _to_candidate(raw: RawDecode) -> Optional[DecodeCandidate]:
        value = raw.data.decode("utf-8")
        if not value:
            return None

        if len(raw.polygon) == 4:
            corners = tuple(Point(int(x), int(y)) for x, y in raw.polygon)
        else:
            left, top, w, h = raw.rect
            corners = (
                Point(left, top),
                Point(left + w, top),
                Point(left + w, top + h),
                Point(left, top + h),
            )

        return DecodeCandidate(value=value, geometry=corners, symbology=raw.symbology)


def draw_code_outline(
    frame: np.ndarray,
    geometry: Sequence[Point],
    color: Tuple[int, int, int] = OUTLINE_COLOR,
    thickness: int = OUTLINE_THICKNESS
) -> None:
    """
    Draw a closed outline around a decoded code, in place.

    Args:
        frame: OpenCV image to draw on
        geometry: Corner points of the code
        color: BGR colour
        thickness: Line thickness
    """
    points = np.array([(p.x, p.y) for p in geometry], dtype=np.int32).reshape((-1, 1, 2))
    cv2.polylines(frame, [points], isClosed=True, color=color, thickness=thickness)
