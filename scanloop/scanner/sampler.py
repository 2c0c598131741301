"""
Frame sampler: pulls frames from a capture stream and decides which ones
are decoded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from scanloop.scanner.capture import CaptureStream


# Module logger
logger = logging.getLogger(__name__)


@dataclass
class SampledFrame:
    """One frame pulled by the sampler."""

    pixels: np.ndarray
    index: int
    decode_due: bool

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])


class FrameSampler:
    """
    Pulls at most one frame per tick.

    Only ready ticks advance the counter; every ``decode_every_n``-th ready
    frame (starting with the first) is marked for decoding.
    """

    def __init__(self, decode_every_n: int = 10) -> None:
        if decode_every_n < 1:
            raise ValueError("decode_every_n must be >= 1")
        self._every_n = decode_every_n
        self._count = 0

    @property
    def frames_sampled(self) -> int:
        return self._count

    def reset(self) -> None:
        self._count = 0

    def sample(self, stream: CaptureStream) -> Optional[SampledFrame]:
        """
        Pull the current frame.

        Args:
            stream: Open capture stream

        Returns:
            SampledFrame, or None when the stream has no frame yet
        """
        if not stream.frame_ready():
            return None

        pixels = stream.read_frame()
        if pixels is None:
            return None

        index = self._count
        self._count += 1
        return SampledFrame(
            pixels=pixels,
            index=index,
            decode_due=index % self._every_n == 0,
        )
