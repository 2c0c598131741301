"""
Feedback devices fired on a confirmed code.

Feedback is best effort: devices raise FeedbackFailure when they cannot act
and the dispatcher ignores it.
"""

from __future__ import annotations

import logging
import sys
from typing import Callable, Protocol, TextIO

from scanloop.core.exceptions import FeedbackFailure


# Module logger
logger = logging.getLogger(__name__)


class FeedbackDevice(Protocol):
    def beep(self) -> None: ...

    def vibrate(self, duration_ms: int) -> None: ...


class TerminalFeedback:
    """
    Bell character on a terminal. Terminals have no haptics, so vibrate()
    always fails.
    """

    def __init__(self, stream: TextIO = sys.stdout) -> None:
        self._stream = stream

    def beep(self) -> None:
        if not self._stream.isatty():
            raise FeedbackFailure("output is not a terminal")
        self._stream.write("\a")
        self._stream.flush()

    def vibrate(self, duration_ms: int) -> None:
        raise FeedbackFailure("vibration not supported on a terminal")


class FeedbackGroup:
    """
    Several feedback devices fired together.

    A failing member does not stop the others; FeedbackFailure is raised
    only when every member failed.
    """

    def __init__(self, *devices: FeedbackDevice) -> None:
        self._devices = list(devices)

    def beep(self) -> None:
        self._fire("beep", lambda device: device.beep())

    def vibrate(self, duration_ms: int) -> None:
        self._fire("vibrate", lambda device: device.vibrate(duration_ms))

    def _fire(self, name: str, action: Callable[[FeedbackDevice], None]) -> None:
        failures = 0
        for device in self._devices:
            try:
                action(device)
            except FeedbackFailure as e:
                failures += 1
                logger.debug(f"{type(device).__name__}.{name} failed: {e}")
        if self._devices and failures == len(self._devices):
            raise FeedbackFailure(f"no device could {name}")
