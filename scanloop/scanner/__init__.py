"""
==============================================================================
Scanner Package - Continuous Code Acquisition
==============================================================================

Camera scan loop with duplicate suppression.

Classes:
--------
- ScanController: start/stop lifecycle, idle watchdog, scan loop
- FrameSampler: bounded-rate frame pulling
- DecoderAdapter: single-candidate decoding (pyzbar by default)
- DebounceFilter: new-event decision rule
- OpenCVCaptureSource: cv2.VideoCapture camera access

==============================================================================
"""

from .capture import CaptureConstraints, CaptureSource, CaptureStream, OpenCVCaptureSource
from .controller import ScanController
from .debounce import DebounceFilter
from .decoder import DecoderAdapter, RawDecode, draw_code_outline, pyzbar_primitive
from .models import CaptureSession, ConfirmedEvent, DecodeCandidate, Point, ScanState
from .sampler import FrameSampler, SampledFrame

__all__ = [
    "CaptureConstraints",
    "CaptureSession",
    "CaptureSource",
    "CaptureStream",
    "ConfirmedEvent",
    "DebounceFilter",
    "DecodeCandidate",
    "DecoderAdapter",
    "FrameSampler",
    "OpenCVCaptureSource",
    "Point",
    "RawDecode",
    "SampledFrame",
    "ScanController",
    "ScanState",
    "draw_code_outline",
    "pyzbar_primitive",
]
