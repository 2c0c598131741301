"""
==============================================================================
Pytest Configuration and Fixtures
==============================================================================

Provides fake camera, decoder, lookup and presentation collaborators, a
controller factory, and an application client backed by a temporary
catalog.

==============================================================================
"""

import asyncio
import json
from pathlib import Path
from typing import Callable, Dict, Generator, List, Optional

import httpx
import numpy as np
import pytest
from fastapi.testclient import TestClient

from scanloop.config import FeedbackConfig, ScannerConfig, Settings
from scanloop.core.exceptions import AcquisitionError, FeedbackFailure, LookupFailure
from scanloop.main import Application
from scanloop.scanner import DecoderAdapter, RawDecode, ScanController
from scanloop.services import NotificationDispatcher


KNOWN_CODE = "7891000100103"

KNOWN_PRODUCT = {
    "name": "Cream Cracker 200g",
    "upc": KNOWN_CODE,
    "main_category": "ambient",
    "subcategory": "Biscuits",
    "price": 4.49,
    "stock": 36,
    "unit": "un",
}


# ============================================================================
# CAMERA FAKES
# ============================================================================

class FakeTrack:
    """Video track that counts stop() calls."""

    def __init__(self) -> None:
        self.stop_count = 0

    def stop(self) -> None:
        self.stop_count += 1


class FakeStream:
    """Capture stream serving a blank BGR frame."""

    def __init__(self, ready: bool = True) -> None:
        self.track = FakeTrack()
        self.ready = ready
        self.frame = np.zeros((48, 64, 3), dtype=np.uint8)

    def get_tracks(self) -> List[FakeTrack]:
        return [self.track]

    def frame_ready(self) -> bool:
        return self.ready

    def read_frame(self) -> Optional[np.ndarray]:
        return self.frame.copy() if self.ready else None


class FakeSource:
    """Capture source counting acquisitions; fails while ``fail`` is set."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.open_count = 0
        self.streams: List[FakeStream] = []

    async def open_stream(self, constraints) -> FakeStream:
        self.open_count += 1
        # Let concurrent start() calls interleave here
        await asyncio.sleep(0)
        if self.fail:
            raise AcquisitionError("permission denied")
        stream = FakeStream()
        self.streams.append(stream)
        return stream


class ScriptedPrimitive:
    """
    Decode primitive returning scripted values, one per call.

    ``None`` entries mean "nothing found"; once the script is exhausted the
    last entry repeats when ``repeat_last`` is set, otherwise None.
    """

    def __init__(self, values, repeat_last: bool = False) -> None:
        self._values = list(values)
        self._repeat_last = repeat_last
        self.calls = 0

    def __call__(self, pixels, width, height, options) -> Optional[RawDecode]:
        self.calls += 1
        if not self._values:
            value = None
        elif self._repeat_last and len(self._values) == 1:
            value = self._values[0]
        else:
            value = self._values.pop(0)
        if value is None:
            return None
        return RawDecode(data=value.encode("utf-8"), rect=(4, 4, 20, 10), symbology="EAN13")


# ============================================================================
# SERVICE FAKES
# ============================================================================

class RecordingPresenter:
    """Presenter storing every hook call as a tuple."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []

    def show_detected(self, code: str) -> None:
        self.calls.append(("detected", code))

    def show_searching(self) -> None:
        self.calls.append(("searching",))

    def show_result(self, record) -> None:
        self.calls.append(("result", record))

    def show_not_found(self, code: str) -> None:
        self.calls.append(("not_found", code))

    def kinds(self) -> List[str]:
        return [call[0] for call in self.calls]


class RecordingFeedback:
    """Feedback device recording calls; raises FeedbackFailure when ``broken``."""

    def __init__(self, broken: bool = False) -> None:
        self.broken = broken
        self.beeps = 0
        self.vibrations: List[int] = []

    def beep(self) -> None:
        if self.broken:
            raise FeedbackFailure("no speaker")
        self.beeps += 1

    def vibrate(self, duration_ms: int) -> None:
        if self.broken:
            raise FeedbackFailure("no haptics")
        self.vibrations.append(duration_ms)


class FakeLookup:
    """In-memory lookup service; unknown codes fail with a 404."""

    def __init__(self, records: Optional[Dict[str, dict]] = None, delay: float = 0.0) -> None:
        self.records = dict(records or {})
        self.delay = delay
        self.calls: List[str] = []

    async def lookup(self, code: str) -> dict:
        self.calls.append(code)
        if self.delay:
            await asyncio.sleep(self.delay)
        if code not in self.records:
            raise LookupFailure(code, "not found", status_code=404)
        return self.records[code]


# ============================================================================
# HELPERS
# ============================================================================

async def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            return False
        await asyncio.sleep(0.005)
    return True


@pytest.fixture
def wait_until():
    """Async poller: ``assert await wait_until(lambda: cond)``."""
    return _wait_until


# ============================================================================
# SCANNER FIXTURES
# ============================================================================

@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def presenter() -> RecordingPresenter:
    return RecordingPresenter()


@pytest.fixture
def feedback() -> RecordingFeedback:
    return RecordingFeedback()


@pytest.fixture
def lookup() -> FakeLookup:
    return FakeLookup({KNOWN_CODE: KNOWN_PRODUCT})


@pytest.fixture
def selected() -> List[dict]:
    """Records passed to the select hook."""
    return []


@pytest.fixture
def dispatchers() -> List[NotificationDispatcher]:
    """Dispatchers created by build_controller, in creation order."""
    return []


@pytest.fixture
def build_controller(source, lookup, presenter, feedback, selected, dispatchers):
    """
    Factory for a ScanController wired to the fakes.

    Defaults: 1ms ticks, decode every frame, no idle timeout, no auto start.
    """
    def _build(values=(), repeat_last: bool = False, **overrides) -> ScanController:
        params = {
            "sample_interval_ms": 1,
            "idle_timeout_ms": 0,
            "auto_start": False,
            "decode_every_n_ticks": 1,
            "feedback": FeedbackConfig(beep=True, vibrate=True, vibrate_ms=100),
        }
        params.update(overrides)
        config = ScannerConfig(**params)
        dispatcher = NotificationDispatcher(
            config, lookup, presenter, feedback, select_hook=selected.append
        )
        dispatchers.append(dispatcher)
        decoder = DecoderAdapter(primitive=ScriptedPrimitive(values, repeat_last=repeat_last))
        return ScanController(source, decoder, dispatcher, config)

    return _build


# ============================================================================
# APPLICATION FIXTURES
# ============================================================================

@pytest.fixture
def products_file(tmp_path: Path) -> Path:
    """Write a small catalog to a temporary file."""
    path = tmp_path / "products.json"
    path.write_text(json.dumps({
        "ambient": {
            "Biscuits": [
                {k: v for k, v in KNOWN_PRODUCT.items() if k not in ("main_category", "subcategory")},
                {"name": "Oat Cookies 180g", "upc": "29377107"},
            ]
        },
        "cold_chain": {
            "Dessert": [
                {"name": "Vanilla Pudding 4x90g", "upc": 7891025101208},
            ]
        }
    }), encoding="utf-8")
    return path


@pytest.fixture
def lookup_transport() -> httpx.MockTransport:
    """Lookup service stub answering for the known code only."""
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith(f"/{KNOWN_CODE}"):
            return httpx.Response(200, json={"success": True, "product": KNOWN_PRODUCT})
        return httpx.Response(404, json={"success": False})

    return httpx.MockTransport(handler)


@pytest.fixture
def make_client(products_file, source, lookup_transport):
    """
    Factory for a TestClient around a fresh application.

    Extra keyword arguments override Settings fields.
    """
    clients: List[TestClient] = []

    def _make(decoder: Optional[DecoderAdapter] = None, **overrides) -> TestClient:
        params = {
            "products_file": str(products_file),
            "debug": False,
            "scan_auto_start": False,
            "scan_interval_ms": 5,
            "scan_idle_timeout_ms": 0,
        }
        params.update(overrides)
        application = Application(
            settings=Settings(**params),
            capture_source=source,
            decoder=decoder or DecoderAdapter(primitive=ScriptedPrimitive([])),
            lookup_transport=lookup_transport,
        )
        client = TestClient(application.app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> Generator[TestClient, None, None]:
    """Client with a stopped scanner and no decodable codes."""
    yield make_client()
