"""
==============================================================================
Scan Controller Module
==============================================================================

Lifecycle controller of the scan loop.

Owns the capture session and the run state, and composes
FrameSampler -> DecoderAdapter -> DebounceFilter -> NotificationDispatcher
into one asyncio task.

Lifecycle:
----------
    stopped --start()--> running --stop() / idle timeout--> stopped

- start() opens the camera (AcquisitionError if it cannot) and spawns the
  loop task; calling it again while running is a no-op.
- stop() is idempotent, releases every track and halts tick scheduling.
- Each tick checks the idle watchdog, samples a frame and, on decode
  ticks, runs the debounce rule and dispatches confirmed codes.

Lookups run in their own tasks; the loop never waits for them.

==============================================================================
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

import numpy as np

from scanloop.config import ScannerConfig
from scanloop.core.exceptions import AcquisitionError
from scanloop.scanner.capture import CaptureConstraints, CaptureSource
from scanloop.scanner.debounce import DebounceFilter
from scanloop.scanner.decoder import DecoderAdapter, draw_code_outline
from scanloop.scanner.models import CaptureSession, DecodeCandidate, ScanState
from scanloop.scanner.sampler import FrameSampler

if TYPE_CHECKING:
    from scanloop.services.dispatcher import NotificationDispatcher


# Module logger
logger = logging.getLogger(__name__)


def monotonic_ms() -> float:
    """Default controller clock, in milliseconds."""
    return time.monotonic() * 1000.0


class ScanController:
    """
    Start/stop state machine around the scan loop.

    Every controller owns its own state, so several scanners can run side
    by side in one process.

    Attributes:
        _config: Active ScannerConfig
        _source: Capture source used by start()
        _decoder: Decoder adapter
        _dispatcher: Notification & lookup dispatcher
        _state: ScanState of the current/last session
        _session: Live CaptureSession or None

    Example:
        >>> controller = ScanController(source, DecoderAdapter(), dispatcher)
        >>> await controller.init(ScannerConfig(auto_start=False))
        >>> await controller.start()
        >>> controller.is_running()
        True
        >>> controller.stop()
    """

    def __init__(
        self,
        capture_source: CaptureSource,
        decoder: DecoderAdapter,
        dispatcher: "NotificationDispatcher",
        config: Optional[ScannerConfig] = None,
        clock: Callable[[], float] = monotonic_ms,
    ) -> None:
        self._source = capture_source
        self._decoder = decoder
        self._dispatcher = dispatcher
        self._clock = clock
        self._state = ScanState()
        self._session: Optional[CaptureSession] = None
        self._loop_task: Optional[asyncio.Task] = None
        self._cancel: Optional[asyncio.Event] = None
        self._start_lock: Optional[asyncio.Lock] = None
        self._preview: Optional[np.ndarray] = None
        self._preview_candidate: Optional[DecodeCandidate] = None
        self._apply(config or ScannerConfig())

    # =========================================================================
    # PUBLIC OPERATIONS
    # =========================================================================

    async def init(self, config: Optional[ScannerConfig] = None) -> bool:
        """
        Apply a configuration and start if it asks for auto_start.

        Args:
            config: New configuration (keeps the current one if None)

        Returns:
            True when the scanner is running afterwards

        Raises:
            RuntimeError: Reconfiguring a running scanner
            AcquisitionError: auto_start could not open the camera
        """
        if config is not None:
            if self._state.is_running:
                raise RuntimeError("Scanner is running; stop() before init()")
            self._apply(config)

        logger.info(
            f"Scanner initialised (interval={self._config.sample_interval_ms}ms, "
            f"idle_timeout={self._config.idle_timeout_ms}ms, "
            f"suppression={self._config.duplicate_suppression_ms}ms)"
        )

        if self._config.auto_start:
            await self.start()

        return self.is_running()

    async def start(self) -> bool:
        """
        Acquire the camera and start the scan loop.

        A stop() issued while the camera is still opening wins: the stream is
        released as soon as it arrives and no loop is spawned.

        Returns:
            True when scanning (also when a session was already running),
            False when stop() cancelled the pending start

        Raises:
            AcquisitionError: The capture source could not be opened
        """
        if self._start_lock is None:
            self._start_lock = asyncio.Lock()

        async with self._start_lock:
            if self._session is not None:
                logger.debug("Scanner already running")
                return True

            config = self._config
            constraints = CaptureConstraints(
                facing_mode=config.facing_mode,
                width=config.frame_width,
                height=config.frame_height,
                frame_rate=config.frame_rate,
            )

            cancel = asyncio.Event()
            self._cancel = cancel

            try:
                stream = await self._source.open_stream(constraints)
            except AcquisitionError as e:
                logger.error(f"❌ Failed to start scanner: {e}")
                raise
            except Exception as e:
                logger.error(f"❌ Failed to start scanner: {e}")
                raise AcquisitionError(str(e)) from e

            now = self._clock()
            if cancel.is_set():
                CaptureSession(stream=stream, acquired_at=now).release()
                logger.info("🛑 Scanner stopped before the camera finished opening")
                return False

            self._session = CaptureSession(stream=stream, acquired_at=now)
            self._state.reset(now)
            self._state.is_running = True
            self._sampler.reset()
            self._preview = None
            self._preview_candidate = None

            self._loop_task = asyncio.create_task(
                self._scan_loop(cancel), name="scan-loop"
            )

            logger.info("✅ Scanner started")
            return True

    def stop(self) -> None:
        """Release the camera and halt the scan loop. Idempotent."""
        if self._cancel is not None:
            self._cancel.set()

        if self._session is None and not self._state.is_running:
            return

        session, self._session = self._session, None
        self._state.is_running = False

        if session is not None:
            session.release()

        task, self._loop_task = self._loop_task, None
        if task is not None and task is not self._current_task():
            task.cancel()

        logger.info("🛑 Scanner stopped")

    def get_last_decoded_value(self) -> str:
        """Last confirmed value ("" before the first confirmation)."""
        return self._state.last_confirmed_value

    def is_running(self) -> bool:
        return self._state.is_running

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    @property
    def config(self) -> ScannerConfig:
        return self._config

    def status(self) -> Dict[str, Any]:
        """Snapshot of the run state for status endpoints."""
        state = self._state
        now = self._clock()
        return {
            "running": state.is_running,
            "last_value": state.last_confirmed_value,
            "last_confirmed_ms_ago": (
                round(now - state.last_confirmed_at) if state.confirmed_count else None
            ),
            "ticks": state.ticks,
            "frames_sampled": self._sampler.frames_sampled,
            "decode_attempts": state.decode_attempts,
            "confirmed_count": state.confirmed_count,
            "lookups_in_flight": self._dispatcher.in_flight,
            "session_age_ms": (
                round(now - self._session.acquired_at) if self._session else None
            ),
        }

    def latest_frame(self) -> Optional[np.ndarray]:
        """
        Most recent sampled frame, with the outline of the code decoded
        from it drawn on a copy.
        """
        if self._preview is None:
            return None
        frame = self._preview.copy()
        if self._preview_candidate is not None and frame.ndim == 3:
            draw_code_outline(frame, self._preview_candidate.geometry)
        return frame

    # =========================================================================
    # SCAN LOOP
    # =========================================================================

    async def _scan_loop(self, cancel: asyncio.Event) -> None:
        interval = self._config.sample_interval_ms / 1000.0
        logger.debug("Scan loop started")

        while not cancel.is_set():
            try:
                self._tick(cancel)
            except Exception:
                logger.exception("Scan tick failed")

            if cancel.is_set():
                break
            await asyncio.sleep(interval)

        logger.debug("Scan loop finished")

    def _tick(self, cancel: asyncio.Event) -> None:
        session = self._session
        if session is None:
            return

        state = self._state
        now = self._clock()
        state.ticks += 1

        idle_timeout = self._config.idle_timeout_ms
        if idle_timeout > 0 and now - state.last_activity_at > idle_timeout:
            logger.info(f"⏱️ No code for {idle_timeout}ms - stopping scanner")
            self.stop()
            return

        frame = self._sampler.sample(session.stream)
        if frame is None:
            return

        self._preview = frame.pixels
        self._preview_candidate = None
        if not frame.decode_due:
            return

        state.decode_attempts += 1
        candidate = self._decoder.decode(frame.pixels)
        if candidate is None:
            return
        self._preview_candidate = candidate

        event = self._debounce.evaluate(state, candidate, now)
        if event is not None and not cancel.is_set():
            self._dispatcher.dispatch(event)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _apply(self, config: ScannerConfig) -> None:
        self._config = config
        self._debounce = DebounceFilter(config.duplicate_suppression_ms)
        self._sampler = FrameSampler(config.decode_every_n_ticks)
        self._dispatcher.configure(config)

    @staticmethod
    def _current_task() -> Optional[asyncio.Task]:
        try:
            return asyncio.current_task()
        except RuntimeError:
            return None
