"""
==============================================================================
Scan Controller Tests
==============================================================================

Lifecycle of the scan loop driven against fake camera/decoder/lookup
collaborators. Each test runs its own event loop with asyncio.run.

==============================================================================
"""

import asyncio

import pytest

from scanloop.config import ScannerConfig
from scanloop.core.exceptions import AcquisitionError

from conftest import KNOWN_CODE, KNOWN_PRODUCT


class TestStartStop:
    """Acquisition and release of the camera."""

    def test_start_twice_acquires_once(self, build_controller, source):
        controller = build_controller()

        async def scenario():
            assert await controller.start() is True
            assert await controller.start() is True
            assert controller.is_running()
            controller.stop()

        asyncio.run(scenario())
        assert source.open_count == 1

    def test_concurrent_starts_acquire_once(self, build_controller, source):
        controller = build_controller()

        async def scenario():
            results = await asyncio.gather(*(controller.start() for _ in range(5)))
            assert results == [True] * 5
            controller.stop()

        asyncio.run(scenario())
        assert source.open_count == 1

    def test_acquisition_failure_keeps_scanner_stopped(self, build_controller, source):
        source.fail = True
        controller = build_controller()

        async def scenario():
            with pytest.raises(AcquisitionError):
                await controller.start()
            assert controller.is_running() is False

            source.fail = False
            assert await controller.start() is True
            controller.stop()

        asyncio.run(scenario())
        assert source.open_count == 2

    def test_unexpected_source_error_becomes_acquisition_error(self, build_controller, source):
        async def broken(constraints):
            raise OSError("device busy")

        source.open_stream = broken
        controller = build_controller()

        async def scenario():
            with pytest.raises(AcquisitionError, match="device busy"):
                await controller.start()

        asyncio.run(scenario())
        assert controller.is_running() is False

    def test_stop_is_idempotent_and_releases_tracks(self, build_controller, source):
        controller = build_controller()

        async def scenario():
            await controller.start()
            controller.stop()
            controller.stop()

        asyncio.run(scenario())
        assert controller.is_running() is False
        assert source.streams[0].track.stop_count == 1

    def test_stop_before_start_is_noop(self, build_controller):
        controller = build_controller()
        controller.stop()
        assert controller.is_running() is False

    def test_stop_halts_ticks(self, build_controller, wait_until):
        controller = build_controller()

        async def scenario():
            await controller.start()
            assert await wait_until(lambda: controller.status()["ticks"] >= 3)
            controller.stop()
            ticks = controller.status()["ticks"]
            await asyncio.sleep(0.05)
            return ticks, controller.status()["ticks"]

        before, after = asyncio.run(scenario())
        assert before == after

    def test_stop_while_camera_opening_cancels_start(self, build_controller, source):
        controller = build_controller()
        open_fast = source.open_stream

        async def scenario():
            gate = asyncio.Event()

            async def open_slow(constraints):
                await gate.wait()
                return await open_fast(constraints)

            source.open_stream = open_slow
            pending = asyncio.create_task(controller.start())
            for _ in range(3):
                await asyncio.sleep(0)

            controller.stop()
            gate.set()
            started = await pending

            source.open_stream = open_fast
            restarted = await controller.start()
            controller.stop()
            return started, restarted

        started, restarted = asyncio.run(scenario())

        assert started is False
        assert restarted is True
        assert controller.is_running() is False
        assert [s.track.stop_count for s in source.streams] == [1, 1]

    def test_restart_opens_a_new_session(self, build_controller, source):
        controller = build_controller()

        async def scenario():
            await controller.start()
            controller.stop()
            await controller.start()
            controller.stop()

        asyncio.run(scenario())
        assert source.open_count == 2
        assert [s.track.stop_count for s in source.streams] == [1, 1]


class TestInit:
    """Configuration and auto start."""

    def test_init_with_auto_start(self, build_controller, source):
        controller = build_controller()

        async def scenario():
            running = await controller.init(ScannerConfig(auto_start=True, sample_interval_ms=1))
            controller.stop()
            return running

        assert asyncio.run(scenario()) is True
        assert source.open_count == 1

    def test_init_without_auto_start_stays_stopped(self, build_controller, source):
        controller = build_controller()
        assert asyncio.run(controller.init(ScannerConfig(auto_start=False))) is False
        assert source.open_count == 0

    def test_init_applies_new_config(self, build_controller):
        controller = build_controller()
        config = ScannerConfig(auto_start=False, duplicate_suppression_ms=500)
        asyncio.run(controller.init(config))
        assert controller.config.duplicate_suppression_ms == 500

    def test_reconfigure_while_running_is_rejected(self, build_controller):
        controller = build_controller()

        async def scenario():
            await controller.start()
            try:
                with pytest.raises(RuntimeError):
                    await controller.init(ScannerConfig(auto_start=False))
            finally:
                controller.stop()

        asyncio.run(scenario())

    def test_auto_start_failure_propagates(self, build_controller, source):
        source.fail = True
        controller = build_controller()

        with pytest.raises(AcquisitionError):
            asyncio.run(controller.init(ScannerConfig(auto_start=True)))
        assert controller.is_running() is False


class TestIdleTimeout:
    """Auto stop without activity."""

    def test_idle_scanner_stops_itself(self, build_controller, source, wait_until):
        controller = build_controller(idle_timeout_ms=40)

        async def scenario():
            await controller.start()
            return await wait_until(lambda: not controller.is_running(), timeout=2.0)

        assert asyncio.run(scenario()) is True
        assert source.streams[0].track.stop_count == 1

    def test_suppressed_duplicates_keep_scanner_alive(self, build_controller, lookup, wait_until):
        controller = build_controller(
            [KNOWN_CODE], repeat_last=True, idle_timeout_ms=60, duplicate_suppression_ms=10_000
        )

        async def scenario():
            await controller.start()
            await asyncio.sleep(0.2)
            running = controller.is_running()
            controller.stop()
            return running

        assert asyncio.run(scenario()) is True
        assert lookup.calls == [KNOWN_CODE]


class TestScanPipeline:
    """Frames flowing through decode, debounce and dispatch."""

    def test_confirmed_code_is_looked_up_and_presented(
        self, build_controller, presenter, feedback, selected, wait_until
    ):
        controller = build_controller([KNOWN_CODE])

        async def scenario():
            await controller.start()
            assert await wait_until(lambda: "result" in presenter.kinds())
            controller.stop()

        asyncio.run(scenario())

        assert controller.get_last_decoded_value() == KNOWN_CODE
        assert presenter.calls == [
            ("detected", KNOWN_CODE),
            ("searching",),
            ("result", KNOWN_PRODUCT),
        ]
        assert feedback.beeps == 1
        assert feedback.vibrations == [100]
        assert selected == [KNOWN_PRODUCT]

    def test_held_code_is_dispatched_once(self, build_controller, lookup, wait_until):
        controller = build_controller([KNOWN_CODE], repeat_last=True)

        async def scenario():
            await controller.start()
            assert await wait_until(lambda: controller.status()["decode_attempts"] >= 10)
            controller.stop()

        asyncio.run(scenario())
        assert lookup.calls == [KNOWN_CODE]
        assert controller.status()["confirmed_count"] == 1

    def test_unknown_code_reports_not_found_and_keeps_scanning(
        self, build_controller, presenter, wait_until
    ):
        controller = build_controller(["123"])

        async def scenario():
            await controller.start()
            assert await wait_until(lambda: "not_found" in presenter.kinds())
            running = controller.is_running()
            ticks = controller.status()["ticks"]
            assert await wait_until(lambda: controller.status()["ticks"] > ticks)
            controller.stop()
            return running

        assert asyncio.run(scenario()) is True
        assert ("not_found", "123") in presenter.calls
        assert "result" not in presenter.kinds()

    def test_stop_lets_in_flight_lookup_finish(
        self, build_controller, lookup, presenter, selected, dispatchers, wait_until
    ):
        lookup.delay = 0.05
        controller = build_controller([KNOWN_CODE])

        async def scenario():
            await controller.start()
            assert await wait_until(lambda: lookup.calls)
            controller.stop()
            assert "result" not in presenter.kinds()
            await dispatchers[-1].wait_idle()

        asyncio.run(scenario())

        assert controller.is_running() is False
        assert presenter.calls == [
            ("detected", KNOWN_CODE),
            ("searching",),
            ("result", KNOWN_PRODUCT),
        ]
        assert selected == [KNOWN_PRODUCT]
        assert dispatchers[-1].in_flight == 0

    def test_decode_runs_on_every_nth_frame(self, build_controller, wait_until):
        controller = build_controller(decode_every_n_ticks=4)

        async def scenario():
            await controller.start()
            assert await wait_until(lambda: controller.status()["frames_sampled"] >= 9)
            controller.stop()

        asyncio.run(scenario())
        status = controller.status()
        assert status["decode_attempts"] == (status["frames_sampled"] + 3) // 4

    def test_latest_frame_available_after_first_tick(self, build_controller, wait_until):
        controller = build_controller([KNOWN_CODE])
        assert controller.latest_frame() is None

        async def scenario():
            await controller.start()
            assert await wait_until(lambda: controller.latest_frame() is not None)
            controller.stop()

        asyncio.run(scenario())
        assert controller.latest_frame().shape == (48, 64, 3)

    def test_lookup_does_not_block_ticks(self, build_controller, lookup, wait_until):
        lookup.delay = 0.5
        controller = build_controller([KNOWN_CODE])

        async def scenario():
            await controller.start()
            await wait_until(lambda: lookup.calls)
            ticks = controller.status()["ticks"]
            assert await wait_until(lambda: controller.status()["ticks"] >= ticks + 5, timeout=0.4)
            assert controller.status()["lookups_in_flight"] == 1
            controller.stop()

        asyncio.run(scenario())
