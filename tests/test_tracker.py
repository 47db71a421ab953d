import asyncio

from focus_app.constants.focus_constants import CAUSE_TAB_HIDDEN
from focus_app.core.focus.tracker import FocusTracker, build_focus_payload
from focus_app.core.models import FocusState

from conftest import make_landmarks


class Recorder:
    def __init__(self, failures: int = 0) -> None:
        self.payloads: list[dict[str, object]] = []
        self.failures = failures

    async def __call__(self, payload: dict[str, object]) -> None:
        if self.failures:
            self.failures -= 1
            raise ConnectionError("channel down")
        self.payloads.append(payload)


def test_build_focus_payload_uses_wire_names():
    state = FocusState(score=57.6, cause="Looking away", is_face_detected=True, is_looking_away=True)
    payload = build_focus_payload(state, 1_700_000_000_000)
    assert payload == {
        "timestamp": 1_700_000_000_000,
        "isTabActive": True,
        "isFaceDetected": True,
        "isLookingAway": True,
        "isEyesClosed": False,
        "cause": "Looking away",
        "score": 58,
    }


def test_tick_publishes_latest_snapshot_to_subscribers():
    async def scenario():
        async def detector():
            return make_landmarks()

        tracker = FocusTracker(Recorder(), detector=detector)
        queue = tracker.subscribe()
        await tracker.run_tick()
        await tracker.run_tick()
        assert queue.qsize() == 1
        snapshot = queue.get_nowait()
        assert snapshot.calibration_progress == 2 / 6
        tracker.unsubscribe(queue)
        await tracker.run_tick()
        assert queue.empty()

    asyncio.run(scenario())


def test_overlapping_tick_is_skipped():
    async def scenario():
        release = asyncio.Event()
        calls = 0

        async def slow_detector():
            nonlocal calls
            calls += 1
            await release.wait()
            return make_landmarks()

        tracker = FocusTracker(Recorder(), detector=slow_detector)
        first = asyncio.create_task(tracker.run_tick())
        await asyncio.sleep(0)
        assert await tracker.run_tick() is None
        release.set()
        assert await first is not None
        assert calls == 1

    asyncio.run(scenario())


def test_detector_failure_is_swallowed():
    async def scenario():
        async def broken_detector():
            raise RuntimeError("model crashed")

        tracker = FocusTracker(Recorder(), detector=broken_detector)
        before = tracker.state
        assert await tracker.run_tick() is None
        assert tracker.state == before

    asyncio.run(scenario())


def test_hidden_tab_skips_detector():
    async def scenario():
        calls = 0

        async def detector():
            nonlocal calls
            calls += 1
            return make_landmarks()

        tracker = FocusTracker(Recorder(), detector=detector)
        tracker.set_tab_visibility(False)
        state = await tracker.run_tick()
        assert calls == 0
        assert state.cause == CAUSE_TAB_HIDDEN
        assert state.score == 86

    asyncio.run(scenario())


def test_visibility_only_mode_without_detector():
    async def scenario():
        tracker = FocusTracker(Recorder())
        assert not tracker.camera_available
        assert (await tracker.run_tick()).score == 100

    asyncio.run(scenario())


def test_failed_report_is_retried_with_latest_state():
    async def scenario():
        reporter = Recorder(failures=1)
        tracker = FocusTracker(reporter, clock=lambda: 12.5)
        assert not await tracker.send_report()
        tracker.set_tab_visibility(False)
        await tracker.run_tick()
        assert await tracker.send_report()
        assert reporter.payloads == [
            {
                "timestamp": 12_500,
                "isTabActive": False,
                "isFaceDetected": False,
                "isLookingAway": False,
                "isEyesClosed": False,
                "cause": CAUSE_TAB_HIDDEN,
                "score": 86,
            }
        ]

    asyncio.run(scenario())


def test_loops_run_until_stopped():
    async def scenario():
        async def detector():
            return make_landmarks()

        reporter = Recorder()
        tracker = FocusTracker(reporter, detector=detector, analysis_interval=0.01, report_interval=0.02)
        await tracker.start()
        assert tracker.is_running
        await asyncio.sleep(0.15)
        await tracker.stop()
        assert not tracker.is_running
        assert reporter.payloads
        assert tracker.state.calibration.complete

        sent = len(reporter.payloads)
        await asyncio.sleep(0.05)
        assert len(reporter.payloads) == sent

    asyncio.run(scenario())
