"""Asyncio driver that runs the focus state machine for one participant.

Two independent loops run while tracking is active:

* the analysis loop ticks the state machine every 500 ms and publishes the
  snapshot to every subscriber queue;
* the report loop serializes the latest snapshot every 2 s and hands it to
  the reporter (normally a ``focus_update`` send on the event channel).
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from focus_app.constants.focus_constants import (
    ANALYSIS_INTERVAL_SECONDS,
    REPORT_INTERVAL_SECONDS,
)
from focus_app.core.focus.state_machine import FocusStateMachine
from focus_app.core.models import FaceLandmarks, FocusState

logger = logging.getLogger(__name__)

LandmarkDetector = Callable[[], Awaitable[FaceLandmarks | None]]
FocusReporter = Callable[[dict[str, object]], Awaitable[None]]


def build_focus_payload(state: FocusState, timestamp_ms: int) -> dict[str, object]:
    """Serialize a snapshot into the ``focus_update`` wire payload."""
    return {
        "timestamp": timestamp_ms,
        "isTabActive": state.is_tab_active,
        "isFaceDetected": state.is_face_detected,
        "isLookingAway": state.is_looking_away,
        "isEyesClosed": state.is_eyes_closed,
        "cause": state.cause,
        "score": round(state.score),
    }


class FocusTracker:
    """Owns a participant's :class:`FocusStateMachine` while tracking runs.

    Without a detector (no camera or no landmark model) the tracker runs in
    tab-visibility-only mode.
    """

    def __init__(
        self,
        reporter: FocusReporter,
        detector: LandmarkDetector | None = None,
        machine: FocusStateMachine | None = None,
        analysis_interval: float = ANALYSIS_INTERVAL_SECONDS,
        report_interval: float = REPORT_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._reporter = reporter
        self._detector = detector
        self._machine = machine or FocusStateMachine()
        self._analysis_interval = analysis_interval
        self._report_interval = report_interval
        self._clock = clock
        self._subscribers: list[asyncio.Queue[FocusState]] = []
        self._tick_in_flight = False
        self._tick_task: asyncio.Task[FocusState | None] | None = None
        self._loops: list[asyncio.Task[None]] = []

    @property
    def camera_available(self) -> bool:
        return self._detector is not None

    @property
    def state(self) -> FocusState:
        return self._machine.state

    @property
    def is_running(self) -> bool:
        return bool(self._loops)

    def subscribe(self) -> asyncio.Queue[FocusState]:
        """Return a queue that always holds the most recent snapshot."""
        queue: asyncio.Queue[FocusState] = asyncio.Queue(maxsize=1)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[FocusState]) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def set_tab_visibility(self, visible: bool) -> None:
        self._publish(self._machine.set_tab_visibility(visible))

    async def start(self) -> None:
        if self._loops:
            return
        self._machine.reset()
        if self._detector is None:
            logger.warning("No landmark detector available; tracking tab visibility only")
        self._loops = [
            asyncio.create_task(self._analysis_loop(), name="focus-analysis"),
            asyncio.create_task(self._report_loop(), name="focus-report"),
        ]

    async def stop(self) -> None:
        loops, self._loops = self._loops, []
        for task in loops:
            task.cancel()
        if self._tick_task is not None:
            self._tick_task.cancel()
            loops.append(self._tick_task)
            self._tick_task = None
        await asyncio.gather(*loops, return_exceptions=True)
        self._subscribers.clear()

    async def run_tick(self) -> FocusState | None:
        """Run a single analysis tick; returns None when the tick was skipped."""
        if self._tick_in_flight:
            logger.debug("Previous focus tick still running; skipping")
            return None
        self._tick_in_flight = True
        try:
            landmarks = None
            if self._detector is not None and self._machine.state.is_tab_active:
                landmarks = await self._detector()
            snapshot = self._machine.tick(landmarks, camera_available=self.camera_available)
        except Exception:
            logger.debug("Focus tick failed; state left unchanged", exc_info=True)
            return None
        finally:
            self._tick_in_flight = False
        self._publish(snapshot)
        return snapshot

    async def send_report(self) -> bool:
        """Send the latest snapshot to the reporter; False if delivery failed."""
        payload = build_focus_payload(self._machine.state, int(self._clock() * 1000))
        try:
            await self._reporter(payload)
        except Exception:
            logger.warning("Focus report failed; retrying with the next interval", exc_info=True)
            return False
        return True

    def _publish(self, snapshot: FocusState) -> None:
        for queue in self._subscribers:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(snapshot)

    async def _analysis_loop(self) -> None:
        while True:
            if self._tick_task is None or self._tick_task.done():
                self._tick_task = asyncio.create_task(self.run_tick())
            await asyncio.sleep(self._analysis_interval)

    async def _report_loop(self) -> None:
        while True:
            await asyncio.sleep(self._report_interval)
            await self.send_report()
