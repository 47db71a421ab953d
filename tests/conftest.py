from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from focus_app.core.models import FaceLandmarks, FocusReport, Point
from focus_app.core.services.record_store import InMemoryRecordStore
from focus_app.core.session_manager import SessionManager

EYE_WIDTH = 30.0
LEFT_EYE_CENTER = Point(100.0, 100.0)
RIGHT_EYE_CENTER = Point(160.0, 100.0)


def make_eye(center: Point, ear: float) -> list[Point]:
    """Six-point eye contour whose aspect ratio is exactly ``ear``."""
    half_height = ear * EYE_WIDTH / 2
    third = EYE_WIDTH / 6
    return [
        Point(center.x - EYE_WIDTH / 2, center.y),
        Point(center.x - third, center.y - half_height),
        Point(center.x + third, center.y - half_height),
        Point(center.x + EYE_WIDTH / 2, center.y),
        Point(center.x + third, center.y + half_height),
        Point(center.x - third, center.y + half_height),
    ]


def make_landmarks(ear: float = 0.3, yaw: float = 0.0) -> FaceLandmarks:
    """Landmarks with a given mean EAR and nose offset in eye spans."""
    span = RIGHT_EYE_CENTER.x - LEFT_EYE_CENTER.x
    nose_x = (LEFT_EYE_CENTER.x + RIGHT_EYE_CENTER.x) / 2 + yaw * span
    return FaceLandmarks(
        left_eye=make_eye(LEFT_EYE_CENTER, ear),
        right_eye=make_eye(RIGHT_EYE_CENTER, ear),
        nose=[Point(nose_x, 100.0 + 10 * i) for i in range(4)],
    )


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def records() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def manager(records: InMemoryRecordStore, clock: FakeClock) -> SessionManager:
    session_manager = SessionManager(records=records, clock=clock)
    session_manager.start_session()
    return session_manager


def make_focus_report(score: float, at: datetime, **flags: object) -> FocusReport:
    values: dict[str, object] = {
        "cause": None,
        "is_tab_active": True,
        "is_face_detected": True,
        "is_looking_away": False,
        "is_eyes_closed": False,
    }
    values.update(flags)
    return FocusReport(score=score, reported_at=at, **values)
