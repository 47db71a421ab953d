"""Service holding the latest focus report per participant."""

from __future__ import annotations

from focus_app.constants.focus_constants import DISTRACTION_ALERT_THRESHOLD
from focus_app.constants.quiz_constants import DEFAULT_FOCUS_SCORE
from focus_app.core.models import (
    DistractionAlert,
    FocusReport,
    FocusSnapshotRow,
    ParticipantProfile,
)


def derive_cause(report: FocusReport) -> str:
    """Prefer the tracker's own cause, falling back to the reported flags."""
    if report.cause:
        return report.cause
    if not report.is_tab_active:
        return "Tab Switch"
    if report.is_eyes_closed:
        return "Eyes Closed"
    if report.is_looking_away:
        return "Looking Away"
    if not report.is_face_detected:
        return "No Face"
    return "Unknown"


class FocusAggregator:
    """Canonical per-participant focus records, alerts and class snapshots.

    Alerts fire on any single report below the threshold; the tracker
    already debounces sensing noise and a teacher judges severity.
    """

    def __init__(self, alert_threshold: float = DISTRACTION_ALERT_THRESHOLD) -> None:
        self._alert_threshold = alert_threshold
        self._latest: dict[str, FocusReport] = {}

    def record(self, participant_id: str, display_name: str, report: FocusReport) -> DistractionAlert | None:
        self._latest[participant_id] = report
        if report.score >= self._alert_threshold:
            return None
        return DistractionAlert(
            participant_id=participant_id,
            display_name=display_name,
            score=report.score,
            cause=derive_cause(report),
        )

    def get_latest(self, participant_id: str) -> FocusReport | None:
        return self._latest.get(participant_id)

    def latest_score(self, participant_id: str) -> float:
        report = self._latest.get(participant_id)
        return report.score if report is not None else DEFAULT_FOCUS_SCORE

    def snapshot(self, profiles: list[ParticipantProfile]) -> list[FocusSnapshotRow]:
        rows: list[FocusSnapshotRow] = []
        for profile in profiles:
            report = self._latest.get(profile.participant_id)
            rows.append(
                FocusSnapshotRow(
                    participant_id=profile.participant_id,
                    display_name=profile.display_name,
                    score=report.score if report else DEFAULT_FOCUS_SCORE,
                    cause=report.cause if report else None,
                    is_looking_away=report.is_looking_away if report else False,
                    is_eyes_closed=report.is_eyes_closed if report else False,
                )
            )
        return rows

    def remove(self, participant_id: str) -> None:
        self._latest.pop(participant_id, None)

    def clear(self) -> None:
        self._latest.clear()
