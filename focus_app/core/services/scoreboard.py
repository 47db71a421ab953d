"""Service for managing participant profiles and cumulative scores."""

from __future__ import annotations

from datetime import datetime

from focus_app.constants.quiz_constants import LEADERBOARD_SIZE
from focus_app.core.models import LeaderboardRow, ParticipantProfile


class Scoreboard:
    """Tracks joined participants and their session totals."""

    def __init__(self) -> None:
        self._profiles: dict[str, ParticipantProfile] = {}

    def register(self, participant_id: str, display_name: str, joined_at: datetime) -> ParticipantProfile:
        """Register a participant; a rejoin under the same id keeps the score."""
        profile = self._profiles.get(participant_id)
        if profile is None:
            profile = ParticipantProfile(
                participant_id=participant_id,
                display_name=display_name,
                joined_at=joined_at,
            )
            self._profiles[participant_id] = profile
        else:
            profile.display_name = display_name
        return profile

    def remove(self, participant_id: str) -> ParticipantProfile | None:
        return self._profiles.pop(participant_id, None)

    def get_profile(self, participant_id: str) -> ParticipantProfile | None:
        return self._profiles.get(participant_id)

    def get_profiles(self) -> list[ParticipantProfile]:
        return list(self._profiles.values())

    def count(self) -> int:
        return len(self._profiles)

    def add_points(self, profile: ParticipantProfile, points: int) -> int:
        profile.cumulative_score += points
        return profile.cumulative_score

    def get_top_scorers(self, limit: int = LEADERBOARD_SIZE) -> list[LeaderboardRow]:
        """Return the top ``limit`` participants; ties keep join order."""
        ordered = sorted(self._profiles.values(), key=lambda p: -p.cumulative_score)
        return [
            LeaderboardRow(
                participant_id=profile.participant_id,
                display_name=profile.display_name,
                score=profile.cumulative_score,
            )
            for profile in ordered[:limit]
        ]

    def clear(self) -> None:
        self._profiles.clear()
