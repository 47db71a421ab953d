"""Quiz-related constants shared across the core and server layers."""

DEFAULT_TIME_LIMIT_SECONDS: int = 30
MAX_TIME_LIMIT_SECONDS: int = 3600

ACCURACY_POINTS: float = 50.0
SPEED_POINTS: float = 30.0
FOCUS_POINTS: float = 20.0
DEFAULT_FOCUS_SCORE: float = 100.0

LEADERBOARD_SIZE: int = 5
# Phase flips to discussion this long after the timer ends.
DISCUSSION_DELAY_SECONDS: float = 1.0

# 9999-12-31T23:59:59.999Z; the latest client timestamp a datetime can hold.
MAX_EPOCH_MS: int = 253_402_300_799_999
