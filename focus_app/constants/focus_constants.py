"""Focus tracking constants shared by the tracker and the server."""

ANALYSIS_INTERVAL_SECONDS: float = 0.5
REPORT_INTERVAL_SECONDS: float = 2.0

DECAY_HEAVY: float = 14.0
DECAY_MEDIUM: float = 8.0
RECOVERY: float = 10.0
MIN_SCORE: float = 0.0
MAX_SCORE: float = 100.0

CALIBRATION_WINDOW: int = 6
CALIBRATION_EAR_FACTOR: float = 0.72
# Shown until calibration completes; never used for scoring.
EAR_FALLBACK_THRESHOLD: float = 0.20
NEUTRAL_EAR: float = 0.3

MISSED_FRAMES_THRESHOLD: int = 3
BLINK_FRAMES_THRESHOLD: int = 2

YAW_THRESHOLD: float = 0.18
YAW_FULL_SEVERITY: float = 0.35
NOSE_TIP_INDEX: int = 3

DISTRACTION_ALERT_THRESHOLD: float = 50.0

CAUSE_INITIALISING: str = "Initialising"
CAUSE_CALIBRATING: str = "Calibrating eyes"
CAUSE_TAB_HIDDEN: str = "Tab hidden"
CAUSE_NO_FACE: str = "No face detected"
CAUSE_EYES_CLOSED_LOOKING_AWAY: str = "Eyes closed & looking away"
CAUSE_EYES_CLOSED: str = "Eyes closed / drowsy"
CAUSE_LOOKING_AWAY: str = "Looking away"
CAUSE_FOCUSED: str = "Focused"
