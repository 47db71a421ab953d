"""Eye-aspect ratio and head-yaw extraction from facial landmarks.

The eye contour follows the 68-point layout: ``p0`` and ``p3`` are the eye
corners, ``p1``/``p2`` the upper lid and ``p4``/``p5`` the lower lid.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from focus_app.constants.focus_constants import NEUTRAL_EAR, NOSE_TIP_INDEX
from focus_app.core.models import FaceLandmarks, FaceSignals, Point


def distance(a: Point, b: Point) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def centroid(points: Sequence[Point]) -> Point:
    if not points:
        raise ValueError("Cannot compute the centroid of an empty point set.")
    count = len(points)
    return Point(
        x=sum(p.x for p in points) / count,
        y=sum(p.y for p in points) / count,
    )


def eye_aspect_ratio(eye: Sequence[Point]) -> float:
    """Return ``(|p1-p5| + |p2-p4|) / (2 * |p0-p3|)`` for one eye.

    Degenerate detections narrower than one unit report a neutral open-eye
    value instead of blowing up the ratio.
    """
    if len(eye) < 6:
        raise ValueError("An eye contour needs six landmark points.")
    width = distance(eye[0], eye[3])
    if width < 1:
        return NEUTRAL_EAR
    return (distance(eye[1], eye[5]) + distance(eye[2], eye[4])) / (2 * width)


def head_yaw(landmarks: FaceLandmarks) -> float:
    """Horizontal nose offset from the eye midpoint, in eye spans."""
    left = centroid(landmarks.left_eye)
    right = centroid(landmarks.right_eye)
    eye_span = abs(right.x - left.x)
    if eye_span < 1:
        return 0.0
    nose_tip = landmarks.nose[NOSE_TIP_INDEX]
    return (nose_tip.x - (left.x + right.x) / 2) / eye_span


def extract_signals(landmarks: FaceLandmarks) -> FaceSignals:
    ear = (eye_aspect_ratio(landmarks.left_eye) + eye_aspect_ratio(landmarks.right_eye)) / 2
    return FaceSignals(ear=ear, yaw=head_yaw(landmarks))
