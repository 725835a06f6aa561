"""
face/readiness.py — Pre-scan readiness gate
=============================================
Answers, every frame, "may a measurement start (or continue) right now?"
independently of whether a scan is running.

Checks
------
* face detected  — a non-empty landmark set is available
* face centred   — nose tip inside the central oval band and the
                   cheek-to-cheek width neither too small (too far away)
                   nor too large (too close)
* orientation    — head roll from the outer eye corners below 15°, and
                   yaw (nose-to-cheek distance asymmetry) ratio below 2.5
* stable         — nose tip moved less than 0.015 since the previous frame;
                   the first frame after a gap always counts as stable
* lighting       — mean brightness of the central crop: < 30 too dark,
                   > 240 too bright.  If no frame is available the check
                   passes so a slow camera never blocks the user forever.

`is_valid` requires every check to pass.  Each failure appends one
human-readable message, in the order above.
"""

import math
from dataclasses import dataclass, field
from enum import Enum

import cv2
import numpy as np

from camera.frame_source import FrameSource
from config import (
    CENTER_X_RANGE,
    CENTER_Y_RANGE,
    FACE_WIDTH_RANGE,
    LEFT_CHEEK,
    LEFT_EYE_OUTER,
    LIGHTING_SAMPLE_SIZE,
    LIGHTING_TOO_BRIGHT,
    LIGHTING_TOO_DARK,
    NOSE_TIP,
    RIGHT_CHEEK,
    RIGHT_EYE_OUTER,
    STABILITY_THRESHOLD,
    TILT_THRESHOLD_DEG,
    YAW_RATIO_MAX,
)
from face.landmarks import LandmarkSet, displacement
from utils.logger import get_logger

logger = get_logger("face.readiness")

MSG_NO_FACE = "No face detected"
MSG_POSITION = "Position face in oval"
MSG_TILTED = "Face too tilted"
MSG_UNSTABLE = "Keep head still"
MSG_TOO_DARK = "Lighting too dark"
MSG_TOO_BRIGHT = "Lighting too bright"


class Lighting(str, Enum):
    TOO_DARK = "too_dark"
    TOO_BRIGHT = "too_bright"
    OPTIMAL = "optimal"


@dataclass(frozen=True)
class ReadinessState:
    face_detected: bool = False
    face_centered: bool = False
    stable: bool = False
    lighting: Lighting = Lighting.OPTIMAL
    orientation: bool = False
    is_valid: bool = False
    errors: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "face_detected": self.face_detected,
            "face_centered": self.face_centered,
            "stable": self.stable,
            "lighting": self.lighting.value,
            "orientation": self.orientation,
            "is_valid": self.is_valid,
            "errors": list(self.errors),
        }


def head_roll_degrees(landmarks: LandmarkSet) -> float:
    lx, ly = landmarks.point(LEFT_EYE_OUTER)
    rx, ry = landmarks.point(RIGHT_EYE_OUTER)
    return math.degrees(math.atan2(ry - ly, rx - lx))


def yaw_ratio(landmarks: LandmarkSet) -> float:
    """max/min of the horizontal nose-to-cheek distances (1.0 = frontal)."""
    nose_x = landmarks.point(NOSE_TIP)[0]
    dist_l = abs(nose_x - landmarks.point(LEFT_CHEEK)[0])
    dist_r = abs(nose_x - landmarks.point(RIGHT_CHEEK)[0])
    return max(dist_l, dist_r) / (min(dist_l, dist_r) + 0.001)


def central_brightness(frame_source: FrameSource, sample_size: int = LIGHTING_SAMPLE_SIZE) -> float:
    """Mean of (R+G+B)/3 over the central 50 % of the frame, on a low-res copy."""
    frame_w, frame_h = frame_source.frame_size()
    x0, y0 = frame_w // 4, frame_h // 4
    w, h = max(frame_w // 2, 1), max(frame_h // 2, 1)
    region = frame_source.read_region(x0, y0, w, h)
    small = cv2.resize(region, (sample_size, sample_size), interpolation=cv2.INTER_AREA)
    return float(np.mean(small))


def classify_lighting(brightness: float) -> Lighting:
    if brightness < LIGHTING_TOO_DARK:
        return Lighting.TOO_DARK
    if brightness > LIGHTING_TOO_BRIGHT:
        return Lighting.TOO_BRIGHT
    return Lighting.OPTIMAL


class ReadinessValidator:
    """Per-frame validator.  Keeps only the previous nose position between calls."""

    def __init__(
        self,
        stability_threshold: float = STABILITY_THRESHOLD,
        tilt_threshold_deg: float = TILT_THRESHOLD_DEG,
        yaw_ratio_max: float = YAW_RATIO_MAX,
    ):
        self._stability_threshold = stability_threshold
        self._tilt_threshold = tilt_threshold_deg
        self._yaw_ratio_max = yaw_ratio_max
        self._previous_nose: tuple[float, float] | None = None

    def reset(self) -> None:
        self._previous_nose = None

    def validate(self, landmarks: LandmarkSet | None, frame_source: FrameSource) -> ReadinessState:
        errors: list[str] = []

        if landmarks is None or len(landmarks) == 0:
            # A gap: the next face we see starts a fresh stability baseline
            self._previous_nose = None
            errors.append(MSG_NO_FACE)
            lighting = self._check_lighting(frame_source, errors)
            return ReadinessState(lighting=lighting, errors=tuple(errors))

        try:
            nose = landmarks.point(NOSE_TIP)
            left_cheek = landmarks.point(LEFT_CHEEK)
            right_cheek = landmarks.point(RIGHT_CHEEK)
            roll = head_roll_degrees(landmarks)
            yaw = yaw_ratio(landmarks)
        except IndexError:
            logger.warning("Landmark set has only %d points — treating as no face.", len(landmarks))
            self._previous_nose = None
            errors.append(MSG_NO_FACE)
            lighting = self._check_lighting(frame_source, errors)
            return ReadinessState(lighting=lighting, errors=tuple(errors))

        # 1. Position & size
        face_width = abs(right_cheek[0] - left_cheek[0])
        centered = (
            CENTER_X_RANGE[0] <= nose[0] <= CENTER_X_RANGE[1]
            and CENTER_Y_RANGE[0] <= nose[1] <= CENTER_Y_RANGE[1]
            and FACE_WIDTH_RANGE[0] <= face_width <= FACE_WIDTH_RANGE[1]
        )
        if not centered:
            errors.append(MSG_POSITION)

        # 2. Orientation
        orientation = abs(roll) < self._tilt_threshold and yaw < self._yaw_ratio_max
        if not orientation:
            errors.append(MSG_TILTED)

        # 3. Stability
        stable = True
        if self._previous_nose is not None:
            if displacement(nose, self._previous_nose) >= self._stability_threshold:
                stable = False
                errors.append(MSG_UNSTABLE)
        self._previous_nose = nose

        # 4. Lighting
        lighting = self._check_lighting(frame_source, errors)

        is_valid = centered and orientation and stable and lighting is Lighting.OPTIMAL
        return ReadinessState(
            face_detected=True,
            face_centered=centered,
            stable=stable,
            lighting=lighting,
            orientation=orientation,
            is_valid=is_valid,
            errors=tuple(errors),
        )

    @staticmethod
    def _check_lighting(frame_source: FrameSource, errors: list[str]) -> Lighting:
        if not frame_source.is_ready():
            return Lighting.OPTIMAL
        try:
            brightness = central_brightness(frame_source)
        except (RuntimeError, ValueError, cv2.error) as exc:
            # Frame vanished between is_ready() and the read
            logger.debug("Lighting check skipped: %s", exc)
            return Lighting.OPTIMAL

        lighting = classify_lighting(brightness)
        if lighting is Lighting.TOO_DARK:
            errors.append(MSG_TOO_DARK)
        elif lighting is Lighting.TOO_BRIGHT:
            errors.append(MSG_TOO_BRIGHT)
        return lighting
