"""Synthetic inputs shared by the test-suite."""

import math

import numpy as np

from config import (
    FOREHEAD_LANDMARKS,
    LEFT_CHEEK,
    LEFT_EYE_OUTER,
    NOSE_TIP,
    RIGHT_CHEEK,
    RIGHT_EYE_OUTER,
)
from face.landmarks import LandmarkSet
from rppg.buffer import Sample

FRAME_W = 640
FRAME_H = 480
NUM_LANDMARKS = 478

# Positions relative to the nose tip for a frontal, level face
_LAYOUT = {
    NOSE_TIP: (0.0, 0.0),
    LEFT_CHEEK: (-0.15, 0.0),
    RIGHT_CHEEK: (0.15, 0.0),
    LEFT_EYE_OUTER: (-0.08, -0.08),
    RIGHT_EYE_OUTER: (0.08, -0.08),
    FOREHEAD_LANDMARKS[0]: (-0.06, -0.25),
    FOREHEAD_LANDMARKS[1]: (0.06, -0.25),
    FOREHEAD_LANDMARKS[2]: (-0.04, -0.15),
    FOREHEAD_LANDMARKS[3]: (0.04, -0.15),
}


def make_landmarks(nose=(0.5, 0.5), roll_deg: float = 0.0, scale: float = 1.0) -> LandmarkSet:
    """A synthetic face mesh: frontal, level, symmetric unless told otherwise."""
    points = np.tile(np.asarray(nose, dtype=np.float64), (NUM_LANDMARKS, 1))
    cos_r, sin_r = math.cos(math.radians(roll_deg)), math.sin(math.radians(roll_deg))
    for index, (dx, dy) in _LAYOUT.items():
        dx, dy = dx * scale, dy * scale
        points[index] = (nose[0] + dx * cos_r - dy * sin_r, nose[1] + dx * sin_r + dy * cos_r)
    return LandmarkSet(points)


def make_samples(green, rate: float = 30.0, red=None, blue=None, start: float = 0.0) -> list[Sample]:
    green = np.asarray(green, dtype=np.float64)
    red = green if red is None else np.asarray(red, dtype=np.float64)
    blue = green if blue is None else np.asarray(blue, dtype=np.float64)
    return [
        Sample(t=start + i / rate, r=float(r), g=float(g), b=float(b))
        for i, (r, g, b) in enumerate(zip(red, green, blue))
    ]


class FakeClock:
    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
