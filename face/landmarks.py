"""
face/landmarks.py — Landmark set & provider contract
======================================================
A `LandmarkSet` is one frame's worth of normalised (x, y) face-mesh points,
indexed by MediaPipe Face Mesh topology (0 → 467, or 477 with irises).
Coordinates are fractions of the frame width / height, so (0.5, 0.5) is the
centre of the image regardless of resolution.

Landmark detection itself is an external capability.  Anything that can
answer `latest()` with a `LandmarkSet` (or None when no face is visible, or
the detector missed this tick) can drive a scan.
"""

from typing import Protocol, Sequence

import numpy as np


class LandmarkSet:
    """Read-only view over an (N, 2) array of normalised points."""

    __slots__ = ("_points",)

    def __init__(self, points: np.ndarray | Sequence[Sequence[float]]):
        arr = np.asarray(points, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[1] < 2:
            raise ValueError(f"Expected an (N, 2) array of points, got shape {arr.shape}.")
        # Only x, y are used; a z column from the detector is dropped
        self._points = arr[:, :2]
        self._points.flags.writeable = False

    def __len__(self) -> int:
        return self._points.shape[0]

    def __repr__(self) -> str:
        return f"LandmarkSet({len(self)} points)"

    @property
    def points(self) -> np.ndarray:
        return self._points

    def point(self, index: int) -> tuple[float, float]:
        """(x, y) of a single landmark.  Raises IndexError if the set is too small."""
        x, y = self._points[index]
        return float(x), float(y)

    def subset(self, indices: Sequence[int]) -> np.ndarray:
        return self._points[list(indices)]


class LandmarkProvider(Protocol):
    def latest(self) -> LandmarkSet | None:
        """Landmarks for the most recent frame, or None."""
        ...


class StaticLandmarkProvider:
    """Always returns the landmark set it was last given (replays, tests)."""

    def __init__(self, landmarks: LandmarkSet | None = None):
        self._landmarks = landmarks

    def set(self, landmarks: LandmarkSet | None) -> None:
        self._landmarks = landmarks

    def latest(self) -> LandmarkSet | None:
        return self._landmarks


def displacement(a: tuple[float, float], b: tuple[float, float]) -> float:
    """Euclidean distance between two normalised points."""
    return float(np.hypot(a[0] - b[0], a[1] - b[1]))
