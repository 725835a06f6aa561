"""
camera/frame_source.py — Frame access contract
================================================
The core never talks to a camera directly.  It only needs to know whether a
frame is available, how large it is, and to read the pixels of an arbitrary
rectangle.  `CameraCapture` implements this over a live webcam;
`ArrayFrameSource` implements it over an in-memory image (replays, tests,
single-shot checks).

Pixel data is always BGR uint8 (OpenCV convention).
"""

import threading
from typing import Protocol

import numpy as np


class FrameSource(Protocol):
    def is_ready(self) -> bool: ...

    def frame_size(self) -> tuple[int, int]:
        """(width, height) of the current frame in pixels."""
        ...

    def read_region(self, x: int, y: int, w: int, h: int) -> np.ndarray:
        """BGR pixels of the rectangle [x, x+w) × [y, y+h)."""
        ...


def crop(frame: np.ndarray, x: int, y: int, w: int, h: int) -> np.ndarray:
    """Bounds-checked crop shared by every frame source."""
    frame_h, frame_w = frame.shape[:2]
    if w <= 0 or h <= 0:
        raise ValueError(f"Empty region requested ({w}×{h}).")
    if x < 0 or y < 0 or x + w > frame_w or y + h > frame_h:
        raise ValueError(
            f"Region ({x}, {y}, {w}, {h}) lies outside the {frame_w}×{frame_h} frame."
        )
    return frame[y:y + h, x:x + w]


class ArrayFrameSource:
    """A frame source backed by a single replaceable ndarray."""

    def __init__(self, frame: np.ndarray | None = None):
        self._lock = threading.Lock()
        self._frame: np.ndarray | None = None
        if frame is not None:
            self.set_frame(frame)

    @classmethod
    def filled(cls, width: int, height: int, bgr: tuple[float, float, float]) -> "ArrayFrameSource":
        """Uniform-colour frame — handy for calibration and tests."""
        source = cls()
        source.fill(width, height, bgr)
        return source

    def set_frame(self, frame: np.ndarray) -> None:
        if frame.ndim != 3 or frame.shape[2] != 3:
            raise ValueError(f"Expected an (H, W, 3) BGR frame, got shape {frame.shape}.")
        with self._lock:
            self._frame = frame

    def fill(self, width: int, height: int, bgr: tuple[float, float, float]) -> None:
        frame = np.empty((height, width, 3), dtype=np.uint8)
        frame[:, :] = np.clip(np.rint(bgr), 0, 255).astype(np.uint8)
        self.set_frame(frame)

    def clear(self) -> None:
        with self._lock:
            self._frame = None

    def is_ready(self) -> bool:
        with self._lock:
            return self._frame is not None

    def frame_size(self) -> tuple[int, int]:
        with self._lock:
            if self._frame is None:
                raise RuntimeError("No frame loaded.")
            h, w = self._frame.shape[:2]
        return w, h

    def read_region(self, x: int, y: int, w: int, h: int) -> np.ndarray:
        with self._lock:
            if self._frame is None:
                raise RuntimeError("No frame loaded.")
            return crop(self._frame, x, y, w, h).copy()
