"""
rppg/sampler.py — Forehead ROI sampling & motion gate
=======================================================
Turns one video frame plus its face landmarks into a colour `Sample`, or
rejects the frame.

Acceptance chain (first failure wins):

    no frame / no landmarks  →  skip
    nose tip moved > MOTION_THRESHOLD since the previous frame  →  motion
    forehead box empty or outside the frame  →  invalid ROI
    green mean outside [GREEN_MIN, GREEN_MAX]  →  under/over-exposed

The motion reference is the nose tip of the previous frame that HAD
landmarks, whatever happened to that frame afterwards: a frame later dropped
for an invalid ROI or bad exposure still moves the reference, so a single
head movement costs exactly one sample.

Why the forehead?
-----------------
It is a flat, evenly lit patch of skin with dense capillaries and little
expression-driven movement, which keeps both the pulse amplitude and the
motion artefacts favourable compared to the cheeks or the nose.

Why gate on motion at all?
--------------------------
A head movement shifts the ROI over skin with a different base colour.  The
resulting step is orders of magnitude larger than the pulse itself, so those
frames are dropped rather than averaged in.
"""

from collections import Counter
from enum import Enum

import numpy as np

from camera.frame_source import FrameSource
from config import (
    FOREHEAD_LANDMARKS,
    GREEN_MAX,
    GREEN_MIN,
    MOTION_THRESHOLD,
    NOSE_TIP,
    ROI_SHRINK,
)
from face.landmarks import LandmarkSet, displacement
from rppg.buffer import Sample
from utils.logger import get_logger

logger = get_logger("rppg.sampler")


class RejectReason(str, Enum):
    NO_FRAME = "no_frame"
    NO_LANDMARKS = "no_landmarks"
    MOTION = "motion"
    INVALID_ROI = "invalid_roi"
    EXPOSURE = "exposure"
    ERROR = "error"


def extract_mean_rgb(roi: np.ndarray) -> tuple[float, float, float]:
    """
    Return the spatial mean of R, G, B channels from a single ROI crop.

    Parameters
    ----------
    roi : ndarray, shape (H, W, 3)   BGR image (OpenCV convention).

    Returns
    -------
    r, g, b : float   Mean pixel values in [0, 255].
    """
    # OpenCV uses BGR order — swap to RGB
    b_mean = roi[:, :, 0].mean()
    g_mean = roi[:, :, 1].mean()
    r_mean = roi[:, :, 2].mean()
    return float(r_mean), float(g_mean), float(b_mean)


def forehead_box(
    landmarks: LandmarkSet,
    frame_w: int,
    frame_h: int,
    indices=FOREHEAD_LANDMARKS,
    shrink: float = ROI_SHRINK,
) -> tuple[int, int, int, int]:
    """
    Axis-aligned pixel box (x, y, w, h) around the forehead landmarks,
    shrunk inward by `shrink` on every side.  Width or height may come out
    ≤ 0 for a degenerate landmark layout; the caller decides what to do.
    """
    pts = landmarks.subset(indices)
    x_min = pts[:, 0].min() * frame_w
    x_max = pts[:, 0].max() * frame_w
    y_min = pts[:, 1].min() * frame_h
    y_max = pts[:, 1].max() * frame_h

    shrink_x = (x_max - x_min) * shrink
    shrink_y = (y_max - y_min) * shrink

    x0 = int(round(x_min + shrink_x))
    x1 = int(round(x_max - shrink_x))
    y0 = int(round(y_min + shrink_y))
    y1 = int(round(y_max - shrink_y))
    return x0, y0, x1 - x0, y1 - y0


class RoiSampler:
    """
    Stateful sampler: remembers the previous nose-tip position so it can
    reject frames taken while the head was moving.

    Call `reset()` at the start of every session so the first frame is
    never compared against a stale reference.
    """

    def __init__(
        self,
        motion_threshold: float = MOTION_THRESHOLD,
        green_range: tuple[float, float] = (GREEN_MIN, GREEN_MAX),
    ):
        self._motion_threshold = motion_threshold
        self._green_min, self._green_max = green_range
        self._reference: tuple[float, float] | None = None
        self.rejections: Counter = Counter()
        self.accepted = 0
        self.last_rejection: RejectReason | None = None

    def reset(self) -> None:
        self._reference = None
        self.rejections.clear()
        self.accepted = 0
        self.last_rejection = None

    def sample(
        self,
        frame_source: FrameSource,
        landmarks: LandmarkSet | None,
        t: float,
    ) -> Sample | None:
        """Return a Sample for this frame, or None if the frame is rejected."""
        if landmarks is None or len(landmarks) == 0:
            return self._reject(RejectReason.NO_LANDMARKS)
        if not frame_source.is_ready():
            return self._reject(RejectReason.NO_FRAME)

        try:
            nose = landmarks.point(NOSE_TIP)
            previous = self._reference
            self._reference = nose
            if previous is not None:
                moved = displacement(nose, previous)
                if moved > self._motion_threshold:
                    return self._reject(RejectReason.MOTION, "moved %.4f", moved)

            frame_w, frame_h = frame_source.frame_size()
            x, y, w, h = forehead_box(landmarks, frame_w, frame_h)
            if w <= 0 or h <= 0 or x < 0 or y < 0 or x + w > frame_w or y + h > frame_h:
                return self._reject(RejectReason.INVALID_ROI, "box=(%d, %d, %d, %d)", x, y, w, h)

            r, g, b = extract_mean_rgb(frame_source.read_region(x, y, w, h))
        except Exception as exc:
            return self._reject(RejectReason.ERROR, "%s: %s", type(exc).__name__, exc)

        if not self._green_min <= g <= self._green_max:
            return self._reject(RejectReason.EXPOSURE, "green=%.1f", g)

        self.accepted += 1
        self.last_rejection = None
        return Sample(t=t, r=r, g=g, b=b)

    def _reject(self, reason: RejectReason, detail: str = "", *args) -> None:
        self.rejections[reason] += 1
        self.last_rejection = reason
        if detail:
            logger.debug("Frame rejected (%s): " + detail, reason.value, *args)
        else:
            logger.debug("Frame rejected (%s).", reason.value)
        return None
