"""
camera/capture.py — Thread-safe webcam frame source
=====================================================
A background thread keeps grabbing frames so the scan tick never blocks on
camera I/O.  `CameraCapture` satisfies the `FrameSource` contract
(`is_ready`, `frame_size`, `read_region`) and also hands out whole frames
via `get_latest_frame()` for the landmark detector and the CLI preview.

Staleness
---------
A frozen image would be sampled as a perfectly flat signal, so the camera
reports itself not ready when the newest frame is older than
`STALE_FRAME_SECONDS`, or when the device stopped delivering altogether
(unplugged, taken by another process).  Those ticks are then skipped as
"no frame" instead of polluting the buffer.
"""

import threading
import time

import cv2
import numpy as np

from camera.frame_source import crop
from config import CAMERA_FPS, CAMERA_HEIGHT, CAMERA_INDEX, CAMERA_WIDTH
from utils.logger import get_logger

logger = get_logger("camera.capture")

STALE_FRAME_SECONDS = 1.0


class CameraCapture:
    """One webcam, one grabber thread, latest frame behind a lock."""

    def __init__(self, device_index: int = CAMERA_INDEX, stale_after: float = STALE_FRAME_SECONDS):
        self._device_index = device_index
        self._stale_after = stale_after
        self._cap: cv2.VideoCapture | None = None
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._frame_ready = threading.Event()

        self._lock = threading.Lock()
        self._latest_frame: np.ndarray | None = None
        self._latest_at = 0.0
        self.frames_captured = 0
        self.is_open = False

    # ── Lifecycle ────────────────────────────────────────────────────────────

    def open(self) -> bool:
        """
        Open the device and start grabbing.

        Returns
        -------
        bool
            False if the device could not be opened.
        """
        if self.is_open:
            logger.warning("Camera already open — ignoring duplicate open().")
            return True

        cap = cv2.VideoCapture(self._device_index)
        if not cap.isOpened():
            logger.error(
                "Failed to open camera at index %d. "
                "Check that a webcam is connected and not in use.",
                self._device_index,
            )
            cap.release()
            return False

        # Requests only; the backend picks what it actually supports
        for prop, value in (
            (cv2.CAP_PROP_FRAME_WIDTH, CAMERA_WIDTH),
            (cv2.CAP_PROP_FRAME_HEIGHT, CAMERA_HEIGHT),
            (cv2.CAP_PROP_FPS, CAMERA_FPS),
        ):
            cap.set(prop, value)
        logger.info(
            "Camera %d opened — %dx%d @ %.1f FPS",
            self._device_index,
            int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            cap.get(cv2.CAP_PROP_FPS),
        )

        self._cap = cap
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._grab_loop, name="camera", daemon=True)
        self._thread.start()
        self.is_open = True
        return True

    def release(self) -> None:
        """Stop grabbing and free the device.  Safe to call more than once."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread.is_alive():
            thread.join(timeout=2.0)
        self._thread = None

        if self._cap is not None:
            self._cap.release()
            self._cap = None
        with self._lock:
            self._latest_frame = None
        self._frame_ready.clear()

        if self.is_open:
            logger.info("Camera released after %d frames.", self.frames_captured)
        self.is_open = False

    # ── Whole-frame access ───────────────────────────────────────────────────

    def get_latest_frame(self) -> np.ndarray | None:
        """Copy of the newest BGR frame, or None.  Never blocks on the device."""
        with self._lock:
            return None if self._latest_frame is None else self._latest_frame.copy()

    def wait_for_frame(self, timeout: float = 1.0) -> np.ndarray | None:
        """Block until the next frame arrives (or `timeout`), then return it."""
        self._frame_ready.wait(timeout=timeout)
        self._frame_ready.clear()
        return self.get_latest_frame()

    # ── FrameSource contract ─────────────────────────────────────────────────

    def is_ready(self) -> bool:
        with self._lock:
            if self._latest_frame is None:
                return False
            return time.monotonic() - self._latest_at <= self._stale_after

    def frame_size(self) -> tuple[int, int]:
        with self._lock:
            frame = self._require_frame()
            h, w = frame.shape[:2]
        return w, h

    def read_region(self, x: int, y: int, w: int, h: int) -> np.ndarray:
        # Copy only the rectangle, not the full 720p frame
        with self._lock:
            return crop(self._require_frame(), x, y, w, h).copy()

    # ── Private ──────────────────────────────────────────────────────────────

    def _require_frame(self) -> np.ndarray:
        if self._latest_frame is None:
            raise RuntimeError("Camera has not produced a frame yet.")
        return self._latest_frame

    def _grab_loop(self) -> None:
        cap = self._cap
        while cap is not None and not self._stop_event.is_set():
            ok, frame = cap.read()
            if not ok:
                logger.warning("Frame grab failed — camera may have been disconnected.")
                with self._lock:
                    self._latest_frame = None
                break
            with self._lock:
                self._latest_frame = frame
                self._latest_at = time.monotonic()
            self.frames_captured += 1
            self._frame_ready.set()
        logger.debug("Grab loop exited.")
