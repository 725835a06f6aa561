"""
face/detector.py — MediaPipe Face Mesh landmark provider
=========================================================
Uses Google's MediaPipe Face Mesh (468 landmarks, 478 with refined irises)
to locate one face in the most recent camera frame and hand its normalised
landmark positions to the scan core as a `LandmarkSet`.

This module is the only place that knows about MediaPipe.  The ROI and
readiness logic work purely on landmark indices, so any other detector that
yields the same topology can be swapped in behind `LandmarkProvider`.
"""

import cv2
import numpy as np
# NOTE: mediapipe is imported LAZILY inside FaceMeshProvider.__init__(), not
# here.  The API server can boot, and the core can be tested, without it.
from camera.capture import CameraCapture
from face.landmarks import LandmarkSet
from utils.logger import get_logger

logger = get_logger("face.detector")


class FaceMeshProvider:
    """
    Runs Face Mesh on the camera's latest frame every time `latest()` is
    called and returns the first face's landmarks.

    Parameters
    ----------
    camera : CameraCapture
        Source of whole BGR frames.
    refine_landmarks : bool
        Enable the iris model (478 points instead of 468).
    """

    def __init__(self, camera: CameraCapture, refine_landmarks: bool = True):
        try:
            import mediapipe as mp
        except ImportError as exc:
            raise ImportError(
                "mediapipe is not installed — run `pip install mediapipe` "
                "to enable live landmark detection."
            ) from exc

        self._camera = camera
        self._face_mesh = mp.solutions.face_mesh.FaceMesh(
            static_image_mode=False,
            max_num_faces=1,               # Multi-face scans are out of scope
            refine_landmarks=refine_landmarks,
            min_detection_confidence=0.5,
            min_tracking_confidence=0.5,
        )
        self.frames_processed = 0
        self.faces_found = 0
        logger.info("MediaPipe FaceMesh initialised (refine_landmarks=%s).", refine_landmarks)

    def latest(self) -> LandmarkSet | None:
        frame = self._camera.get_latest_frame()
        if frame is None:
            return None
        return self.detect(frame)

    def detect(self, frame_bgr: np.ndarray) -> LandmarkSet | None:
        """Run Face Mesh on one BGR frame; None when no face is found."""
        # MediaPipe expects RGB input
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        results = self._face_mesh.process(frame_rgb)
        self.frames_processed += 1

        if not results.multi_face_landmarks:
            return None

        self.faces_found += 1
        face_lms = results.multi_face_landmarks[0]
        points = np.array([(lm.x, lm.y) for lm in face_lms.landmark], dtype=np.float64)
        return LandmarkSet(points)

    @property
    def detection_rate(self) -> float:
        return self.faces_found / max(self.frames_processed, 1)

    def close(self) -> None:
        """Release MediaPipe resources."""
        self._face_mesh.close()
        logger.info(
            "FaceMesh closed — face found in %d/%d frames.",
            self.faces_found, self.frames_processed,
        )
