"""
api/session.py — Scan Session Manager
=======================================
Owns the camera, the landmark detector and one `ScanSession`, and keeps an
in-memory history of finished results.  The FastAPI routes talk only to
this object.

Hardware is opened lazily on the first preview/scan request, so the server
boots (and `/health` answers) without a webcam or mediapipe installed.  For
replays and tests a frame source and landmark provider can be injected
instead; the manager then never touches the camera.

Lifecycle
---------
    1. `start_preview()`        — readiness + quality feedback before a scan.
    2. `start_scan(duration)`   — sampling session; the tick runs in the background.
    3. Poll `status()` for state, progress, quality, readiness and the waveform.
    4. `latest_result()` / `history()` once the scan has completed.
    5. `stop()` cancels at any time; `close()` releases the camera.
"""

import threading
from collections import deque

from camera.capture import CameraCapture
from camera.frame_source import FrameSource
from config import HISTORY_LIMIT, SCAN_DURATION_SECONDS
# FaceMeshProvider is imported lazily inside _open_hardware() so the
# server boots cleanly even before mediapipe is installed.
from face.landmarks import LandmarkProvider
from model.wellness import DISCLAIMER, analyze_wellness
from rppg.pipeline import ScanSession, SessionState, VitalsResult
from utils.logger import get_logger
from utils.scheduler import Scheduler

logger = get_logger("api.session")


class DeviceUnavailableError(RuntimeError):
    """The camera could not be opened."""


class SessionManager:
    """
    Parameters
    ----------
    frame_source, landmark_provider : optional
        Inject both to run without a webcam.  When omitted a `CameraCapture`
        and a `FaceMeshProvider` are created on first use.
    scheduler : Scheduler | None
        Tick driver handed to the `ScanSession`.
    history_limit : int
        Number of finished results kept in memory.
    """

    def __init__(
        self,
        frame_source: FrameSource | None = None,
        landmark_provider: LandmarkProvider | None = None,
        scheduler: Scheduler | None = None,
        history_limit: int = HISTORY_LIMIT,
        **session_kwargs,
    ):
        if (frame_source is None) != (landmark_provider is None):
            raise ValueError("Inject both frame_source and landmark_provider, or neither.")

        self._lock = threading.Lock()
        self._frame_source = frame_source
        self._landmark_provider = landmark_provider
        self._scheduler = scheduler
        self._session_kwargs = session_kwargs
        self._owns_hardware = frame_source is None

        self._camera: CameraCapture | None = None
        self._detector = None
        self._session: ScanSession | None = None
        self._history: deque[VitalsResult] = deque(maxlen=history_limit)

        logger.info("SessionManager initialised (hardware=%s).", "camera" if self._owns_hardware else "injected")

    # ── Control ────────────────────────────────────────────────────────────

    def start_preview(self) -> None:
        session = self._ensure_session()
        session.start_monitoring()

    def start_scan(self, duration_seconds: int = SCAN_DURATION_SECONDS) -> None:
        """Raises RuntimeError if a scan is already running."""
        session = self._ensure_session()
        session.start(duration_seconds)

    def stop(self) -> None:
        with self._lock:
            session = self._session
        if session is not None:
            session.stop()

    def close(self) -> None:
        with self._lock:
            session, self._session = self._session, None
            camera, self._camera = self._camera, None
            detector, self._detector = self._detector, None
        if session is not None:
            session.close()
        if detector is not None:
            detector.close()
        if camera is not None:
            camera.release()

    # ── Queries ────────────────────────────────────────────────────────────

    @property
    def scanning(self) -> bool:
        with self._lock:
            session = self._session
        return session is not None and session.state is not SessionState.IDLE

    def status(self) -> dict:
        with self._lock:
            session = self._session

        if session is None:
            return {
                "state": SessionState.IDLE.value,
                "monitoring": False,
                "progress_percent": 0.0,
                "remaining_seconds": 0,
                "signal_quality": "Poor",
                "sample_count": 0,
                "readiness": None,
                "waveform": [],
                "outcome": None,
                "rejections": {},
            }

        outcome = session.outcome
        return {
            "state": session.state.value,
            "monitoring": session.monitoring,
            "progress_percent": round(session.progress, 1),
            "remaining_seconds": session.remaining_seconds,
            "signal_quality": session.quality.value,
            "sample_count": session.sample_count,
            "readiness": session.readiness.to_dict() if session.validate_readiness else None,
            "waveform": session.waveform,
            "outcome": outcome.value if outcome is not None else None,
            "rejections": session.rejection_counts,
        }

    def latest_result(self) -> dict | None:
        """Result of the most recent scan, or None unless that scan completed."""
        with self._lock:
            session = self._session
        result = session.last_result if session is not None else None
        return describe_result(result) if result is not None else None

    def history(self) -> list[dict]:
        with self._lock:
            results = list(self._history)
        return [r.to_dict() for r in reversed(results)]

    # ── Private ────────────────────────────────────────────────────────────

    def _record(self, result: VitalsResult) -> None:
        with self._lock:
            self._history.append(result)
            stored = len(self._history)
        logger.info("Result stored (%d in history).", stored)

    def _ensure_session(self) -> ScanSession:
        with self._lock:
            if self._session is not None:
                return self._session

            if self._owns_hardware:
                self._open_hardware()

            self._session = ScanSession(
                frame_source=self._frame_source,
                landmark_provider=self._landmark_provider,
                scheduler=self._scheduler,
                on_result=self._record,
                **self._session_kwargs,
            )
            return self._session

    def _open_hardware(self) -> None:
        # Lazy import: a missing mediapipe surfaces here with an install hint
        from face.detector import FaceMeshProvider

        camera = CameraCapture()
        if not camera.open():
            raise DeviceUnavailableError("Failed to open camera. Check webcam permissions.")
        if camera.wait_for_frame(timeout=3.0) is None:
            camera.release()
            raise DeviceUnavailableError("No frame received from camera.")

        try:
            detector = FaceMeshProvider(camera)
        except Exception as exc:
            camera.release()
            raise DeviceUnavailableError(f"Face landmark detector unavailable: {exc}") from exc

        self._camera = camera
        self._detector = detector
        self._frame_source = camera
        self._landmark_provider = self._detector


def describe_result(result: VitalsResult) -> dict:
    """Result payload with wellness interpretation and disclaimer attached."""
    payload = result.to_dict()
    payload["wellness"] = analyze_wellness(
        heart_rate=result.heart_rate,
        spo2=result.spo2,
        respiration_rate=result.respiration_rate,
    )
    payload["disclaimer"] = DISCLAIMER
    return payload
