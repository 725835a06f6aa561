"""
rppg/pipeline.py — Scan session controller
============================================
Orchestrates one measurement from the first frame to the final vitals:

    start(duration) ─► sampling ──(elapsed ≥ duration)──► finalizing ─► idle
                          │                                   │
                          └──────────── stop() ───────────────┴──► idle (no result)

Every frame of work runs inside a single periodic tick (`_tick`), driven by
an injected scheduler at ~30 Hz:

    landmarks  →  readiness validation          (always, independent of state)
               →  ROI sample → buffer           (sampling)
               →  quality grade every 30 samples over the latest 60
               →  live waveform (latest 150 samples, detrended, 0–1)

When the duration elapses the tick stops itself and the buffer is reduced
to a `VitalsResult`:

    heart rate        detrended green   → spectral peak in 0.8–3.0 Hz
    respiration rate  raw green         → spectral peak in 0.1–0.5 Hz
    SpO2              red / blue AC-DC ratio-of-ratios over the whole session

Fewer than MIN_SAMPLES_FOR_VITALS samples produce no result at all.  That is
a normal outcome (`ScanOutcome.INSUFFICIENT_SIGNAL`), not an error.

Before a scan, `start_monitoring()` runs the same tick so the pre-scan
screen gets live readiness feedback and a quality grade from a rolling
buffer.

Thread safety
-------------
The tick is the only writer of the buffer, sampler, validator and quality
grade.  Snapshot fields read from other threads (API handlers) are guarded
by `_lock`.  `start()`/`stop()` bump a generation counter under the same
lock; a tick that was already in flight sees the mismatch and drops its
writes, so nothing from a cancelled session leaks into the next one.
"""

import math
import threading
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from camera.frame_source import FrameSource
from config import (
    DETREND_WINDOW,
    HR_BAND_HZ,
    MIN_SAMPLES_FOR_VITALS,
    PRESCAN_BUFFER_SAMPLES,
    QUALITY_UPDATE_EVERY,
    QUALITY_WINDOW,
    RR_BAND_HZ,
    SAMPLING_RATE_HZ,
    SCAN_DURATION_SECONDS,
    WAVEFORM_SAMPLES,
)
from face.landmarks import LandmarkProvider, LandmarkSet
from face.readiness import ReadinessState, ReadinessValidator
from features.quality import QualityMonitor, SignalQuality
from features.rates import estimate_heart_rate, estimate_respiration_rate
from features.spo2 import estimate_spo2
from rppg.buffer import Sample, SignalBuffer, channel_array, timestamp_array
from rppg.filters import detrend, project_waveform
from rppg.sampler import RoiSampler
from utils.logger import get_logger
from utils.scheduler import Scheduler, ThreadScheduler

logger = get_logger("rppg.pipeline")


class SessionState(str, Enum):
    IDLE = "idle"
    SAMPLING = "sampling"
    FINALIZING = "finalizing"


class ScanOutcome(str, Enum):
    COMPLETED = "completed"
    INSUFFICIENT_SIGNAL = "insufficient_signal"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class VitalsResult:
    heart_rate: int          # BPM
    respiration_rate: int    # breaths per minute
    spo2: int                # percent, always within [90, 100]
    signal_quality: SignalQuality
    timestamp: float         # wall-clock epoch seconds at finalization
    sample_count: int

    def to_dict(self) -> dict:
        return {
            "heart_rate": self.heart_rate,
            "respiration_rate": self.respiration_rate,
            "spo2": self.spo2,
            "signal_quality": self.signal_quality.value,
            "timestamp": self.timestamp,
            "sample_count": self.sample_count,
        }


def compute_vitals(
    samples: Sequence[Sample],
    quality: SignalQuality,
    timestamp: float | None = None,
    min_samples: int = MIN_SAMPLES_FOR_VITALS,
    detrend_window: int = DETREND_WINDOW,
    hr_band: tuple[float, float] = HR_BAND_HZ,
    rr_band: tuple[float, float] = RR_BAND_HZ,
) -> VitalsResult | None:
    """
    Reduce a finished session's samples to one VitalsResult.

    Returns None (and logs a warning) when fewer than `min_samples` samples
    were collected.
    """
    if len(samples) < min_samples:
        logger.warning(
            "Only %d samples collected (need %d) — no vitals for this session.",
            len(samples), min_samples,
        )
        return None

    t = timestamp_array(samples)
    green = channel_array(samples, "g")

    heart_rate = estimate_heart_rate(detrend(green, detrend_window), t, hr_band)
    # Breathing lives in the slow baseline sway that detrending removes;
    # only the constant offset is taken out here.
    respiration_rate = estimate_respiration_rate(green - green.mean(), t, rr_band)
    spo2 = estimate_spo2(channel_array(samples, "r"), channel_array(samples, "b"))

    return VitalsResult(
        heart_rate=int(round(heart_rate)),
        respiration_rate=int(round(respiration_rate)),
        spo2=int(round(spo2)),
        signal_quality=quality,
        timestamp=time.time() if timestamp is None else timestamp,
        sample_count=len(samples),
    )


class ScanSession:
    """
    One session context: owns the buffer, motion reference, quality grade
    and readiness snapshot.  Several sessions can coexist; nothing here is
    module-global.

    Parameters
    ----------
    frame_source      : FrameSource        Pixel access for the current frame.
    landmark_provider : LandmarkProvider   Face landmarks for the current frame.
    scheduler         : Scheduler | None   Tick driver (default: ThreadScheduler).
    sample_rate       : float              Target tick rate in Hz.
    on_result         : callable | None    Receives the VitalsResult of a completed scan.
    clock             : callable           Monotonic seconds, used for sample timestamps.
    wall_clock        : callable           Epoch seconds, stamped on results.
    validate_readiness: bool               Run the readiness validator on every tick.
    """

    def __init__(
        self,
        frame_source: FrameSource,
        landmark_provider: LandmarkProvider,
        scheduler: Scheduler | None = None,
        sample_rate: float = SAMPLING_RATE_HZ,
        on_result: Callable[[VitalsResult], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
        validate_readiness: bool = True,
    ):
        if sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {sample_rate}.")

        self._frames = frame_source
        self._landmarks = landmark_provider
        self._scheduler = scheduler if scheduler is not None else ThreadScheduler()
        self._sample_rate = sample_rate
        self._on_result = on_result
        self._clock = clock
        self._wall_clock = wall_clock
        self.validate_readiness = validate_readiness

        self._lock = threading.Lock()
        self._tick_guard = threading.Lock()
        self._generation = 0
        self._seen_generation = -1

        # Tick-owned working state
        self._buffer = SignalBuffer()
        self._prescan: deque[Sample] = deque(maxlen=PRESCAN_BUFFER_SAMPLES)
        self._sampler = RoiSampler()
        self._validator = ReadinessValidator()
        self._quality = QualityMonitor(sample_rate)
        self._new_since_quality = 0

        # Snapshots (guarded by _lock)
        self._state = SessionState.IDLE
        self._monitoring = False
        self._closed = False
        self._start_time = 0.0
        self._prescan_start = 0.0
        self._duration = 0.0
        self._elapsed = 0.0
        self._readiness = ReadinessState()
        self._grade = SignalQuality.POOR
        self._waveform: list[float] = []
        self._sample_count = 0
        self._rejections: dict[str, int] = {}
        self._outcome: ScanOutcome | None = None
        self._last_result: VitalsResult | None = None

        logger.info("ScanSession created (%.0f Hz tick).", sample_rate)

    # ── Public API ───────────────────────────────────────────────────────────

    def start(self, duration_seconds: float = SCAN_DURATION_SECONDS) -> None:
        """Begin a fixed-duration sampling session."""
        if duration_seconds <= 0:
            raise ValueError(f"Scan duration must be positive, got {duration_seconds}.")

        with self._lock:
            if self._closed:
                raise RuntimeError("Session has been closed.")
            if self._state is not SessionState.IDLE:
                raise RuntimeError("A scan is already in progress.")
            self._generation += 1
            self._buffer.clear()
            self._quality.reset()
            self._grade = SignalQuality.POOR
            self._new_since_quality = 0
            self._start_time = self._clock()
            self._duration = float(duration_seconds)
            self._elapsed = 0.0
            self._waveform = []
            self._sample_count = 0
            self._rejections = {}
            self._outcome = None
            self._last_result = None
            self._monitoring = False
            self._state = SessionState.SAMPLING

        self._ensure_ticking()
        logger.info("Scan started — %.0f s at %.0f Hz.", duration_seconds, self._sample_rate)

    def start_monitoring(self) -> None:
        """Run readiness + rolling quality grading while no scan is active."""
        with self._lock:
            if self._closed:
                raise RuntimeError("Session has been closed.")
            if self._state is not SessionState.IDLE:
                raise RuntimeError("Cannot start monitoring while a scan is in progress.")
            if self._monitoring and self._scheduler.active:
                return
            self._generation += 1
            self._prescan.clear()
            self._new_since_quality = 0
            self._prescan_start = self._clock()
            self._monitoring = True

        self._ensure_ticking()
        logger.info("Pre-scan monitoring started.")

    def stop(self) -> None:
        """Cancel the tick and any in-flight capture.  Never emits a result."""
        with self._lock:
            self._generation += 1
            was_scanning = self._state is not SessionState.IDLE
            self._state = SessionState.IDLE
            self._monitoring = False
            if was_scanning:
                self._outcome = ScanOutcome.CANCELLED

        # Stop ticking before touching the buffers
        self._scheduler.cancel()

        with self._lock:
            if was_scanning:
                self._buffer.clear()
                self._sample_count = 0
            self._prescan.clear()
            self._waveform = []

        if was_scanning:
            logger.info("Scan cancelled — no result emitted.")

    def close(self) -> None:
        """Tear down: stop ticking and release buffers.  The session cannot be restarted."""
        self.stop()
        with self._lock:
            self._closed = True
            self._buffer.clear()
        logger.info("ScanSession closed.")

    def __enter__(self) -> "ScanSession":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ── Snapshots ────────────────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def monitoring(self) -> bool:
        with self._lock:
            return self._monitoring

    @property
    def quality(self) -> SignalQuality:
        with self._lock:
            return self._grade

    @property
    def readiness(self) -> ReadinessState:
        with self._lock:
            return self._readiness

    @property
    def waveform(self) -> list[float]:
        with self._lock:
            return list(self._waveform)

    @property
    def sample_count(self) -> int:
        with self._lock:
            return self._sample_count

    @property
    def progress(self) -> float:
        """0–100 % of the current (or last) scan's duration."""
        with self._lock:
            if self._duration <= 0:
                return 0.0
            return min(self._elapsed / self._duration * 100.0, 100.0)

    @property
    def remaining_seconds(self) -> int:
        with self._lock:
            if self._state is SessionState.IDLE:
                return 0
            return max(0, math.ceil(self._duration - self._elapsed))

    @property
    def rejection_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._rejections)

    @property
    def outcome(self) -> ScanOutcome | None:
        with self._lock:
            return self._outcome

    @property
    def last_result(self) -> VitalsResult | None:
        with self._lock:
            return self._last_result

    # ── Tick ─────────────────────────────────────────────────────────────────

    def _ensure_ticking(self) -> None:
        if not self._scheduler.active:
            self._scheduler.run_periodically(1.0 / self._sample_rate, self._tick)

    def _tick(self) -> None:
        if not self._tick_guard.acquire(blocking=False):
            logger.debug("Tick skipped — previous tick still running.")
            return
        try:
            with self._lock:
                generation = self._generation
                state = self._state
                monitoring = self._monitoring

            if generation != self._seen_generation:
                # New session or new monitoring run: forget the old motion reference
                self._sampler.reset()
                self._seen_generation = generation

            now = self._clock()
            landmarks = self._fetch_landmarks()

            readiness = None
            if self.validate_readiness:
                readiness = self._validator.validate(landmarks, self._frames)

            if state is SessionState.SAMPLING:
                self._sampling_tick(generation, landmarks, readiness, now)
            elif state is SessionState.IDLE:
                self._monitoring_tick(generation, landmarks, readiness, now, monitoring)
        finally:
            self._tick_guard.release()

    def _fetch_landmarks(self) -> LandmarkSet | None:
        try:
            return self._landmarks.latest()
        except Exception:
            logger.exception("Landmark provider failed — treating this frame as faceless.")
            return None

    def _sampling_tick(
        self,
        generation: int,
        landmarks: LandmarkSet | None,
        readiness: ReadinessState | None,
        now: float,
    ) -> None:
        with self._lock:
            start_time, duration = self._start_time, self._duration
        elapsed = now - start_time

        if elapsed >= duration:
            self._finalize(generation)
            return

        sample = self._sampler.sample(self._frames, landmarks, elapsed)

        with self._lock:
            if generation != self._generation:
                return
            if readiness is not None:
                self._readiness = readiness
            self._elapsed = elapsed
            self._rejections = {reason.value: n for reason, n in self._sampler.rejections.items()}
            if sample is None:
                return

            self._buffer.append(sample)
            self._sample_count = len(self._buffer)
            self._new_since_quality += 1
            if self._new_since_quality >= QUALITY_UPDATE_EVERY:
                self._new_since_quality = 0
                self._grade = self._quality.update(self._buffer.latest(QUALITY_WINDOW))

            recent = self._buffer.latest(WAVEFORM_SAMPLES)
            self._waveform = project_waveform(channel_array(recent, "g"))

    def _monitoring_tick(
        self,
        generation: int,
        landmarks: LandmarkSet | None,
        readiness: ReadinessState | None,
        now: float,
        monitoring: bool,
    ) -> None:
        sample = None
        if monitoring:
            with self._lock:
                t = now - self._prescan_start
            sample = self._sampler.sample(self._frames, landmarks, t)

        with self._lock:
            if generation != self._generation:
                return
            if readiness is not None:
                self._readiness = readiness
            if sample is None:
                return

            self._prescan.append(sample)
            self._new_since_quality += 1
            if self._new_since_quality >= QUALITY_UPDATE_EVERY:
                self._new_since_quality = 0
                window = list(self._prescan)[-QUALITY_WINDOW:]
                self._grade = self._quality.update(window)

    def _finalize(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._state is not SessionState.SAMPLING:
                return
            self._state = SessionState.FINALIZING
            self._elapsed = self._duration
            self._buffer.freeze()
            samples = self._buffer.samples()
            grade = self._grade

        self._scheduler.cancel()
        logger.info("Scan finished — finalizing %d samples.", len(samples))

        result = compute_vitals(samples, grade, timestamp=self._wall_clock())

        with self._lock:
            if generation != self._generation:
                logger.info("Session stopped during finalization — result discarded.")
                return
            self._state = SessionState.IDLE
            self._outcome = ScanOutcome.COMPLETED if result is not None else ScanOutcome.INSUFFICIENT_SIGNAL
            self._last_result = result
            callback = self._on_result

        if result is None:
            return

        logger.info(
            "Vitals: HR=%d BPM, RR=%d RPM, SpO2=%d%% (quality %s)",
            result.heart_rate, result.respiration_rate, result.spo2, result.signal_quality.value,
        )
        if callback is not None:
            try:
                callback(result)
            except Exception:
                logger.exception("Result handler raised — the result is still kept on the session.")
