import math

import numpy as np
import pytest

from camera.frame_source import ArrayFrameSource
from config import MIN_SAMPLES_FOR_VITALS, SPO2_FALLBACK
from face.landmarks import StaticLandmarkProvider
from face.readiness import MSG_NO_FACE
from features.quality import SignalQuality
from rppg.pipeline import ScanOutcome, ScanSession, SessionState, VitalsResult, compute_vitals
from tests.helpers import FRAME_H, FRAME_W, make_landmarks, make_samples
from utils.scheduler import ManualScheduler

RATE = 30.0
EPOCH = 1_700_000_000.0


def pulse(t: float) -> float:
    """Green level with a 72 BPM ripple."""
    return 128.0 + 2.0 * math.sin(2 * math.pi * 1.2 * t)


class Rig:
    """A ScanSession wired to in-memory frames, static landmarks and a hand-driven clock."""

    def __init__(self, clock, green=pulse, landmarks="default", on_result=None):
        self.clock = clock
        self.green = green
        self.source = ArrayFrameSource()
        self.provider = StaticLandmarkProvider(make_landmarks() if landmarks == "default" else landmarks)
        self.scheduler = ManualScheduler()
        self.results: list[VitalsResult] = []
        self.session = ScanSession(
            frame_source=self.source,
            landmark_provider=self.provider,
            scheduler=self.scheduler,
            on_result=on_result or self.results.append,
            clock=clock,
            wall_clock=lambda: EPOCH,
        )
        self._render()

    def _render(self):
        self.source.fill(FRAME_W, FRAME_H, (100.0, self.green(self.clock.now), 150.0))

    def step(self, n: int = 1) -> None:
        for _ in range(n):
            self.clock.advance(1.0 / RATE)
            self._render()
            self.scheduler.tick()

    def run_until_idle(self, limit: int = 10_000) -> None:
        for _ in range(limit):
            if self.session.state is SessionState.IDLE:
                return
            self.step()
        raise AssertionError("session never returned to idle")


# ── compute_vitals ────────────────────────────────────────────────────────────

def test_compute_vitals_needs_minimum_samples():
    samples = make_samples(np.full(MIN_SAMPLES_FOR_VITALS - 1, 120.0))
    assert compute_vitals(samples, SignalQuality.GOOD) is None


def test_compute_vitals_recovers_rates():
    t = np.arange(900) / RATE
    green = 120 + 1.0 * np.sin(2 * np.pi * 1.2 * t) + 3.0 * np.sin(2 * np.pi * 0.3 * t)
    red = 150 + 0.5 * np.sin(2 * np.pi * 1.2 * t)
    blue = 90 + 0.8 * np.sin(2 * np.pi * 1.2 * t)
    result = compute_vitals(make_samples(green, red=red, blue=blue), SignalQuality.FAIR, timestamp=EPOCH)

    assert result.heart_rate == 72
    assert result.respiration_rate == 18
    assert 90 <= result.spo2 <= 100
    assert result.signal_quality is SignalQuality.FAIR
    assert result.sample_count == 900
    assert result.timestamp == EPOCH


def test_vitals_result_to_dict():
    result = VitalsResult(70, 15, 97, SignalQuality.GOOD, EPOCH, 880)
    assert result.to_dict() == {
        "heart_rate": 70,
        "respiration_rate": 15,
        "spo2": 97,
        "signal_quality": "Good",
        "timestamp": EPOCH,
        "sample_count": 880,
    }


# ── Full sessions ─────────────────────────────────────────────────────────────

def test_full_scan_produces_result(clock):
    rig = Rig(clock)
    rig.session.start(30)
    assert rig.session.state is SessionState.SAMPLING
    rig.run_until_idle()

    session = rig.session
    assert session.outcome is ScanOutcome.COMPLETED
    assert session.progress == pytest.approx(100.0)
    assert not rig.scheduler.active

    assert len(rig.results) == 1
    result = rig.results[0]
    assert result is session.last_result
    assert 70 <= result.heart_rate <= 74
    assert 6 <= result.respiration_rate <= 30
    assert result.spo2 == SPO2_FALLBACK      # red and blue never vary
    assert result.signal_quality is SignalQuality.GOOD
    assert result.sample_count >= 880
    assert result.timestamp == EPOCH


def test_progress_and_remaining_time(clock):
    rig = Rig(clock)
    rig.session.start(30)
    rig.step(300)
    assert rig.session.progress == pytest.approx(100.0 / 3, abs=0.5)
    assert rig.session.remaining_seconds in (20, 21)
    assert rig.session.sample_count == 300


def test_waveform_is_normalised_during_scan(clock):
    rig = Rig(clock)
    rig.session.start(30)
    rig.step(200)
    wave = rig.session.waveform
    assert len(wave) == 150
    assert min(wave) == pytest.approx(0.0)
    assert max(wave) == pytest.approx(1.0)


def test_quality_is_graded_while_sampling(clock):
    rig = Rig(clock)
    rig.session.start(30)
    rig.step(29)
    assert rig.session.quality is SignalQuality.POOR
    rig.step(1)
    assert rig.session.quality is SignalQuality.GOOD


def test_short_scan_reports_insufficient_signal(clock):
    rig = Rig(clock)
    rig.session.start(2)
    rig.run_until_idle()
    assert rig.session.outcome is ScanOutcome.INSUFFICIENT_SIGNAL
    assert rig.session.last_result is None
    assert rig.results == []


def test_no_face_rejects_every_frame(clock):
    rig = Rig(clock, landmarks=None)
    rig.session.start(5)
    rig.step(30)
    assert rig.session.sample_count == 0
    assert rig.session.rejection_counts == {"no_landmarks": 30}
    assert rig.session.readiness.errors[0] == MSG_NO_FACE
    rig.run_until_idle()
    assert rig.session.outcome is ScanOutcome.INSUFFICIENT_SIGNAL


def test_failing_landmark_provider_is_treated_as_no_face(clock):
    rig = Rig(clock)

    def broken():
        raise RuntimeError("detector crashed")

    rig.provider.latest = broken
    rig.session.start(5)
    rig.step(10)
    assert rig.session.sample_count == 0
    assert rig.session.state is SessionState.SAMPLING


def test_stop_discards_the_session(clock):
    rig = Rig(clock)
    rig.session.start(30)
    rig.step(150)
    rig.session.stop()

    assert rig.session.state is SessionState.IDLE
    assert rig.session.outcome is ScanOutcome.CANCELLED
    assert rig.session.sample_count == 0
    assert rig.session.waveform == []
    assert not rig.scheduler.active

    rig.step(1000)
    assert rig.results == []
    assert rig.session.last_result is None


def test_restart_after_stop_starts_fresh(clock):
    rig = Rig(clock)
    rig.session.start(30)
    rig.step(150)
    rig.session.stop()

    rig.session.start(10)
    assert rig.session.sample_count == 0
    assert rig.session.outcome is None
    rig.run_until_idle()
    assert rig.session.outcome is ScanOutcome.COMPLETED
    assert len(rig.results) == 1
    assert 280 <= rig.results[0].sample_count <= 300


def test_motion_is_excluded_from_the_buffer(clock):
    rig = Rig(clock)
    rig.session.start(30)
    rig.step(10)
    rig.provider.set(make_landmarks((0.52, 0.5)))
    rig.step(10)
    assert rig.session.sample_count == 19
    assert rig.session.rejection_counts == {"motion": 1}


def test_result_handler_failure_keeps_result(clock):
    def explode(result):
        raise ValueError("handler bug")

    rig = Rig(clock, on_result=explode)
    rig.session.start(10)
    rig.run_until_idle()
    assert rig.session.outcome is ScanOutcome.COMPLETED
    assert rig.session.last_result is not None


# ── Guards ────────────────────────────────────────────────────────────────────

def test_start_rejects_bad_duration(clock):
    with pytest.raises(ValueError):
        Rig(clock).session.start(0)


def test_start_while_sampling_raises(clock):
    rig = Rig(clock)
    rig.session.start(30)
    with pytest.raises(RuntimeError):
        rig.session.start(30)
    with pytest.raises(RuntimeError):
        rig.session.start_monitoring()


def test_closed_session_cannot_restart(clock):
    rig = Rig(clock)
    with rig.session as session:
        session.start(30)
        rig.step(10)
    assert session.state is SessionState.IDLE
    with pytest.raises(RuntimeError):
        session.start(30)


def test_rejects_non_positive_sample_rate(clock):
    with pytest.raises(ValueError):
        ScanSession(ArrayFrameSource(), StaticLandmarkProvider(), scheduler=ManualScheduler(), sample_rate=0)


# ── Pre-scan monitoring ───────────────────────────────────────────────────────

def test_monitoring_reports_readiness_and_quality(clock):
    rig = Rig(clock)
    rig.session.start_monitoring()
    assert rig.session.monitoring
    rig.step(60)

    assert rig.session.state is SessionState.IDLE
    assert rig.session.readiness.is_valid
    assert rig.session.quality is SignalQuality.GOOD
    assert rig.session.sample_count == 0


def test_scan_can_start_from_monitoring(clock):
    rig = Rig(clock)
    rig.session.start_monitoring()
    rig.step(60)
    rig.session.start(10)
    assert not rig.session.monitoring
    assert rig.session.quality is SignalQuality.POOR
    rig.run_until_idle()
    assert rig.session.outcome is ScanOutcome.COMPLETED


def test_monitoring_flags_bad_lighting(clock):
    rig = Rig(clock)
    rig.source.fill(FRAME_W, FRAME_H, (5, 5, 5))
    rig.session.start_monitoring()
    rig.scheduler.tick()
    assert not rig.session.readiness.is_valid
    assert "Lighting too dark" in rig.session.readiness.errors
