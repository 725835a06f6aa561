import numpy as np
import pytest

from config import HR_BAND_HZ, RR_BAND_HZ
from features.rates import (
    candidate_frequencies,
    estimate_heart_rate,
    estimate_rate,
    estimate_respiration_rate,
)

FS = 30.0


def _tone(freq_hz: float, seconds: float = 30.0, amplitude: float = 1.0):
    t = np.arange(int(seconds * FS)) / FS
    return amplitude * np.sin(2 * np.pi * freq_hz * t), t


class TestCandidateFrequencies:
    def test_grid_covers_band_inclusive(self):
        freqs = candidate_frequencies(0.8, 3.0, 0.02)
        assert freqs[0] == pytest.approx(0.8)
        assert freqs[-1] == pytest.approx(3.0)
        assert freqs.max() <= 3.0
        assert len(freqs) == 111

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            candidate_frequencies(0.8, 3.0, 0.0)
        with pytest.raises(ValueError):
            candidate_frequencies(3.0, 0.8)
        with pytest.raises(ValueError):
            candidate_frequencies(-0.1, 1.0)


class TestEstimateRate:
    def test_pure_tone_in_band(self):
        signal, t = _tone(1.2)
        assert estimate_rate(signal, t, *HR_BAND_HZ) == pytest.approx(72.0)

    def test_empty_signal_returns_zero(self):
        assert estimate_rate(np.array([]), np.array([]), *HR_BAND_HZ) == 0.0

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            estimate_rate(np.zeros(10), np.zeros(9), *HR_BAND_HZ)

    def test_out_of_band_tone_stays_in_band(self):
        signal, t = _tone(5.0)
        bpm = estimate_rate(signal, t, *HR_BAND_HZ)
        assert HR_BAND_HZ[0] * 60 <= bpm <= HR_BAND_HZ[1] * 60

    def test_noise_stays_in_band(self):
        rng = np.random.default_rng(7)
        t = np.arange(300) / FS
        for low, high in (HR_BAND_HZ, RR_BAND_HZ):
            rate = estimate_rate(rng.normal(size=300), t, low, high)
            assert low * 60 - 1e-9 <= rate <= high * 60 + 1e-9

    def test_irregular_timestamps(self):
        rng = np.random.default_rng(3)
        t = np.sort(rng.uniform(0, 30, size=700))
        signal = np.sin(2 * np.pi * 1.5 * t)
        assert estimate_rate(signal, t, *HR_BAND_HZ) == pytest.approx(90.0, abs=1.3)

    def test_gap_in_samples(self):
        signal, t = _tone(1.0)
        keep = (t < 10) | (t > 14)
        assert estimate_rate(signal[keep], t[keep], *HR_BAND_HZ) == pytest.approx(60.0, abs=1.3)


def test_heart_and_respiration_wrappers():
    pulse, t = _tone(1.4, amplitude=0.5)
    breath, _ = _tone(0.25, amplitude=2.0)
    assert estimate_heart_rate(pulse, t) == pytest.approx(84.0, abs=1.3)
    assert estimate_respiration_rate(breath, t) == pytest.approx(15.0, abs=1.3)
