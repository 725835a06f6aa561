import numpy as np
import pytest

from rppg.filters import detrend, project_waveform


class TestDetrend:
    def test_preserves_length(self):
        for n in (1, 5, 29, 30, 31, 300):
            assert detrend(np.random.default_rng(n).normal(size=n)).shape == (n,)

    def test_constant_signal_becomes_zero(self):
        for level in (117.0, 117.3, 0.1, 1e6 / 3):
            out = detrend(np.full(1000, level))
            assert np.all(out == 0.0), level

    def test_edges_use_truncated_window(self):
        s = np.arange(10, dtype=float)
        out = detrend(s, window=4)   # half-width 2
        # First element: mean of s[0..2] = 1.0
        assert out[0] == pytest.approx(0.0 - 1.0)
        # Interior: symmetric window around a linear ramp gives zero
        assert out[5] == pytest.approx(0.0)
        # Last element: mean of s[7..9] = 8.0
        assert out[-1] == pytest.approx(9.0 - 8.0)

    def test_is_linear(self):
        rng = np.random.default_rng(0)
        a, b = rng.normal(size=120), rng.normal(size=120)
        np.testing.assert_allclose(detrend(2.0 * a + b), 2.0 * detrend(a) + detrend(b), atol=1e-9)

    def test_removes_slow_drift_but_keeps_pulse(self):
        t = np.arange(600) / 30.0
        pulse = np.sin(2 * np.pi * 1.2 * t)
        drift = 5.0 * t / t[-1]
        out = detrend(pulse + drift, window=30)
        interior = slice(30, -30)
        assert abs(np.mean(out[interior])) < 0.05
        assert np.std(out[interior]) > 0.5

    def test_empty_signal(self):
        assert detrend(np.array([])).size == 0

    def test_rejects_bad_input(self):
        with pytest.raises(ValueError):
            detrend(np.zeros((3, 3)))
        with pytest.raises(ValueError):
            detrend(np.zeros(10), window=0)


class TestProjectWaveform:
    def test_too_few_samples(self):
        assert project_waveform(np.array([])) == []
        assert project_waveform(np.array([100.0])) == []

    def test_flat_signal_is_midline(self):
        out = project_waveform(np.full(80, 90.0))
        assert out == [0.5] * 80

    def test_normalised_to_unit_range(self):
        t = np.arange(200) / 30.0
        green = 120 + 3.0 * np.sin(2 * np.pi * 1.1 * t)
        out = project_waveform(green, length=150)
        assert len(out) == 150
        assert min(out) == pytest.approx(0.0)
        assert max(out) == pytest.approx(1.0)
        assert all(0.0 <= v <= 1.0 for v in out)

    def test_uses_latest_samples_only(self):
        green = np.concatenate([np.full(100, 50.0), np.full(40, 200.0)])
        assert project_waveform(green, length=40) == [0.5] * 40
