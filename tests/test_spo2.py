import numpy as np
import pytest

from config import SPO2_FALLBACK, SPO2_MAX, SPO2_MIN
from features.spo2 import ac_dc_ratio, estimate_spo2


def test_ac_dc_ratio():
    assert ac_dc_ratio(np.array([])) == 0.0
    assert ac_dc_ratio(np.zeros(10)) == 0.0
    assert ac_dc_ratio(np.full(10, 50.0)) == 0.0
    assert ac_dc_ratio(np.array([90.0, 110.0])) == pytest.approx(0.1)


def test_equal_ratios_give_clamped_value():
    # R = 1 → 110 − 25 = 85 → clamped up to 90
    channel = 100 + np.sin(np.linspace(0, 20, 300))
    assert estimate_spo2(channel, channel) == SPO2_MIN


def test_small_red_ratio_hits_upper_clamp():
    rng = np.random.default_rng(1)
    red = 150 + 0.01 * rng.normal(size=300)
    blue = 80 + 2.0 * rng.normal(size=300)
    assert estimate_spo2(red, blue) == SPO2_MAX


def test_mid_range_value():
    t = np.linspace(0, 30, 900)
    red = 100 + 0.5 * np.sin(t)    # ratio ≈ 0.5·0.707/100
    blue = 100 + 1.0 * np.sin(t)   # twice the red ratio → R ≈ 0.5
    assert estimate_spo2(red, blue) == pytest.approx(97.5, abs=0.1)


def test_constant_blue_returns_fallback():
    red = 100 + np.sin(np.linspace(0, 20, 300))
    assert estimate_spo2(red, np.full(300, 60.0)) == SPO2_FALLBACK


def test_empty_input_returns_fallback():
    assert estimate_spo2(np.array([]), np.array([])) == SPO2_FALLBACK


def test_always_within_range():
    rng = np.random.default_rng(11)
    for _ in range(20):
        red = rng.uniform(20, 230) + rng.uniform(0, 10) * rng.normal(size=200)
        blue = rng.uniform(20, 230) + rng.uniform(0, 10) * rng.normal(size=200)
        value = estimate_spo2(red, blue)
        assert SPO2_MIN <= value <= SPO2_MAX
