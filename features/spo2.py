"""
features/spo2.py — Heuristic blood-oxygen approximation
=========================================================

⚠️  This is an EXPERIMENTAL wellness figure.  Pulse oximeters use calibrated
    red/infra-red LEDs; a webcam sees broadband ambient light through a
    Bayer filter.  The value below tracks relative changes at best.

Ratio of ratios
---------------
For each colour channel the pulsatility is approximated by its coefficient
of variation over the whole session:

    ratio(c) = std(c) / mean(c)          (AC / DC proxy)
    R        = ratio(red) / ratio(blue)
    SpO2     = 110 − 25 · R              (empirical, not physically derived)

The result is clamped to [90, 100].  A blue channel with no variation would
divide by zero; the fixed fallback is returned instead so NaN/inf never
leave this module.
"""

import numpy as np

from config import SPO2_FALLBACK, SPO2_INTERCEPT, SPO2_MAX, SPO2_MIN, SPO2_SLOPE
from utils.logger import get_logger

logger = get_logger("features.spo2")


def ac_dc_ratio(channel: np.ndarray) -> float:
    """Population std / mean; 0 for an empty or zero-mean channel."""
    c = np.asarray(channel, dtype=np.float64)
    if c.size == 0:
        return 0.0
    mean = float(c.mean())
    if mean <= 0.0:
        return 0.0
    return float(c.std()) / mean


def estimate_spo2(
    red: np.ndarray,
    blue: np.ndarray,
    intercept: float = SPO2_INTERCEPT,
    slope: float = SPO2_SLOPE,
    fallback: float = SPO2_FALLBACK,
) -> float:
    """
    Parameters
    ----------
    red, blue : ndarray, shape (N,)   Per-sample channel means for the session.

    Returns
    -------
    float in [SPO2_MIN, SPO2_MAX].
    """
    ratio_blue = ac_dc_ratio(blue)
    if ratio_blue == 0.0:
        logger.warning("Blue channel shows no variation — returning fallback SpO2 %.0f%%.", fallback)
        return float(np.clip(fallback, SPO2_MIN, SPO2_MAX))

    ratio_red = ac_dc_ratio(red)
    r_value = ratio_red / ratio_blue
    spo2 = intercept - slope * r_value
    if not np.isfinite(spo2):
        logger.warning("Non-finite SpO2 (R=%r) — returning fallback.", r_value)
        return float(np.clip(fallback, SPO2_MIN, SPO2_MAX))

    clamped = float(np.clip(spo2, SPO2_MIN, SPO2_MAX))
    logger.info("SpO2 estimate: %.1f%% (R=%.3f, raw=%.1f)", clamped, r_value, spo2)
    return clamped
