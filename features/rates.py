"""
features/rates.py — Band-limited spectral peak → events per minute
=====================================================================
Heart rate and respiration rate are both the dominant periodicity of a
colour trace inside a physiological band:

    heart rate        0.8 – 3.0 Hz   ( 48 – 180 BPM)
    respiration rate  0.1 – 0.5 Hz   (  6 –  30 RPM)

Method
------
For every candidate frequency f on a fixed 0.02 Hz grid across the band,
evaluate one DFT bin directly on the sample timestamps:

    re(f) =  Σ s[i]·cos(2π f t[i])
    im(f) = −Σ s[i]·sin(2π f t[i])
    P(f)  = re² + im²

and return argmax P(f) × 60.

Why not np.fft?
---------------
Frames arrive with jitter and rejected frames leave gaps, so the samples
are not uniformly spaced.  Evaluating the transform at the real timestamps
avoids resampling, and restricting the search to the band keeps the cost at
a few hundred bins × N samples while making out-of-band peaks impossible.
No window/taper is applied.
"""

import numpy as np

from config import FREQ_RESOLUTION_HZ, HR_BAND_HZ, RR_BAND_HZ
from utils.logger import get_logger

logger = get_logger("features.rates")


def candidate_frequencies(min_hz: float, max_hz: float, resolution: float = FREQ_RESOLUTION_HZ) -> np.ndarray:
    """Evenly spaced grid from `min_hz` to `max_hz` inclusive (never outside the band)."""
    if resolution <= 0:
        raise ValueError(f"Frequency resolution must be positive, got {resolution}.")
    if min_hz < 0 or max_hz < min_hz:
        raise ValueError(f"Invalid band [{min_hz}, {max_hz}] Hz.")
    steps = int(np.floor((max_hz - min_hz) / resolution + 1e-9))
    return np.minimum(min_hz + resolution * np.arange(steps + 1), max_hz)


def band_power(signal: np.ndarray, timestamps: np.ndarray, freqs: np.ndarray) -> np.ndarray:
    """DFT power of `signal` at each frequency in `freqs`, evaluated at `timestamps`."""
    t = timestamps - timestamps[0]          # shift-invariant; keeps phases small
    phase = 2.0 * np.pi * np.outer(freqs, t)   # shape (F, N)
    re = np.cos(phase) @ signal
    im = -(np.sin(phase) @ signal)
    return re * re + im * im


def estimate_rate(
    signal: np.ndarray,
    timestamps: np.ndarray,
    min_hz: float,
    max_hz: float,
    resolution: float = FREQ_RESOLUTION_HZ,
) -> float:
    """
    Dominant frequency of `signal` inside [min_hz, max_hz], in events/minute.

    Parameters
    ----------
    signal     : ndarray, shape (N,)
    timestamps : ndarray, shape (N,)   Seconds; need not be uniformly spaced.
    min_hz, max_hz : float             Search band.
    resolution : float                 Grid step in Hz.

    Returns
    -------
    float   Peak frequency × 60, or 0.0 for an empty signal.
    """
    s = np.asarray(signal, dtype=np.float64)
    t = np.asarray(timestamps, dtype=np.float64)
    if s.shape != t.shape:
        raise ValueError(f"Signal and timestamps differ in shape: {s.shape} vs {t.shape}.")

    freqs = candidate_frequencies(min_hz, max_hz, resolution)
    if s.size == 0:
        return 0.0

    power = band_power(s, t, freqs)
    peak_hz = float(freqs[int(np.argmax(power))])
    return peak_hz * 60.0


def estimate_heart_rate(green: np.ndarray, timestamps: np.ndarray, band=HR_BAND_HZ) -> float:
    """BPM from a detrended green trace."""
    bpm = estimate_rate(green, timestamps, *band)
    logger.info("Heart-rate peak: %.1f BPM (band %.2f–%.2f Hz, %d samples)", bpm, band[0], band[1], len(green))
    return bpm


def estimate_respiration_rate(green: np.ndarray, timestamps: np.ndarray, band=RR_BAND_HZ) -> float:
    """Breaths/min from a green trace that still carries its baseline sway."""
    rpm = estimate_rate(green, timestamps, *band)
    logger.info("Respiration peak: %.1f RPM (band %.2f–%.2f Hz, %d samples)", rpm, band[0], band[1], len(green))
    return rpm
