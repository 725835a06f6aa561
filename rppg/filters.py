"""
rppg/filters.py — Moving-average detrending & live waveform projection
========================================================================
The raw green-channel trace is dominated by slow drift: auto-exposure
adjustments, the head creeping closer to the camera, breathing-induced
sway.  The pulse sits on top as a ripple of well under one intensity level.

Detrending
----------
Subtract a centred moving average of about one second:

    out[i] = s[i] − mean(s[max(0, i − w/2) .. min(n, i + w/2)])

The window is truncated at both ends rather than padded, so the edges are
not pulled towards zero.  Anything slower than ~1 Hz is strongly attenuated
while the beat-to-beat amplitude survives.  The operation is linear and
length-preserving, and a constant input comes out as all zeros.

Waveform projection
-------------------
For display only: detrend the latest samples and min-max normalise them to
[0, 1].  A near-flat trace is replaced by a neutral mid-line instead of
being stretched until sensor noise looks like a pulse.
"""

import numpy as np
from scipy.ndimage import uniform_filter1d

from config import DETREND_WINDOW, WAVEFORM_MIN_RANGE, WAVEFORM_SAMPLES


def detrend(signal: np.ndarray, window: int = DETREND_WINDOW) -> np.ndarray:
    """
    Remove slow baseline drift with a centred, edge-truncated moving mean.

    Parameters
    ----------
    signal : array-like, shape (N,)
    window : int   Window length in samples (≈ sampling rate for 1 s).

    Returns
    -------
    ndarray, shape (N,)
        A constant input yields exactly 0.0 everywhere.
    """
    s = np.asarray(signal, dtype=np.float64)
    if s.ndim != 1:
        raise ValueError(f"detrend expects a 1-D signal, got shape {s.shape}.")
    if window < 1:
        raise ValueError(f"Window must be at least 1 sample, got {window}.")
    if s.size == 0:
        return s.copy()

    half = window // 2
    size = 2 * half + 1

    # Subtracting a constant does not change the result; working relative to
    # the first sample makes a constant input come out as exact zeros.
    s = s - s[0]

    # Zero padding outside the signal; dividing by the filtered ones-mask
    # turns the padded mean into the mean over the in-range samples only.
    window_sum = uniform_filter1d(s, size=size, mode="constant", cval=0.0)
    window_count = uniform_filter1d(np.ones_like(s), size=size, mode="constant", cval=0.0)
    return s - window_sum / window_count


def project_waveform(
    green: np.ndarray,
    window: int = DETREND_WINDOW,
    length: int = WAVEFORM_SAMPLES,
    min_range: float = WAVEFORM_MIN_RANGE,
) -> list[float]:
    """
    Normalised [0, 1] display trace of the latest `length` green samples.

    Returns an empty list for fewer than two samples, and a flat 0.5 line
    when the detrended range is below `min_range`.
    """
    g = np.asarray(green, dtype=np.float64)[-length:]
    if g.size < 2:
        return []

    trace = detrend(g, window)
    lo, hi = float(trace.min()), float(trace.max())
    span = hi - lo
    if span < min_range:
        return [0.5] * g.size

    return ((trace - lo) / span).tolist()
