"""
features/quality.py — Signal quality grade
============================================
Grades the most recent window of samples as Poor / Fair / Good:

1. **Completeness** — the window's time span at the nominal sampling rate
   predicts a sample count.  More than 20 % missing means frames are being
   dropped or rejected (motion, exposure, slow detector) → Poor.
2. **Variation of the green channel** (population std):
       below QUALITY_STD_FLOOR    → Poor   (frozen / flat — no pulse visible)
       above QUALITY_STD_CEILING  → Fair   (motion or flicker dominates)
       otherwise                  → Good

No smoothing or hysteresis is applied: near a threshold the grade may flip
on consecutive updates.
"""

from enum import Enum
from typing import Sequence

import numpy as np

from config import (
    QUALITY_MAX_SHORTFALL,
    QUALITY_STD_CEILING,
    QUALITY_STD_FLOOR,
    SAMPLING_RATE_HZ,
)
from rppg.buffer import Sample, channel_array
from utils.logger import get_logger

logger = get_logger("features.quality")


class SignalQuality(str, Enum):
    POOR = "Poor"
    FAIR = "Fair"
    GOOD = "Good"


def expected_sample_count(samples: Sequence[Sample], nominal_rate: float) -> float:
    """Samples a gap-free stream would have produced over the window's span."""
    span = samples[-1].t - samples[0].t
    return span * nominal_rate + 1.0


def evaluate_signal_quality(
    samples: Sequence[Sample],
    nominal_rate: float = SAMPLING_RATE_HZ,
    std_floor: float = QUALITY_STD_FLOOR,
    std_ceiling: float = QUALITY_STD_CEILING,
    max_shortfall: float = QUALITY_MAX_SHORTFALL,
) -> SignalQuality:
    if len(samples) < 2:
        return SignalQuality.POOR

    expected = expected_sample_count(samples, nominal_rate)
    if len(samples) < (1.0 - max_shortfall) * expected:
        logger.debug("Window incomplete: %d of ~%.0f expected samples.", len(samples), expected)
        return SignalQuality.POOR

    green_std = float(np.std(channel_array(samples, "g")))
    if green_std < std_floor:
        return SignalQuality.POOR
    if green_std > std_ceiling:
        return SignalQuality.FAIR
    return SignalQuality.GOOD


class QualityMonitor:
    """Holds the current grade; the session tick is its only writer."""

    def __init__(self, nominal_rate: float = SAMPLING_RATE_HZ):
        self._nominal_rate = nominal_rate
        self.grade = SignalQuality.POOR
        self.updates = 0

    def update(self, window: Sequence[Sample]) -> SignalQuality:
        grade = evaluate_signal_quality(window, self._nominal_rate)
        if grade is not self.grade:
            logger.info("Signal quality %s → %s", self.grade.value, grade.value)
        self.grade = grade
        self.updates += 1
        return grade

    def reset(self) -> None:
        self.grade = SignalQuality.POOR
        self.updates = 0
