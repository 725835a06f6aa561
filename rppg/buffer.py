"""
rppg/buffer.py — Session sample buffer
========================================
One `Sample` is the spatial mean colour of the forehead ROI for one
accepted frame, stamped with seconds since the session started.  The
`SignalBuffer` keeps them in arrival order for the whole session:

    clear() at session start → append() while sampling → freeze() at the end

After `freeze()` the buffer is read-only; a late write is a bug and raises.
"""

from dataclasses import dataclass
from typing import Iterator, Sequence

import numpy as np


@dataclass(frozen=True)
class Sample:
    t: float   # seconds since session start
    r: float
    g: float
    b: float


_CHANNELS = ("r", "g", "b")


def channel_array(samples: Sequence[Sample], name: str) -> np.ndarray:
    """One colour channel of a sample sequence as a float64 array."""
    if name not in _CHANNELS:
        raise ValueError(f"Unknown channel '{name}'. Choose from {list(_CHANNELS)}.")
    return np.fromiter((getattr(s, name) for s in samples), dtype=np.float64, count=len(samples))


def timestamp_array(samples: Sequence[Sample]) -> np.ndarray:
    return np.fromiter((s.t for s in samples), dtype=np.float64, count=len(samples))


class SignalBuffer:
    """Append-only, time-ordered list of samples for the active session."""

    def __init__(self):
        self._samples: list[Sample] = []
        self._frozen = False

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def append(self, sample: Sample) -> None:
        if self._frozen:
            raise RuntimeError("Signal buffer is frozen — the session has been finalized.")
        if self._samples and sample.t < self._samples[-1].t:
            raise ValueError(
                f"Sample at t={sample.t:.3f}s is older than the last one "
                f"(t={self._samples[-1].t:.3f}s)."
            )
        self._samples.append(sample)

    def clear(self) -> None:
        self._samples = []
        self._frozen = False

    def freeze(self) -> None:
        self._frozen = True

    def latest(self, n: int) -> list[Sample]:
        """The most recent `n` samples (fewer if the buffer is shorter)."""
        if n <= 0:
            return []
        return self._samples[-n:]

    def samples(self) -> list[Sample]:
        return list(self._samples)

    def channel(self, name: str) -> np.ndarray:
        return channel_array(self._samples, name)

    def timestamps(self) -> np.ndarray:
        return timestamp_array(self._samples)
