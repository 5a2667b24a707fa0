"""Synthetic test signals and their detection by spectrum analysis."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from sipbridge.media.pcm import PCM16Sample


@dataclass(frozen=True)
class Wave:
    """A sine wave with ``2**ind`` periods per signal and amplitude ``amp``."""

    ind: int
    amp: int


def gen_signal(count: int, waves: Sequence[Wave]) -> PCM16Sample:
    """Generate ``count`` samples summing the given waves.

    Index 0 fits one full period into the signal.
    """
    out = PCM16Sample()
    for i in range(count):
        x = i / count
        v = sum(w.amp * math.sin(x * 2 * math.pi * (1 << w.ind)) for w in waves)
        out.append(int(v))
    return out


def find_signal(src: Sequence[int]) -> List[Wave]:
    """Detect waves produced by gen_signal, strongest first."""
    n = len(src)
    if n == 0:
        return []
    spectrum = np.fft.fft(np.asarray(src, dtype=np.float64))
    waves = []
    # Only the first half holds distinct frequencies; skip the DC offset.
    for i in range(1, n // 2):
        a = 2 * abs(spectrum[i]) / n
        if a < 1:
            continue
        waves.append(Wave(ind=int(math.log2(i)), amp=int(math.floor(a + 0.5 + 0.5))))
    waves.sort(key=lambda w: -w.amp)
    return waves