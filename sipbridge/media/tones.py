"""Generation and playback of audio tones such as dial and busy signals."""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from typing import Any, Sequence, Tuple

from sipbridge.media.pcm import PCM16Sample
from sipbridge.rtp.stream import DEF_FRAME_DUR, DEF_FRAMES_PER_SEC


@dataclass(frozen=True)
class Tone:
    """A tone of mixed frequencies, followed by optional silence (seconds)."""

    freq: Tuple[int, ...] = ()
    dur: float = 0.0
    silence: float = 0.0


ETSI_DIAL = (Tone(freq=(425,)),)
ETSI_RINGING = (Tone(freq=(425,), dur=1.0, silence=4.0),)
ETSI_BUSY = (Tone(freq=(425,), dur=0.5, silence=0.5),)


def generate(count: int, ts: float, dur: float, amp: int, freq: Sequence[int]) -> PCM16Sample:
    """Generate ``count`` samples covering ``dur`` seconds starting at time ``ts``.

    Frequencies are mixed with equal weight; no frequencies yields silence.
    """
    if count <= 0:
        return PCM16Sample()
    if not freq:
        return PCM16Sample([0] * count)
    out = PCM16Sample()
    n = len(freq)
    for i in range(count):
        phi = ts + dur * i / count
        total = sum(math.sin(phi * hz * 2 * math.pi) for hz in freq)
        out.append(int(amp * total / n))
    return out


def _us(seconds: float) -> int:
    return round(seconds * 1_000_000)


async def play(audio: Any, vol: int, tones: Sequence[Tone]) -> None:
    """Play tones into ``audio`` in a loop until the task is cancelled."""
    if not tones:
        raise ValueError("no tones to play")
    frame_us = _us(DEF_FRAME_DUR)
    count = audio.sample_rate() // DEF_FRAMES_PER_SEC
    loop = asyncio.get_running_loop()
    start = loop.time()

    ind = -1  # ind % 2 selects tone or silence, ind // 2 the tone

    def next_tone() -> Tuple[Tone, bool]:
        nonlocal ind
        ind = (ind + 1) % (len(tones) * 2)
        return tones[ind // 2], ind % 2 != 0

    freq: Sequence[int] = ()
    remaining = 0
    frame = 0
    while True:
        frame += 1
        await asyncio.sleep(max(0.0, start + frame * DEF_FRAME_DUR - loop.time()))
        if remaining <= 0:
            tone, silence = next_tone()
            if silence and tone.silence == 0:
                tone, silence = next_tone()
            if silence:
                freq, remaining = (), _us(tone.silence)
            else:
                freq, remaining = tone.freq, _us(tone.dur)
        ts = (frame - 1) * DEF_FRAME_DUR
        audio.write_sample(generate(count, ts, DEF_FRAME_DUR, vol, freq))
        remaining -= frame_us