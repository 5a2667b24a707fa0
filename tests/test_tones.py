import pytest

from sipbridge.media.base import Writer
from sipbridge.media.tones import ETSI_DIAL, Tone, generate, play


class _Stop(Exception):
    pass


class _Collector(Writer):
    def __init__(self, rate, limit):
        self.rate = rate
        self.limit = limit
        self.frames = []

    def sample_rate(self):
        return self.rate

    def write_sample(self, sample):
        self.frames.append(list(sample))
        if len(self.frames) >= self.limit:
            raise _Stop()


def test_generate_silence():
    assert list(generate(10, 0.0, 0.02, 1000, ())) == [0] * 10


def test_generate_length_and_bounds():
    buf = generate(160, 0.0, 0.02, 1000, (697, 1209))
    assert len(buf) == 160
    assert all(abs(v) <= 1000 for v in buf)
    assert buf[0] == 0
    assert any(v != 0 for v in buf)


def test_generate_reaches_amplitude():
    buf = generate(160, 0.0, 0.02, 1000, (1000,))
    assert max(buf) >= 999
    assert min(buf) <= -999


def test_generate_is_continuous_across_frames():
    whole = generate(320, 0.0, 0.04, 5000, (425,))
    first = generate(160, 0.0, 0.02, 5000, (425,))
    second = generate(160, 0.02, 0.02, 5000, (425,))
    assert all(abs(a - b) <= 1 for a, b in zip(whole, list(first) + list(second)))


def test_generate_empty_count():
    assert len(generate(0, 0.0, 0.02, 1000, (425,))) == 0


@pytest.mark.asyncio
async def test_play_alternates_tone_and_silence():
    w = _Collector(8000, 6)
    tones = [Tone(freq=(425,), dur=0.04, silence=0.04)]
    with pytest.raises(_Stop):
        await play(w, 1000, tones)
    assert [len(f) for f in w.frames] == [160] * 6
    pattern = [any(f) for f in w.frames]
    assert pattern == [True, True, False, False, True, True]


@pytest.mark.asyncio
async def test_play_continuous_dial_tone():
    w = _Collector(8000, 4)
    with pytest.raises(_Stop):
        await play(w, 1000, ETSI_DIAL)
    assert all(any(f) for f in w.frames)


@pytest.mark.asyncio
async def test_play_requires_tones():
    with pytest.raises(ValueError):
        await play(_Collector(8000, 1), 1000, [])