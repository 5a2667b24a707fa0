import pytest

from sipbridge.media.base import WriteCloser
from sipbridge.media.pcm import PCM16FrameWriter, PCM16Sample
from sipbridge.media.switch import SwitchWriter


class _Recorder(WriteCloser):
    def __init__(self, rate):
        self.rate = rate
        self.frames = []
        self.closed = False

    def sample_rate(self):
        return self.rate

    def write_sample(self, sample):
        self.frames.append(list(sample))

    def close(self):
        self.closed = True


def test_invalid_sample_rate():
    with pytest.raises(ValueError):
        SwitchWriter(0)


def test_write_without_destination_is_dropped():
    sw = SwitchWriter(8000)
    sw.write_sample(PCM16Sample([1, 2, 3]))
    assert sw.get() is None
    assert sw.sample_rate() == 8000


def test_swap_returns_previous():
    sw = SwitchWriter(8000)
    first = _Recorder(8000)
    second = _Recorder(8000)
    assert sw.swap(first) is None
    sw.write_sample([1, 2])
    assert sw.swap(second) is first
    sw.write_sample([3])
    assert first.frames == [[1, 2]]
    assert second.frames == [[3]]
    assert sw.swap(None) is second
    assert sw.get() is None


def test_close_closes_current_writer():
    sw = SwitchWriter(8000)
    rec = _Recorder(8000)
    sw.swap(rec)
    sw.close()
    assert rec.closed
    assert sw.get() is None


def test_swap_resamples_other_rate():
    frames = []
    target = PCM16FrameWriter(frames, 8000)
    sw = SwitchWriter(16000)
    sw.swap(target)
    wrapped = sw.get()
    assert wrapped is not target
    assert wrapped.sample_rate() == 16000
    sw.write_sample(PCM16Sample([0] * 320))
    assert len(frames) == 1
    assert len(frames[0]) <= 160


def test_str_mentions_rate():
    sw = SwitchWriter(8000)
    assert str(sw).startswith("Switch(8000) -> ")