"""Sample rate conversion of PCM16 audio using Lagrange polynomial interpolation."""

from __future__ import annotations

import itertools
import math
import os
from typing import Any, List, NamedTuple, Sequence

from sipbridge.media.base import WriteCloser, dump_writer_pcm16
from sipbridge.media.pcm import PCM16BufferReader, PCM16Sample

_QUALITY = 3
_BUF_SIZE = 512
_SCALE = 0x7FFF

_resample_ids = itertools.count(1)
_dump_to_file = os.environ.get("LK_DUMP_RESAMPLE") == "true"


class Point(NamedTuple):
    x: float
    y: float


def _output_size(dst_rate: int, src_rate: int, src_len: int) -> int:
    if dst_rate < src_rate:
        return src_len // (src_rate // dst_rate)
    return src_len * (dst_rate // src_rate)


def _to_int16(value: float) -> int:
    return max(-32768, min(32767, int(value)))


def lagrange(points: Sequence[Point], x: float) -> float:
    """Value at ``x`` of the polynomial passing through all ``points``."""
    y = 0.0
    for j, (xj, yj) in enumerate(points):
        weight = 1.0
        for m, (xm, _) in enumerate(points):
            if j != m:
                weight *= (x - xm) / (xj - xm)
        y += yj * weight
    return y


def _check_ratio(ratio: float) -> None:
    if math.isinf(ratio) or math.isnan(ratio):
        raise ValueError(f"resample: invalid ratio: {ratio:f}")


class Resampler:
    """Pulls samples from a source and emits them at a different rate."""

    def __init__(self, quality: int, old_rate: int, new_rate: int, source: Any) -> None:
        ratio = old_rate / new_rate if new_rate else math.inf
        self._setup(quality, ratio, source)

    @classmethod
    def from_ratio(cls, quality: int, ratio: float, source: Any) -> "Resampler":
        """Create a resampler from the ratio of the old rate to the new rate."""
        obj = cls.__new__(cls)
        obj._setup(quality, ratio, source)
        return obj

    def _setup(self, quality: int, ratio: float, source: Any) -> None:
        if quality < 1 or quality > 64:
            raise ValueError(f"resample: invalid quality: {quality}")
        _check_ratio(ratio)
        self._source = source
        self._ratio = ratio
        self._first = True
        # buf1 keeps the previous chunk of source data, buf2 the current one.
        self._buf1: List[int] = [0] * _BUF_SIZE
        self._buf2: List[int] = [0] * _BUF_SIZE
        self._npts = quality * 2
        self._off = 0
        self._pos = 0

    def ratio(self) -> float:
        """Current ratio of the old sample rate to the new one."""
        return self._ratio

    def set_ratio(self, ratio: float) -> None:
        """Change the ratio without a glitch in the stream."""
        _check_ratio(ratio)
        self._pos = int(self._pos * self._ratio / ratio)
        self._ratio = ratio

    def _read_into_buf1(self) -> int:
        data = self._source.read_sample(len(self._buf1))
        n = len(data)
        self._buf1[:n] = list(data)
        return n

    def _points(self, j: float):
        while True:
            pts: List[Point] = []
            restart = False
            base = int(j) - self._npts // 2 + 1
            for pi in range(self._npts):
                k = base + pi
                end = self._off + len(self._buf2)
                if k < self._off:
                    y = self._buf1[len(self._buf1) + k - self._off]
                elif k < end:
                    y = self._buf2[k - self._off]
                else:
                    n = self._read_into_buf1()
                    if int(j) >= end + n:
                        return None
                    if k >= end + n:
                        y = 0
                    else:
                        self._off += len(self._buf2)
                        self._buf1 = self._buf1[:n]
                        self._buf1, self._buf2 = self._buf2, self._buf1
                        restart = True
                        break
                pts.append(Point(float(k), y / _SCALE))
            if not restart:
                return pts

    def stream(self, count: int) -> PCM16Sample:
        """Return up to ``count`` resampled samples; fewer once the source is drained."""
        if self._first:
            data = self._source.read_sample(len(self._buf2))
            self._buf2 = list(data)
            self._first = False
        out = PCM16Sample()
        while len(out) < count:
            j = self._pos * self._ratio
            pts = self._points(j)
            if pts is None:
                break
            out.append(_to_int16(lagrange(pts, j) * _SCALE))
            self._pos += 1
        return out


def resample(dst_sample_rate: int, src: Sequence[int], src_sample_rate: int) -> PCM16Sample:
    """Convert ``src`` from ``src_sample_rate`` to ``dst_sample_rate``."""
    if dst_sample_rate == src_sample_rate:
        return PCM16Sample(src)
    r = Resampler(_QUALITY, src_sample_rate, dst_sample_rate, PCM16BufferReader(src))
    return r.stream(_output_size(dst_sample_rate, src_sample_rate, len(src)))


class ResampleWriter(WriteCloser):
    """Accepts samples at one rate and writes them resampled to another writer."""

    def __init__(self, writer: WriteCloser, sample_rate: int) -> None:
        self._writer = writer
        self._src_rate = sample_rate
        self._dst_rate = writer.sample_rate()
        self._inbuf = PCM16Sample()
        self._resampler = Resampler(_QUALITY, self._src_rate, self._dst_rate, self)

    def __str__(self) -> str:
        return f"Resample({self._src_rate}->{self._dst_rate}) -> {self._writer}"

    def sample_rate(self) -> int:
        return self._src_rate

    def read_sample(self, count: int) -> PCM16Sample:
        """Hand buffered input to the resampler."""
        out = PCM16Sample(self._inbuf[:count])
        del self._inbuf[:count]
        return out

    def write_sample(self, data: Sequence[int]) -> None:
        self._inbuf.extend(data)
        size = _output_size(self._dst_rate, self._src_rate, len(data))
        self._writer.write_sample(self._resampler.stream(size))

    def close(self) -> None:
        self._writer.close()


def resample_writer(writer: WriteCloser, sample_rate: int) -> WriteCloser:
    """Wrap ``writer`` so that it accepts samples at ``sample_rate``."""
    if writer.sample_rate() == sample_rate:
        return writer
    if _dump_to_file:
        pref = f"sip_resample_{next(_resample_ids)}"
        writer = dump_writer_pcm16(pref + "_out", writer)
        return dump_writer_pcm16(pref + "_in", ResampleWriter(writer, sample_rate))
    return ResampleWriter(writer, sample_rate)