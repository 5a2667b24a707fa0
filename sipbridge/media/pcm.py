"""Signed 16-bit PCM samples and simple writers and readers for them."""

from __future__ import annotations

import array
import asyncio
import sys
import threading
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence

from sipbridge.media.base import WriteCloser

_BIG_ENDIAN = sys.byteorder == "big"


class PCM16Sample(array.array):
    """A frame of mono signed 16-bit PCM audio."""

    def __new__(cls, values: Iterable[int] = ()) -> "PCM16Sample":
        return super().__new__(cls, "h", values)

    def size(self) -> int:
        """Size of the frame in bytes."""
        return len(self) * 2

    def to_bytes(self) -> bytes:
        """Little-endian byte representation."""
        data = array.array("h", self)
        if _BIG_ENDIAN:
            data.byteswap()
        return data.tobytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> "PCM16Sample":
        """Parse little-endian 16-bit samples."""
        if len(data) % 2:
            raise ValueError("PCM16 data must have an even number of bytes")
        out = cls()
        out.frombytes(data)
        if _BIG_ENDIAN:
            out.byteswap()
        return out

    def copy_to(self, dst: bytearray) -> int:
        """Copy little-endian bytes into ``dst``; raise ValueError if it is too short."""
        size = self.size()
        if len(dst) < size:
            raise ValueError("short buffer")
        dst[:size] = self.to_bytes()
        return size

    def clear(self) -> None:
        """Set every sample to silence, keeping the length."""
        self[:] = array.array("h", [0]) * len(self)

    def write_sample(self, data: Iterable[int]) -> None:
        """Append samples to this frame."""
        self.extend(data)


async def play_audio(writer: Any, sample_dur: float, frames: Sequence[Any]) -> None:
    """Write frames to ``writer``, one every ``sample_dur`` seconds.

    The frames are assumed to be at the writer's sample rate already.
    """
    if not frames:
        return
    loop = asyncio.get_running_loop()
    start = loop.time()
    for i, frame in enumerate(frames, 1):
        await asyncio.sleep(max(0.0, start + i * sample_dur - loop.time()))
        writer.write_sample(frame)


class PCM16FrameWriter(WriteCloser):
    """Collects copies of written frames into a list."""

    def __init__(self, frames: List[PCM16Sample], sample_rate: int) -> None:
        self._frames = frames
        self._sample_rate = sample_rate

    def __str__(self) -> str:
        return f"Frames({self._sample_rate})"

    def sample_rate(self) -> int:
        return self._sample_rate

    def write_sample(self, data: Iterable[int]) -> None:
        self._frames.append(PCM16Sample(data))

    def close(self) -> None:
        pass


class PCM16BufferWriter(WriteCloser):
    """Appends written samples to one PCM buffer until closed."""

    def __init__(self, buf: PCM16Sample, sample_rate: int) -> None:
        if buf is None:
            raise ValueError("buffer must be set")
        self._lock = threading.Lock()
        self._buf: Optional[PCM16Sample] = buf
        self._sample_rate = sample_rate

    def __str__(self) -> str:
        return f"Buffer({self._sample_rate})"

    def sample_rate(self) -> int:
        return self._sample_rate

    def write_sample(self, data: Iterable[int]) -> None:
        with self._lock:
            if self._buf is not None:
                self._buf.extend(data)

    def close(self) -> None:
        with self._lock:
            self._buf = None


class PCM16BufferReader:
    """Reads samples out of an in-memory PCM buffer."""

    def __init__(self, buf: Iterable[int]) -> None:
        self._buf = PCM16Sample(buf)

    def read_sample(self, count: int) -> PCM16Sample:
        """Consume and return up to ``count`` samples; empty when drained."""
        out = PCM16Sample(self._buf[:count])
        del self._buf[:count]
        return out


@dataclass(frozen=True)
class MediaSample:
    """An encoded media payload with its duration in seconds."""

    data: bytes
    duration: float


class SampleWriter(WriteCloser):
    """Adapts byte frames into ``MediaSample`` objects for a sample sink."""

    def __init__(self, writer: Any, sample_rate: int, sample_dur: float) -> None:
        self._writer = writer
        self._sample_rate = sample_rate
        self._sample_dur = sample_dur

    def __str__(self) -> str:
        return f"LKSamples({self._sample_rate})"

    def sample_rate(self) -> int:
        return self._sample_rate

    def write_sample(self, data: bytes) -> None:
        self._writer.write_sample(MediaSample(bytes(data), self._sample_dur))

    def close(self) -> None:
        pass