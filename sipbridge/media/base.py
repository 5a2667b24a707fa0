"""Writer interfaces for media frames and general purpose writers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Callable, Protocol, runtime_checkable


@runtime_checkable
class Frame(Protocol):
    """A media frame that can be serialized into bytes."""

    def size(self) -> int:
        """Size of the frame in bytes."""
        ...

    def copy_to(self, dst: bytearray) -> int:
        """Copy the frame into ``dst``; raise ValueError if it is too short."""
        ...


class Writer(ABC):
    """Consumer of media samples at a fixed sample rate."""

    @abstractmethod
    def sample_rate(self) -> int:
        """Sample rate this writer expects."""

    @abstractmethod
    def write_sample(self, sample: Any) -> None:
        """Consume one sample (frame)."""


class WriteCloser(Writer):
    """A writer that must be closed when done."""

    @abstractmethod
    def close(self) -> None:
        """Release resources held by the writer."""

    def __enter__(self) -> "WriteCloser":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


Processor = Callable[[WriteCloser], WriteCloser]


class NopCloser(WriteCloser):
    """Wraps a writer with a close that does nothing."""

    def __init__(self, writer: Writer) -> None:
        self._writer = writer

    def sample_rate(self) -> int:
        return self._writer.sample_rate()

    def write_sample(self, sample: Any) -> None:
        self._writer.write_sample(sample)

    def close(self) -> None:
        pass

    def __str__(self) -> str:
        return str(self._writer)


class MultiWriter(list, WriteCloser):
    """Writes every sample to each writer in the list."""

    def __str__(self) -> str:
        parts = [f"MultiWriter({len(self)},{self.sample_rate()})"]
        parts.extend(f"; ${i}-> {w}" for i, w in enumerate(self, 1))
        return "".join(parts)

    def sample_rate(self) -> int:
        if not self:
            return 0
        return self[0].sample_rate()

    def write_sample(self, sample: Any) -> None:
        last = None
        for w in self:
            try:
                w.write_sample(sample)
            except Exception as err:  # every writer gets the sample; report the last failure
                last = err
        if last is not None:
            raise last

    def close(self) -> None:
        last = None
        for w in self:
            try:
                w.close()
            except Exception as err:
                last = err
        if last is not None:
            raise last


class FileWriter(WriteCloser):
    """Writes raw frame bytes into a binary file."""

    def __init__(self, file: BinaryIO, sample_rate: int) -> None:
        self._file = file
        self._sample_rate = sample_rate

    def __str__(self) -> str:
        return f"RawFile({self._sample_rate})"

    def sample_rate(self) -> int:
        return self._sample_rate

    def write_sample(self, sample: Frame) -> None:
        buf = bytearray(sample.size())
        n = sample.copy_to(buf)
        self._file.write(bytes(buf[:n]))

    def close(self) -> None:
        try:
            self._file.flush()
        except Exception:
            self._file.close()
            raise
        self._file.close()


def dump_writer(ext: str, name: str, writer: WriteCloser) -> WriteCloser:
    """Tee ``writer`` into a file named ``<name>_ar<rate>.<ext>``."""
    rate = writer.sample_rate()
    file = open(f"{name}_ar{rate}.{ext}", "wb")
    return MultiWriter([writer, FileWriter(file, rate)])


def dump_writer_pcm16(name: str, writer: WriteCloser) -> WriteCloser:
    """Tee a PCM16 writer into a raw ``s16le`` file."""
    return dump_writer("s16le", name, writer)