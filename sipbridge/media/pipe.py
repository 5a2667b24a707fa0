"""Synchronous in-memory pipe that hands media samples from a writer to a reader."""

from __future__ import annotations

import threading
from typing import Any, Optional, Sequence, Tuple

from sipbridge.media.base import WriteCloser


class ClosedPipeError(Exception):
    """Raised on a read or write to a closed pipe."""

    def __init__(self, message: str = "read/write on closed pipe") -> None:
        super().__init__(message)


def _slice(data: Sequence[Any], start: int, end: Optional[int] = None) -> Any:
    part = data[start:end]
    if type(part) is not type(data):
        part = type(data)(part)
    return part


class _Pipe:
    """Shared state of a pipe: one offer at a time, handed over under a condition."""

    def __init__(self) -> None:
        self._write_lock = threading.Lock()
        self._cond = threading.Condition()
        self._offer: Optional[Sequence[Any]] = None
        self._taken: Optional[int] = None
        self._done = False
        self._rerr: Optional[BaseException] = None
        self._werr: Optional[BaseException] = None

    def read(self, count: int) -> Any:
        with self._cond:
            while self._offer is None and not self._done:
                self._cond.wait()
            if self._done:
                raise self._read_close_error()
            offer = self._offer
            chunk = _slice(offer, 0, count)
            self._offer = None
            self._taken = len(chunk)
            self._cond.notify_all()
            return chunk

    def write(self, data: Sequence[Any]) -> None:
        with self._cond:
            if self._done:
                raise self._write_close_error()
        with self._write_lock:
            first = True
            while first or len(data) > 0:
                first = False
                with self._cond:
                    if self._done:
                        raise self._write_close_error()
                    self._offer = data
                    self._taken = None
                    self._cond.notify_all()
                    while self._taken is None and not self._done:
                        self._cond.wait()
                    if self._taken is None:
                        self._offer = None
                        raise self._write_close_error()
                    taken = self._taken
                    self._taken = None
                data = _slice(data, taken)

    def close_read(self, err: Optional[BaseException]) -> None:
        with self._cond:
            if err is None:
                err = ClosedPipeError()
            if self._rerr is None:
                self._rerr = err
            self._done = True
            self._cond.notify_all()

    def close_write(self, err: Optional[BaseException]) -> None:
        with self._cond:
            if err is None:
                err = EOFError("end of pipe")
            if self._werr is None:
                self._werr = err
            self._done = True
            self._cond.notify_all()

    def _read_close_error(self) -> BaseException:
        if self._rerr is None and self._werr is not None:
            return self._werr
        return ClosedPipeError()

    def _write_close_error(self) -> BaseException:
        if self._werr is None and self._rerr is not None:
            return self._rerr
        return ClosedPipeError()


class PipeReader:
    """The read half of a pipe."""

    def __init__(self, shared: _Pipe) -> None:
        self._pipe = shared

    def read_sample(self, count: int) -> Any:
        """Wait for a write and return up to ``count`` of its elements.

        Raises EOFError (or the writer's error) once the writer is closed,
        and ClosedPipeError once this reader is closed.
        """
        return self._pipe.read(count)

    def close(self) -> None:
        """Close the reader; later writes raise ClosedPipeError."""
        self.close_with_error(None)

    def close_with_error(self, err: Optional[BaseException]) -> None:
        """Close the reader; later writes raise ``err``. The first error is kept."""
        self._pipe.close_read(err)


class PipeWriter(WriteCloser):
    """The write half of a pipe."""

    def __init__(self, shared: _Pipe, sample_rate: int) -> None:
        self._pipe = shared
        self._sample_rate = sample_rate

    def __str__(self) -> str:
        return "PipeWriter"

    def sample_rate(self) -> int:
        return self._sample_rate

    def write_sample(self, data: Sequence[Any]) -> None:
        """Block until readers have consumed all of ``data``."""
        self._pipe.write(data)

    def close(self) -> None:
        """Close the writer; later reads raise EOFError."""
        self.close_with_error(None)

    def close_with_error(self, err: Optional[BaseException]) -> None:
        """Close the writer; later reads raise ``err``. The first error is kept."""
        self._pipe.close_write(err)


def pipe(sample_rate: int) -> Tuple[PipeReader, PipeWriter]:
    """Create a synchronous in-memory pipe."""
    shared = _Pipe()
    return PipeReader(shared), PipeWriter(shared, sample_rate)