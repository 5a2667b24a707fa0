"""A PCM16 writer whose destination can be swapped at runtime."""

from __future__ import annotations

import threading
from typing import Any, Optional

from sipbridge.media.base import WriteCloser
from sipbridge.media.resample import resample_writer


class SwitchWriter(WriteCloser):
    """Forwards samples to a replaceable writer, resampling it when needed."""

    def __init__(self, sample_rate: int) -> None:
        if sample_rate <= 0:
            raise ValueError("invalid sample rate")
        self._sample_rate = sample_rate
        self._lock = threading.Lock()
        self._writer: Optional[WriteCloser] = None

    def get(self) -> Optional[WriteCloser]:
        """The current destination writer, or None."""
        with self._lock:
            return self._writer

    def swap(self, writer: Optional[WriteCloser]) -> Optional[WriteCloser]:
        """Set a new destination and return the old one.

        The caller is responsible for closing the returned writer.
        """
        if writer is not None and writer.sample_rate() != self._sample_rate:
            writer = resample_writer(writer, self._sample_rate)
        with self._lock:
            old, self._writer = self._writer, writer
        return old

    def __str__(self) -> str:
        return f"Switch({self._sample_rate}) -> {self.get()}"

    def sample_rate(self) -> int:
        return self._sample_rate

    def close(self) -> None:
        with self._lock:
            old, self._writer = self._writer, None
        if old is not None:
            old.close()

    def write_sample(self, sample: Any) -> None:
        writer = self.get()
        if writer is not None:
            writer.write_sample(sample)