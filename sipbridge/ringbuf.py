"""Fixed-size ring buffer that drops the oldest elements when it overflows."""

from __future__ import annotations

from typing import Generic, Iterable, List, Optional, Tuple, TypeVar

T = TypeVar("T")


class RingBuffer(Generic[T]):
    """A circular FIFO buffer of a fixed capacity."""

    def __init__(self, size: int) -> None:
        if size <= 0:
            raise ValueError("ring buffer size must be positive")
        self._buf: List[Optional[T]] = [None] * size
        self._write = 0
        self._read = 0
        self._full = False

    def size(self) -> int:
        """Capacity of the buffer."""
        return len(self._buf)

    def __len__(self) -> int:
        if self._read == self._write:
            return len(self._buf) if self._full else 0
        if self._read < self._write:
            return self._write - self._read
        return self._write - self._read + len(self._buf)

    def _is_empty(self) -> bool:
        return not self._full and self._read == self._write

    def try_peek(self) -> Tuple[Optional[T], bool]:
        """Return ``(first, True)`` without consuming it, or ``(None, False)`` if empty."""
        if self._is_empty():
            return None, False
        return self._buf[self._read], True

    def peek(self, default: Optional[T] = None) -> Optional[T]:
        """Return the first element without consuming it, or ``default`` if empty."""
        value, ok = self.try_peek()
        return value if ok else default

    def try_pop(self) -> Tuple[Optional[T], bool]:
        """Consume and return ``(first, True)``, or ``(None, False)`` if empty."""
        if self._is_empty():
            return None, False
        self._full = False
        value = self._buf[self._read]
        self._read = (self._read + 1) % len(self._buf)
        return value, True

    def pop(self, default: Optional[T] = None) -> Optional[T]:
        """Consume and return the first element, or ``default`` if empty."""
        value, ok = self.try_pop()
        return value if ok else default

    def try_push(self, value: T) -> bool:
        """Append an element; return False if the buffer is full."""
        if self._full:
            return False
        self._store(value)
        return True

    def push(self, value: T) -> None:
        """Append an element, discarding the oldest one if the buffer is full."""
        if self._full:
            self._read = (self._read + 1) % len(self._buf)
        self._store(value)

    def _store(self, value: T) -> None:
        self._buf[self._write] = value
        self._write = (self._write + 1) % len(self._buf)
        self._full = self._write == self._read

    def read(self, count: int) -> List[T]:
        """Consume up to ``count`` elements. Raises EOFError if the buffer is empty."""
        if count <= 0:
            return []
        if len(self) == 0:
            raise EOFError("ring buffer is empty")
        self._full = False
        size = len(self._buf)
        end = self._write if self._read < self._write else size
        out = self._buf[self._read:end][:count]
        self._read = (self._read + len(out)) % size
        remaining = count - len(out)
        if remaining == 0 or self._read == self._write:
            return out  # type: ignore[return-value]
        more = self._buf[self._read:self._write][:remaining]
        self._read = (self._read + len(more)) % size
        return out + more  # type: ignore[return-value]

    def write(self, items: Iterable[T]) -> int:
        """Append elements, discarding the oldest ones when they do not fit.

        Returns the number of elements consumed from ``items``.
        """
        data = list(items)
        if not data:
            return 0
        size = len(self._buf)
        written = 0
        if len(data) > size:
            written += len(data) - size
            data = data[-size:]
        overflow = len(self) + len(data) - size
        if overflow >= 0:
            if len(data) == size:
                self._buf[:] = data
                self._read = 0
                self._write = 0
                self._full = True
                return written + size
            self._read = (self._read + overflow) % size
        for _ in range(2):
            if not data:
                break
            chunk = min(size - self._write, len(data))
            self._buf[self._write:self._write + chunk] = data[:chunk]
            self._write = (self._write + chunk) % size
            data = data[chunk:]
            written += chunk
        self._full = self._write == self._read
        return written