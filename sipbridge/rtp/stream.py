"""RTP handlers, sequence-numbered writers and timestamped media streams."""

from __future__ import annotations

import random
import threading
from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

from sipbridge.media.base import WriteCloser
from sipbridge.rtp.packet import Packet

DEF_CLOCK_RATE = 8000
"""Default clock rate at which RTP timestamps increment."""
DEF_FRAME_DUR = 0.02
"""Default duration of an audio frame, in seconds."""
DEF_FRAMES_PER_SEC = 50
"""Default number of audio frames per second."""


@runtime_checkable
class Handler(Protocol):
    """Consumer of RTP packets."""

    def handle_rtp(self, packet: Packet) -> None:
        ...


class HandlerFunc:
    """Adapts a plain function into a Handler."""

    def __init__(self, fnc: Callable[[Packet], None]) -> None:
        self._fnc = fnc

    def handle_rtp(self, packet: Packet) -> None:
        self._fnc(packet)


def handle_loop(reader: Any, handler: Any) -> None:
    """Feed packets from ``reader.read_rtp()`` to ``handler`` until either raises.

    ``read_rtp`` returns a pair whose first item is the packet.
    """
    while True:
        packet, _ = reader.read_rtp()
        handler.handle_rtp(packet)


class Buffer(list):
    """An RTP writer that stores clones of written packets."""

    def write_rtp(self, packet: Packet) -> None:
        self.append(packet.clone())


@dataclass
class Event:
    """One payload to send with its RTP type, timestamp and marker."""

    type: int = 0
    timestamp: int = 0
    payload: bytes = b""
    marker: bool = False


class SeqWriter:
    """RTP writer that assigns sequence numbers and a random SSRC."""

    def __init__(self, writer: Any) -> None:
        self._writer = writer
        self._lock = threading.Lock()
        self._ssrc = random.getrandbits(32)
        self._seq = 0

    def write_event(self, event: Event) -> None:
        """Send an event as the next packet in sequence."""
        with self._lock:
            packet = Packet(
                version=2,
                ssrc=self._ssrc,
                sequence_number=self._seq,
                payload_type=event.type,
                timestamp=event.timestamp,
                payload=bytes(event.payload),
                marker=event.marker,
            )
            self._writer.write_rtp(packet)
            self._seq = (self._seq + 1) & 0xFFFF

    def new_stream(self, typ: int, clock_rate: int) -> "Stream":
        """A media stream with one default frame per packet."""
        return self.new_stream_with_dur(typ, clock_rate // DEF_FRAMES_PER_SEC)

    def new_stream_with_dur(self, typ: int, packet_dur: int) -> "Stream":
        """A media stream advancing ``packet_dur`` timestamp units per packet."""
        return Stream(self, typ, packet_dur)


class Stream:
    """A media stream in RTP that tracks its timestamps."""

    def __init__(self, writer: SeqWriter, typ: int, packet_dur: int) -> None:
        self._writer = writer
        self._packet_dur = packet_dur
        self._lock = threading.Lock()
        self._event = Event(type=typ)

    def _write(self, advance: bool, data: bytes, marker: bool) -> None:
        with self._lock:
            self._event.payload = bytes(data)
            self._event.marker = marker
            self._writer.write_event(self._event)
            if advance:
                self._event.timestamp = (self._event.timestamp + self._packet_dur) & 0xFFFFFFFF

    def write_payload(self, data: bytes, marker: bool) -> None:
        """Send a payload and advance the timestamp."""
        self._write(True, data, marker)

    def write_payload_at_current(self, data: bytes, marker: bool) -> None:
        """Send a payload at the current timestamp."""
        self._write(False, data, marker)

    def delay(self, dur: int) -> None:
        """Advance the timestamp by ``dur`` units."""
        with self._lock:
            self._event.timestamp = (self._event.timestamp + dur) & 0xFFFFFFFF

    def reset_timestamp(self, ts: int) -> None:
        """Set the current timestamp."""
        with self._lock:
            self._event.timestamp = ts & 0xFFFFFFFF

    def current_timestamp(self) -> int:
        """The current timestamp."""
        with self._lock:
            return self._event.timestamp


class MediaStreamOut(WriteCloser):
    """Writes encoded frames as RTP payloads of a stream."""

    def __init__(self, stream: Stream, sample_rate: int) -> None:
        self._stream = stream
        self._sample_rate = sample_rate

    def __str__(self) -> str:
        return f"RTP({self._sample_rate})"

    def sample_rate(self) -> int:
        return self._sample_rate

    def close(self) -> None:
        pass

    def write_sample(self, sample: Any) -> None:
        self._stream.write_payload(bytes(sample), False)


class MediaStreamIn:
    """Handler that passes RTP payloads to a frame writer."""

    def __init__(self, writer: Any, frame_type: Callable[[bytes], Any] = bytes) -> None:
        self.writer = writer
        self._frame_type = frame_type

    def __str__(self) -> str:
        return f"RTP({self.writer.sample_rate()}) -> {self.writer}"

    def handle_rtp(self, packet: Packet) -> None:
        self.writer.write_sample(self._frame_type(packet.payload))