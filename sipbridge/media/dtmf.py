"""DTMF telephone events (RFC 2833) and in-band DTMF tones."""

from __future__ import annotations

import asyncio
import struct
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from sipbridge.media.codecs import CodecInfo, new_codec, register_codec
from sipbridge.media.pcm import PCM16Sample
from sipbridge.media.tones import generate
from sipbridge.rtp.packet import Packet
from sipbridge.rtp.stream import DEF_FRAME_DUR, DEF_FRAMES_PER_SEC

SDP_NAME = "telephone-event/8000"
SAMPLE_RATE = 8000

register_codec(new_codec(CodecInfo(
    sdp_name=SDP_NAME,
    sample_rate=SAMPLE_RATE,
    rtp_is_static=False,
    priority=-100,  # last in SDP
)))

EVENT_VOLUME = 10
TONE_VOLUME = 32767 // 2
EVENT_DUR = 0.25
"""Duration of a DTMF tone in seconds; the tone is followed by an equal pause."""
DELAY_DUR = 0.5
"""Pause for each 'w' character in a digit string, in seconds."""

_US_PER_SEC = 1_000_000
_US_PER_TS = _US_PER_SEC // SAMPLE_RATE

_DTMF_LOW = (697, 770, 852, 941)
_DTMF_HIGH = (1209, 1336, 1477, 1633)

# Keypad layout: rows are low frequencies, columns high frequencies.
_KEYPAD = ("123a", "456b", "789c", "*0#d")
_EVENT_TO_CHAR = "0123456789*#abcd"
_CHAR_TO_EVENT: Dict[str, int] = {ch: code for code, ch in enumerate(_EVENT_TO_CHAR)}
_EVENT_FREQ: Dict[int, Tuple[int, int]] = {
    _CHAR_TO_EVENT[ch]: (low, high)
    for row, low in zip(_KEYPAD, _DTMF_LOW)
    for ch, high in zip(row, _DTMF_HIGH)
}

_EVENT = struct.Struct(">BBH")


def tone(digit: str) -> Tuple[int, Tuple[int, ...]]:
    """Event code and tone frequencies for a digit, or ``(0, ())`` if unknown."""
    code = _CHAR_TO_EVENT.get(digit)
    if code is None:
        return 0, ()
    return code, _EVENT_FREQ[code]


@dataclass(frozen=True)
class Event:
    """A telephone event; ``volume`` is in dBm0 without sign, ``dur`` in timestamp units."""

    code: int = 0
    digit: str = ""
    volume: int = 0
    dur: int = 0
    end: bool = False


def decode(data: bytes) -> Event:
    """Parse a 4-byte telephone event payload."""
    if len(data) < 4:
        raise ValueError("telephone event payload too short")
    code, flags, dur = _EVENT.unpack_from(bytes(data))
    digit = _EVENT_TO_CHAR[code] if code < len(_EVENT_TO_CHAR) else ""
    return Event(code=code, digit=digit, volume=flags & 0x3F, dur=dur, end=bool(flags >> 7))


def decode_rtp(packet: Packet) -> Optional[Event]:
    """The event in a marked RTP packet, or None."""
    if not packet.marker:
        return None
    try:
        return decode(packet.payload)
    except ValueError:
        return None


def encode(event: Event) -> bytes:
    """Serialize an event; a set digit takes precedence over the code."""
    code = _CHAR_TO_EVENT.get(event.digit, 0) if event.digit else event.code
    flags = event.volume & 0x3F
    if event.end:
        flags |= 0x80
    return _EVENT.pack(code & 0xFF, flags, event.dur & 0xFFFF)


async def write(audio: Any, events: Any, start_ts: int, digits: str) -> None:
    """Send DTMF digits as in-band tones to ``audio`` and as RTP events to ``events``.

    Either destination may be None. The character 'w' adds a 0.5 second pause.
    """
    step = round(DEF_FRAME_DUR * _US_PER_SEC)
    event_dur = round(EVENT_DUR * _US_PER_SEC)
    delay_dur = round(DELAY_DUR * _US_PER_SEC)
    count = audio.sample_rate() // DEF_FRAMES_PER_SEC if audio is not None else 0

    code = 0xFF
    freq: Tuple[int, ...] = ()
    ts = 0
    next_delay = 0
    total_dur = 0
    remaining = 0
    pending = iter(digits)

    def set_delay(dt: int) -> None:
        nonlocal code, freq, remaining, total_dur, next_delay
        code, freq = 0xFF, ()
        remaining = dt
        total_dur = dt
        next_delay = 0
        if events is not None:
            events.delay(dt // _US_PER_TS)

    if events is not None:
        events.reset_timestamp(start_ts)

    loop = asyncio.get_running_loop()
    start = loop.time()
    tick = 0
    while True:
        tick += 1
        await asyncio.sleep(max(0.0, start + tick * DEF_FRAME_DUR - loop.time()))
        if remaining <= 0:
            if next_delay:
                set_delay(next_delay)
            else:
                digit = next(pending, None)
                if digit is None:
                    return
                if digit == "w":
                    set_delay(delay_dur)
                else:
                    code, freq = tone(digit)
                    remaining = event_dur
                    next_delay = event_dur
                    total_dur = remaining
        if audio is not None:
            if freq:
                frame = generate(count, ts / _US_PER_SEC, DEF_FRAME_DUR, TONE_VOLUME, freq)
            else:
                frame = PCM16Sample([0] * count)
            audio.write_sample(frame)
        if events is not None and freq:
            dur = step + total_dur - remaining
            first = total_dur == remaining
            end = remaining - step <= 0
            payload = encode(Event(code=code, volume=EVENT_VOLUME,
                                   dur=dur // _US_PER_TS, end=end))
            # All packets of one digit share a timestamp.
            events.write_payload_at_current(payload, first)
            if end:
                # The end event is repeated three times.
                events.write_payload_at_current(payload, first)
                events.write_payload_at_current(payload, first)
                events.delay(total_dur // _US_PER_TS)
        remaining -= step
        ts += step