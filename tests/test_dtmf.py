import pytest

from sipbridge.media.dtmf import (
    EVENT_DUR,
    EVENT_VOLUME,
    SAMPLE_RATE,
    SDP_NAME,
    Event,
    decode,
    decode_rtp,
    encode,
    tone,
    write,
)
from sipbridge.media.codecs import codecs
from sipbridge.media.pcm import PCM16FrameWriter
from sipbridge.rtp.packet import Packet
from sipbridge.rtp.stream import Buffer, SeqWriter


@pytest.mark.parametrize(
    "data,exp",
    [
        ("0a8a0820", Event(code=10, digit="*", volume=10, end=True, dur=2080)),
        ("040a0140", Event(code=4, digit="4", volume=10, end=False, dur=320)),
    ],
)
def test_dtmf_decode_encode(data, exp):
    raw = bytes.fromhex(data)
    got = decode(raw)
    assert got == exp
    out = encode(got)
    assert len(out) == len(raw)
    assert out.hex() == data


def test_decode_short():
    with pytest.raises(ValueError):
        decode(b"\x01\x02\x03")


def test_encode_digit_overrides_code():
    assert encode(Event(code=0, digit="#", volume=10)) == encode(Event(code=11, volume=10))
    assert decode(encode(Event(digit="#")))[0:0] if False else decode(encode(Event(digit="#"))).code == 11


def test_decode_rtp_requires_marker():
    payload = bytes.fromhex("040a0140")
    assert decode_rtp(Packet(marker=False, payload=payload)) is None
    assert decode_rtp(Packet(marker=True, payload=payload)) == decode(payload)
    assert decode_rtp(Packet(marker=True, payload=b"\x01")) is None


def test_tone():
    assert tone("5") == (5, (770, 1336))
    assert tone("*") == (10, (941, 1209))
    assert tone("x") == (0, ())


def test_codec_registered():
    names = [c.info.sdp_name for c in codecs()]
    assert SDP_NAME in names


@pytest.mark.asyncio
async def test_dtmf_delay():
    start_time = 1242
    buf = Buffer()
    stream = SeqWriter(buf).new_stream(101, SAMPLE_RATE)
    await write(None, stream, start_time, "1w23")

    packet_dur = SAMPLE_RATE // 50
    event_units = int(EVENT_DUR * SAMPLE_RATE)
    exp = []
    state = {"seq": 0, "ts": start_time}

    def expect_digit(code, digit):
        start = state["ts"]
        n = 13
        for i in range(n - 1):
            exp.append((state["seq"], start, i == 0,
                        Event(code=code, digit=digit, volume=EVENT_VOLUME,
                              dur=(i + 1) * packet_dur, end=False)))
            state["ts"] += packet_dur
            state["seq"] += 1
        for _ in range(3):
            exp.append((state["seq"], start, False,
                        Event(code=code, digit=digit, volume=EVENT_VOLUME,
                              dur=n * packet_dur, end=True)))
            state["seq"] += 1
        state["ts"] += packet_dur
        state["ts"] += event_units
        state["ts"] -= packet_dur // 2

    expect_digit(1, "1")
    state["ts"] += SAMPLE_RATE // 2
    expect_digit(2, "2")
    expect_digit(3, "3")

    got = [(p.sequence_number, p.timestamp, p.marker, decode(p.payload)) for p in buf]
    assert got == exp


@pytest.mark.asyncio
async def test_write_audio_tone_then_silence():
    frames = []
    await write(PCM16FrameWriter(frames, 8000), None, 0, "1")
    assert len(frames) == 26
    assert all(len(f) == 160 for f in frames)
    assert all(any(v != 0 for v in f) for f in frames[:13])
    assert all(all(v == 0 for v in f) for f in frames[13:])