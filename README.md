# sipbridge

Media building blocks for the audio path of a SIP telephone call: PCM frames
and writers, G.711 A-law and µ-law codecs, RFC 2833 DTMF events and in-band
tones, RTP packets, streams, multiplexing and UDP connections, SDP offers and
answers, sample-rate conversion, and the service configuration file.

## What is inside

| Module | Purpose |
| --- | --- |
| `sipbridge.ringbuf` | `RingBuffer`, a fixed-size ring that drops the oldest items when full |
| `sipbridge.media.codecs` | codec registry: `register_codec`, `enabled_codecs`, `codec_set_enabled`, `on_register` |
| `sipbridge.media.base` | `Writer` / `WriteCloser` base classes, `MultiWriter`, `FileWriter`, `NopCloser`, `dump_writer` |
| `sipbridge.media.pcm` | `PCM16Sample`, `PCM16FrameWriter`, `PCM16BufferWriter`, `PCM16BufferReader`, `SampleWriter`, async `play_audio` |
| `sipbridge.media.pipe` | `pipe`, a synchronous in-memory pipe between a writer and a reader thread |
| `sipbridge.media.resample` | `resample`, `resample_writer`, `ResampleWriter` and the Lagrange `Resampler` |
| `sipbridge.media.switch` | `SwitchWriter`, a writer whose destination can be swapped while running |
| `sipbridge.media.tones` | `generate` sine tones and async `play` of `Tone` sequences (`ETSI_DIAL`, `ETSI_RINGING`, `ETSI_BUSY`) |
| `sipbridge.media.g711.tables` | `encode_alaw`, `decode_alaw`, `encode_ulaw`, `decode_ulaw` |
| `sipbridge.media.g711.alaw` / `.ulaw` | `ALawSample` / `ULawSample`, encoder and decoder writers, registered PCMA / PCMU codecs |
| `sipbridge.media.dtmf` | DTMF `Event`, `encode`, `decode`, `decode_rtp`, `tone` and the async `write` sender |
| `sipbridge.rtp.packet` | `Packet` with `marshal`, `unmarshal` and `clone` |
| `sipbridge.rtp.stream` | `SeqWriter`, `Stream`, `MediaStreamOut`, `MediaStreamIn`, `Buffer`, `HandlerFunc`, `handle_loop` |
| `sipbridge.rtp.mux` | `Mux`, dispatching packets to handlers by payload type |
| `sipbridge.rtp.codecs` | `AudioCodec` and `codec_by_payload_type` |
| `sipbridge.rtp.conn` | `Conn`, an RTP endpoint over UDP with a media timeout, and `listen_udp_port_range` |
| `sipbridge.sdp.session` | `SessionDescription` parsing and serialization, `get_audio`, `get_audio_dest` |
| `sipbridge.sdp.offer` | `new_offer`, `parse_offer`, `parse_answer`, `Offer.answer`, `Answer.apply`, `select_audio` |
| `sipbridge.config` | `Config` loaded from YAML with `new_config`, `parse_duration`, `get_local_ip` |
| `sipbridge.errors` | `SIPError`, `NoConfigError`, `UnavailableError`, `ErrorCode` |
| `sipbridge.audiotest` | `gen_signal` and `find_signal` for checking audio paths |

## Examples

### A ring buffer

```python
from sipbridge.ringbuf import RingBuffer

buf = RingBuffer(5)
buf.write([1, 2, 3, 4, 5, 6, 7])  # the two oldest items are dropped
assert buf.read(6) == [3, 4, 5, 6, 7]
```

`read` raises `EOFError` when the buffer is empty.

### DTMF events

```python
from sipbridge.media import dtmf

event = dtmf.decode(bytes.fromhex("0a8a0820"))
assert event.digit == "*" and event.end and event.dur == 2080
assert dtmf.encode(event) == bytes.fromhex("0a8a0820")
```

`dtmf.write(audio, events, start_ts, digits)` is a coroutine that sends
digits as in-band tones to a PCM writer and as telephone events to an RTP
`Stream`, one 20 ms frame at a time; a `w` in the digits adds a half-second
pause.

```python
import asyncio
from sipbridge.media import dtmf
from sipbridge.rtp.stream import Buffer, SeqWriter

packets = Buffer()
stream = SeqWriter(packets).new_stream(101, dtmf.SAMPLE_RATE)
asyncio.run(dtmf.write(None, stream, 0, "12"))
```

### G.711

```python
from sipbridge.media.g711.tables import decode_ulaw, encode_ulaw

encoded = encode_ulaw([0, 1000, -1000])  # bytes
pcm = decode_ulaw(encoded)               # PCM16Sample
```

### Resampling

```python
from sipbridge.media.pcm import PCM16Sample
from sipbridge.media.resample import resample

frame = PCM16Sample([0] * 320)         # 20 ms at 16 kHz
narrow = resample(8000, frame, 16000)  # at most 160 samples at 8 kHz
```

`resample_writer(writer, rate)` wraps a writer so that it accepts frames at
`rate` and passes them on at the writer's own rate.

### SDP negotiation

```python
from sipbridge.sdp.offer import parse_offer

offer = parse_offer(remote_sdp_bytes)
answer, media_config = offer.answer("192.0.2.10", 20000)
payload = answer.sdp.marshal()
```

The answer picks the highest-priority enabled audio codec that the offer
lists (µ-law, then A-law) and keeps the peer's DTMF payload type.
`select_audio` raises `ValueError` when there is no common codec. Codecs can
be switched off by name with `codec_set_enabled("PCMA/8000", False)`.

### Configuration

```python
from sipbridge.config import new_config

conf = new_config("redis:\n  address: localhost:6379\nmedia_timeout: 15s\n")
conf.init()  # fills in default ports, the node id and the logger
```

`new_config` raises `SIPError` if the YAML cannot be parsed or has no `redis`
section. Credentials are read from the `LIVEKIT_API_KEY`,
`LIVEKIT_API_SECRET` and `LIVEKIT_WS_URL` environment variables unless the
YAML sets them.

## What this package does not do

- It has no SIP signalling: no registrar, no INVITE handling, no call
  server, and no command to start one.
- `Config.redis` is kept as a plain mapping; nothing connects to Redis.
- The only audio codecs are G.711 A-law and µ-law; there is no G.722 or Opus,
  and no recording to container formats.
- `handle_jitter` passes packets straight through; there is no jitter buffer.

## Requirements

Python 3.10 or later, with numpy, PyYAML and psutil. Tests need pytest and
pytest-asyncio (`pip install .[test]`).