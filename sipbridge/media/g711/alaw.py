"""G.711 A-law (PCMA) frames, encoder and decoder writers."""

from __future__ import annotations

from typing import Iterable

from sipbridge.media.base import WriteCloser
from sipbridge.media.codecs import CodecInfo, register_codec
from sipbridge.media.g711.tables import decode_alaw, encode_alaw
from sipbridge.media.pcm import PCM16Sample
from sipbridge.media.resample import resample_writer
from sipbridge.rtp.codecs import AudioCodec

ALAW_SDP_NAME = "PCMA/8000"
_SAMPLE_RATE = 8000
_PAYLOAD_TYPE_PCMA = 8


class ALawSample(bytes):
    """A frame of A-law encoded audio."""

    def size(self) -> int:
        """Size of the frame in bytes."""
        return len(self)

    def copy_to(self, dst: bytearray) -> int:
        """Copy the frame into ``dst``; raise ValueError if it is too short."""
        if len(dst) < len(self):
            raise ValueError("short buffer")
        dst[:len(self)] = self
        return len(self)

    def decode(self) -> PCM16Sample:
        """Decode into 16-bit linear samples."""
        return decode_alaw(self)

    @classmethod
    def encode(cls, data: Iterable[int]) -> "ALawSample":
        """Encode 16-bit linear samples into an A-law frame."""
        return cls(encode_alaw(data))


class ALawDecoder(WriteCloser):
    """Accepts A-law frames and writes decoded PCM16 to another writer."""

    def __init__(self, writer: WriteCloser) -> None:
        self._writer = writer

    def __str__(self) -> str:
        return f"PCMA(decode) -> {self._writer}"

    def sample_rate(self) -> int:
        return self._writer.sample_rate()

    def write_sample(self, sample: bytes) -> None:
        self._writer.write_sample(decode_alaw(sample))

    def close(self) -> None:
        self._writer.close()


class ALawEncoder(WriteCloser):
    """Accepts PCM16 frames and writes A-law frames to another writer."""

    def __init__(self, writer: WriteCloser) -> None:
        self._writer = writer

    def __str__(self) -> str:
        return f"PCMA(encode) -> {self._writer}"

    def sample_rate(self) -> int:
        return self._writer.sample_rate()

    def write_sample(self, sample: Iterable[int]) -> None:
        self._writer.write_sample(ALawSample(encode_alaw(sample)))

    def close(self) -> None:
        self._writer.close()


def decode_writer(writer: WriteCloser) -> ALawDecoder:
    """An A-law frame writer feeding ``writer``, resampling if needed."""
    if writer.sample_rate() != _SAMPLE_RATE:
        writer = resample_writer(writer, _SAMPLE_RATE)
    return ALawDecoder(writer)


def encode_writer(writer: WriteCloser) -> ALawEncoder:
    """A PCM16 writer encoding into an 8 kHz A-law frame writer."""
    if writer.sample_rate() != _SAMPLE_RATE:
        raise ValueError("unsupported sample rate")
    return ALawEncoder(writer)


CODEC = AudioCodec(
    CodecInfo(
        sdp_name=ALAW_SDP_NAME,
        sample_rate=_SAMPLE_RATE,
        rtp_def_type=_PAYLOAD_TYPE_PCMA,
        rtp_is_static=True,
        priority=-20,
        file_ext="g711a",
    ),
    decode_writer,
    encode_writer,
    ALawSample,
)
register_codec(CODEC)