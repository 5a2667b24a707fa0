"""G.711 mu-law (PCMU) frames, encoder and decoder writers."""

from __future__ import annotations

from typing import Iterable

from sipbridge.media.base import WriteCloser
from sipbridge.media.codecs import CodecInfo, register_codec
from sipbridge.media.g711.tables import decode_ulaw, encode_ulaw
from sipbridge.media.pcm import PCM16Sample
from sipbridge.media.resample import resample_writer
from sipbridge.rtp.codecs import AudioCodec

ULAW_SDP_NAME = "PCMU/8000"
_SAMPLE_RATE = 8000
_PAYLOAD_TYPE_PCMU = 0


class ULawSample(bytes):
    """A frame of mu-law encoded audio."""

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
        return decode_ulaw(self)

    @classmethod
    def encode(cls, data: Iterable[int]) -> "ULawSample":
        """Encode 16-bit linear samples into a mu-law frame."""
        return cls(encode_ulaw(data))


class ULawDecoder(WriteCloser):
    """Accepts mu-law frames and writes decoded PCM16 to another writer."""

    def __init__(self, writer: WriteCloser) -> None:
        self._writer = writer

    def __str__(self) -> str:
        return f"PCMU(decode) -> {self._writer}"

    def sample_rate(self) -> int:
        return self._writer.sample_rate()

    def write_sample(self, sample: bytes) -> None:
        self._writer.write_sample(decode_ulaw(sample))

    def close(self) -> None:
        self._writer.close()


class ULawEncoder(WriteCloser):
    """Accepts PCM16 frames and writes mu-law frames to another writer."""

    def __init__(self, writer: WriteCloser) -> None:
        self._writer = writer

    def __str__(self) -> str:
        return f"PCMU(encode) -> {self._writer}"

    def sample_rate(self) -> int:
        return self._writer.sample_rate()

    def write_sample(self, sample: Iterable[int]) -> None:
        self._writer.write_sample(ULawSample(encode_ulaw(sample)))

    def close(self) -> None:
        self._writer.close()


def decode_writer(writer: WriteCloser) -> ULawDecoder:
    """A mu-law frame writer feeding ``writer``, resampling if needed."""
    if writer.sample_rate() != _SAMPLE_RATE:
        writer = resample_writer(writer, _SAMPLE_RATE)
    return ULawDecoder(writer)


def encode_writer(writer: WriteCloser) -> ULawEncoder:
    """A PCM16 writer encoding into an 8 kHz mu-law frame writer."""
    if writer.sample_rate() != _SAMPLE_RATE:
        raise ValueError("unsupported sample rate")
    return ULawEncoder(writer)


CODEC = AudioCodec(
    CodecInfo(
        sdp_name=ULAW_SDP_NAME,
        sample_rate=_SAMPLE_RATE,
        rtp_def_type=_PAYLOAD_TYPE_PCMU,
        rtp_is_static=True,
        priority=-10,
        file_ext="g711u",
    ),
    decode_writer,
    encode_writer,
    ULawSample,
)
register_codec(CODEC)