import pytest

from sipbridge.media.base import WriteCloser
from sipbridge.media.g711.alaw import (
    ALAW_SDP_NAME,
    ALawDecoder,
    ALawEncoder,
    ALawSample,
    CODEC,
    decode_writer,
    encode_writer,
)
from sipbridge.media.g711.tables import decode_alaw, encode_alaw
from sipbridge.media.pcm import PCM16FrameWriter, PCM16Sample
from sipbridge.rtp.codecs import codec_by_payload_type
from sipbridge.rtp.stream import Buffer, SeqWriter


class _Collector(WriteCloser):
    def __init__(self, rate=8000):
        self.rate = rate
        self.samples = []
        self.closed = False

    def sample_rate(self):
        return self.rate

    def write_sample(self, sample):
        self.samples.append(sample)

    def close(self):
        self.closed = True


PCM = PCM16Sample([0, 100, -100, 1000, -1000, 20000, -20000, 32767, -32768])


def test_sample_encode_decode():
    enc = ALawSample.encode(PCM)
    assert isinstance(enc, ALawSample)
    assert enc == encode_alaw(PCM)
    assert enc.size() == len(PCM)
    assert list(enc.decode()) == list(decode_alaw(enc))


def test_copy_to():
    enc = ALawSample.encode(PCM)
    dst = bytearray(len(enc) + 2)
    assert enc.copy_to(dst) == len(enc)
    assert bytes(dst[:len(enc)]) == enc
    with pytest.raises(ValueError):
        enc.copy_to(bytearray(1))


def test_decoder_writes_pcm():
    frames = []
    dec = decode_writer(PCM16FrameWriter(frames, 8000))
    assert isinstance(dec, ALawDecoder)
    data = encode_alaw(PCM)
    dec.write_sample(ALawSample(data))
    assert [list(f) for f in frames] == [list(decode_alaw(data))]
    assert dec.sample_rate() == 8000
    assert str(dec).startswith("PCMA(decode) -> Frames(8000)")


def test_decoder_resamples_other_rates():
    dec = decode_writer(PCM16FrameWriter([], 16000))
    assert dec.sample_rate() == 8000
    assert "Resample(8000->16000)" in str(dec)


def test_encoder_writes_alaw():
    out = _Collector()
    enc = encode_writer(out)
    assert isinstance(enc, ALawEncoder)
    enc.write_sample(PCM)
    assert out.samples == [encode_alaw(PCM)]
    assert isinstance(out.samples[0], ALawSample)
    enc.close()
    assert out.closed


def test_encoder_rejects_other_rates():
    with pytest.raises(ValueError):
        encode_writer(_Collector(16000))


def test_codec_registered():
    assert codec_by_payload_type(8) is CODEC
    assert CODEC.info.sdp_name == ALAW_SDP_NAME
    assert CODEC.info.rtp_clock_rate == 8000
    assert CODEC.info.file_ext == "g711a"


def test_rtp_round_trip():
    buf = Buffer()
    stream = SeqWriter(buf).new_stream(8, 8000)
    w = CODEC.encode_rtp(stream)
    w.write_sample(PCM)
    assert len(buf) == 1
    assert buf[0].payload == encode_alaw(PCM)

    frames = []
    handler = CODEC.decode_rtp(PCM16FrameWriter(frames, 8000), 8)
    handler.handle_rtp(buf[0])
    assert [list(f) for f in frames] == [list(decode_alaw(encode_alaw(PCM)))]