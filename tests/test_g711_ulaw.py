import pytest

from sipbridge.media.base import WriteCloser
from sipbridge.media.g711.tables import decode_ulaw, encode_ulaw
from sipbridge.media.g711.ulaw import (
    CODEC,
    ULAW_SDP_NAME,
    ULawDecoder,
    ULawEncoder,
    ULawSample,
    decode_writer,
    encode_writer,
)
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


PCM = PCM16Sample([0, 50, -50, 700, -700, 15000, -15000, 32767, -32768])


def test_sample_encode_decode():
    enc = ULawSample.encode(PCM)
    assert isinstance(enc, ULawSample)
    assert enc == encode_ulaw(PCM)
    assert enc.size() == len(PCM)
    assert list(enc.decode()) == list(decode_ulaw(enc))


def test_zero_sample():
    assert ULawSample.encode([0]) == b"\xff"
    assert list(ULawSample(b"\xff").decode()) == [0]


def test_copy_to():
    enc = ULawSample.encode(PCM)
    dst = bytearray(len(enc))
    assert enc.copy_to(dst) == len(enc)
    assert bytes(dst) == enc
    with pytest.raises(ValueError):
        enc.copy_to(bytearray(len(enc) - 1))


def test_decoder_writes_pcm():
    frames = []
    dec = decode_writer(PCM16FrameWriter(frames, 8000))
    assert isinstance(dec, ULawDecoder)
    data = encode_ulaw(PCM)
    dec.write_sample(ULawSample(data))
    assert [list(f) for f in frames] == [list(decode_ulaw(data))]
    assert str(dec).startswith("PCMU(decode) -> Frames(8000)")


def test_decoder_close_closes_target():
    out = _Collector()
    dec = ULawDecoder(out)
    dec.close()
    assert out.closed


def test_decoder_resamples_other_rates():
    dec = decode_writer(PCM16FrameWriter([], 16000))
    assert dec.sample_rate() == 8000
    assert "Resample(8000->16000)" in str(dec)


def test_encoder_writes_ulaw():
    out = _Collector()
    enc = encode_writer(out)
    assert isinstance(enc, ULawEncoder)
    enc.write_sample(PCM)
    assert out.samples == [encode_ulaw(PCM)]
    assert enc.sample_rate() == 8000


def test_encoder_rejects_other_rates():
    with pytest.raises(ValueError):
        encode_writer(_Collector(48000))


def test_codec_registered():
    assert codec_by_payload_type(0) is CODEC
    assert CODEC.info.sdp_name == ULAW_SDP_NAME
    assert CODEC.info.priority == -10


def test_rtp_round_trip():
    buf = Buffer()
    stream = SeqWriter(buf).new_stream(0, 8000)
    CODEC.encode_rtp(stream).write_sample(PCM)
    assert buf[0].payload == encode_ulaw(PCM)
    assert buf[0].payload_type == 0

    frames = []
    CODEC.decode_rtp(PCM16FrameWriter(frames, 8000), 0).handle_rtp(buf[0])
    assert [list(f) for f in frames] == [list(decode_ulaw(encode_ulaw(PCM)))]