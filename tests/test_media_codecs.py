import pytest

from sipbridge.media import codecs as registry
from sipbridge.media.codecs import (
    CodecInfo,
    codec_enabled,
    codec_enabled_by_name,
    codec_set_enabled,
    codecs,
    codecs_set_enabled,
    enabled_codecs,
    new_codec,
    on_register,
    register_codec,
)


@pytest.fixture(autouse=True)
def isolated(monkeypatch):
    monkeypatch.setattr(registry, "_codecs", [])
    monkeypatch.setattr(registry, "_disabled", set())
    monkeypatch.setattr(registry, "_on_register", [])


def test_new_codec_defaults_clock_rate():
    c = new_codec(CodecInfo(sdp_name="X/16000", sample_rate=16000))
    assert c.info.rtp_clock_rate == 16000


def test_new_codec_keeps_explicit_clock_rate():
    c = new_codec(CodecInfo(sdp_name="G722/8000", sample_rate=16000, rtp_clock_rate=8000))
    assert c.info.rtp_clock_rate == 8000
    assert c.info.sample_rate == 16000


@pytest.mark.parametrize("rate", [0, -1])
def test_new_codec_invalid_rate(rate):
    with pytest.raises(ValueError):
        new_codec(CodecInfo(sdp_name="bad", sample_rate=rate))


def test_register_and_list_copy():
    a = new_codec(CodecInfo(sdp_name="A/8000", sample_rate=8000))
    register_codec(a)
    listed = codecs()
    assert listed == [a]
    listed.clear()
    assert codecs() == [a]


def test_disable_is_case_insensitive():
    a = new_codec(CodecInfo(sdp_name="A/8000", sample_rate=8000))
    b = new_codec(CodecInfo(sdp_name="B/8000", sample_rate=8000))
    register_codec(a)
    register_codec(b)
    codec_set_enabled("a/8000", False)
    assert enabled_codecs() == [b]
    assert codec_enabled(a) is False
    assert codec_enabled_by_name("A/8000") is False
    codec_set_enabled("A/8000", True)
    assert enabled_codecs() == [a, b]


def test_register_disabled_codec():
    c = new_codec(CodecInfo(sdp_name="Off/8000", sample_rate=8000, disabled=True))
    register_codec(c)
    assert codecs() == [c]
    assert enabled_codecs() == []
    assert codec_enabled(c) is False


def test_codec_enabled_none():
    assert codec_enabled(None) is False


def test_codecs_set_enabled_mapping():
    codecs_set_enabled({"x/8000": False, "y/8000": True})
    assert codec_enabled_by_name("X/8000") is False
    assert codec_enabled_by_name("Y/8000") is True


def test_on_register_sees_existing_and_future():
    a = new_codec(CodecInfo(sdp_name="A/8000", sample_rate=8000))
    b = new_codec(CodecInfo(sdp_name="B/8000", sample_rate=8000))
    register_codec(a)
    seen = []
    on_register(seen.append)
    assert seen == [a]
    register_codec(b)
    assert seen == [a, b]