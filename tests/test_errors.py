import pytest

from sipbridge.errors import (
    ErrorCode,
    NoConfigError,
    SIPError,
    UnavailableError,
    could_not_parse_config,
)


def test_no_config_error():
    err = NoConfigError()
    assert err.code is ErrorCode.INVALID_ARGUMENT
    assert str(err) == "missing config"
    assert isinstance(err, SIPError)


def test_unavailable_error():
    err = UnavailableError()
    assert err.code is ErrorCode.UNAVAILABLE
    assert str(err) == "cpu exhausted"


def test_could_not_parse_config_wraps_message():
    err = could_not_parse_config(ValueError("boom"))
    assert err.code is ErrorCode.INVALID_ARGUMENT
    assert str(err) == "could not parse config: boom"


def test_errors_can_be_raised_and_caught():
    err = could_not_parse_config(ValueError("bad yaml"))
    with pytest.raises(SIPError, match="could not parse config: bad yaml") as info:
        raise err
    assert info.value is err
    assert info.value.code is ErrorCode.INVALID_ARGUMENT
    assert str(info.value) == "could not parse config: bad yaml"


def test_custom_message():
    err = SIPError(ErrorCode.UNAVAILABLE, "busy")
    assert err.message == "busy"
    assert err.code.value == "unavailable"