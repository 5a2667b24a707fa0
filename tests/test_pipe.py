import threading

import pytest

from sipbridge.media.pcm import PCM16Sample
from sipbridge.media.pipe import ClosedPipeError, pipe


def _run(fnc):
    result = {}

    def target():
        try:
            result["value"] = fnc()
        except BaseException as err:
            result["error"] = err

    t = threading.Thread(target=target, daemon=True)
    t.start()
    return t, result


def test_write_then_read_whole():
    r, w = pipe(8000)
    data = PCM16Sample([1, 2, 3, 4, 5])
    t, res = _run(lambda: w.write_sample(data))
    got = r.read_sample(10)
    t.join(5)
    assert not t.is_alive()
    assert "error" not in res
    assert list(got) == [1, 2, 3, 4, 5]
    assert isinstance(got, PCM16Sample)


def test_write_split_over_reads():
    r, w = pipe(8000)
    data = [1, 2, 3, 4, 5]
    t, res = _run(lambda: w.write_sample(data))
    first = r.read_sample(3)
    second = r.read_sample(3)
    t.join(5)
    assert not t.is_alive()
    assert first == [1, 2, 3]
    assert second == [4, 5]


def test_read_after_writer_close_raises_eof():
    r, w = pipe(8000)
    w.close()
    with pytest.raises(EOFError):
        r.read_sample(4)


def test_read_after_writer_error():
    r, w = pipe(8000)
    w.close_with_error(RuntimeError("boom"))
    with pytest.raises(RuntimeError, match="boom"):
        r.read_sample(4)


def test_write_after_reader_close():
    r, w = pipe(8000)
    r.close()
    with pytest.raises(ClosedPipeError):
        w.write_sample([1, 2])


def test_write_after_reader_error():
    r, w = pipe(8000)
    r.close_with_error(ValueError("first"))
    r.close_with_error(ValueError("second"))
    with pytest.raises(ValueError, match="first"):
        w.write_sample([1])


def test_read_on_closed_reader():
    r, w = pipe(8000)
    r.close()
    with pytest.raises(ClosedPipeError):
        r.read_sample(1)


def test_blocked_write_fails_when_reader_closes():
    r, w = pipe(8000)
    t, res = _run(lambda: w.write_sample([1, 2, 3]))
    r.close()
    t.join(5)
    assert not t.is_alive()
    assert isinstance(res.get("error"), ClosedPipeError)


def test_blocked_read_fails_when_writer_closes():
    r, w = pipe(8000)
    t, res = _run(lambda: r.read_sample(3))
    w.close()
    t.join(5)
    assert not t.is_alive()
    assert isinstance(res.get("error"), EOFError)


def test_writer_description():
    _, w = pipe(16000)
    assert str(w) == "PipeWriter"
    assert w.sample_rate() == 16000