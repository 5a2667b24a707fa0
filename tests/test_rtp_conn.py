import socket
import threading
import time

import pytest

from sipbridge.rtp.conn import Conn, ConnConfig, ListenError, listen_udp_port_range
from sipbridge.rtp.packet import Packet

LOCAL = "127.0.0.1"


def _free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
        s.bind((LOCAL, 0))
        return s.getsockname()[1]


def test_listen_any_port():
    sock = listen_udp_port_range(0, 0, LOCAL)
    try:
        host, port = sock.getsockname()
        assert host == LOCAL
        assert port > 0
    finally:
        sock.close()


def test_listen_single_port_range():
    port = _free_port()
    sock = listen_udp_port_range(port, port, LOCAL)
    try:
        assert sock.getsockname()[1] == port
    finally:
        sock.close()


def test_listen_busy_port_raises():
    busy = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    busy.bind((LOCAL, 0))
    port = busy.getsockname()[1]
    try:
        with pytest.raises(ListenError):
            listen_udp_port_range(port, port, LOCAL)
    finally:
        busy.close()


def test_listen_inverted_range_raises():
    with pytest.raises(ListenError):
        listen_udp_port_range(2000, 1000, LOCAL)


def test_local_addr_without_socket():
    conn = Conn()
    assert conn.local_addr() is None
    assert conn.dest_addr() is None


def test_write_without_dest_is_dropped():
    sender = Conn()
    sender.listen(0, 0, LOCAL)
    receiver = Conn()
    receiver.listen(0, 0, LOCAL)
    try:
        sender.write_rtp(Packet(payload=b"x"))
        receiver._sock.settimeout(0.2)
        with pytest.raises(socket.timeout):
            receiver.read_rtp()
    finally:
        sender.close()
        receiver.close()


def test_read_rtp_roundtrip():
    a, b = Conn(), Conn()
    a.listen(0, 0, LOCAL)
    b.listen(0, 0, LOCAL)
    try:
        b.set_dest_addr(a.local_addr())
        sent = Packet(payload_type=8, sequence_number=7, timestamp=160, ssrc=42, payload=b"abc")
        b.write_rtp(sent)
        got, addr = a.read_rtp()
        assert got == sent
        assert addr == b.local_addr()
    finally:
        a.close()
        b.close()


def test_read_rtp_invalid_packet():
    conn = Conn()
    conn.listen(0, 0, LOCAL)
    raw = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        raw.sendto(b"\x80", conn.local_addr())
        with pytest.raises(ValueError):
            conn.read_rtp()
    finally:
        raw.close()
        conn.close()


def test_serve_delivers_to_handler():
    a, b = Conn(), Conn()
    got = []
    done = threading.Event()

    class Collect:
        def handle_rtp(self, packet):
            got.append(packet)
            done.set()

    a.on_rtp(Collect())
    a.listen_and_serve(0, 0, LOCAL)
    b.listen(0, 0, LOCAL)
    try:
        assert not a.received().is_set()
        b.set_dest_addr(a.local_addr())
        b.write_rtp(Packet(payload_type=0, payload=b"hello"))
        assert done.wait(2)
        assert a.received().is_set()
        assert [p.payload for p in got] == [b"hello"]
        assert a.dest_addr() == b.local_addr()
    finally:
        a.close()
        b.close()


def test_close_is_idempotent():
    conn = Conn()
    conn.listen(0, 0, LOCAL)
    conn.close()
    conn.close()
    with pytest.raises(OSError):
        conn.read_rtp()


def test_timeout_callback_fires_without_media():
    fired = threading.Event()
    conn = Conn(ConnConfig(media_timeout_initial=0.05, media_timeout=0.05, timeout_callback=fired.set))
    try:
        assert fired.wait(2)
    finally:
        conn.close()


def test_timeout_disabled_does_not_fire():
    fired = threading.Event()
    conn = Conn(ConnConfig(media_timeout_initial=0.05, media_timeout=0.05, timeout_callback=fired.set))
    conn.enable_timeout(False)
    try:
        time.sleep(0.3)
        assert not fired.is_set()
    finally:
        conn.close()