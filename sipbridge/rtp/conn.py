"""UDP connection that sends and receives RTP packets, with a media timeout."""

from __future__ import annotations

import contextlib
import random
import select
import socket
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from sipbridge.rtp.packet import Packet

_MTU = 1500
_POLL_INTERVAL = 0.2


class ListenError(OSError):
    """No UDP port in the requested range could be bound."""

    def __init__(self, message: str = "failed to listen on udp port") -> None:
        super().__init__(message)


def _new_udp_socket(ip: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in ip else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_DGRAM)
    try:
        sock.bind((ip, port))
    except OSError:
        sock.close()
        raise
    return sock


def listen_udp_port_range(port_min: int, port_max: int, ip: Optional[str] = None) -> socket.socket:
    """Bind a UDP socket to a port in ``[port_min, port_max]``, starting at a random one.

    Both bounds zero lets the system pick a port. Raises ListenError if none is free.
    """
    ip = ip or "0.0.0.0"
    if port_min == 0 and port_max == 0:
        return _new_udp_socket(ip, 0)
    lo = port_min or 1
    hi = port_max or 0xFFFF
    if lo > hi:
        raise ListenError()
    start = random.randint(lo, hi)
    port = start
    while True:
        try:
            return _new_udp_socket(ip, port)
        except OSError:
            pass
        port += 1
        if port > hi:
            port = lo
        if port == start:
            raise ListenError()


@dataclass
class ConnConfig:
    """Media timeouts (seconds) and the callback run when media stops."""

    media_timeout_initial: float = 0.0
    media_timeout: float = 0.0
    timeout_callback: Optional[Callable[[], None]] = None


class Conn:
    """An RTP endpoint over UDP that remembers the last peer it heard from."""

    def __init__(self, config: Optional[ConnConfig] = None, sock: Optional[socket.socket] = None) -> None:
        config = config or ConnConfig()
        self._timeout_initial = config.media_timeout_initial if config.media_timeout_initial > 0 else 30.0
        self._timeout = config.media_timeout if config.media_timeout > 0 else 15.0
        self._sock = sock
        self._write_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._closed = threading.Event()
        self._received = threading.Event()
        self._packets = 0
        self._timeout_start: Optional[float] = None
        self._dest: Optional[Tuple[Any, ...]] = None
        self._handler: Optional[Any] = None
        if config.timeout_callback is not None:
            self.enable_timeout(True)
            threading.Thread(
                target=self._watch_timeout, args=(config.timeout_callback,), daemon=True
            ).start()

    def local_addr(self) -> Optional[Tuple[Any, ...]]:
        """Local socket address, or None when not listening."""
        if self._sock is None:
            return None
        try:
            return self._sock.getsockname()
        except OSError:
            return None

    def dest_addr(self) -> Optional[Tuple[Any, ...]]:
        """Address packets are sent to."""
        return self._dest

    def set_dest_addr(self, addr: Optional[Tuple[Any, ...]]) -> None:
        """Set the address packets are sent to."""
        self._dest = addr

    def received(self) -> threading.Event:
        """An event set once at least one RTP packet arrives."""
        return self._received

    def on_rtp(self, handler: Optional[Any]) -> None:
        """Set the handler for incoming packets; None stops delivery."""
        self._handler = handler

    def close(self) -> None:
        """Stop delivering packets and close the socket. Safe to call twice."""
        self.on_rtp(None)
        with self._state_lock:
            if self._closed.is_set():
                return
            self._closed.set()
            if self._sock is not None:
                self._sock.close()

    def listen(self, port_min: int, port_max: int, listen_addr: str = "") -> None:
        """Bind a socket in the port range unless one is already set."""
        if self._sock is not None:
            return
        self._sock = listen_udp_port_range(port_min, port_max, listen_addr or "0.0.0.0")

    def listen_and_serve(self, port_min: int, port_max: int, listen_addr: str = "") -> None:
        """Bind a socket and deliver incoming packets to the handler in the background."""
        self.listen(port_min, port_max, listen_addr)
        threading.Thread(target=self._read_loop, daemon=True).start()

    def _read_loop(self) -> None:
        sock = self._sock
        while not self._closed.is_set():
            try:
                ready, _, _ = select.select([sock], [], [], _POLL_INTERVAL)
                if not ready:
                    continue
                data, src = sock.recvfrom(_MTU)
            except (OSError, ValueError):
                return
            self._dest = src
            try:
                packet = Packet.unmarshal(data)
            except ValueError:
                continue
            with self._state_lock:
                self._packets += 1
                first = self._packets == 1
            if first:
                self._received.set()
            handler = self._handler
            if handler is not None:
                # Handler failures must not stop the receive loop.
                with contextlib.suppress(Exception):
                    handler.handle_rtp(packet)

    def write_rtp(self, packet: Packet) -> None:
        """Send a packet to the destination; does nothing if there is none."""
        addr = self._dest
        if addr is None:
            return
        data = packet.marshal()
        with self._write_lock:
            self._sock.sendto(data, addr)

    def read_rtp(self) -> Tuple[Packet, Tuple[Any, ...]]:
        """Block for one datagram and return the packet with its sender.

        Raises ValueError if the datagram is not a valid RTP packet.
        """
        data, addr = self._sock.recvfrom(_MTU)
        return Packet.unmarshal(data), addr

    def enable_timeout(self, enabled: bool) -> None:
        """Start (or restart) the media timeout clock, or suspend it."""
        self._timeout_start = time.monotonic() if enabled else None

    def _watch_timeout(self, callback: Callable[[], None]) -> None:
        last = 0
        while not self._closed.wait(self._timeout):
            with self._state_lock:
                current = self._packets
            if current != last:
                last = current
                continue
            start = self._timeout_start
            if start is None:
                continue  # temporarily disabled
            if last == 0 and time.monotonic() - start < self._timeout_initial:
                continue
            callback()
            return