"""Dispatches RTP packets to handlers by payload type."""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional

from sipbridge.rtp.packet import Packet

_FIRST_DYNAMIC = 96


class Mux:
    """Selects an RTP handler based on the packet's payload type."""

    def __init__(self, default: Optional[Any] = None) -> None:
        self._lock = threading.Lock()
        self._static: List[Optional[Any]] = [None] * _FIRST_DYNAMIC
        self._dynamic: Dict[int, Any] = {}
        self._default = default

    def handle_rtp(self, packet: Packet) -> None:
        """Pass the packet to its registered handler, or the default one.

        Packets with no handler at all are dropped.
        """
        typ = packet.payload_type
        with self._lock:
            if typ < _FIRST_DYNAMIC:
                handler = self._static[typ]
            else:
                handler = self._dynamic.get(typ)
            if handler is None:
                handler = self._default
        if handler is not None:
            handler.handle_rtp(packet)

    def set_default(self, handler: Optional[Any]) -> None:
        """Set the handler for unregistered types; None drops them."""
        with self._lock:
            self._default = handler

    def register(self, typ: int, handler: Optional[Any]) -> None:
        """Register a handler for a payload type; None removes it."""
        with self._lock:
            if typ < _FIRST_DYNAMIC:
                self._static[typ] = handler
            elif handler is None:
                self._dynamic.pop(typ, None)
            else:
                self._dynamic[typ] = handler