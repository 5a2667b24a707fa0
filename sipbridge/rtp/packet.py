"""RTP packet encoding and decoding."""

from __future__ import annotations

import dataclasses
import struct
from dataclasses import dataclass, field
from typing import List

_HEADER = struct.Struct(">BBHII")
_EXT_HEADER = struct.Struct(">HH")


@dataclass
class Packet:
    """An RTP packet: header fields plus payload."""

    version: int = 2
    marker: bool = False
    payload_type: int = 0
    sequence_number: int = 0
    timestamp: int = 0
    ssrc: int = 0
    csrc: List[int] = field(default_factory=list)
    extension: bool = False
    extension_profile: int = 0
    extension_payload: bytes = b""
    payload: bytes = b""
    padding_size: int = 0

    def marshal(self) -> bytes:
        """Serialize the packet into wire format."""
        if len(self.csrc) > 15:
            raise ValueError("too many CSRC identifiers")
        if self.extension and len(self.extension_payload) % 4:
            raise ValueError("extension payload must be a multiple of 4 bytes")
        if not 0 <= self.padding_size <= 255:
            raise ValueError("invalid padding size")
        b0 = ((self.version & 0x3) << 6) | len(self.csrc)
        if self.padding_size:
            b0 |= 1 << 5
        if self.extension:
            b0 |= 1 << 4
        b1 = (0x80 if self.marker else 0) | (self.payload_type & 0x7F)
        try:
            parts = [_HEADER.pack(b0, b1, self.sequence_number, self.timestamp, self.ssrc)]
            parts.extend(struct.pack(">I", c) for c in self.csrc)
            if self.extension:
                parts.append(_EXT_HEADER.pack(self.extension_profile,
                                              len(self.extension_payload) // 4))
                parts.append(bytes(self.extension_payload))
        except struct.error as err:
            raise ValueError(f"invalid RTP header field: {err}") from err
        parts.append(bytes(self.payload))
        if self.padding_size:
            parts.append(bytes(self.padding_size - 1) + bytes([self.padding_size]))
        return b"".join(parts)

    @classmethod
    def unmarshal(cls, data: bytes) -> "Packet":
        """Parse a packet from wire format; raise ValueError if malformed."""
        data = bytes(data)
        if len(data) < _HEADER.size:
            raise ValueError("RTP header too short")
        b0, b1, seq, ts, ssrc = _HEADER.unpack_from(data)
        cc = b0 & 0x0F
        offset = _HEADER.size
        if len(data) < offset + cc * 4:
            raise ValueError("RTP header too short for CSRC list")
        csrc = list(struct.unpack_from(f">{cc}I", data, offset))
        offset += cc * 4
        extension = bool(b0 & 0x10)
        profile = 0
        ext_payload = b""
        if extension:
            if len(data) < offset + _EXT_HEADER.size:
                raise ValueError("RTP header too short for extension")
            profile, words = _EXT_HEADER.unpack_from(data, offset)
            offset += _EXT_HEADER.size
            if len(data) < offset + words * 4:
                raise ValueError("RTP extension exceeds packet size")
            ext_payload = data[offset:offset + words * 4]
            offset += words * 4
        end = len(data)
        padding = 0
        if b0 & 0x20:
            if end <= offset:
                raise ValueError("RTP padding without payload")
            padding = data[-1]
            if padding == 0 or padding > end - offset:
                raise ValueError("invalid RTP padding")
            end -= padding
        return cls(
            version=b0 >> 6,
            marker=bool(b1 & 0x80),
            payload_type=b1 & 0x7F,
            sequence_number=seq,
            timestamp=ts,
            ssrc=ssrc,
            csrc=csrc,
            extension=extension,
            extension_profile=profile,
            extension_payload=ext_payload,
            payload=data[offset:end],
            padding_size=padding,
        )

    def clone(self) -> "Packet":
        """An independent copy of the packet."""
        return dataclasses.replace(self, csrc=list(self.csrc))