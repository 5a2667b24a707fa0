"""Session Description Protocol documents: parsing, serialization and audio lookup."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

AddrPort = Tuple[Union[ipaddress.IPv4Address, ipaddress.IPv6Address], int]


@dataclass
class Attribute:
    """An ``a=`` line: a key with an optional value."""

    key: str
    value: str = ""

    def __str__(self) -> str:
        return f"{self.key}:{self.value}" if self.value else self.key


@dataclass
class MediaName:
    """The ``m=`` line of a media section."""

    media: str = ""
    port: int = 0
    protos: List[str] = field(default_factory=list)
    formats: List[str] = field(default_factory=list)
    port_range: Optional[int] = None

    def __str__(self) -> str:
        port = str(self.port)
        if self.port_range is not None:
            port += f"/{self.port_range}"
        return " ".join([self.media, port, "/".join(self.protos), *self.formats])


@dataclass
class ConnectionInformation:
    """A ``c=`` line."""

    network_type: str = "IN"
    address_type: str = "IP4"
    address: str = ""

    def __str__(self) -> str:
        return f"{self.network_type} {self.address_type} {self.address}"


@dataclass
class MediaDescription:
    """One media section of a session."""

    media_name: MediaName = field(default_factory=MediaName)
    connection_information: Optional[ConnectionInformation] = None
    attributes: List[Attribute] = field(default_factory=list)


@dataclass
class Origin:
    """The ``o=`` line of a session."""

    username: str = "-"
    session_id: int = 0
    session_version: int = 0
    network_type: str = "IN"
    address_type: str = "IP4"
    unicast_address: str = ""

    def __str__(self) -> str:
        return (f"{self.username} {self.session_id} {self.session_version} "
                f"{self.network_type} {self.address_type} {self.unicast_address}")


@dataclass
class SessionDescription:
    """A whole SDP document."""

    version: int = 0
    origin: Origin = field(default_factory=Origin)
    session_name: str = ""
    connection_information: Optional[ConnectionInformation] = None
    timing: List[Tuple[int, int]] = field(default_factory=list)
    attributes: List[Attribute] = field(default_factory=list)
    media_descriptions: List[MediaDescription] = field(default_factory=list)

    def marshal(self) -> bytes:
        """Serialize into the SDP text format with CRLF line endings."""
        lines = [f"v={self.version}", f"o={self.origin}", f"s={self.session_name}"]
        if self.connection_information is not None:
            lines.append(f"c={self.connection_information}")
        lines.extend(f"t={start} {stop}" for start, stop in self.timing)
        lines.extend(f"a={attr}" for attr in self.attributes)
        for media in self.media_descriptions:
            lines.append(f"m={media.media_name}")
            if media.connection_information is not None:
                lines.append(f"c={media.connection_information}")
            lines.extend(f"a={attr}" for attr in media.attributes)
        return ("\r\n".join(lines) + "\r\n").encode()

    @classmethod
    def unmarshal(cls, data: Union[bytes, str]) -> "SessionDescription":
        """Parse an SDP document; raise ValueError if it is malformed."""
        text = data.decode() if isinstance(data, (bytes, bytearray)) else data
        lines = [line.rstrip("\r") for line in text.split("\n")]
        lines = [line for line in lines if line]
        if not lines or not lines[0].startswith("v="):
            raise ValueError("sdp: missing version line")
        session = cls()
        media: Optional[MediaDescription] = None
        for line in lines:
            if len(line) < 2 or line[1] != "=":
                raise ValueError(f"sdp: invalid line {line!r}")
            kind, value = line[0], line[2:]
            if kind == "v":
                session.version = _parse_int(value, "version")
            elif kind == "o":
                session.origin = _parse_origin(value)
            elif kind == "s":
                session.session_name = value
            elif kind == "c":
                conn = _parse_connection(value)
                if media is None:
                    session.connection_information = conn
                else:
                    media.connection_information = conn
            elif kind == "t":
                parts = value.split()
                if len(parts) != 2:
                    raise ValueError(f"sdp: invalid timing {value!r}")
                session.timing.append((_parse_int(parts[0], "timing"), _parse_int(parts[1], "timing")))
            elif kind == "a":
                key, _, attr_value = value.partition(":")
                attr = Attribute(key, attr_value)
                (session.attributes if media is None else media.attributes).append(attr)
            elif kind == "m":
                media = MediaDescription(media_name=_parse_media_name(value))
                session.media_descriptions.append(media)
        return session


def _parse_int(value: str, what: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"sdp: invalid {what} {value!r}") from None


def _parse_origin(value: str) -> Origin:
    parts = value.split()
    if len(parts) != 6:
        raise ValueError(f"sdp: invalid origin {value!r}")
    return Origin(
        username=parts[0],
        session_id=_parse_int(parts[1], "session id"),
        session_version=_parse_int(parts[2], "session version"),
        network_type=parts[3],
        address_type=parts[4],
        unicast_address=parts[5],
    )


def _parse_connection(value: str) -> ConnectionInformation:
    parts = value.split()
    if len(parts) != 3:
        raise ValueError(f"sdp: invalid connection information {value!r}")
    return ConnectionInformation(parts[0], parts[1], parts[2])


def _parse_media_name(value: str) -> MediaName:
    parts = value.split()
    if len(parts) < 3:
        raise ValueError(f"sdp: invalid media line {value!r}")
    port_text, _, range_text = parts[1].partition("/")
    return MediaName(
        media=parts[0],
        port=_parse_int(port_text, "port"),
        port_range=_parse_int(range_text, "port range") if range_text else None,
        protos=parts[2].split("/"),
        formats=parts[3:],
    )


def get_audio(session: SessionDescription) -> Optional[MediaDescription]:
    """The first audio section of a session, or None."""
    for media in session.media_descriptions:
        if media.media_name.media == "audio":
            return media
    return None


def get_audio_dest(session: Optional[SessionDescription],
                   audio: Optional[MediaDescription]) -> Optional[AddrPort]:
    """Address and port the remote side receives audio on, or None if unknown."""
    if audio is None or session is None:
        return None
    conn = session.connection_information
    if conn is None or conn.network_type != "IN":
        return None
    try:
        ip = ipaddress.ip_address(conn.address.split("/", 1)[0])
    except ValueError:
        return None
    return ip, audio.media_name.port & 0xFFFF