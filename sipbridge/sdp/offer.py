"""SDP offers and answers for audio calls, and codec negotiation."""

from __future__ import annotations

import ipaddress
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

import sipbridge.media.g711.alaw  # noqa: F401  (registers PCMA)
import sipbridge.media.g711.ulaw  # noqa: F401  (registers PCMU)
from sipbridge.media import dtmf
from sipbridge.media.codecs import Codec, codec_enabled, enabled_codecs, on_register
from sipbridge.rtp.codecs import AudioCodec, codec_by_payload_type
from sipbridge.sdp.session import (
    AddrPort,
    Attribute,
    ConnectionInformation,
    MediaDescription,
    MediaName,
    Origin,
    SessionDescription,
    get_audio,
    get_audio_dest,
)

_DYNAMIC_TYPE = 101
_U64 = (1 << 64) - 1

_codec_by_name: Dict[str, Codec] = {}


def _track_name(codec: Codec) -> None:
    name = codec.info.sdp_name
    if name:
        _codec_by_name[name.lower()] = codec


on_register(_track_name)


def codec_by_name(name: str) -> Optional[Codec]:
    """The enabled codec registered under an SDP name (case-insensitive), or None."""
    codec = _codec_by_name.get(name.lower())
    if codec is None or not codec_enabled(codec):
        return None
    return codec


@dataclass
class CodecInfo:
    """A codec paired with the RTP payload type it uses."""

    type: int
    codec: Optional[Codec]


@dataclass
class MediaDesc:
    """Negotiable media: codecs and the DTMF payload type (0 if none)."""

    codecs: List[CodecInfo] = field(default_factory=list)
    dtmf_type: int = 0


@dataclass
class AudioConfig:
    """The audio codec chosen for a call."""

    codec: AudioCodec
    type: int
    dtmf_type: int = 0


@dataclass
class MediaConfig:
    """Local and remote RTP addresses with the chosen audio setup."""

    local: Optional[AddrPort]
    remote: Optional[AddrPort]
    audio: AudioConfig


@dataclass
class Description:
    """A parsed or generated session with its audio address and media."""

    sdp: SessionDescription
    addr: Optional[AddrPort]
    media: MediaDesc


def offer_codecs() -> List[CodecInfo]:
    """Enabled codecs in offer order, static types first, with payload types assigned."""
    ordered = sorted(
        enabled_codecs(),
        key=lambda c: (not c.info.rtp_is_static, -c.info.priority),
    )
    infos = []
    next_type = _DYNAMIC_TYPE
    for codec in ordered:
        if codec.info.rtp_is_static:
            typ = codec.info.rtp_def_type
        else:
            typ = next_type
            next_type += 1
        infos.append(CodecInfo(type=typ, codec=codec))
    return infos


def _audio_section(port: int, formats: List[str], attrs: List[Attribute]) -> MediaDescription:
    attrs.append(Attribute("ptime", "20"))
    attrs.append(Attribute("sendrecv"))
    return MediaDescription(
        media_name=MediaName(media="audio", port=port, protos=["RTP", "AVP"], formats=formats),
        attributes=attrs,
    )


def offer_media(rtp_listener_port: int) -> Tuple[MediaDesc, MediaDescription]:
    """The media we offer and its SDP audio section."""
    codecs = offer_codecs()
    attrs = []
    formats = []
    dtmf_type = 0
    for info in codecs:
        name = info.codec.info.sdp_name
        if name == dtmf.SDP_NAME:
            dtmf_type = info.type
        formats.append(str(info.type))
        attrs.append(Attribute("rtpmap", f"{info.type} {name}"))
    if dtmf_type > 0:
        attrs.append(Attribute("fmtp", f"{dtmf_type} 0-16"))
    return MediaDesc(codecs=codecs, dtmf_type=dtmf_type), _audio_section(rtp_listener_port, formats, attrs)


def answer_media(rtp_listener_port: int, audio: AudioConfig) -> MediaDescription:
    """The SDP audio section answering with the selected codec."""
    attrs = [Attribute("rtpmap", f"{audio.type} {audio.codec.info.sdp_name}")]
    formats = [str(audio.type)]
    if audio.dtmf_type != 0:
        formats.append(str(audio.dtmf_type))
        attrs.append(Attribute("rtpmap", f"{audio.dtmf_type} {dtmf.SDP_NAME}"))
        attrs.append(Attribute("fmtp", f"{audio.dtmf_type} 0-16"))
    return _audio_section(rtp_listener_port, formats, attrs)


def _session(ip: str, session_id: int, session_version: int, media: MediaDescription) -> SessionDescription:
    return SessionDescription(
        version=0,
        origin=Origin(
            username="-",
            session_id=session_id,
            session_version=session_version,
            network_type="IN",
            address_type="IP4",
            unicast_address=ip,
        ),
        session_name="LiveKit",
        connection_information=ConnectionInformation("IN", "IP4", ip),
        timing=[(0, 0)],
        media_descriptions=[media],
    )


class Offer(Description):
    """A session description offered to the remote side."""

    def answer(self, public_ip: Union[str, ipaddress.IPv4Address, ipaddress.IPv6Address],
               rtp_listener_port: int) -> Tuple["Answer", MediaConfig]:
        """Answer this offer with the best common audio codec."""
        ip = ipaddress.ip_address(str(public_ip))
        audio = select_audio(self.media)
        media = answer_media(rtp_listener_port, audio)
        session_id = self.sdp.origin.session_id
        sdp = _session(str(ip), session_id, (session_id + 2) & _U64, media)
        src = (ip, rtp_listener_port & 0xFFFF)
        answer = Answer(
            sdp=sdp,
            addr=src,
            media=MediaDesc(codecs=[CodecInfo(type=audio.type, codec=audio.codec)],
                            dtmf_type=audio.dtmf_type),
        )
        return answer, MediaConfig(local=src, remote=self.addr, audio=audio)


class Answer(Description):
    """A session description answering an offer."""

    def apply(self, offer: Offer) -> MediaConfig:
        """The media configuration agreed by our offer and this answer."""
        audio = select_audio(self.media)
        return MediaConfig(local=offer.addr, remote=self.addr, audio=audio)


def new_offer(public_ip: Union[str, ipaddress.IPv4Address, ipaddress.IPv6Address],
              rtp_listener_port: int) -> Offer:
    """A new offer of all enabled codecs at the given address and port."""
    ip = ipaddress.ip_address(str(public_ip))
    session_id = random.getrandbits(64)
    media, section = offer_media(rtp_listener_port)
    return Offer(
        sdp=_session(str(ip), session_id, session_id, section),
        addr=(ip, rtp_listener_port & 0xFFFF),
        media=media,
    )


def parse(data: Union[bytes, str]) -> Description:
    """Parse an SDP document with an audio section; raise ValueError otherwise."""
    session = SessionDescription.unmarshal(data)
    audio = get_audio(session)
    if audio is None:
        raise ValueError("no audio in sdp")
    return Description(sdp=session, addr=get_audio_dest(session, audio), media=parse_media(audio))


def parse_offer(data: Union[bytes, str]) -> Offer:
    """Parse a remote offer."""
    d = parse(data)
    return Offer(sdp=d.sdp, addr=d.addr, media=d.media)


def parse_answer(data: Union[bytes, str]) -> Answer:
    """Parse a remote answer."""
    d = parse(data)
    return Answer(sdp=d.sdp, addr=d.addr, media=d.media)


def _audio_codec(codec: Optional[Codec]) -> Optional[AudioCodec]:
    return codec if isinstance(codec, AudioCodec) else None


def parse_media(desc: MediaDescription) -> MediaDesc:
    """Codecs and DTMF type listed in an SDP audio section."""
    out = MediaDesc()
    for attr in desc.attributes:
        if attr.key != "rtpmap":
            continue
        parts = attr.value.split(" ", 1)
        if len(parts) != 2:
            continue
        try:
            typ = int(parts[0]) & 0xFF
        except ValueError:
            continue
        name = parts[1]
        if name == dtmf.SDP_NAME:
            out.dtmf_type = typ
            continue
        out.codecs.append(CodecInfo(type=typ, codec=_audio_codec(codec_by_name(name))))
    for fmt in desc.media_name.formats:
        try:
            typ = int(fmt) & 0xFF
        except ValueError:
            continue
        out.codecs.append(CodecInfo(type=typ, codec=_audio_codec(codec_by_payload_type(typ))))
    return out


def select_audio(desc: MediaDesc) -> AudioConfig:
    """The highest-priority audio codec in ``desc``; raise ValueError if none."""
    best: Optional[CodecInfo] = None
    for info in desc.codecs:
        if not isinstance(info.codec, AudioCodec):
            continue
        if best is None or info.codec.info.priority > best.codec.info.priority:
            best = info
    if best is None:
        raise ValueError("common audio codec not found")
    return AudioConfig(codec=best.codec, type=best.type, dtmf_type=desc.dtmf_type)