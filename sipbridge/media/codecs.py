"""Global codec registry with per-name enable switches."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set


@dataclass(frozen=True)
class CodecInfo:
    """Static description of a media codec."""

    sdp_name: str
    sample_rate: int
    rtp_clock_rate: int = 0
    rtp_def_type: int = 0
    rtp_is_static: bool = False
    priority: int = 0
    disabled: bool = False
    file_ext: str = ""


class Codec:
    """A codec known only by its description."""

    def __init__(self, info: CodecInfo) -> None:
        self._info = info

    @property
    def info(self) -> CodecInfo:
        return self._info

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._info.sdp_name!r})"


_disabled: Set[str] = set()
_codecs: List[Codec] = []
_on_register: List[Callable[[Codec], None]] = []


def codec_set_enabled(name: str, enabled: bool) -> None:
    """Enable or disable a codec by its SDP name (case-insensitive)."""
    name = name.lower()
    if enabled:
        _disabled.discard(name)
    else:
        _disabled.add(name)


def codecs_set_enabled(codecs: Dict[str, bool]) -> None:
    """Apply a mapping of SDP names to enabled flags."""
    for name, enabled in codecs.items():
        codec_set_enabled(name, enabled)


def codec_enabled(codec: Optional[Codec]) -> bool:
    """Whether a codec is present and enabled."""
    if codec is None:
        return False
    return codec_enabled_by_name(codec.info.sdp_name)


def codec_enabled_by_name(name: str) -> bool:
    """Whether a codec name is not disabled."""
    return name.lower() not in _disabled


def on_register(fnc: Callable[[Codec], None]) -> None:
    """Call ``fnc`` for every registered codec, now and in the future."""
    for codec in _codecs:
        fnc(codec)
    _on_register.append(fnc)


def codecs() -> List[Codec]:
    """A copy of the list of all registered codecs."""
    return list(_codecs)


def enabled_codecs() -> List[Codec]:
    """Registered codecs that are not disabled."""
    return [c for c in _codecs if c.info.sdp_name.lower() not in _disabled]


def register_codec(codec: Codec) -> None:
    """Add a codec to the registry and notify subscribers."""
    _codecs.append(codec)
    if codec.info.disabled:
        codec_set_enabled(codec.info.sdp_name, False)
    for fnc in _on_register:
        fnc(codec)


def new_codec(info: CodecInfo) -> Codec:
    """Create a plain codec, defaulting the RTP clock rate to the sample rate."""
    if info.sample_rate <= 0:
        raise ValueError("invalid sample rate")
    if info.rtp_clock_rate == 0:
        info = dataclasses.replace(info, rtp_clock_rate=info.sample_rate)
    return Codec(info)