"""Audio codecs that can be carried over RTP, and lookup by payload type."""

from __future__ import annotations

import dataclasses
import itertools
import os
from typing import Any, Callable, Dict, Optional

from sipbridge.media.base import NopCloser, WriteCloser, dump_writer
from sipbridge.media.codecs import Codec, CodecInfo, on_register
from sipbridge.rtp.stream import MediaStreamIn, MediaStreamOut, Stream

_media_ids = itertools.count(1)
_dump_to_file = os.environ.get("LK_DUMP_MEDIA") == "true"

_JITTER_ENABLED = False

_codec_by_type: Dict[int, Codec] = {}


def _track_static(codec: Codec) -> None:
    info = codec.info
    if info.rtp_is_static:
        _codec_by_type[info.rtp_def_type] = codec


on_register(_track_static)


def codec_by_payload_type(typ: int) -> Optional[Codec]:
    """The registered codec with a static RTP payload type, or None."""
    return _codec_by_type.get(typ)


class AudioCodec(Codec):
    """A codec that converts between PCM16 writers and encoded frame writers."""

    def __init__(
        self,
        info: CodecInfo,
        decode: Callable[[WriteCloser], WriteCloser],
        encode: Callable[[WriteCloser], WriteCloser],
        frame_type: Callable[[bytes], Any] = bytes,
    ) -> None:
        if info.sample_rate <= 0:
            raise ValueError("invalid sample rate")
        if info.rtp_clock_rate == 0:
            info = dataclasses.replace(info, rtp_clock_rate=info.sample_rate)
        super().__init__(info)
        self._decode = decode
        self._encode = encode
        self._frame_type = frame_type

    def decode(self, writer: WriteCloser) -> WriteCloser:
        """Wrap a PCM16 writer into a writer of encoded frames."""
        return self._decode(writer)

    def encode(self, writer: WriteCloser) -> WriteCloser:
        """Wrap an encoded-frame writer into a PCM16 writer."""
        return self._encode(writer)

    def _dump(self, direction: str, writer: WriteCloser) -> WriteCloser:
        name = f"sip_rtp_{direction}_{next(_media_ids)}"
        ext = self.info.file_ext or "raw"
        return dump_writer(ext, name, NopCloser(writer))

    def encode_rtp(self, stream: Stream) -> WriteCloser:
        """A PCM16 writer that encodes and sends frames over an RTP stream."""
        out: WriteCloser = MediaStreamOut(stream, self.info.sample_rate)
        if _dump_to_file:
            out = self._dump("out", out)
        return self._encode(out)

    def decode_rtp(self, writer: Any, typ: int) -> MediaStreamIn:
        """An RTP handler that decodes payloads into a PCM16 writer."""
        frames = self._decode(NopCloser(writer))
        if _dump_to_file:
            frames = self._dump("in", frames)
        return MediaStreamIn(frames, self._frame_type)


def handle_jitter(clock_rate: int, handler: Any) -> Any:
    """Wrap a handler with a jitter buffer; buffering is currently disabled."""
    if not _JITTER_ENABLED:
        return handler
    raise NotImplementedError  # pragma: no cover