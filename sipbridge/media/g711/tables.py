"""G.711 A-law and mu-law lookup tables and bulk conversion functions."""

from __future__ import annotations

from typing import Callable, Iterable, List

from sipbridge.media.pcm import PCM16Sample

_SIGN_BIT = 0x80
_QUANT_MASK = 0x0F
_SEG_SHIFT = 4
_SEG_MASK = 0x70
_BIAS = 0x84

_ALAW_MASK = 0xD5
_ULAW_MASK = 0xFF
_LAW_TABLE_SIZE = 16384
_LAW_TABLE_MID = 8192


def _alaw_to_linear(value: int) -> int:
    value ^= 0x55
    t = value & _QUANT_MASK
    seg = (value & _SEG_MASK) >> _SEG_SHIFT
    if seg:
        t = (t + t + 1 + 32) << (seg + 2)
    else:
        t = (t + t + 1) << 3
    return t if value & _SIGN_BIT else -t


def _ulaw_to_linear(value: int) -> int:
    value = ~value & 0xFF
    t = ((value & _QUANT_MASK) << 3) + _BIAS
    t <<= (value & _SEG_MASK) >> _SEG_SHIFT
    return _BIAS - t if value & _SIGN_BIT else t - _BIAS


def _build_lin_table(log_to_lin: Callable[[int], int]) -> List[int]:
    return [log_to_lin(code) for code in range(256)]


def _build_law_table(log_to_lin: Callable[[int], int], mask: int) -> bytes:
    table = bytearray(_LAW_TABLE_SIZE)
    mid = _LAW_TABLE_MID
    table[mid] = mask
    j = 1
    for i in range(127):
        v1 = log_to_lin((i ^ mask) & 0xFF)
        v2 = log_to_lin(((i + 1) ^ mask) & 0xFF)
        boundary = (v1 + v2 + 4) >> 3
        while j < boundary:
            table[mid - j] = i ^ (mask ^ 0x80)
            table[mid + j] = i ^ mask
            j += 1
    while j < mid:
        table[mid - j] = 127 ^ (mask ^ 0x80)
        table[mid + j] = 127 ^ mask
        j += 1
    table[0] = table[1]
    return bytes(table)


_ULAW_TO_LIN = _build_lin_table(_ulaw_to_linear)
_ALAW_TO_LIN = _build_lin_table(_alaw_to_linear)
_LIN_TO_ULAW = _build_law_table(_ulaw_to_linear, _ULAW_MASK)
_LIN_TO_ALAW = _build_law_table(_alaw_to_linear, _ALAW_MASK)


def _encode(table: bytes, samples: Iterable[int]) -> bytes:
    out = bytearray()
    for value in samples:
        index = (value + 32768) >> 2
        if not 0 <= index < _LAW_TABLE_SIZE:
            raise ValueError(f"sample out of 16-bit range: {value}")
        out.append(table[index])
    return bytes(out)


def encode_alaw(samples: Iterable[int]) -> bytes:
    """Encode 16-bit linear samples into A-law bytes."""
    return _encode(_LIN_TO_ALAW, samples)


def decode_alaw(data: Iterable[int]) -> PCM16Sample:
    """Decode A-law bytes into 16-bit linear samples."""
    return PCM16Sample(_ALAW_TO_LIN[b] for b in data)


def encode_ulaw(samples: Iterable[int]) -> bytes:
    """Encode 16-bit linear samples into mu-law bytes."""
    return _encode(_LIN_TO_ULAW, samples)


def decode_ulaw(data: Iterable[int]) -> PCM16Sample:
    """Decode mu-law bytes into 16-bit linear samples."""
    return PCM16Sample(_ULAW_TO_LIN[b] for b in data)