"""Base64 VLQ codec used by the ``mappings`` field of v3 source maps."""

from __future__ import annotations

from typing import List, Tuple

_BASE64 = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_DECODE = {char: index for index, char in enumerate(_BASE64)}

_SHIFT = 5
_BASE = 1 << _SHIFT
_MASK = _BASE - 1
_CONTINUATION = _BASE


def encode(value: int) -> str:
    """Encode one signed integer."""
    vlq = (-value << 1) + 1 if value < 0 else value << 1
    chars: List[str] = []
    while True:
        digit = vlq & _MASK
        vlq >>= _SHIFT
        if vlq > 0:
            digit |= _CONTINUATION
        chars.append(_BASE64[digit])
        if vlq == 0:
            return "".join(chars)


def decode(text: str, index: int = 0) -> Tuple[int, int]:
    """Decode one signed integer starting at ``index``; return it with the next index."""
    result = 0
    shift = 0
    while True:
        if index >= len(text):
            raise ValueError("Unexpected end of VLQ segment")
        try:
            digit = _DECODE[text[index]]
        except KeyError as exc:
            raise ValueError(f"Invalid base64 VLQ character: {text[index]!r}") from exc
        index += 1
        result += (digit & _MASK) << shift
        shift += _SHIFT
        if not digit & _CONTINUATION:
            break
    negative = result & 1
    result >>= 1
    return (-result if negative else result), index


def decode_segment(segment: str) -> List[int]:
    values: List[int] = []
    index = 0
    while index < len(segment):
        value, index = decode(segment, index)
        values.append(value)
    return values


__all__ = ["decode", "decode_segment", "encode"]
