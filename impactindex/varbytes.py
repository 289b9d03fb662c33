"""Variable-byte coding of unsigned 32-bit integers and delta coding helpers.

Each integer is written as big-endian groups of seven bits; every byte but the
last of an integer has its high bit set.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

_U32_MASK = 0xFFFFFFFF


def compress(values: Iterable[int]) -> bytes:
    """Encode ``values`` and return the encoded bytes."""
    out = bytearray()
    for value in values:
        if not 0 <= value <= _U32_MASK:
            raise ValueError(f"value {value} is not an unsigned 32-bit integer")
        groups = [value & 0x7F]
        value >>= 7
        while value:
            groups.append((value & 0x7F) | 0x80)
            value >>= 7
        out.extend(reversed(groups))
    return bytes(out)


def decompress(data: Sequence[int], start: int = 0, length: int | None = None) -> list[int]:
    """Decode ``length`` bytes of ``data`` from ``start`` (to the end if omitted).

    A trailing integer whose last byte lies outside the range is dropped.
    """
    end = len(data) if length is None else min(start + length, len(data))
    values: list[int] = []
    pending = 0
    for byte in data[start:end]:
        if byte < 0x80:
            values.append((pending + byte) & _U32_MASK)
            pending = 0
        else:
            pending = ((pending + (byte & 0x7F)) * 0x80) & _U32_MASK
    return values


def difference(pre: int, values: Iterable[int]) -> list[int]:
    """Return the gaps between ascending ``values``, starting from ``pre``."""
    gaps = []
    for value in values:
        gaps.append((value - pre) & _U32_MASK)
        pre = value
    return gaps


def undifference(pre: int, values: Iterable[int]) -> list[int]:
    """Rebuild the original values from gaps produced by :func:`difference`."""
    restored = []
    for gap in values:
        pre = (pre + gap) & _U32_MASK
        restored.append(pre)
    return restored