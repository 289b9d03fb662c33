"""Packing of fixed-width integer codes into byte arrays, bit by bit.

Codes are stored least-significant bit first: the low bits of a code fill the
free high bits of the current byte, and what is left continues into the next.
A block of codes may be closed with :meth:`BitWriter.end_byte`, so that the
next block starts on a fresh byte.
"""

from __future__ import annotations

import math
import struct
from collections.abc import Sequence

_U32_MASK = 0xFFFFFFFF


def _f32(x: float) -> float:
    """Round a Python float to single precision."""
    return struct.unpack("<f", struct.pack("<f", x))[0]


def _round_half_away(x: float) -> int:
    if x >= 0:
        return int(math.floor(x + 0.5))
    return -int(math.floor(-x + 0.5))


def _scale(bits: int, sub: int) -> float:
    return _f32(_f32(float(1 << bits) - sub) - _f32(0.501))


def map_unit(x: float, bits: int, sub: int = 0) -> int:
    """Map ``x`` in [0, 1] to an integer code in [0, 2**bits - 1 - sub]."""
    return _round_half_away(_f32(x * _scale(bits, sub)))


def norm_unit(q: int, bits: int, sub: int = 0) -> float:
    """Map a code in [0, 2**bits - 1 - sub] back to a value in [0, 1)."""
    scale = _f32(1.0 / _scale(bits, sub))
    return _f32(q * scale)


def format_bits(data: Sequence[int], pos: int, length: int) -> str:
    """Render ``length`` bytes from ``pos`` as space-separated binary, MSB first."""
    return " ".join(format(byte, "08b") for byte in data[pos:pos + length])


def _check_width(bits: int) -> None:
    if not 1 <= bits <= 32:
        raise ValueError(f"code width must be between 1 and 32 bits, got {bits}")


class BitReader:
    """Read fixed-width codes sequentially from a byte sequence."""

    def __init__(self, data: Sequence[int], bits: int) -> None:
        _check_width(bits)
        self._data = data
        self.bits = bits
        self._load(0)

    def _load(self, index: int) -> None:
        self._pos = index
        self._byte = self._data[index] if index < len(self._data) else 0
        self._remain = 8

    def set_byte(self, index: int) -> None:
        """Start reading at byte ``index``."""
        if not 0 <= index < len(self._data):
            raise IndexError(f"byte index {index} out of range")
        self._load(index)

    def next_byte(self) -> int:
        """Return the whole current byte and move on to the next one."""
        if self._pos >= len(self._data):
            raise EOFError("no byte left to read")
        current = self._data[self._pos]
        self._load(self._pos + 1)
        return current

    def read(self) -> int:
        """Return the next code, crossing into following bytes as needed."""
        remain_in_code = self.bits
        shift = 0
        value = 0
        while True:
            if self._pos >= len(self._data):
                raise EOFError("bit stream ended inside a code")
            if self._remain <= remain_in_code:
                value |= self._byte << shift
                remain_in_code -= self._remain
                shift += self._remain
                self._load(self._pos + 1)
                if remain_in_code <= 0:
                    break
            else:
                mask = (1 << remain_in_code) - 1
                value |= (self._byte & mask) << shift
                self._remain -= remain_in_code
                self._byte >>= remain_in_code
                break
        return value


class BitWriter:
    """Append fixed-width codes to a ``bytearray``."""

    def __init__(self, data: bytearray, bits: int) -> None:
        _check_width(bits)
        self._data = data
        self.bits = bits
        self._remain = 0

    def append_byte(self, value: int) -> None:
        """Append one whole byte and start a new byte afterwards."""
        self._data.append(value & 0xFF)
        self.end_byte()

    def append(self, value: int) -> None:
        """Append one code of ``bits`` bits."""
        value &= _U32_MASK
        remain_in_code = self.bits
        while True:
            if self._remain <= 0:
                self._data.append(0)
                self._remain = 8
            filled = 8 - self._remain
            if self._remain < remain_in_code:
                mask = 0xFF >> filled
                self._data[-1] |= ((value & 0xFF) & mask) << filled
                value >>= self._remain
                remain_in_code -= self._remain
                self._remain = 0
            else:
                self._data[-1] |= (value << filled) & 0xFF
                self._remain -= remain_in_code
                break

    def end_byte(self) -> None:
        """Close the current byte; the next code starts a new one."""
        self._remain = 0