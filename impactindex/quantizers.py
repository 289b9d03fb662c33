"""Scalar quantizers for impact scores: linear, logarithmic and adaptive float."""

from __future__ import annotations

import math
import struct
from collections.abc import Sequence
from typing import BinaryIO

from .bits import BitReader, BitWriter, map_unit, norm_unit

_INT_MIN = -(2**31)


def _f32(x: float) -> float:
    return struct.unpack("<f", struct.pack("<f", x))[0]


def _read_floats(stream: BinaryIO, count: int) -> tuple[float, ...]:
    size = 4 * count
    data = stream.read(size)
    if len(data) < size:
        raise EOFError("quantizer parameters are truncated")
    return struct.unpack(f"<{count}f", data)


class LinearQuantizer:
    """Uniform quantization of values between an observed minimum and maximum."""

    def __init__(self, bits: int) -> None:
        self.bits = bits
        self.minval = 1.0
        self.maxval = 1.0

    def update_minmax(self, value: float) -> None:
        value = _f32(value)
        if value < self.minval:
            self.minval = value
        elif value > self.maxval:
            self.maxval = value

    def quantize(self, value: float) -> int:
        x = _f32(_f32(value - self.minval) / _f32(self.maxval - self.minval))
        return map_unit(x, self.bits)

    def dequantize(self, q: int) -> float:
        x = norm_unit(q, self.bits)
        return _f32(self.minval + _f32(x * _f32(self.maxval - self.minval)))

    def read(self, stream: BinaryIO) -> None:
        """Load the range as two little-endian float32 values."""
        self.minval, self.maxval = _read_floats(stream, 2)

    def write(self, stream: BinaryIO) -> None:
        """Store the range as two little-endian float32 values."""
        stream.write(struct.pack("<2f", self.minval, self.maxval))


class LogQuantizer:
    """Quantization on a log2 scale, with separate ranges for each sign.

    Code 0 is zero; codes from ``2**(bits-1)`` up are positive values and
    codes from 1 below that are negative ones.
    """

    def __init__(self, bits: int) -> None:
        if bits < 2:
            raise ValueError("a log quantizer needs at least 2 bits")
        self.bits = bits
        self.minexp = 1.0
        self.maxexp = 1.0
        self.neg_minexp = 1.0
        self.neg_maxexp = 1.0

    def update_minmax(self, value: float) -> None:
        value = _f32(value)
        if value > 0:
            if value < self.minexp:
                self.minexp = value
            elif value > self.maxexp:
                self.maxexp = value
        elif value < 0:
            value = abs(value)
            if value < self.neg_minexp:
                self.neg_minexp = value
            elif value > self.neg_maxexp:
                self.neg_maxexp = value

    def log_minmax(self) -> None:
        """Replace the observed magnitudes by their base-2 logarithms."""
        if self.minexp < 0 or self.neg_minexp < 0:
            raise RuntimeError("log_minmax called on ranges that are already logarithmic")
        self.minexp = _f32(math.log2(self.minexp))
        self.maxexp = _f32(math.log2(self.maxexp))
        self.neg_minexp = _f32(math.log2(self.neg_minexp))
        self.neg_maxexp = _f32(math.log2(self.neg_maxexp))

    def quantize(self, value: float) -> int:
        half = self.bits - 1
        if value > 0:
            x = _f32(math.log2(value))
            x = _f32(_f32(x - self.minexp) / _f32(self.maxexp - self.minexp))
            return map_unit(x, half) + (1 << half)
        if value < 0:
            x = _f32(math.log2(abs(value)))
            x = _f32(_f32(x - self.neg_minexp) / _f32(self.neg_maxexp - self.neg_minexp))
            return map_unit(x, half, 1) + 1
        return 0

    def dequantize(self, q: int) -> float:
        half = self.bits - 1
        if q >= 1 << half:
            x = norm_unit(q - (1 << half), half)
            x = _f32(self.minexp + _f32(x * _f32(self.maxexp - self.minexp)))
            return _f32(2.0**x)
        if q >= 1:
            x = norm_unit(q - 1, half, 1)
            x = _f32(self.neg_minexp + _f32(x * _f32(self.neg_maxexp - self.neg_minexp)))
            return -_f32(2.0**x)
        return 0.0

    def read(self, stream: BinaryIO) -> None:
        """Load the four exponents as little-endian float32 values."""
        self.minexp, self.maxexp, self.neg_minexp, self.neg_maxexp = _read_floats(stream, 4)

    def write(self, stream: BinaryIO) -> None:
        """Store the four exponents as little-endian float32 values."""
        stream.write(
            struct.pack("<4f", self.minexp, self.maxexp, self.neg_minexp, self.neg_maxexp)
        )


class AdaptiveFloatQuantizer:
    """Small floats sharing one exponent bias per block of values.

    A block is written as one bias byte followed by one code per value. Each
    code holds ``exp_bits`` of exponent and ``bits - exp_bits`` of signed
    mantissa; code 0 is zero.
    """

    def __init__(self, bits: int, exp_bits: int) -> None:
        if exp_bits < 1 or bits - 1 - exp_bits < 1:
            raise ValueError("need at least one exponent bit and one mantissa bit")
        self.bits = bits
        self.exp_bits = exp_bits

    @property
    def mant_bits(self) -> int:
        return self.bits - 1 - self.exp_bits

    def quantize(self, values: Sequence[float], writer: BitWriter) -> list[int]:
        """Write one block for ``values`` and return the codes written."""
        mant = self.mant_bits
        magnitudes = [_f32(abs(v)) for v in values]
        signs = [(v > 0) - (v < 0) for v in values]
        exps = [math.frexp(m)[1] for m, s in zip(magnitudes, signs) if s]
        exp_max = max(exps, default=_INT_MIN)
        exp_bias = exp_max - ((1 << self.exp_bits) - 1)
        writer.append_byte(exp_bias & 0xFF)

        codes: list[int] = []
        if not exps:
            for _ in values:
                writer.append(0)
                codes.append(0)
            return codes

        value_min = _f32(math.ldexp(1.0, exp_bias) * _f32(1.0 + 2.0**-mant))
        value_max = _f32(math.ldexp(1.0, exp_max) * _f32(2.0 - 2.0**-mant))

        for magnitude, sign in zip(magnitudes, signs):
            if sign == 0 or magnitude < 0.5 * value_min:
                code = 0
            else:
                magnitude = min(max(magnitude, value_min), value_max)
                mantissa, exp = math.frexp(magnitude)
                mantissa = _f32(2.0 * mantissa - 1.0)
                if sign > 0:
                    code = map_unit(mantissa, mant) + (1 << mant)
                else:
                    code = map_unit(mantissa, mant, 1) + 1
                code |= (exp - exp_bias) << (mant + 1)
            writer.append(code)
            codes.append(code)
        return codes

    def dequantize(self, reader: BitReader, count: int) -> list[float]:
        """Read one block of ``count`` values."""
        mant = self.mant_bits
        mask = (1 << (mant + 1)) - 1
        raw = reader.next_byte()
        exp_bias = raw - 256 if raw >= 128 else raw

        values: list[float] = []
        for _ in range(count):
            q = reader.read()
            exp = (q >> (mant + 1)) + exp_bias
            q &= mask
            if q >= 1 << mant:
                mantissa = _f32(0.5 * (norm_unit(q - (1 << mant), mant) + 1.0))
                values.append(_f32(math.ldexp(mantissa, exp)))
            elif q >= 1:
                mantissa = _f32(0.5 * (norm_unit(q - 1, mant, 1) + 1.0))
                values.append(-_f32(math.ldexp(mantissa, exp)))
            else:
                values.append(0.0)
        return values