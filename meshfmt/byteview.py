# meshfmt/byteview.py
"""Typed fixed-width reads from byte buffers with explicit endianness.

The default reader uses ``struct``. ``SoftByteReader`` is a drop-in
fallback that decodes integers by byte shifting and floats by IEEE-754
bit-field extraction, for hosts without a native fixed-width view.
"""

from __future__ import annotations

import math
import struct
from typing import Tuple, Union

import numpy as np

from meshfmt.errors import OutOfBounds, UnknownPropertyType

Buffer = Union[bytes, bytearray, memoryview]


# ---------- TYPE TABLE ----------

# PLY type name -> (struct format char, byte width)
SCALAR_TYPES = {
    "char": ("b", 1),
    "uchar": ("B", 1),
    "short": ("h", 2),
    "ushort": ("H", 2),
    "int": ("i", 4),
    "uint": ("I", 4),
    "float": ("f", 4),
    "double": ("d", 8),
    # Sized aliases
    "int8": ("b", 1),
    "uint8": ("B", 1),
    "int16": ("h", 2),
    "uint16": ("H", 2),
    "int32": ("i", 4),
    "uint32": ("I", 4),
    "float32": ("f", 4),
    "float64": ("d", 8),
}

FLOAT_CODES = {"f", "d"}


def _lookup(type_name: str) -> Tuple[str, int]:
    try:
        return SCALAR_TYPES[type_name]
    except KeyError:
        raise UnknownPropertyType(type_name) from None


def type_width(type_name: str) -> int:
    """Byte width of a scalar type."""
    return _lookup(type_name)[1]


def is_float_type(type_name: str) -> bool:
    return _lookup(type_name)[0] in FLOAT_CODES


def is_signed_type(type_name: str) -> bool:
    code = _lookup(type_name)[0]
    return code in FLOAT_CODES or code.islower()


def integer_max(type_name: str) -> int:
    """Largest value representable by an integer type."""
    code, width = _lookup(type_name)
    if code in FLOAT_CODES:
        raise ValueError(f"{type_name} is not an integer type")
    bits = width * 8
    return (1 << (bits - 1)) - 1 if code.islower() else (1 << bits) - 1


def numpy_dtype(type_name: str, little_endian: bool = True) -> np.dtype:
    """numpy dtype with explicit byte order for a scalar type."""
    code, _ = _lookup(type_name)
    return np.dtype(("<" if little_endian else ">") + code)


def _check_bounds(length: int, offset: int, width: int) -> None:
    if offset < 0 or offset + width > length:
        raise OutOfBounds(offset, width, length)


# ---------- READERS ----------

class StructByteReader:
    """Reads through the native ``struct`` module."""

    def read(self, buffer: Buffer, offset: int, type_name: str,
             little_endian: bool) -> Tuple[Union[int, float], int]:
        code, width = _lookup(type_name)
        _check_bounds(len(buffer), offset, width)
        fmt = ("<" if little_endian else ">") + code
        return struct.unpack_from(fmt, buffer, offset)[0], width


class SoftByteReader:
    """
    Portable reader that never touches ``struct``.

    Bytes are gathered least-significant first (reversed for big-endian),
    then integers are assembled by shifting and floats are rebuilt from their
    sign, exponent and mantissa fields.
    """

    def read(self, buffer: Buffer, offset: int, type_name: str,
             little_endian: bool) -> Tuple[Union[int, float], int]:
        code, width = _lookup(type_name)
        _check_bounds(len(buffer), offset, width)

        raw = [buffer[offset + i] for i in range(width)]
        if not little_endian:
            raw.reverse()

        bits = 0
        for shift, byte in enumerate(raw):
            bits |= byte << (8 * shift)

        if code == "f":
            return self._float32(bits), width
        if code == "d":
            return self._float64(bits), width
        if code.islower() and bits & (1 << (width * 8 - 1)):
            bits -= 1 << (width * 8)
        return bits, width

    @staticmethod
    def _float32(bits: int) -> float:
        return _ieee754(bits, exponent_bits=8, mantissa_bits=23)

    @staticmethod
    def _float64(bits: int) -> float:
        return _ieee754(bits, exponent_bits=11, mantissa_bits=52)


def _ieee754(bits: int, exponent_bits: int, mantissa_bits: int) -> float:
    sign = -1.0 if bits >> (exponent_bits + mantissa_bits) else 1.0
    exponent = (bits >> mantissa_bits) & ((1 << exponent_bits) - 1)
    mantissa = bits & ((1 << mantissa_bits) - 1)
    bias = (1 << (exponent_bits - 1)) - 1

    if exponent == (1 << exponent_bits) - 1:
        if mantissa:
            return math.nan
        return math.copysign(math.inf, sign)

    if exponent == 0:
        # Subnormal (and signed zero)
        return math.copysign(math.ldexp(mantissa, 1 - bias - mantissa_bits), sign)

    value = math.ldexp(mantissa | (1 << mantissa_bits), exponent - bias - mantissa_bits)
    return math.copysign(value, sign)


_default_reader = StructByteReader()


def set_default_reader(reader) -> None:
    """Replace the reader used when none is passed explicitly."""
    global _default_reader
    _default_reader = reader


def get_default_reader():
    return _default_reader


def use_soft_reader() -> None:
    set_default_reader(SoftByteReader())


def read_scalar(buffer: Buffer, byte_offset: int, type_name: str,
                little_endian: bool, reader=None) -> Tuple[Union[int, float], int]:
    """
    Read one scalar of ``type_name`` at ``byte_offset``.

    Returns:
        (value, bytes_consumed)

    Raises:
        OutOfBounds: the read would pass the end of the buffer.
        UnknownPropertyType: ``type_name`` is not a recognized type.
    """
    if reader is None:
        reader = _default_reader
    return reader.read(buffer, byte_offset, type_name, little_endian)


# ---------- VIEW ----------

class ByteView:
    """Read-only window over a buffer, starting at ``offset``."""

    __slots__ = ("_view", "_reader")

    def __init__(self, buffer: Buffer, offset: int = 0, reader=None):
        view = memoryview(buffer)
        if view.format != "B" or view.ndim != 1:
            view = view.cast("B")
        if offset < 0 or offset > len(view):
            raise OutOfBounds(offset, 0, len(view))
        self._view = view[offset:]
        self._reader = reader

    def __len__(self) -> int:
        return len(self._view)

    @property
    def byte_length(self) -> int:
        return len(self._view)

    def read(self, at: int, type_name: str, little_endian: bool = True) -> Tuple[Union[int, float], int]:
        reader = self._reader if self._reader is not None else _default_reader
        return reader.read(self._view, at, type_name, little_endian)

    def uint8(self, at: int) -> int:
        return self.read(at, "uint8")[0]

    def uint16(self, at: int, little_endian: bool = True) -> int:
        return self.read(at, "uint16", little_endian)[0]

    def uint32(self, at: int, little_endian: bool = True) -> int:
        return self.read(at, "uint32", little_endian)[0]

    def float32(self, at: int, little_endian: bool = True) -> float:
        return self.read(at, "float32", little_endian)[0]

    def tobytes(self) -> bytes:
        return self._view.tobytes()


__all__ = [
    "SCALAR_TYPES",
    "ByteView",
    "StructByteReader",
    "SoftByteReader",
    "read_scalar",
    "set_default_reader",
    "get_default_reader",
    "use_soft_reader",
    "type_width",
    "is_float_type",
    "is_signed_type",
    "integer_max",
    "numpy_dtype",
]
