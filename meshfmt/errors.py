"""Errors raised by the mesh decoders."""


class MeshFormatError(ValueError):
    """Base class for all decode failures. A failed decode yields no mesh."""


class MalformedHeader(MeshFormatError):
    """Header is missing its terminator or is structurally broken."""


class MalformedBody(MeshFormatError):
    """Body content cannot be interpreted against the header."""


class TruncatedInput(MeshFormatError):
    """Input ends before all declared records were read."""


class OutOfBounds(MeshFormatError, IndexError):
    """A binary read would go past the end of the buffer."""

    def __init__(self, offset: int, width: int, length: int):
        super().__init__(
            f"read of {width} byte(s) at offset {offset} exceeds buffer length {length}"
        )
        self.offset = offset
        self.width = width
        self.length = length


class UnsupportedFaceArity(MeshFormatError):
    """Face index list has a length other than 3 or 4."""

    def __init__(self, arity: int):
        super().__init__(f"face with {arity} indices is not supported (expected 3 or 4)")
        self.arity = arity


class UnknownPropertyType(MeshFormatError):
    """Property type token is not one of the recognized numeric types."""

    def __init__(self, type_name: str):
        super().__init__(f"unknown property type: {type_name!r}")
        self.type_name = type_name


__all__ = [
    "MeshFormatError",
    "MalformedHeader",
    "MalformedBody",
    "TruncatedInput",
    "OutOfBounds",
    "UnsupportedFaceArity",
    "UnknownPropertyType",
]
