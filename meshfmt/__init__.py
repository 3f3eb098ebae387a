"""
meshfmt - PLY and STL mesh decoders.

Modules:
- byteview - typed reads from byte buffers with explicit endianness
- loaders - PLY/STL decoders and import settings (MeshSpec)
- mesh - DecodedMesh and bounding volumes
"""

from .errors import (
    MeshFormatError,
    MalformedHeader,
    MalformedBody,
    TruncatedInput,
    OutOfBounds,
    UnsupportedFaceArity,
    UnknownPropertyType,
)
from .loaders import (
    MeshSpec,
    decode_ply,
    decode_stl,
    load_mesh_file,
    load_ply_file,
    load_stl_file,
)
from .mesh import DecodedMesh

__version__ = '0.1.0'

__all__ = [
    # Decoders
    'decode_ply',
    'decode_stl',
    'load_mesh_file',
    'load_ply_file',
    'load_stl_file',
    'MeshSpec',
    'DecodedMesh',
    # Errors
    'MeshFormatError',
    'MalformedHeader',
    'MalformedBody',
    'TruncatedInput',
    'OutOfBounds',
    'UnsupportedFaceArity',
    'UnknownPropertyType',
]
