"""Mesh file loaders: PLY and STL."""

from __future__ import annotations

from pathlib import Path

from meshfmt.loaders.mesh_spec import MeshSpec
from meshfmt.loaders.ply_loader import decode_ply, load_ply_file
from meshfmt.loaders.stl_loader import decode_stl, load_stl_file

LOADERS = {
    ".ply": load_ply_file,
    ".stl": load_stl_file,
}


def load_mesh_file(path, spec: MeshSpec | None = None):
    """Load a mesh file, choosing the decoder by extension."""
    suffix = Path(path).suffix.lower()
    try:
        loader = LOADERS[suffix]
    except KeyError:
        raise ValueError(f"Unsupported mesh file extension: {suffix!r}") from None
    return loader(path, spec)


__all__ = [
    "MeshSpec",
    "decode_ply",
    "decode_stl",
    "load_ply_file",
    "load_stl_file",
    "load_mesh_file",
]
