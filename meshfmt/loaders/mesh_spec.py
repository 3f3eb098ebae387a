# meshfmt/loaders/mesh_spec.py
"""Mesh import specification - settings for decoding mesh files."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

import numpy as np

from meshfmt import log


_AXIS_INDEX = {"x": 0, "y": 1, "z": 2, "-x": 0, "-y": 1, "-z": 2}
_AXIS_SIGN = {"x": 1, "y": 1, "z": 1, "-x": -1, "-y": -1, "-z": -1}


@dataclass(frozen=True)
class MeshSpec:
    """
    Import settings for mesh files.

    Stored as .meta file next to the mesh (e.g., model.ply.meta). A spec is
    read-only once built and may be shared by any number of decode calls.
    """

    # PLY property renames applied while the header is parsed,
    # e.g. {"diffuse_red": "red"}. STL has no named properties.
    property_name_mapping: Mapping[str, str] = field(default_factory=dict)

    # Scale factor applied to all vertices
    scale: float = 1.0

    # Axis mapping: which source axis maps to X, Y, Z
    # Values: "x", "y", "z", "-x", "-y", "-z"
    axis_x: str = "x"
    axis_y: str = "y"
    axis_z: str = "z"

    def __post_init__(self):
        for axis in (self.axis_x, self.axis_y, self.axis_z):
            if axis not in _AXIS_INDEX:
                raise ValueError(f"Invalid axis mapping: {axis!r}")
        object.__setattr__(
            self, "property_name_mapping",
            MappingProxyType(dict(self.property_name_mapping)),
        )

    @property
    def is_identity_transform(self) -> bool:
        return (self.scale == 1.0
                and (self.axis_x, self.axis_y, self.axis_z) == ("x", "y", "z"))

    def map_property_name(self, name: str) -> str:
        return self.property_name_mapping.get(name, name)

    @classmethod
    def load(cls, spec_path: str | Path) -> "MeshSpec":
        """Load spec from file. Missing or unreadable files give defaults."""
        path = Path(spec_path)
        if not path.exists():
            return cls()

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return cls(
                property_name_mapping=data.get("property_name_mapping", {}),
                scale=float(data.get("scale", 1.0)),
                axis_x=data.get("axis_x", "x"),
                axis_y=data.get("axis_y", "y"),
                axis_z=data.get("axis_z", "z"),
            )
        except (OSError, ValueError, TypeError, AttributeError) as e:
            log.warn(e, f"Ignoring invalid mesh spec {path}")
            return cls()

    @classmethod
    def for_mesh_file(cls, mesh_path: str | Path) -> "MeshSpec":
        """Load spec for a mesh file (looks for mesh_path.meta)."""
        meta_path = Path(str(mesh_path) + ".meta")
        return cls.load(meta_path)

    def to_dict(self) -> dict:
        return {
            "property_name_mapping": dict(self.property_name_mapping),
            "scale": self.scale,
            "axis_x": self.axis_x,
            "axis_y": self.axis_y,
            "axis_z": self.axis_z,
        }

    def save(self, spec_path: str | Path) -> None:
        """Save spec to file."""
        path = Path(spec_path)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    def save_for_mesh(self, mesh_path: str | Path) -> None:
        """Save spec next to mesh file (.meta format)."""
        meta_path = Path(str(mesh_path) + ".meta")
        tmp_path = meta_path.with_name(meta_path.name + ".tmp")
        self.save(tmp_path)
        os.replace(tmp_path, meta_path)

    def _remap_axes(self, points: np.ndarray) -> np.ndarray:
        result = np.zeros_like(points)
        for dst, axis in enumerate((self.axis_x, self.axis_y, self.axis_z)):
            result[:, dst] = points[:, _AXIS_INDEX[axis]] * _AXIS_SIGN[axis]
        return result

    def apply_to_vertices(self, vertices: np.ndarray) -> np.ndarray:
        """
        Apply spec transformations to vertices.

        Args:
            vertices: (N, 3) array of vertices

        Returns:
            Transformed vertices (N, 3)
        """
        if vertices is None or len(vertices) == 0:
            return vertices

        result = self._remap_axes(vertices)
        result *= self.scale
        return result.astype(np.float32)

    def apply_to_normals(self, normals: np.ndarray) -> np.ndarray:
        """
        Apply axis reordering to normals (no scale).

        Args:
            normals: (N, 3) array of normals

        Returns:
            Transformed normals (N, 3)
        """
        if normals is None or len(normals) == 0:
            return normals

        return self._remap_axes(normals).astype(np.float32)

    def apply_to_mesh(self, mesh):
        """Transform a decoded mesh in place and refresh its bounds."""
        if self.is_identity_transform:
            return mesh

        mesh.vertices = self.apply_to_vertices(mesh.vertices)
        mesh.normals = self.apply_to_normals(mesh.normals)
        mesh.face_normals = self.apply_to_normals(mesh.face_normals)

        if mesh.bounding_sphere is not None:
            mesh.compute_bounding_sphere()
        if mesh.bounding_box is not None:
            mesh.compute_bounding_box()
        return mesh


DEFAULT_SPEC = MeshSpec()
