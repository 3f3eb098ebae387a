"""Decoded mesh container and vertex layout definitions."""

from __future__ import annotations

from enum import Enum
from typing import Optional

import numpy as np

# GPU COMPATIBILITY

class VertexAttribType(Enum):
    FLOAT32 = "float32"
    INT32 = "int32"
    UINT32 = "uint32"

class VertexAttribute:
    def __init__(self, name, size, vtype: VertexAttribType, offset):
        self.name = name
        self.size = size
        self.vtype = vtype
        self.offset = offset


class VertexLayout:
    def __init__(self, stride, attributes):
        self.stride = stride    # bytes per vertex
        self.attributes = attributes  # list of VertexAttribute


class BoundingBox:
    """Axis-aligned box given by its min and max corners."""

    __slots__ = ("min", "max")

    def __init__(self, min_corner: np.ndarray, max_corner: np.ndarray):
        self.min = np.asarray(min_corner, dtype=np.float64)
        self.max = np.asarray(max_corner, dtype=np.float64)

    @staticmethod
    def from_points(points: np.ndarray) -> Optional["BoundingBox"]:
        if len(points) == 0:
            return None
        return BoundingBox(points.min(axis=0), points.max(axis=0))

    @property
    def center(self) -> np.ndarray:
        return (self.min + self.max) * 0.5

    @property
    def size(self) -> np.ndarray:
        return self.max - self.min

    def __repr__(self):
        return f"BoundingBox(min={self.min.tolist()}, max={self.max.tolist()})"


class BoundingSphere:
    __slots__ = ("center", "radius")

    def __init__(self, center: np.ndarray, radius: float):
        self.center = np.asarray(center, dtype=np.float64)
        self.radius = float(radius)

    @staticmethod
    def from_points(points: np.ndarray) -> "BoundingSphere":
        """Sphere centred on the bounding box, enclosing every point."""
        if len(points) == 0:
            return BoundingSphere(np.zeros(3), 0.0)
        pts = np.asarray(points, dtype=np.float64)
        center = (pts.min(axis=0) + pts.max(axis=0)) * 0.5
        radius = float(np.sqrt(((pts - center) ** 2).sum(axis=1).max()))
        return BoundingSphere(center, radius)

    def __repr__(self):
        return f"BoundingSphere(center={self.center.tolist()}, radius={self.radius})"


class DecodedMesh:
    """
    Triangle mesh produced by the PLY and STL decoders.

    Attributes:
        vertices: (N, 3) float32 positions.
        indices: (M, 3) uint32 triangle vertex indices.
        colors: (N, 3) float32 per-vertex RGB in [0, 1], or None.
        normals: (N, 3) float32 per-vertex normals, or None.
        face_normals: (M, 3) float32 per-face normals, or None.
        face_colors: (M, 3, 3) float32 colours per face corner, or None.
        alpha: opacity from the binary STL default colour, or None.
    """

    def __init__(
        self,
        vertices: np.ndarray,
        indices: np.ndarray,
        colors: Optional[np.ndarray] = None,
        normals: Optional[np.ndarray] = None,
        face_normals: Optional[np.ndarray] = None,
        alpha: Optional[float] = None,
        name: str = "",
    ):
        self.vertices = np.asarray(vertices, dtype=np.float32).reshape(-1, 3)
        self.indices = np.asarray(indices, dtype=np.uint32).reshape(-1, 3)
        self.colors = None if colors is None else np.asarray(colors, dtype=np.float32).reshape(-1, 3)
        self.normals = None if normals is None else np.asarray(normals, dtype=np.float32).reshape(-1, 3)
        self.face_normals = None if face_normals is None else np.asarray(face_normals, dtype=np.float32).reshape(-1, 3)
        self.face_colors: Optional[np.ndarray] = None
        self.alpha = alpha
        self.name = name
        self.bounding_sphere: Optional[BoundingSphere] = None
        self.bounding_box: Optional[BoundingBox] = None
        self._validate_mesh()

    def _validate_mesh(self):
        n = len(self.vertices)
        if self.colors is not None and len(self.colors) != n:
            raise ValueError("Colors must be parallel to vertices.")
        if self.normals is not None and len(self.normals) != n:
            raise ValueError("Normals must be parallel to vertices.")
        if self.face_normals is not None and len(self.face_normals) != len(self.indices):
            raise ValueError("Face normals must be parallel to faces.")

    @property
    def has_colors(self) -> bool:
        return self.colors is not None

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    @property
    def triangle_count(self) -> int:
        return len(self.indices)

    def index_face_colors(self) -> Optional[np.ndarray]:
        """Copy vertex colours onto each face corner."""
        if self.colors is None:
            self.face_colors = None
        else:
            self.face_colors = self.colors[self.indices]
        return self.face_colors

    def compute_bounding_sphere(self) -> BoundingSphere:
        self.bounding_sphere = BoundingSphere.from_points(self.vertices)
        return self.bounding_sphere

    def compute_bounding_box(self) -> Optional[BoundingBox]:
        self.bounding_box = BoundingBox.from_points(self.vertices)
        return self.bounding_box

    def get_vertex_layout(self) -> VertexLayout:
        """Layout of interleaved_buffer(): position [+ normal] [+ color]."""
        attributes = [VertexAttribute("position", 3, VertexAttribType.FLOAT32, 0)]
        offset = 12
        if self.normals is not None:
            attributes.append(VertexAttribute("normal", 3, VertexAttribType.FLOAT32, offset))
            offset += 12
        if self.colors is not None:
            attributes.append(VertexAttribute("color", 3, VertexAttribType.FLOAT32, offset))
            offset += 12
        return VertexLayout(stride=offset, attributes=attributes)

    def interleaved_buffer(self) -> np.ndarray:
        parts = [self.vertices]
        if self.normals is not None:
            parts.append(self.normals)
        if self.colors is not None:
            parts.append(self.colors)
        return np.hstack(parts).astype(np.float32)

    def __repr__(self):
        return (f"DecodedMesh(name={self.name!r}, vertices={self.vertex_count}, "
                f"triangles={self.triangle_count}, colors={self.has_colors})")
