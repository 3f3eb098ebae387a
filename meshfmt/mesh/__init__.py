"""Mesh module - DecodedMesh and bounding volumes."""

from meshfmt.mesh.mesh import (
    BoundingBox,
    BoundingSphere,
    DecodedMesh,
    VertexAttribType,
    VertexAttribute,
    VertexLayout,
)

__all__ = [
    "BoundingBox",
    "BoundingSphere",
    "DecodedMesh",
    "VertexAttribType",
    "VertexAttribute",
    "VertexLayout",
]
