# meshfmt/loaders/assembler.py
"""Turns decoded PLY element records into a DecodedMesh."""

from __future__ import annotations

from collections import Counter
from typing import List, Optional, Tuple

import numpy as np

from meshfmt import log
from meshfmt.byteview import integer_max, is_float_type
from meshfmt.errors import MalformedBody, UnsupportedFaceArity
from meshfmt.loaders.ply_header import PLYHeader, ScalarProperty
from meshfmt.loaders.records import ListValue, Record, Scalar
from meshfmt.mesh.mesh import DecodedMesh

COLOR_CHANNELS = ("red", "green", "blue")
FACE_INDEX_NAMES = ("vertex_indices", "vertex_index")


def triangulate(indices) -> List[Tuple[int, int, int]]:
    """
    Split a face index list into triangles.

    Quads are fan-split as (0, 1, 3), (1, 2, 3); that pairing keeps the
    winding of the source face.

    Raises:
        UnsupportedFaceArity: for any length other than 3 or 4.
    """
    n = len(indices)
    if n == 3:
        return [(indices[0], indices[1], indices[2])]
    if n == 4:
        return [
            (indices[0], indices[1], indices[3]),
            (indices[1], indices[2], indices[3]),
        ]
    raise UnsupportedFaceArity(n)


class MeshAssembler:
    """
    Accumulates records one at a time, keyed by element name.

    Only "vertex" and "face" elements contribute to the mesh; records of
    other elements are counted and otherwise ignored.
    """

    def __init__(self, header: Optional[PLYHeader] = None, name: str = ""):
        self.name = name
        self.positions: List[Tuple[float, float, float]] = []
        self.colors: List[Tuple[float, float, float]] = []
        self.faces: List[Tuple[int, int, int]] = []
        self._all_colored = True
        self._color_scale = self._color_scales(header)
        self._ignored: Counter = Counter()

    @staticmethod
    def _color_scales(header: Optional[PLYHeader]) -> Tuple[float, float, float]:
        """Divisor per channel: integer channels by type max, float as-is."""
        scales = [255.0, 255.0, 255.0]
        vertex = header.element("vertex") if header is not None else None
        if vertex is None:
            return tuple(scales)
        for i, channel in enumerate(COLOR_CHANNELS):
            prop = vertex.property(channel)
            if isinstance(prop, ScalarProperty):
                scales[i] = 1.0 if is_float_type(prop.type_name) else float(integer_max(prop.type_name))
        return tuple(scales)

    def handle(self, element_name: str, record: Record) -> None:
        if element_name == "vertex":
            self._handle_vertex(record)
        elif element_name == "face":
            self._handle_face(record)
        else:
            self._ignored[element_name] += 1

    def _scalar(self, record: Record, name: str) -> float:
        value = record.get(name)
        if not isinstance(value, Scalar):
            raise MalformedBody(f"vertex record has no scalar {name!r}")
        return value.value

    def _handle_vertex(self, record: Record) -> None:
        self.positions.append((
            self._scalar(record, "x"),
            self._scalar(record, "y"),
            self._scalar(record, "z"),
        ))

        if not self._all_colored:
            return
        channels = [record.get(c) for c in COLOR_CHANNELS]
        if all(isinstance(c, Scalar) for c in channels):
            self.colors.append(tuple(
                c.value / scale for c, scale in zip(channels, self._color_scale)
            ))
        else:
            # one uncoloured vertex disables colour for the whole mesh
            self._all_colored = False
            self.colors.clear()

    def _handle_face(self, record: Record) -> None:
        for name in FACE_INDEX_NAMES:
            value = record.get(name)
            if value is not None:
                break
        else:
            raise MalformedBody("face record has no vertex_indices list")

        if not isinstance(value, ListValue):
            raise MalformedBody(f"face property {name!r} is not a list")
        self.faces.extend(triangulate(value.values))

    @property
    def use_color(self) -> bool:
        return self._all_colored and len(self.colors) > 0

    def finish(self, compute_box: bool = False) -> DecodedMesh:
        """Build the mesh, propagate face colours and compute bounds."""
        for element_name, count in self._ignored.items():
            log.debug(f"Ignored {count} '{element_name}' record(s)")

        vertices = np.array(self.positions, dtype=np.float32).reshape(-1, 3)
        indices = np.array(self.faces, dtype=np.int64).reshape(-1, 3)

        if len(indices) and (indices.min() < 0 or indices.max() >= len(vertices)):
            raise MalformedBody(
                f"face index out of range for {len(vertices)} vertices"
            )

        colors = np.array(self.colors, dtype=np.float32) if self.use_color else None

        mesh = DecodedMesh(vertices, indices, colors=colors, name=self.name)
        if mesh.has_colors:
            mesh.index_face_colors()
        mesh.compute_bounding_sphere()
        if compute_box:
            mesh.compute_bounding_box()
        return mesh
