# meshfmt/loaders/stl_loader.py
"""STL loader (binary and ASCII), with Magics colour extension support."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterator, List, NamedTuple, Optional, Tuple, Union

import numpy as np

from meshfmt import log
from meshfmt.byteview import ByteView
from meshfmt.errors import MalformedBody, TruncatedInput
from meshfmt.loaders.mesh_spec import DEFAULT_SPEC, MeshSpec
from meshfmt.mesh.mesh import DecodedMesh

STLInput = Union[bytes, bytearray, memoryview, str]

HEADER_SIZE = 80
DATA_OFFSET = 84  # header + uint32 triangle count
FACE_SIZE = 12 * 4 + 2  # normal + 3 vertices (float32) + uint16 attribute

COLOR_SIGNATURE = b"COLOR="

# One binary triangle record, little-endian, unpadded
FACE_DTYPE = np.dtype([
    ("normal", "<f4", (3,)),
    ("vertices", "<f4", (3, 3)),
    ("attribute", "<u2"),
])


# ---------- INPUT CONVERSION ----------

def ensure_binary(data: STLInput) -> bytes:
    """Text becomes one byte per character (low 8 bits)."""
    if isinstance(data, str):
        try:
            return data.encode("latin-1")
        except UnicodeEncodeError:
            return bytes(ord(c) & 0xFF for c in data)
    return bytes(data)


def ensure_string(data: STLInput) -> str:
    """Bytes become one character per byte."""
    if isinstance(data, str):
        return data
    return bytes(data).decode("latin-1")


# ---------- DETECTION ----------

def expected_binary_size(data: bytes) -> Optional[int]:
    """84 + 50 * triangle count, or None if there is no count field."""
    if len(data) < DATA_OFFSET:
        return None
    n_faces = ByteView(data).uint32(HEADER_SIZE)
    return DATA_OFFSET + n_faces * FACE_SIZE


def is_binary_stl(data: bytes) -> bool:
    """
    Binary if the declared triangle count matches the size exactly,
    otherwise binary if any byte is outside the ASCII range.
    """
    if expected_binary_size(data) == len(data):
        return True

    # some binary files have a wrong triangle count,
    # bytes above 127 still mark them as binary
    if len(data) == 0:
        return False
    return bool(np.frombuffer(data, dtype=np.uint8).max() > 127)


# ---------- BINARY ----------

def find_default_color(header: bytes) -> Optional[Tuple[float, float, float, float]]:
    """
    Look for "COLOR=" followed by R, G, B, A bytes in the 80-byte header.

    Returns:
        (r, g, b, alpha) scaled to [0, 1], or None. The last match wins.
    """
    found = None
    for index in range(HEADER_SIZE - 10):
        if header[index:index + 6] == COLOR_SIGNATURE:
            r, g, b, a = header[index + 6:index + 10]
            found = (r / 255, g / 255, b / 255, a / 255)
    return found


def unpack_colors(packed: np.ndarray, default: Tuple[float, float, float]) -> np.ndarray:
    """
    Decode 16-bit facet colours into (F, 3) RGB.

    Bit 15 clear: low 15 bits hold a 5/5/5 RGB override (R in the lowest bits).
    Bit 15 set: the header default colour applies.
    """
    packed = np.asarray(packed, dtype=np.uint16).astype(np.uint32)
    own = np.stack([
        packed & 0x1F,
        (packed >> 5) & 0x1F,
        (packed >> 10) & 0x1F,
    ], axis=1).astype(np.float32) / 31.0
    use_default = (packed & 0x8000) != 0
    own[use_default] = np.asarray(default[:3], dtype=np.float32)
    return own


def decode_binary_stl(data: bytes, name: str = "", reader=None) -> DecodedMesh:
    """
    Decode a binary STL buffer.

    Records are unpacked in one pass with a numpy structured dtype. Passing
    ``reader`` (see meshfmt.byteview) reads every field through ByteView
    instead.
    """
    if len(data) < DATA_OFFSET:
        raise TruncatedInput(f"binary STL needs at least {DATA_OFFSET} bytes, got {len(data)}")

    n_faces = ByteView(data).uint32(HEADER_SIZE)
    needed = DATA_OFFSET + n_faces * FACE_SIZE
    if len(data) < needed:
        raise TruncatedInput(
            f"binary STL declares {n_faces} triangles ({needed} bytes), got {len(data)} bytes"
        )

    default = find_default_color(data[:HEADER_SIZE])

    if n_faces == 0:
        face_normals = np.zeros((0, 3), dtype=np.float32)
        vertices = np.zeros((0, 3), dtype=np.float32)
        packed = np.zeros(0, dtype=np.uint16)
    elif reader is None:
        records = np.frombuffer(data, dtype=FACE_DTYPE, count=n_faces, offset=DATA_OFFSET)
        face_normals = records["normal"].astype(np.float32)
        vertices = records["vertices"].reshape(-1, 3).astype(np.float32)
        packed = records["attribute"]
    else:
        face_normals, vertices, packed = _read_faces(data, n_faces, reader)

    normals = np.repeat(face_normals, 3, axis=0)
    indices = np.arange(n_faces * 3, dtype=np.uint32).reshape(-1, 3)

    colors = None
    alpha = None
    if default is not None:
        colors = np.repeat(unpack_colors(packed, default[:3]), 3, axis=0)
        alpha = default[3]

    log.debug(f"Binary STL: {n_faces} triangles, colors={default is not None}")
    return DecodedMesh(vertices, indices, colors=colors, normals=normals, alpha=alpha, name=name)


def _read_faces(data: bytes, n_faces: int, reader):
    view = ByteView(data, reader=reader)
    face_normals = np.empty((n_faces, 3), dtype=np.float32)
    vertices = np.empty((n_faces * 3, 3), dtype=np.float32)
    packed = np.empty(n_faces, dtype=np.uint16)

    for face in range(n_faces):
        start = DATA_OFFSET + face * FACE_SIZE
        for k in range(3):
            face_normals[face, k] = view.float32(start + 4 * k)
        for i in range(1, 4):
            vertex_start = start + i * 12
            for k in range(3):
                vertices[face * 3 + i - 1, k] = view.float32(vertex_start + 4 * k)
        packed[face] = view.uint16(start + 48)

    return face_normals, vertices, packed


# ---------- ASCII ----------

KEYWORDS = {"solid", "facet", "normal", "outer", "loop", "vertex", "endloop", "endfacet", "endsolid"}

_NUMBER_CHARS = set("0123456789+-.eE")
_LINE_BREAK = re.compile(r"\r\n|\n|\r")


def _as_number(token: str) -> Optional[float]:
    """Float literal: optional sign, digits, optional fraction and exponent."""
    if not token or not set(token) <= _NUMBER_CHARS:
        return None
    try:
        return float(token)
    except ValueError:
        return None


class Token(NamedTuple):
    kind: str  # "keyword", "number" or "word"
    value: Union[str, float]
    text: str
    line: int = 0


def tokenize_ascii_stl(text: str) -> Iterator[Token]:
    """Split on whitespace; keywords are matched case-insensitively."""
    for line_no, line in enumerate(_LINE_BREAK.split(text), start=1):
        for raw in line.split():
            lower = raw.lower()
            if lower in KEYWORDS:
                yield Token("keyword", lower, raw, line_no)
                continue
            value = _as_number(raw)
            if value is not None:
                yield Token("number", value, raw, line_no)
            else:
                yield Token("word", raw, raw, line_no)


class AsciiSTLParser:
    """
    Recursive-descent parser for ASCII STL.

        stl   := ("solid" name?)? facet* ("endsolid" name?)?
        facet := "facet" ("normal" n n n)? "outer" "loop" ("vertex" n n n){3}
                 "endloop" "endfacet"

    Keywords other than normal/vertex inside a facet are skipped, so
    slightly irregular files still decode as long as every facet has
    exactly three vertices. A solid name is the rest of its line, so
    names such as "facet model" are accepted.
    """

    def __init__(self, text: str):
        self.tokens = list(tokenize_ascii_stl(text))
        self.pos = 0
        self.solid_name = ""
        self.vertices: List[Tuple[float, float, float]] = []
        self.face_normals: List[Tuple[float, float, float]] = []
        self.faces: List[Tuple[int, int, int]] = []
        self._seen_solid = False

    def _peek(self):
        if self.pos >= len(self.tokens):
            return None
        return self.tokens[self.pos]

    def _next(self, context: str):
        token = self._peek()
        if token is None:
            raise TruncatedInput(f"ASCII STL ends inside {context}")
        self.pos += 1
        return token

    def parse(self) -> "AsciiSTLParser":
        while self._peek() is not None:
            token = self._peek()
            kind, value = token.kind, token.value
            if kind == "keyword" and value == "facet":
                self._parse_facet()
            elif kind == "keyword" and value in ("solid", "endsolid"):
                self._seen_solid = self._seen_solid or value == "solid"
                self.pos += 1
                name = self._rest_of_line(token.line)
                if value == "solid" and not self.solid_name:
                    self.solid_name = name
            else:
                # stray tokens between facets
                self.pos += 1

        if not self._seen_solid and not self.faces and self.tokens:
            raise MalformedBody("no 'solid' or 'facet' found in ASCII STL")
        return self

    def _rest_of_line(self, line: int) -> str:
        """Consume the remaining tokens of ``line``; solid names may contain keywords."""
        words = []
        while self._peek() is not None and self._peek().line == line:
            if self._facet_starts_here():
                # whole file on one line
                break
            words.append(self.tokens[self.pos].text)
            self.pos += 1
        return " ".join(words)

    def _facet_starts_here(self) -> bool:
        """'facet' followed by 'normal' or 'outer'."""
        if self.pos + 1 >= len(self.tokens):
            return False
        token, following = self.tokens[self.pos], self.tokens[self.pos + 1]
        return (token.value == "facet" and following.kind == "keyword"
                and following.value in ("normal", "outer"))

    def _parse_triple(self, context: str) -> Tuple[float, float, float]:
        values = []
        for _ in range(3):
            token = self._next(context)
            if token.kind != "number":
                raise MalformedBody(f"expected a number in {context}, got {token.text!r}")
            values.append(token.value)
        return values[0], values[1], values[2]

    def _parse_facet(self) -> None:
        self.pos += 1  # facet
        normal = (0.0, 0.0, 0.0)
        facet_vertices = []

        while True:
            kind, value, _text, _line = self._next("facet")
            if kind != "keyword":
                continue
            if value == "endfacet":
                break
            if value == "normal":
                normal = self._parse_triple("facet normal")
            elif value == "vertex":
                facet_vertices.append(self._parse_triple("vertex"))
            elif value in ("facet", "endsolid", "solid"):
                raise MalformedBody(f"'{value}' inside a facet (missing endfacet)")

        if len(facet_vertices) != 3:
            raise MalformedBody(
                f"facet {len(self.faces)} has {len(facet_vertices)} vertices, expected 3"
            )

        self.vertices.extend(facet_vertices)
        length = len(self.vertices)
        self.faces.append((length - 3, length - 2, length - 1))
        self.face_normals.append(normal)


def decode_ascii_stl(text: str, name: str = "") -> DecodedMesh:
    parser = AsciiSTLParser(text).parse()
    log.debug(f"ASCII STL: solid {parser.solid_name!r}, {len(parser.faces)} facets")
    return DecodedMesh(
        np.array(parser.vertices, dtype=np.float32).reshape(-1, 3),
        np.array(parser.faces, dtype=np.uint32).reshape(-1, 3),
        face_normals=np.array(parser.face_normals, dtype=np.float32).reshape(-1, 3),
        name=name or parser.solid_name,
    )


# ---------- ENTRY POINTS ----------

def decode_stl(data: STLInput, spec: MeshSpec | None = None, name: str = "") -> DecodedMesh:
    """
    Decode an STL file held in memory, detecting binary vs. ASCII.

    Args:
        data: Raw file bytes or text.
        spec: Import settings (scale, axis mapping).
        name: Name given to the resulting mesh.
    """
    if spec is None:
        spec = DEFAULT_SPEC

    binary = ensure_binary(data)
    if not binary:
        raise TruncatedInput("empty STL input")
    if is_binary_stl(binary):
        mesh = decode_binary_stl(binary, name=name)
    else:
        mesh = decode_ascii_stl(ensure_string(data), name=name)

    if mesh.has_colors:
        mesh.index_face_colors()
    mesh.compute_bounding_box()
    mesh.compute_bounding_sphere()
    return spec.apply_to_mesh(mesh)


def load_stl_file(path, spec: MeshSpec | None = None) -> DecodedMesh:
    """Load STL file (binary or ASCII), applying MeshSpec import settings."""
    path = Path(path)
    if spec is None:
        spec = MeshSpec.for_mesh_file(path)

    with open(path, "rb") as f:
        data = f.read()

    log.debug(f"Loading STL {path} ({len(data)} bytes)")
    return decode_stl(data, spec, name=path.stem)
