# meshfmt/loaders/ply_header.py
"""PLY header parsing: element and property declarations."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Union

from meshfmt import log
from meshfmt.byteview import SCALAR_TYPES
from meshfmt.errors import MalformedHeader, UnknownPropertyType

PLY_FORMATS = ("ascii", "binary_little_endian", "binary_big_endian")

_MAGIC = re.compile(r"ply[ \t]*(\r\n|\n|\r)")
_END_HEADER = re.compile(r"^[ \t]*end_header[ \t]*(\r\n|\n|\r|\Z)", re.MULTILINE)
_LINE_BREAK = re.compile(r"\r\n|\n|\r")
_FIELD_SEP = re.compile(r"[ \t\f\v]+")


def split_lines(text: str) -> List[str]:
    """Split on \\r\\n, \\n or \\r only; latin-1 text may hold \\x85 and friends."""
    return _LINE_BREAK.split(text)


def split_fields(line: str) -> List[str]:
    """Whitespace-separated fields, ASCII whitespace only."""
    return [t for t in _FIELD_SEP.split(line) if t]


# ---------- DATA CLASSES ----------

@dataclass(frozen=True)
class ScalarProperty:
    name: str
    type_name: str

    @property
    def is_list(self) -> bool:
        return False


@dataclass(frozen=True)
class ListProperty:
    name: str
    count_type: str
    item_type: str

    @property
    def is_list(self) -> bool:
        return True


Property = Union[ScalarProperty, ListProperty]


@dataclass
class PLYElement:
    name: str
    count: int
    properties: List[Property] = field(default_factory=list)

    def property(self, name: str) -> Optional[Property]:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None


@dataclass
class PLYHeader:
    """Structured header: format, comments and ordered element declarations."""
    format: Optional[str] = None
    version: Optional[str] = None
    comments: List[str] = field(default_factory=list)
    obj_info: List[str] = field(default_factory=list)
    elements: List[PLYElement] = field(default_factory=list)
    # Characters (== bytes under latin-1) from start of input to the body
    header_length: int = 0

    @property
    def is_ascii(self) -> bool:
        return self.format == "ascii"

    @property
    def is_binary(self) -> bool:
        return self.format in ("binary_little_endian", "binary_big_endian")

    @property
    def little_endian(self) -> bool:
        return self.format == "binary_little_endian"

    @property
    def total_count(self) -> int:
        return sum(e.count for e in self.elements)

    def element(self, name: str) -> Optional[PLYElement]:
        for elem in self.elements:
            if elem.name == name:
                return elem
        return None


# ---------- PARSING ----------

def _check_type(type_name: str) -> str:
    if type_name not in SCALAR_TYPES:
        raise UnknownPropertyType(type_name)
    return type_name


def _make_property(values: List[str], mapping: Mapping[str, str], line_no: int) -> Property:
    """Build a property from the tokens after the 'property' directive."""
    if values and values[0] == "list":
        if len(values) < 4:
            raise MalformedHeader(f"line {line_no}: list property needs count type, item type and name")
        count_type = _check_type(values[1])
        item_type = _check_type(values[2])
        name = values[3]
        return ListProperty(mapping.get(name, name), count_type, item_type)

    if len(values) < 2:
        raise MalformedHeader(f"line {line_no}: property needs a type and a name")
    type_name = _check_type(values[0])
    name = values[1]
    return ScalarProperty(mapping.get(name, name), type_name)


def find_header_end(text: str) -> int:
    """
    Length of the header region including 'end_header' and its line break.

    Raises:
        MalformedHeader: the magic line or the terminator is missing.
    """
    if not _MAGIC.match(text):
        raise MalformedHeader("missing 'ply' magic line")
    m = _END_HEADER.search(text)
    if m is None:
        raise MalformedHeader("missing 'end_header' line")
    return m.end()


def parse_header(text: str, name_mapping: Optional[Mapping[str, str]] = None) -> PLYHeader:
    """
    Parse the textual PLY header.

    Args:
        text: Whole file as text (binary files decoded one char per byte).
        name_mapping: Optional property renames, e.g. {"diffuse_red": "red"}.

    Returns:
        PLYHeader with elements in declaration order.
    """
    mapping = name_mapping if name_mapping is not None else {}
    header_length = find_header_end(text)
    header = PLYHeader(header_length=header_length)

    magic_end = _MAGIC.match(text).end()
    lines = split_lines(text[magic_end:header_length])

    current: Optional[PLYElement] = None

    # line numbers are 1-based and count the magic line
    for line_no, line in enumerate(lines, start=2):
        tokens = split_fields(line)
        if not tokens:
            continue

        directive, values = tokens[0], tokens[1:]

        if directive == "end_header":
            break

        elif directive == "format":
            if not values:
                raise MalformedHeader(f"line {line_no}: format line without a format")
            if values[0] not in PLY_FORMATS:
                raise MalformedHeader(f"line {line_no}: unsupported format {values[0]!r}")
            header.format = values[0]
            header.version = values[1] if len(values) > 1 else None

        elif directive == "comment":
            header.comments.append(" ".join(values))

        elif directive == "obj_info":
            header.obj_info.append(" ".join(values))

        elif directive == "element":
            if len(values) < 2:
                raise MalformedHeader(f"line {line_no}: element needs a name and a count")
            try:
                count = int(values[1])
            except ValueError:
                raise MalformedHeader(f"line {line_no}: bad element count {values[1]!r}") from None
            if count < 0:
                raise MalformedHeader(f"line {line_no}: negative element count {count}")

            if current is not None:
                header.elements.append(current)
            current = PLYElement(name=values[0], count=count)

        elif directive == "property":
            if current is None:
                raise MalformedHeader(f"line {line_no}: property declared before any element")
            current.properties.append(_make_property(values, mapping, line_no))

        else:
            log.warn(f"PLY header line {line_no}: unhandled directive {directive!r} {values}")

    if current is not None:
        header.elements.append(current)

    if header.format is None:
        raise MalformedHeader("missing 'format' line")

    log.debug(
        f"PLY header: format={header.format} {header.version}, "
        + ", ".join(f"{e.name}[{e.count}]" for e in header.elements)
    )
    return header


__all__ = [
    "PLY_FORMATS",
    "ScalarProperty",
    "ListProperty",
    "Property",
    "PLYElement",
    "PLYHeader",
    "find_header_end",
    "split_fields",
    "split_lines",
    "parse_header",
]
