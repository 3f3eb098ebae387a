# meshfmt/loaders/ply_loader.py
"""PLY loader (ASCII, binary little- and big-endian)."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, List, Tuple, Union

from meshfmt import log
from meshfmt.byteview import ByteView, is_float_type
from meshfmt.errors import MalformedBody, MalformedHeader, TruncatedInput
from meshfmt.loaders.assembler import MeshAssembler
from meshfmt.loaders.mesh_spec import DEFAULT_SPEC, MeshSpec
from meshfmt.loaders.ply_header import (
    ListProperty,
    PLYHeader,
    Property,
    parse_header,
    split_fields,
    split_lines,
)
from meshfmt.loaders.records import ListValue, Record, Scalar
from meshfmt.mesh.mesh import DecodedMesh

PLYInput = Union[bytes, bytearray, memoryview, str]


def bin2str(data) -> str:
    """One character per byte."""
    return bytes(data).decode("latin-1")


# ---------- ASCII BODY ----------

def _parse_ascii_number(token: str, type_name: str):
    try:
        if is_float_type(type_name):
            return float(token)
        try:
            return int(token)
        except ValueError:
            # some exporters write "3.0" for integer properties
            return int(float(token))
    except (ValueError, OverflowError):
        raise MalformedBody(f"cannot parse {token!r} as {type_name}") from None


def _list_length(count, prop: ListProperty) -> int:
    """List count as an int; float count types must hold a whole number."""
    if isinstance(count, float):
        if not count.is_integer():
            raise MalformedBody(f"list length {count} for {prop.name!r} is not a whole number")
        count = int(count)
    if count < 0:
        raise MalformedBody(f"negative list length {count} for {prop.name!r}")
    return count


def parse_ascii_element(properties: List[Property], line: str) -> Record:
    """Decode one body line against an element's properties."""
    tokens = split_fields(line)
    pos = 0

    def take(type_name: str):
        nonlocal pos
        if pos >= len(tokens):
            raise TruncatedInput(f"line {line!r} ends before all properties were read")
        value = _parse_ascii_number(tokens[pos], type_name)
        pos += 1
        return value

    record: Record = {}
    for prop in properties:
        if isinstance(prop, ListProperty):
            n = _list_length(take(prop.count_type), prop)
            record[prop.name] = ListValue(tuple(take(prop.item_type) for _ in range(n)))
        else:
            record[prop.name] = Scalar(take(prop.type_name))
    return record


def iter_ascii_records(header: PLYHeader, body: str) -> Iterator[Tuple[str, Record]]:
    """
    Yield (element_name, record) for each non-blank body line.

    Records are grouped by element in header order; one line is one record.
    """
    elements = [e for e in header.elements if e.count > 0]
    current = 0
    current_count = 0

    for line in split_lines(body):
        if not split_fields(line):
            continue

        if current < len(elements) and current_count >= elements[current].count:
            current += 1
            current_count = 0

        if current >= len(elements):
            log.debug("Ignoring trailing lines after the last PLY element")
            return

        element = elements[current]
        yield element.name, parse_ascii_element(element.properties, line)
        current_count += 1

    read = sum(e.count for e in elements[:current]) + current_count
    if read < header.total_count:
        raise TruncatedInput(
            f"PLY body has {read} record(s), header declares {header.total_count}"
        )


# ---------- BINARY BODY ----------

def binary_read_element(view: ByteView, at: int, properties: List[Property],
                        little_endian: bool) -> Tuple[Record, int]:
    """Decode one record at ``at``; returns (record, bytes_read)."""
    record: Record = {}
    read = 0

    for prop in properties:
        if isinstance(prop, ListProperty):
            n, size = view.read(at + read, prop.count_type, little_endian)
            n = _list_length(n, prop)
            read += size
            items = []
            for _ in range(n):
                value, size = view.read(at + read, prop.item_type, little_endian)
                items.append(value)
                read += size
            record[prop.name] = ListValue(tuple(items))
        else:
            value, size = view.read(at + read, prop.type_name, little_endian)
            record[prop.name] = Scalar(value)
            read += size

    return record, read


def iter_binary_records(header: PLYHeader, data) -> Iterator[Tuple[str, Record]]:
    """Yield (element_name, record) walking the payload after the header."""
    view = ByteView(data, header.header_length)
    little_endian = header.little_endian
    loc = 0

    for element in header.elements:
        for _ in range(element.count):
            record, read = binary_read_element(view, loc, element.properties, little_endian)
            loc += read
            yield element.name, record

    if loc < len(view):
        log.debug(f"Ignoring {len(view) - loc} trailing byte(s) after PLY body")


# ---------- ENTRY POINTS ----------

def decode_ply(data: PLYInput, spec: MeshSpec | None = None, name: str = "") -> DecodedMesh:
    """
    Decode a PLY file held in memory.

    Args:
        data: Raw file bytes, or text for ASCII files.
        spec: Import settings; its property_name_mapping renames properties.
        name: Name given to the resulting mesh.

    Returns:
        DecodedMesh with triangulated faces.
    """
    if spec is None:
        spec = DEFAULT_SPEC

    if isinstance(data, str):
        text = data
        header = parse_header(text, spec.property_name_mapping)
        if not header.is_ascii:
            raise MalformedHeader(f"text input declares non-ascii format {header.format!r}")
    else:
        text = bin2str(data)
        header = parse_header(text, spec.property_name_mapping)

    assembler = MeshAssembler(header, name=name)
    if header.is_ascii:
        records = iter_ascii_records(header, text[header.header_length:])
    else:
        records = iter_binary_records(header, data)

    for element_name, record in records:
        assembler.handle(element_name, record)

    mesh = assembler.finish()
    return spec.apply_to_mesh(mesh)


def load_ply_file(path, spec: MeshSpec | None = None) -> DecodedMesh:
    """Load PLY file, applying spec (or the file's .meta spec) if provided."""
    path = Path(path)
    if spec is None:
        spec = MeshSpec.for_mesh_file(path)

    with open(path, "rb") as f:
        data = f.read()

    log.debug(f"Loading PLY {path} ({len(data)} bytes)")
    return decode_ply(data, spec, name=path.stem)
