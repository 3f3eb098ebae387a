"""
Tests for PLY header parsing.
"""

import logging

import pytest

from meshfmt.errors import MalformedHeader, UnknownPropertyType
from meshfmt.loaders.ply_header import ListProperty, ScalarProperty, parse_header


HEADER = (
    "ply\n"
    "format ascii 1.0\n"
    "comment made by hand\n"
    "comment   second   comment\n"
    "element vertex 8\n"
    "property float x\n"
    "property float32 y\n"
    "property double z\n"
    "property uchar red\n"
    "\n"
    "element face 6\n"
    "property list uchar int vertex_indices\n"
    "end_header\n"
)


class TestParseHeader:
    """Structure of a parsed header."""

    def test_format_and_version(self):
        header = parse_header(HEADER)
        assert header.format == "ascii"
        assert header.version == "1.0"
        assert header.is_ascii
        assert not header.is_binary

    def test_comments_keep_order(self):
        header = parse_header(HEADER)
        assert header.comments == ["made by hand", "second comment"]

    def test_elements_in_order(self):
        header = parse_header(HEADER)
        assert [e.name for e in header.elements] == ["vertex", "face"]
        assert [e.count for e in header.elements] == [8, 6]
        assert header.total_count == 14

    def test_properties(self):
        header = parse_header(HEADER)
        vertex = header.element("vertex")
        assert vertex.properties == [
            ScalarProperty("x", "float"),
            ScalarProperty("y", "float32"),
            ScalarProperty("z", "double"),
            ScalarProperty("red", "uchar"),
        ]
        face = header.element("face")
        assert face.properties == [ListProperty("vertex_indices", "uchar", "int")]
        assert face.properties[0].is_list

    def test_header_length_points_at_body(self):
        text = HEADER + "0 0 0 1\n"
        header = parse_header(text)
        assert header.header_length == len(HEADER)
        assert text[header.header_length:] == "0 0 0 1\n"

    def test_crlf_line_breaks(self):
        text = HEADER.replace("\n", "\r\n")
        header = parse_header(text)
        assert header.header_length == len(text)
        assert [e.name for e in header.elements] == ["vertex", "face"]

    def test_binary_endianness(self):
        header = parse_header("ply\nformat binary_big_endian 1.0\nelement vertex 0\nend_header\n")
        assert header.is_binary
        assert not header.little_endian
        header = parse_header("ply\nformat binary_little_endian 1.0\nend_header\n")
        assert header.little_endian

    def test_utf8_comment_survives_latin1_view(self, caplog):
        raw = "ply\nformat ascii 1.0\ncomment Åsa scan\nelement vertex 0\nend_header\n"
        text = raw.encode("utf-8").decode("latin-1")
        with caplog.at_level(logging.WARNING, logger="meshfmt"):
            header = parse_header(text)
        assert header.comments == ["Ã\x85sa scan"]
        assert header.header_length == len(text)
        assert "unhandled directive" not in caplog.text

    def test_obj_info_collected(self):
        header = parse_header("ply\nformat ascii 1.0\nobj_info num_cols 4\nend_header\n")
        assert header.obj_info == ["num_cols 4"]


class TestNameMapping:
    """Property renames apply to names only."""

    def test_scalar_rename(self):
        text = "ply\nformat ascii 1.0\nelement vertex 1\nproperty uchar diffuse_red\nend_header\n"
        header = parse_header(text, {"diffuse_red": "red"})
        assert header.element("vertex").properties == [ScalarProperty("red", "uchar")]

    def test_list_rename_keeps_list(self):
        text = "ply\nformat ascii 1.0\nelement face 1\nproperty list uchar uint vertex_index\nend_header\n"
        header = parse_header(text, {"vertex_index": "vertex_indices"})
        assert header.element("face").properties == [ListProperty("vertex_indices", "uchar", "uint")]

    def test_mapping_not_mutated(self):
        mapping = {"a": "b"}
        parse_header("ply\nformat ascii 1.0\nelement v 1\nproperty int a\nend_header\n", mapping)
        assert mapping == {"a": "b"}


class TestMalformed:
    """Broken headers raise; unknown directives only warn."""

    def test_missing_end_header(self):
        with pytest.raises(MalformedHeader):
            parse_header("ply\nformat ascii 1.0\nelement vertex 1\n")

    def test_missing_magic(self):
        with pytest.raises(MalformedHeader):
            parse_header("format ascii 1.0\nend_header\n")

    def test_property_before_element(self):
        with pytest.raises(MalformedHeader):
            parse_header("ply\nformat ascii 1.0\nproperty float x\nend_header\n")

    def test_bad_element_count(self):
        with pytest.raises(MalformedHeader):
            parse_header("ply\nformat ascii 1.0\nelement vertex many\nend_header\n")

    def test_unknown_format(self):
        with pytest.raises(MalformedHeader):
            parse_header("ply\nformat binary_middle_endian 1.0\nend_header\n")

    def test_unknown_property_type(self):
        with pytest.raises(UnknownPropertyType):
            parse_header("ply\nformat ascii 1.0\nelement vertex 1\nproperty int64 x\nend_header\n")
        with pytest.raises(UnknownPropertyType):
            parse_header("ply\nformat ascii 1.0\nelement f 1\nproperty list uchar long i\nend_header\n")

    def test_unknown_directive_is_logged(self, caplog):
        text = "ply\nformat ascii 1.0\nfrobnicate 1 2\nelement vertex 0\nend_header\n"
        with caplog.at_level(logging.WARNING, logger="meshfmt"):
            header = parse_header(text)
        assert [e.name for e in header.elements] == ["vertex"]
        assert "frobnicate" in caplog.text
