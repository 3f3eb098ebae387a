import json

import numpy as np
import pytest

from meshfmt import MeshSpec, decode_stl, load_mesh_file
from meshfmt.mesh import BoundingSphere, DecodedMesh


def test_defaults():
    spec = MeshSpec()
    assert dict(spec.property_name_mapping) == {}
    assert spec.is_identity_transform
    assert spec.map_property_name("x") == "x"


def test_mapping_is_read_only():
    source = {"diffuse_red": "red"}
    spec = MeshSpec(property_name_mapping=source)
    source["diffuse_red"] = "green"
    assert spec.map_property_name("diffuse_red") == "red"
    with pytest.raises(TypeError):
        spec.property_name_mapping["x"] = "y"


def test_invalid_axis():
    with pytest.raises(ValueError):
        MeshSpec(axis_x="w")


def test_save_load_roundtrip(tmp_path):
    spec = MeshSpec(property_name_mapping={"a": "b"}, scale=0.5, axis_y="z", axis_z="-y")
    spec.save_for_mesh(tmp_path / "model.ply")

    with open(tmp_path / "model.ply.meta", encoding="utf-8") as f:
        data = json.load(f)
    assert data["scale"] == 0.5

    loaded = MeshSpec.for_mesh_file(tmp_path / "model.ply")
    assert loaded == spec


def test_missing_and_invalid_meta(tmp_path):
    assert MeshSpec.for_mesh_file(tmp_path / "none.stl") == MeshSpec()

    (tmp_path / "bad.stl.meta").write_text("{not json")
    assert MeshSpec.for_mesh_file(tmp_path / "bad.stl") == MeshSpec()

    (tmp_path / "axis.stl.meta").write_text('{"axis_x": "q"}')
    assert MeshSpec.for_mesh_file(tmp_path / "axis.stl") == MeshSpec()


def test_axis_remap_and_scale():
    spec = MeshSpec(scale=2.0, axis_y="z", axis_z="-y")
    vertices = np.array([[1.0, 2.0, 3.0]], dtype=np.float32)
    np.testing.assert_array_equal(spec.apply_to_vertices(vertices), [[2.0, 6.0, -4.0]])
    np.testing.assert_array_equal(spec.apply_to_normals(vertices), [[1.0, 3.0, -2.0]])


def test_apply_to_mesh_refreshes_bounds():
    text = (
        "solid s\nfacet normal 0 0 1\nouter loop\n"
        "vertex 0 0 0\nvertex 1 0 0\nvertex 0 1 0\n"
        "endloop\nendfacet\nendsolid s\n"
    )
    plain = decode_stl(text)
    scaled = decode_stl(text, MeshSpec(scale=10.0, axis_y="z", axis_z="y"))
    assert scaled.bounding_sphere.radius == pytest.approx(plain.bounding_sphere.radius * 10)
    np.testing.assert_allclose(scaled.bounding_box.max, [10, 0, 10])
    np.testing.assert_allclose(scaled.face_normals, [[0, 1, 0]])


def test_load_mesh_file_dispatch(tmp_path):
    path = tmp_path / "tri.PLY"
    path.write_text(
        "ply\nformat ascii 1.0\nelement vertex 3\nproperty float x\nproperty float y\n"
        "property float z\nelement face 1\nproperty list uchar int vertex_indices\n"
        "end_header\n0 0 0\n1 0 0\n0 1 0\n3 0 1 2\n"
    )
    assert load_mesh_file(path).triangle_count == 1

    with pytest.raises(ValueError):
        load_mesh_file(tmp_path / "model.obj")


class TestDecodedMesh:
    """Output container helpers."""

    def test_layout_and_buffer(self):
        mesh = DecodedMesh(
            np.zeros((3, 3)), [[0, 1, 2]],
            colors=np.ones((3, 3)), normals=np.zeros((3, 3)),
        )
        layout = mesh.get_vertex_layout()
        assert layout.stride == 36
        assert [a.name for a in layout.attributes] == ["position", "normal", "color"]
        assert mesh.interleaved_buffer().shape == (3, 9)

    def test_parallel_arrays_checked(self):
        with pytest.raises(ValueError):
            DecodedMesh(np.zeros((3, 3)), [[0, 1, 2]], colors=np.ones((2, 3)))

    def test_bounding_sphere_encloses(self):
        points = np.array([[0, 0, 0], [2, 0, 0], [0, 2, 0]], dtype=np.float32)
        sphere = BoundingSphere.from_points(points)
        np.testing.assert_allclose(sphere.center, [1, 1, 0])
        assert sphere.radius == pytest.approx(np.sqrt(2.0))
