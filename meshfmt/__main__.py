"""
Command-line mesh inspector.

Usage:
    python -m meshfmt path/to/model.ply --map diffuse_red=red
"""

import argparse
import logging
import sys
from pathlib import Path


def _parse_mapping(pairs):
    mapping = {}
    for pair in pairs:
        if "=" not in pair:
            raise argparse.ArgumentTypeError(f"expected NAME=NEW_NAME, got {pair!r}")
        old, new = pair.split("=", 1)
        mapping[old] = new
    return mapping


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Decode a PLY or STL file and print a summary"
    )
    parser.add_argument(
        "path",
        type=str,
        help="Mesh file (.ply or .stl)",
    )
    parser.add_argument(
        "--map", "-m",
        action="append",
        default=[],
        metavar="NAME=NEW_NAME",
        help="Rename a PLY property while parsing (repeatable)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    path = Path(args.path)
    if not path.exists():
        print(f"Error: File does not exist: {path}")
        return 1

    from meshfmt import MeshFormatError, MeshSpec, load_mesh_file

    try:
        mapping = _parse_mapping(args.map)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))

    spec = MeshSpec.for_mesh_file(path)
    if mapping:
        spec = MeshSpec(
            property_name_mapping={**spec.property_name_mapping, **mapping},
            scale=spec.scale,
            axis_x=spec.axis_x,
            axis_y=spec.axis_y,
            axis_z=spec.axis_z,
        )

    try:
        mesh = load_mesh_file(path, spec)
    except (MeshFormatError, ValueError) as e:
        print(f"Error: {type(e).__name__}: {e}")
        return 2

    print(f"name:      {mesh.name}")
    print(f"vertices:  {mesh.vertex_count}")
    print(f"triangles: {mesh.triangle_count}")
    print(f"colors:    {mesh.has_colors}" + (f" (alpha {mesh.alpha:.3f})" if mesh.alpha is not None else ""))
    print(f"normals:   {mesh.normals is not None or mesh.face_normals is not None}")
    if mesh.bounding_box is not None:
        print(f"bbox:      {mesh.bounding_box.min.tolist()} .. {mesh.bounding_box.max.tolist()}")
    sphere = mesh.bounding_sphere
    if sphere is not None:
        print(f"sphere:    center {sphere.center.tolist()} radius {sphere.radius:.6g}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
