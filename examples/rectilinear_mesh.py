#!/usr/bin/env python
"""
Rectilinear Mesh Example

This script partitions an image into a regular lattice of quadrilateral
membrane elements sharing one linear elastic material, reports the mesh
and exports it to JSON.

Usage:
    python rectilinear_mesh.py image.mha --pixels-per-element 2 2 --output ./mesh

Without an input image a 4x4 blank image is meshed:
    python rectilinear_mesh.py --pixels-per-element 2 2
"""

import argparse
import sys
from pathlib import Path

import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from regmesh import (
    ImageData,
    ImageLoader,
    MeshConfig,
    RectilinearMeshBuilder,
    ExportManager,
)
from regmesh.core.exceptions import RegMeshError
from regmesh.utils.logging_config import setup_logging, get_logger

logger = get_logger(__name__)


def main():
    """Main entry point for rectilinear mesh example."""

    parser = argparse.ArgumentParser(description="Generate a rectilinear FEM mesh over an image")
    parser.add_argument("image", type=str, nargs="?", help="Path to input image")
    parser.add_argument(
        "--pixels-per-element",
        type=int,
        nargs=2,
        default=[2, 2],
        help="Element extent in pixels (x y)"
    )
    parser.add_argument(
        "--youngs-modulus",
        type=float,
        default=3000.0,
        help="Young's modulus of the shared material"
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default="./mesh_results",
        help="Output directory for results"
    )
    args = parser.parse_args()

    setup_logging(level="INFO")

    if args.image:
        try:
            image = ImageLoader().load(args.image)
        except RegMeshError as e:
            logger.error(f"Failed to load image: {e}")
            return 1
    else:
        image = ImageData(pixel_array=np.zeros((4, 4), dtype=np.uint8))

    config = MeshConfig(
        pixels_per_element=tuple(args.pixels_per_element),
        youngs_modulus=args.youngs_modulus,
        cross_sectional_area=0.02,
        moment_of_inertia=0.004,
    )
    builder = RectilinearMeshBuilder.from_config(config)

    try:
        mesh = builder.build(image)
    except RegMeshError as e:
        logger.error(f"Mesh generation failed: {e}")
        return 1

    nx, ny = builder.number_of_elements
    logger.info(f"Lattice: {nx} x {ny} elements")
    for node in mesh.nodes:
        logger.info(f"  Node {node.global_number}: ({node.x:g}, {node.y:g})")
    for element in mesh.elements:
        logger.info(f"  Element {element.global_number}: nodes {list(element.node_numbers)}")

    material = mesh.get_material(0)
    logger.info(
        f"Material 0: E={material.youngs_modulus:g}, A={material.cross_sectional_area:g}, "
        f"I={material.moment_of_inertia:g}"
    )

    exporter = ExportManager(output_dir=args.output)
    exporter.save_mesh(mesh, "mesh.json")
    return 0


if __name__ == "__main__":
    sys.exit(main())
