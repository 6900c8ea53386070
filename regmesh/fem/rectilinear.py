"""
Rectilinear finite element mesh generation from an image.

The image pixel grid is partitioned into a regular lattice of cells,
each ``pixels_per_element`` pixels wide, and every cell becomes one
quadrilateral element. Corner nodes are shared between adjacent cells:
they are deduplicated by their integer lattice coordinate, never by
floating-point position.

Numbering is deterministic and zero-based. Nodes are numbered in
row-major lattice order (x fastest), so the node at lattice corner
(i, j) has number ``i + (nx + 1) * j``. Elements are numbered in
row-major cell order, and element (i, j) connects the corners
(i, j), (i + 1, j), (i + 1, j + 1), (i, j + 1) in that order.
"""

import dataclasses
import logging
from typing import Dict, Optional, Sequence, Tuple
import numpy as np

from regmesh.core.image_data import ImageData, MeshConfig, RemainderPolicy
from regmesh.core.exceptions import InvalidLatticeConfiguration
from regmesh.fem.node import Node
from regmesh.fem.elements import QuadrilateralMembraneElement
from regmesh.fem.material import MaterialLinearElasticity
from regmesh.fem.fem_object import FEMObject

logger = logging.getLogger(__name__)

LatticeCoordinate = Tuple[int, int]


class RectilinearMeshBuilder:
    """
    Builds a quadrilateral mesh over an image's pixel grid.

    Attributes:
        pixels_per_element: Cell extent in pixels (x, y)
        element: Template element cloned for every cell
        material: Material shared by every element
        remainder_policy: Treatment of pixels not covered by whole cells
        number_of_elements: Lattice cell counts (x, y) of the last build

    Example:
        >>> builder = RectilinearMeshBuilder(
        ...     pixels_per_element=(2, 2),
        ...     element=QuadrilateralMembraneElement(),
        ...     material=MaterialLinearElasticity(youngs_modulus=3000.0),
        ... )
        >>> mesh = builder.build(image)
        >>> mesh.number_of_elements
    """

    def __init__(
        self,
        pixels_per_element: Sequence[int] = (1, 1),
        element: Optional[QuadrilateralMembraneElement] = None,
        material: Optional[MaterialLinearElasticity] = None,
        remainder_policy: RemainderPolicy = RemainderPolicy.TRUNCATE
    ):
        self.pixels_per_element = tuple(int(p) for p in pixels_per_element)
        self.element = element or QuadrilateralMembraneElement()
        self.material = material or MaterialLinearElasticity()
        self.remainder_policy = RemainderPolicy(remainder_policy)
        self.number_of_elements: Tuple[int, int] = (0, 0)

    @classmethod
    def from_config(
        cls,
        config: MeshConfig,
        element: Optional[QuadrilateralMembraneElement] = None
    ) -> 'RectilinearMeshBuilder':
        """Create a builder and its shared material from a mesh configuration."""
        return cls(
            pixels_per_element=config.pixels_per_element,
            element=element,
            material=MaterialLinearElasticity.from_config(config),
            remainder_policy=config.remainder_policy,
        )

    def compute_number_of_elements(self, image_size: Sequence[int]) -> Tuple[int, int]:
        """
        Lattice cell counts for an image of the given (x, y) size.

        Raises:
            InvalidLatticeConfiguration: If the lattice cannot hold at least
                one element per axis, or leaves a remainder under the
                reject policy
        """
        if len(self.pixels_per_element) != 2:
            raise InvalidLatticeConfiguration(
                self.pixels_per_element, image_size, "expected 2 components"
            )
        if any(p <= 0 for p in self.pixels_per_element):
            raise InvalidLatticeConfiguration(
                self.pixels_per_element, image_size, "pixels per element must be positive"
            )

        counts = tuple(int(s) // p for s, p in zip(image_size, self.pixels_per_element))
        if any(c < 1 for c in counts):
            raise InvalidLatticeConfiguration(
                self.pixels_per_element, image_size, "lattice has no element along an axis"
            )

        remainders = tuple(int(s) % p for s, p in zip(image_size, self.pixels_per_element))
        if any(remainders):
            if self.remainder_policy == RemainderPolicy.REJECT:
                raise InvalidLatticeConfiguration(
                    self.pixels_per_element,
                    image_size,
                    f"image extent is not a multiple of the element size (remainder {remainders})"
                )
            logger.warning(
                f"Truncating lattice: {remainders} trailing pixels per axis are not meshed"
            )
        return counts

    def build(self, image: ImageData) -> FEMObject:
        """
        Generate the mesh for ``image``.

        Returns:
            FEMObject with (nx + 1) * (ny + 1) nodes, nx * ny elements and
            one material

        Raises:
            InvalidLatticeConfiguration: Before any node is generated, if
                the lattice is invalid
        """
        self.number_of_elements = (0, 0)
        nx, ny = self.compute_number_of_elements(image.size)
        self.number_of_elements = (nx, ny)

        material = self.material
        if material.global_number != 0:
            logger.debug(f"Renumbering shared material {material.global_number} -> 0")
            material = dataclasses.replace(material, global_number=0)

        mesh = FEMObject()
        mesh.add_next_material(material)

        step = np.asarray(self.pixels_per_element, dtype=np.float64)
        node_map: Dict[LatticeCoordinate, Node] = {}
        for j in range(ny + 1):
            for i in range(nx + 1):
                coordinates = image.index_to_physical(np.array([i, j]) * step)
                node = Node(global_number=len(node_map), coordinates=coordinates)
                node_map[(i, j)] = node
                mesh.add_next_node(node)

        for j in range(ny):
            for i in range(nx):
                corners = ((i, j), (i + 1, j), (i + 1, j + 1), (i, j + 1))
                element = self.element.create_another(
                    global_number=mesh.number_of_elements,
                    node_numbers=[node_map[c].global_number for c in corners],
                    material_number=material.global_number,
                )
                mesh.add_next_element(element)

        mesh.validate()
        logger.info(
            f"Generated rectilinear mesh: {nx}x{ny} elements, "
            f"{mesh.number_of_nodes} nodes, {mesh.number_of_materials} material"
        )
        return mesh


def build_mesh(
    image: ImageData,
    pixels_per_element: Sequence[int],
    element: Optional[QuadrilateralMembraneElement] = None,
    material: Optional[MaterialLinearElasticity] = None,
    remainder_policy: RemainderPolicy = RemainderPolicy.TRUNCATE
) -> FEMObject:
    """Build a rectilinear quadrilateral mesh over ``image``."""
    builder = RectilinearMeshBuilder(
        pixels_per_element=pixels_per_element,
        element=element,
        material=material,
        remainder_policy=remainder_policy,
    )
    return builder.build(image)
