"""
Finite element mesh container.

``FEMObject`` owns the node, element and material collections. Nodes
and materials live in arenas indexed by global number; elements store
numbers, never the objects themselves.
"""

import logging
from typing import Dict, Any, List
import numpy as np

from regmesh.core.exceptions import ConfigurationError
from regmesh.fem.node import Node
from regmesh.fem.elements import QuadrilateralMembraneElement
from regmesh.fem.material import MaterialLinearElasticity

logger = logging.getLogger(__name__)


class FEMObject:
    """
    Collections of nodes, elements and materials forming a mesh.

    Invariants (checked by ``validate``): global numbers equal the
    position in their collection, every element node reference resolves
    to a node, and every element material reference resolves to a
    material.
    """

    def __init__(self):
        self._nodes: List[Node] = []
        self._elements: List[QuadrilateralMembraneElement] = []
        self._materials: List[MaterialLinearElasticity] = []

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes)

    @property
    def elements(self) -> List[QuadrilateralMembraneElement]:
        return list(self._elements)

    @property
    def materials(self) -> List[MaterialLinearElasticity]:
        return list(self._materials)

    @property
    def number_of_nodes(self) -> int:
        return len(self._nodes)

    @property
    def number_of_elements(self) -> int:
        return len(self._elements)

    @property
    def number_of_materials(self) -> int:
        return len(self._materials)

    def add_next_node(self, node: Node) -> None:
        self._nodes.append(node)

    def add_next_element(self, element: QuadrilateralMembraneElement) -> None:
        self._elements.append(element)

    def add_next_material(self, material: MaterialLinearElasticity) -> None:
        self._materials.append(material)

    def get_node(self, global_number: int) -> Node:
        return self._nodes[global_number]

    def get_element(self, global_number: int) -> QuadrilateralMembraneElement:
        return self._elements[global_number]

    def get_material(self, global_number: int) -> MaterialLinearElasticity:
        return self._materials[global_number]

    def get_element_nodes(self, element: QuadrilateralMembraneElement) -> List[Node]:
        """Resolve the corner nodes of an element."""
        return [self._nodes[n] for n in element.node_numbers]

    def get_element_material(self, element: QuadrilateralMembraneElement) -> MaterialLinearElasticity:
        return self._materials[element.material_number]

    def node_coordinates(self) -> np.ndarray:
        """Node coordinates as an (N, 2) array ordered by global number."""
        if not self._nodes:
            return np.zeros((0, 2))
        return np.vstack([node.coordinates for node in self._nodes])

    def connectivity(self) -> np.ndarray:
        """Element node numbers as an (M, 4) integer array."""
        if not self._elements:
            return np.zeros((0, 4), dtype=np.int64)
        return np.array([e.node_numbers for e in self._elements], dtype=np.int64)

    def validate(self) -> None:
        """
        Check the mesh invariants.

        Raises:
            ConfigurationError: If any invariant is violated
        """
        for collection, name in (
            (self._nodes, "node"),
            (self._elements, "element"),
            (self._materials, "material"),
        ):
            for position, item in enumerate(collection):
                if item.global_number != position:
                    raise ConfigurationError(
                        name,
                        f"global number {item.global_number} stored at position {position}"
                    )

        for element in self._elements:
            for n in element.node_numbers:
                if not 0 <= n < len(self._nodes):
                    raise ConfigurationError(
                        "element", f"element {element.global_number} references missing node {n}"
                    )
            if element.material_number is None or not (
                0 <= element.material_number < len(self._materials)
            ):
                raise ConfigurationError(
                    "element",
                    f"element {element.global_number} references missing material "
                    f"{element.material_number}"
                )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "nodes": [
                {"global_number": n.global_number, "coordinates": n.coordinates.tolist()}
                for n in self._nodes
            ],
            "elements": [
                {
                    "global_number": e.global_number,
                    "type": e.__class__.__name__,
                    "nodes": list(e.node_numbers),
                    "material": e.material_number,
                }
                for e in self._elements
            ],
            "materials": [m.to_dict() for m in self._materials],
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(nodes={self.number_of_nodes}, "
            f"elements={self.number_of_elements}, materials={self.number_of_materials})"
        )
