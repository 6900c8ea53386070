"""
Quadrilateral membrane finite element.

Elements reference nodes and their material by global number; the
owning ``FEMObject`` resolves the numbers. A configured element acts as
a template: ``create_another`` clones it with new connectivity.
"""

from typing import Optional, Sequence, Tuple
import numpy as np

from regmesh.core.exceptions import ConfigurationError

# Corner positions in isoparametric coordinates, counter-clockwise
QUAD_CORNERS = np.array([
    [-1.0, -1.0],
    [1.0, -1.0],
    [1.0, 1.0],
    [-1.0, 1.0],
])


class QuadrilateralMembraneElement:
    """
    Four-node bilinear quadrilateral membrane element (2D, C0).

    Node order is counter-clockwise in lattice index space:
    (i, j), (i + 1, j), (i + 1, j + 1), (i, j + 1).

    Attributes:
        global_number: Zero-based element number (None for a template)
        node_numbers: Global numbers of the four corner nodes
        material_number: Global number of the element material
    """

    number_of_nodes = 4

    def __init__(
        self,
        global_number: Optional[int] = None,
        node_numbers: Optional[Sequence[int]] = None,
        material_number: Optional[int] = None
    ):
        if node_numbers is not None:
            node_numbers = tuple(int(n) for n in node_numbers)
            if len(node_numbers) != self.number_of_nodes:
                raise ConfigurationError(
                    "node_numbers",
                    f"{self.__class__.__name__} needs {self.number_of_nodes} nodes, "
                    f"got {len(node_numbers)}"
                )
        self._global_number = global_number
        self._node_numbers: Tuple[int, ...] = node_numbers or ()
        self._material_number = material_number

    @property
    def global_number(self) -> Optional[int]:
        return self._global_number

    @property
    def node_numbers(self) -> Tuple[int, ...]:
        return self._node_numbers

    @property
    def material_number(self) -> Optional[int]:
        return self._material_number

    @property
    def is_template(self) -> bool:
        return not self._node_numbers

    def create_another(
        self,
        global_number: int,
        node_numbers: Sequence[int],
        material_number: int
    ) -> 'QuadrilateralMembraneElement':
        """Clone this element with the given numbering and connectivity."""
        return self.__class__(
            global_number=global_number,
            node_numbers=node_numbers,
            material_number=material_number,
        )

    @staticmethod
    def shape_functions(xi: float, eta: float) -> np.ndarray:
        """Bilinear shape functions at isoparametric point (xi, eta)."""
        return 0.25 * (1.0 + QUAD_CORNERS[:, 0] * xi) * (1.0 + QUAD_CORNERS[:, 1] * eta)

    @staticmethod
    def shape_function_derivatives(xi: float, eta: float) -> np.ndarray:
        """
        Derivatives of the shape functions.

        Returns:
            Array (2, 4): row 0 is d/dxi, row 1 is d/deta
        """
        dxi = 0.25 * QUAD_CORNERS[:, 0] * (1.0 + QUAD_CORNERS[:, 1] * eta)
        deta = 0.25 * QUAD_CORNERS[:, 1] * (1.0 + QUAD_CORNERS[:, 0] * xi)
        return np.vstack([dxi, deta])

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(id={self._global_number}, "
            f"nodes={list(self._node_numbers)}, material={self._material_number})"
        )
