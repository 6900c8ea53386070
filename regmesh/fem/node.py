"""Finite element mesh node."""

from typing import Sequence
import numpy as np


class Node:
    """
    Mesh node at a fixed physical location.

    Nodes are immutable once created; elements refer to them by global
    number.

    Attributes:
        global_number: Zero-based node number, unique within a mesh
        coordinates: Physical location (x, y), read-only
    """

    __slots__ = ("_global_number", "_coordinates")

    def __init__(self, global_number: int, coordinates: Sequence[float]):
        coords = np.array(coordinates, dtype=np.float64).ravel()
        if coords.size != 2:
            raise ValueError(f"Node coordinates must have 2 components, got {coords.size}")
        coords.setflags(write=False)
        self._global_number = int(global_number)
        self._coordinates = coords

    @property
    def global_number(self) -> int:
        return self._global_number

    @property
    def coordinates(self) -> np.ndarray:
        return self._coordinates

    @property
    def x(self) -> float:
        """X-coordinate of the node."""
        return float(self._coordinates[0])

    @property
    def y(self) -> float:
        """Y-coordinate of the node."""
        return float(self._coordinates[1])

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self._global_number}, coords={self._coordinates.tolist()})"
