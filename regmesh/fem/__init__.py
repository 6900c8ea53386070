"""Rectilinear finite element mesh generation."""

from regmesh.fem.node import Node
from regmesh.fem.material import MaterialLinearElasticity
from regmesh.fem.elements import QuadrilateralMembraneElement
from regmesh.fem.fem_object import FEMObject
from regmesh.fem.rectilinear import RectilinearMeshBuilder, build_mesh

__all__ = [
    "Node",
    "MaterialLinearElasticity",
    "QuadrilateralMembraneElement",
    "FEMObject",
    "RectilinearMeshBuilder",
    "build_mesh",
]
