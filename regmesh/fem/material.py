"""
Linear elastic material for membrane elements.

Only linear elasticity is supported. One material instance is shared by
reference across every element that uses it.
"""

from dataclasses import dataclass
from typing import Dict, Any

from regmesh.core.image_data import MeshConfig
from regmesh.core.exceptions import ConfigurationError


@dataclass
class MaterialLinearElasticity:
    """
    Physical constants of a linear elastic material.

    Attributes:
        global_number: Zero-based material number within a mesh
        youngs_modulus: Young's modulus E
        cross_sectional_area: Cross-sectional area A
        moment_of_inertia: Moment of inertia I
        poissons_ratio: Poisson's ratio nu
        thickness: Membrane thickness h
        density_heat_product: Density times specific heat
    """
    global_number: int = 0
    youngs_modulus: float = 100000.0
    cross_sectional_area: float = 0.02
    moment_of_inertia: float = 0.004
    poissons_ratio: float = 0.2
    thickness: float = 1.0
    density_heat_product: float = 1.0

    def __post_init__(self):
        if self.youngs_modulus <= 0:
            raise ConfigurationError("youngs_modulus", "must be positive")
        if not -1.0 < self.poissons_ratio < 0.5:
            raise ConfigurationError("poissons_ratio", "must lie in (-1, 0.5)")
        if self.thickness <= 0:
            raise ConfigurationError("thickness", "must be positive")

    @classmethod
    def from_config(cls, config: MeshConfig, global_number: int = 0) -> 'MaterialLinearElasticity':
        """Create the shared material described by a mesh configuration."""
        return cls(
            global_number=global_number,
            youngs_modulus=config.youngs_modulus,
            cross_sectional_area=config.cross_sectional_area,
            moment_of_inertia=config.moment_of_inertia,
            poissons_ratio=config.poissons_ratio,
            thickness=config.thickness,
            density_heat_product=config.density_heat_product,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "global_number": self.global_number,
            "youngs_modulus": self.youngs_modulus,
            "cross_sectional_area": self.cross_sectional_area,
            "moment_of_inertia": self.moment_of_inertia,
            "poissons_ratio": self.poissons_ratio,
            "thickness": self.thickness,
            "density_heat_product": self.density_heat_product,
        }
