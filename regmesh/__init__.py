"""
Image Registration and Rectilinear Meshing

A modular Python package for intensity-based 2D image registration and
finite element mesh generation over image pixel grids.

Supports:
- Translation, rigid and affine transforms
- Histogram mutual information metric with linear interpolation
- Nelder-Mead (Amoeba) and regular step gradient descent optimizers
- Quadrilateral membrane meshes with shared linear elastic material
"""

__version__ = "1.0.0"
__author__ = "Medical Imaging Engineering Team"

from regmesh.core.image_data import (
    ImageData,
    ImageGeometry,
    RegistrationConfig,
    MeshConfig,
    RegistrationResult,
    load_config,
)
from regmesh.core.exceptions import (
    RegMeshError,
    ConfigurationError,
    InvalidLatticeConfiguration,
    EvaluationFailure,
    RegistrationFailure,
    ImageLoadError,
)
from regmesh.io.image_io import ImageLoader, read_image, write_image
from regmesh.registration.registration_pipeline import RegistrationPipeline
from regmesh.fem.rectilinear import RectilinearMeshBuilder
from regmesh.export.output import ExportManager

__all__ = [
    # Core data structures
    "ImageData",
    "ImageGeometry",
    "RegistrationConfig",
    "MeshConfig",
    "RegistrationResult",
    "load_config",
    # Exceptions
    "RegMeshError",
    "ConfigurationError",
    "InvalidLatticeConfiguration",
    "EvaluationFailure",
    "RegistrationFailure",
    "ImageLoadError",
    # Main components
    "ImageLoader",
    "read_image",
    "write_image",
    "RegistrationPipeline",
    "RectilinearMeshBuilder",
    "ExportManager",
]
