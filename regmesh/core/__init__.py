"""Core data structures and exceptions for registration and meshing."""

from regmesh.core.image_data import (
    ImageData,
    ImageGeometry,
    ImageRegion,
    RegistrationConfig,
    MeshConfig,
    RegistrationResult,
    TransformType,
    InterpolatorType,
    OptimizerType,
    OptimizerState,
    StopCondition,
    RemainderPolicy,
    load_config,
)
from regmesh.core.exceptions import (
    FailureKind,
    RegMeshError,
    ConfigurationError,
    InvalidLatticeConfiguration,
    EvaluationFailure,
    RegistrationFailure,
    ConvergenceFailure,
    ImageIOError,
    ImageLoadError,
    ImageWriteError,
)

__all__ = [
    "ImageData",
    "ImageGeometry",
    "ImageRegion",
    "RegistrationConfig",
    "MeshConfig",
    "RegistrationResult",
    "TransformType",
    "InterpolatorType",
    "OptimizerType",
    "OptimizerState",
    "StopCondition",
    "RemainderPolicy",
    "load_config",
    "FailureKind",
    "RegMeshError",
    "ConfigurationError",
    "InvalidLatticeConfiguration",
    "EvaluationFailure",
    "RegistrationFailure",
    "ConvergenceFailure",
    "ImageIOError",
    "ImageLoadError",
    "ImageWriteError",
]
