"""Registration engine: transforms, interpolators, metric, optimizers."""

from regmesh.registration.transforms import (
    Transform,
    TranslationTransform,
    RigidTransform,
    AffineTransform,
    create_transform,
)
from regmesh.registration.interpolators import (
    Interpolator,
    LinearInterpolator,
    NearestNeighborInterpolator,
    create_interpolator,
)
from regmesh.registration.metrics import (
    MutualInformationHistogramMetric,
    compute_mutual_information,
)
from regmesh.registration.optimizers import (
    Optimizer,
    AmoebaOptimizer,
    RegularStepGradientDescentOptimizer,
    IterationEvent,
)
from regmesh.registration.registration_method import RegistrationMethod, register
from regmesh.registration.registration_pipeline import RegistrationPipeline
from regmesh.registration.resample import resample_image, resample_to_reference

__all__ = [
    "Transform",
    "TranslationTransform",
    "RigidTransform",
    "AffineTransform",
    "create_transform",
    "Interpolator",
    "LinearInterpolator",
    "NearestNeighborInterpolator",
    "create_interpolator",
    "MutualInformationHistogramMetric",
    "compute_mutual_information",
    "Optimizer",
    "AmoebaOptimizer",
    "RegularStepGradientDescentOptimizer",
    "IterationEvent",
    "RegistrationMethod",
    "register",
    "RegistrationPipeline",
    "resample_image",
    "resample_to_reference",
]
