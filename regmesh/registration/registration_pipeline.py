"""
Configuration-driven registration pipeline.

This module builds the transform, interpolator, metric and optimizer
described by a ``RegistrationConfig`` and runs a registration with them,
optionally producing the resampled moving image.
"""

import logging
from typing import Optional, Sequence, Tuple
import numpy as np

from regmesh.core.image_data import (
    ImageData,
    ImageRegion,
    RegistrationConfig,
    RegistrationResult,
    OptimizerType,
    TransformType,
)
from regmesh.registration.transforms import Transform, create_transform
from regmesh.registration.interpolators import create_interpolator
from regmesh.registration.metrics import MutualInformationHistogramMetric
from regmesh.registration.optimizers import (
    Optimizer,
    AmoebaOptimizer,
    RegularStepGradientDescentOptimizer,
    IterationCallback,
)
from regmesh.registration.registration_method import register
from regmesh.registration.resample import resample_to_reference

logger = logging.getLogger(__name__)


class RegistrationPipeline:
    """
    Registration pipeline assembled from a configuration.

    Attributes:
        config: Registration configuration parameters

    Example:
        >>> pipeline = RegistrationPipeline(RegistrationConfig(histogram_size=(64, 64)))
        >>> result = pipeline.register(fixed, moving, initial_parameters=[0.0, 0.0])
        >>> registered = pipeline.apply_transform(moving, fixed, result)
    """

    def __init__(self, config: Optional[RegistrationConfig] = None):
        self.config = config or RegistrationConfig()

    def create_transform(self, fixed_image: ImageData) -> Transform:
        """Build the configured transform, centered on the fixed image."""
        center = None
        if self.config.transform_type != TransformType.TRANSLATION:
            width, height = fixed_image.size
            center = fixed_image.index_to_physical(
                np.array([(width - 1) / 2.0, (height - 1) / 2.0])
            )
        return create_transform(self.config.transform_type, center=center)

    def create_metric(self) -> MutualInformationHistogramMetric:
        return MutualInformationHistogramMetric(
            histogram_size=self.config.histogram_size,
            compute_gradient=(
                self.config.optimizer_type == OptimizerType.REGULAR_STEP_GRADIENT_DESCENT
            ),
            derivative_step_length=self.config.derivative_step_length,
            padding_value=self.config.padding_value,
        )

    def create_optimizer(self) -> Optimizer:
        if self.config.optimizer_type == OptimizerType.AMOEBA:
            return AmoebaOptimizer(
                max_iterations=self.config.max_iterations,
                parameters_convergence_tolerance=self.config.parameters_convergence_tolerance,
                function_convergence_tolerance=self.config.function_convergence_tolerance,
                maximize=self.config.maximize,
                initial_simplex_delta=self.config.initial_simplex_delta,
                restarts=self.config.restarts,
            )
        return RegularStepGradientDescentOptimizer(
            learning_rate=self.config.learning_rate,
            min_step=self.config.min_step,
            max_iterations=self.config.max_iterations,
            relaxation_factor=self.config.relaxation_factor,
            gradient_magnitude_tolerance=self.config.gradient_magnitude_tolerance,
            maximize=self.config.maximize,
        )

    def register(
        self,
        fixed_image: ImageData,
        moving_image: ImageData,
        initial_parameters: Optional[Sequence[float]] = None,
        fixed_region: Optional[ImageRegion] = None,
        callback: Optional[IterationCallback] = None
    ) -> RegistrationResult:
        """
        Register ``moving_image`` onto ``fixed_image``.

        Args:
            fixed_image: Reference image
            moving_image: Moving image
            initial_parameters: Starting parameters (identity when omitted)
            fixed_region: Fixed-image evaluation region
            callback: Per-iteration progress callback

        Returns:
            RegistrationResult

        Raises:
            RegistrationFailure: If the metric cannot be evaluated
            ConvergenceFailure: If convergence is required but not reached
        """
        transform = self.create_transform(fixed_image)
        logger.info(
            f"Registering with {self.config.transform_type.value} transform, "
            f"{self.config.optimizer_type.value} optimizer, "
            f"histogram {self.config.histogram_size[0]}x{self.config.histogram_size[1]}"
        )
        return register(
            fixed_image,
            moving_image,
            transform=transform,
            metric=self.create_metric(),
            interpolator=create_interpolator(self.config.interpolator_type),
            optimizer=self.create_optimizer(),
            initial_parameters=initial_parameters,
            fixed_region=fixed_region,
            callback=callback,
            require_convergence=self.config.require_convergence,
        )

    def apply_transform(
        self,
        moving_image: ImageData,
        reference_image: ImageData,
        result: RegistrationResult,
        default_value: float = 100.0
    ) -> ImageData:
        """Resample ``moving_image`` onto the reference grid with the result's transform."""
        transform = create_transform(result.transform_type)
        if result.transform_type != TransformType.TRANSLATION:
            transform.set_fixed_parameters(result.fixed_parameters)
        transform.set_parameters(result.final_parameters)
        return resample_to_reference(
            moving_image,
            transform,
            reference_image,
            interpolator=create_interpolator(self.config.interpolator_type),
            default_value=default_value,
        )

    def register_and_resample(
        self,
        fixed_image: ImageData,
        moving_image: ImageData,
        initial_parameters: Optional[Sequence[float]] = None,
        callback: Optional[IterationCallback] = None,
        default_value: float = 100.0
    ) -> Tuple[RegistrationResult, ImageData]:
        """Register and return the result with the resampled moving image."""
        result = self.register(
            fixed_image, moving_image, initial_parameters, callback=callback
        )
        return result, self.apply_transform(moving_image, fixed_image, result, default_value)
