"""
Image-to-image registration driven by an iterative optimizer.

``RegistrationMethod`` wires a transform, a metric, an interpolator and
an optimizer together. At each optimizer proposal the metric sets the
transform parameters, resamples the moving image through the
interpolator and returns its value. Metric failures abort the run and
are surfaced as ``RegistrationFailure``; the engine never substitutes a
default value.
"""

import logging
import time
from typing import Iterator, List, Optional, Sequence
import numpy as np

from regmesh.core.image_data import (
    ImageData,
    ImageRegion,
    RegistrationResult,
    StopCondition,
)
from regmesh.core.exceptions import (
    ConfigurationError,
    EvaluationFailure,
    RegistrationFailure,
    ConvergenceFailure,
)
from regmesh.registration.transforms import Transform
from regmesh.registration.interpolators import Interpolator
from regmesh.registration.metrics import MutualInformationHistogramMetric
from regmesh.registration.optimizers import (
    Optimizer,
    IterationEvent,
    IterationCallback,
)

logger = logging.getLogger(__name__)


class RegistrationMethod:
    """
    Single registration run over fixed components.

    The run is synchronous and not reentrant; construct one instance per
    registration.

    Example:
        >>> method = RegistrationMethod(
        ...     fixed, moving,
        ...     transform=TranslationTransform(),
        ...     metric=MutualInformationHistogramMetric((256, 256)),
        ...     interpolator=LinearInterpolator(),
        ...     optimizer=AmoebaOptimizer(maximize=True, initial_simplex_delta=[5, 5]),
        ...     initial_parameters=[0.0, 0.0],
        ... )
        >>> result = method.execute()
        >>> result.final_parameters, result.stop_description
    """

    def __init__(
        self,
        fixed_image: ImageData,
        moving_image: ImageData,
        transform: Transform,
        metric: MutualInformationHistogramMetric,
        interpolator: Interpolator,
        optimizer: Optimizer,
        initial_parameters: Optional[Sequence[float]] = None,
        fixed_region: Optional[ImageRegion] = None
    ):
        """
        Initialize a registration run.

        Args:
            fixed_image: Reference image
            moving_image: Image resampled through the transform
            transform: Transform whose parameters are optimized
            metric: Similarity measure
            interpolator: Moving-image sampler
            optimizer: Parameter search
            initial_parameters: Starting parameters (transform's current
                parameters when omitted)
            fixed_region: Fixed-image evaluation region (whole image when omitted)

        Raises:
            ConfigurationError: On inconsistent inputs
        """
        if fixed_image is None or moving_image is None:
            raise ConfigurationError("images", "fixed and moving images are required")

        if initial_parameters is None:
            initial_parameters = transform.get_parameters()
        initial_parameters = np.asarray(initial_parameters, dtype=np.float64).ravel()
        if initial_parameters.size != transform.number_of_parameters:
            raise ConfigurationError(
                "initial_parameters",
                f"transform has {transform.number_of_parameters} parameters, "
                f"got {initial_parameters.size}"
            )

        region = fixed_region or fixed_image.largest_region
        if not region.is_inside(fixed_image.largest_region):
            raise ConfigurationError(
                "fixed_region",
                f"region {region} is not inside fixed image of size {fixed_image.size}"
            )

        self.fixed_image = fixed_image
        self.moving_image = moving_image
        self.transform = transform
        self.metric = metric
        self.interpolator = interpolator
        self.optimizer = optimizer
        self.initial_parameters = initial_parameters
        self.fixed_region = region
        self.value_history: List[float] = []
        self._start_time: Optional[float] = None

    def _derivative(self):
        if getattr(self.metric, "compute_gradient", False):
            return self.metric.get_derivative
        return None

    def iterations(self) -> Iterator[IterationEvent]:
        """
        Run the registration lazily.

        Yields one ``IterationEvent`` per accepted optimizer iteration.
        The sequence is finite and cannot be restarted.

        Raises:
            RegistrationFailure: If the metric cannot be evaluated
        """
        self.metric.initialize(
            self.fixed_image,
            self.moving_image,
            self.transform,
            self.interpolator,
            self.fixed_region
        )
        self.transform.set_parameters(self.initial_parameters)
        self.value_history = []
        self._start_time = time.time()

        logger.info(
            f"Starting registration: {self.transform.__class__.__name__}, "
            f"{self.optimizer.name}, initial parameters {self.initial_parameters.tolist()}"
        )

        try:
            for event in self.optimizer.iterate(
                self.metric.get_value,
                self.initial_parameters,
                self._derivative()
            ):
                self.value_history.append(event.value)
                yield event
        except EvaluationFailure as e:
            logger.error(f"Registration aborted: {e.message}")
            raise RegistrationFailure(
                stage="metric_evaluation",
                reason=e.message,
                details=self.optimizer.get_stop_condition_description()
            ) from e

        # the best position is stored on the transform for downstream resampling
        self.transform.set_parameters(self.optimizer.current_position)

    def execute(self, callback: Optional[IterationCallback] = None) -> RegistrationResult:
        """
        Run the registration to completion.

        Args:
            callback: Called as ``callback(iteration, value, parameters)``
                after each accepted iteration

        Returns:
            RegistrationResult with final parameters and stop condition

        Raises:
            RegistrationFailure: If the metric cannot be evaluated
        """
        for event in self.iterations():
            if callback is not None:
                callback(event.iteration, event.value, event.parameters)
        return self.result()

    def result(self) -> RegistrationResult:
        """Build the result of the last completed run."""
        if self.optimizer.stop_condition == StopCondition.NOT_STOPPED:
            raise RegistrationFailure(stage="result", reason="registration has not finished")

        elapsed_ms = 0.0
        if self._start_time is not None:
            elapsed_ms = (time.time() - self._start_time) * 1000

        result = RegistrationResult(
            final_parameters=self.optimizer.current_position.copy(),
            final_value=self.optimizer.current_value,
            stop_condition=self.optimizer.stop_condition,
            stop_description=self.optimizer.get_stop_condition_description(),
            iterations=self.optimizer.iteration,
            number_of_evaluations=self.metric.number_of_evaluations,
            fixed_parameters=self.transform.get_fixed_parameters(),
            transform_type=self.transform.transform_type,
            value_history=list(self.value_history),
            registration_time_ms=elapsed_ms,
        )
        logger.info(
            f"Registration complete: parameters={result.final_parameters.tolist()}, "
            f"value={result.final_value:.6f}, iterations={result.iterations}"
        )
        return result


def register(
    fixed_image: ImageData,
    moving_image: ImageData,
    transform: Transform,
    metric: MutualInformationHistogramMetric,
    interpolator: Interpolator,
    optimizer: Optimizer,
    initial_parameters: Optional[Sequence[float]] = None,
    fixed_region: Optional[ImageRegion] = None,
    callback: Optional[IterationCallback] = None,
    require_convergence: bool = False
) -> RegistrationResult:
    """
    Register ``moving_image`` onto ``fixed_image``.

    Returns:
        RegistrationResult (final parameters, final value, stop condition)

    Raises:
        ConfigurationError: On inconsistent inputs
        RegistrationFailure: If the metric cannot be evaluated
        ConvergenceFailure: If ``require_convergence`` is set and the
            optimizer hit its iteration cap
    """
    method = RegistrationMethod(
        fixed_image,
        moving_image,
        transform,
        metric,
        interpolator,
        optimizer,
        initial_parameters,
        fixed_region
    )
    result = method.execute(callback)
    if require_convergence and result.stop_condition == StopCondition.MAXIMUM_ITERATIONS:
        raise ConvergenceFailure(
            algorithm=optimizer.name,
            iterations=result.iterations,
            details=result.stop_description
        )
    return result
