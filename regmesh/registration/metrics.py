"""
Histogram-based mutual information metric.

The metric samples every pixel of the fixed-image evaluation region,
maps its physical location through the transform into the moving image
and, when the mapped point falls inside the moving image, interpolates a
moving intensity. Valid (fixed, moving) intensity pairs are binned into a
joint histogram whose marginals give the two 1D histograms. Samples that
map outside the moving image are excluded from every histogram.

Mutual information is computed from normalized counts as

    MI = sum p(f, m) * log(p(f, m) / (p(f) * p(m)))

in natural-log units; empty joint bins contribute zero. The metric never
flips its sign: optimizers are configured to maximize it.
"""

import logging
from typing import Optional, Sequence, Tuple
import numpy as np

from regmesh.core.image_data import ImageData, ImageRegion
from regmesh.core.exceptions import ConfigurationError, EvaluationFailure
from regmesh.registration.transforms import Transform
from regmesh.registration.interpolators import Interpolator

logger = logging.getLogger(__name__)


def compute_mutual_information(joint_histogram: np.ndarray) -> float:
    """
    Estimate mutual information from a joint histogram of counts.

    Args:
        joint_histogram: 2D array of counts (fixed bins x moving bins)

    Returns:
        Mutual information in nats

    Raises:
        EvaluationFailure: If the histogram is empty
    """
    joint = np.asarray(joint_histogram, dtype=np.float64)
    total = joint.sum()
    if total <= 0:
        raise EvaluationFailure("joint histogram is empty")

    p_joint = joint / total
    p_fixed = p_joint.sum(axis=1)
    p_moving = p_joint.sum(axis=0)

    nonzero = p_joint > 0
    outer = np.outer(p_fixed, p_moving)
    return float(np.sum(p_joint[nonzero] * np.log(p_joint[nonzero] / outer[nonzero])))


class MutualInformationHistogramMetric:
    """
    Mutual information estimated from a joint intensity histogram.

    Attributes:
        histogram_size: Number of bins (fixed axis, moving axis)
        compute_gradient: Enable finite-difference derivatives
        derivative_step_length: Parameter step for finite differences
        derivative_step_length_scales: Per-parameter divisors of the step
        padding_value: Fixed-image intensity excluded from sampling
        upper_bound_increase_factor: Fraction of the intensity range added
            to the upper histogram bound so the maximum gets its own bin

    Example:
        >>> metric = MutualInformationHistogramMetric(histogram_size=(256, 256))
        >>> metric.initialize(fixed, moving, transform, interpolator)
        >>> value = metric.get_value([0.0, 0.0])
    """

    def __init__(
        self,
        histogram_size: Tuple[int, int] = (256, 256),
        compute_gradient: bool = False,
        derivative_step_length: float = 0.1,
        derivative_step_length_scales: Optional[Sequence[float]] = None,
        padding_value: Optional[float] = None,
        upper_bound_increase_factor: float = 0.001
    ):
        self.histogram_size = tuple(int(b) for b in histogram_size)
        if len(self.histogram_size) != 2 or min(self.histogram_size) < 1:
            raise ConfigurationError(
                "histogram_size", f"expected two positive bin counts, got {histogram_size}"
            )
        if derivative_step_length <= 0:
            raise ConfigurationError("derivative_step_length", "must be positive")

        self.compute_gradient = compute_gradient
        self.derivative_step_length = derivative_step_length
        self.derivative_step_length_scales = derivative_step_length_scales
        self.padding_value = padding_value
        self.upper_bound_increase_factor = upper_bound_increase_factor

        self.transform: Optional[Transform] = None
        self.interpolator: Optional[Interpolator] = None
        self.fixed_region: Optional[ImageRegion] = None

        self._fixed_points: Optional[np.ndarray] = None
        self._fixed_bins: Optional[np.ndarray] = None
        self._lower_bounds = np.zeros(2)
        self._upper_bounds = np.ones(2)
        self.number_of_valid_samples = 0
        self.number_of_evaluations = 0

    @property
    def number_of_fixed_samples(self) -> int:
        return 0 if self._fixed_bins is None else int(self._fixed_bins.size)

    def initialize(
        self,
        fixed_image: ImageData,
        moving_image: ImageData,
        transform: Transform,
        interpolator: Interpolator,
        fixed_region: Optional[ImageRegion] = None
    ) -> None:
        """
        Bind the metric to its images and precompute fixed-image samples.

        Raises:
            ConfigurationError: If the region lies outside the fixed image
                or no fixed sample survives the padding mask
        """
        region = fixed_region or fixed_image.largest_region
        if region.number_of_pixels <= 0 or not region.is_inside(fixed_image.largest_region):
            raise ConfigurationError(
                "fixed_region",
                f"region {region} is not inside fixed image of size {fixed_image.size}"
            )

        self.transform = transform
        self.interpolator = interpolator
        self.fixed_region = region
        interpolator.set_input_image(moving_image)

        xs = np.arange(region.index[0], region.index[0] + region.size[0])
        ys = np.arange(region.index[1], region.index[1] + region.size[1])
        grid_x, grid_y = np.meshgrid(xs, ys)
        indices = np.stack([grid_x.ravel(), grid_y.ravel()], axis=-1)
        fixed_values = fixed_image.as_float64()[region.slices].ravel()

        if self.padding_value is not None:
            keep = fixed_values != self.padding_value
            indices = indices[keep]
            fixed_values = fixed_values[keep]
            if fixed_values.size == 0:
                raise ConfigurationError(
                    "padding_value",
                    f"every fixed sample equals the padding value {self.padding_value}"
                )

        moving_values = moving_image.as_float64()
        self._lower_bounds = np.array([fixed_values.min(), moving_values.min()])
        self._upper_bounds = np.array([fixed_values.max(), moving_values.max()])
        self._upper_bounds += (
            self._upper_bounds - self._lower_bounds
        ) * self.upper_bound_increase_factor

        self._fixed_points = fixed_image.index_to_physical(indices)
        self._fixed_bins = self._bin(fixed_values, axis=0)
        self.number_of_evaluations = 0

        logger.debug(
            f"Metric initialized: {self.number_of_fixed_samples} fixed samples, "
            f"histogram {self.histogram_size[0]}x{self.histogram_size[1]}, "
            f"bounds fixed=[{self._lower_bounds[0]:.3f}, {self._upper_bounds[0]:.3f}] "
            f"moving=[{self._lower_bounds[1]:.3f}, {self._upper_bounds[1]:.3f}]"
        )

    def _bin(self, values: np.ndarray, axis: int) -> np.ndarray:
        """Map intensities to bin indices along one histogram axis."""
        bins = self.histogram_size[axis]
        lower = self._lower_bounds[axis]
        interval = self._upper_bounds[axis] - lower
        if interval <= 0:
            return np.zeros(values.shape, dtype=np.int64)
        index = np.floor((values - lower) / interval * bins).astype(np.int64)
        return np.clip(index, 0, bins - 1)

    def _check_initialized(self) -> None:
        if self._fixed_points is None or self.transform is None:
            raise ConfigurationError("metric", "initialize() must be called before evaluation")

    def get_histogram(self, parameters: Sequence[float]) -> np.ndarray:
        """
        Build the joint histogram for the given transform parameters.

        Returns:
            Array of counts with shape ``histogram_size``

        Raises:
            EvaluationFailure: If no fixed sample maps inside the moving image
        """
        self._check_initialized()
        self.transform.set_parameters(parameters)

        mapped = self.transform.transform_points(self._fixed_points)
        continuous_index = self.interpolator.image.physical_to_continuous_index(mapped)
        inside = self.interpolator.is_inside_buffer(continuous_index)
        self.number_of_valid_samples = int(np.count_nonzero(inside))

        if self.number_of_valid_samples == 0:
            raise EvaluationFailure(
                "all fixed samples map outside the moving image",
                details=f"parameters={np.asarray(parameters).tolist()}"
            )

        moving_values = self.interpolator.evaluate_at_continuous_index(continuous_index[inside])
        fixed_bins = self._fixed_bins[inside]
        moving_bins = self._bin(moving_values, axis=1)

        n_fixed, n_moving = self.histogram_size
        flat = np.bincount(fixed_bins * n_moving + moving_bins, minlength=n_fixed * n_moving)
        return flat.reshape(n_fixed, n_moving)

    def get_value(self, parameters: Sequence[float]) -> float:
        """Return the mutual information at the given parameters."""
        joint = self.get_histogram(parameters)
        value = compute_mutual_information(joint)
        self.number_of_evaluations += 1
        logger.debug(
            f"MI={value:.6f} at {np.asarray(parameters).tolist()} "
            f"({self.number_of_valid_samples} valid samples)"
        )
        return value

    __call__ = get_value

    def get_derivative(self, parameters: Sequence[float]) -> np.ndarray:
        """
        Central finite-difference derivative of the metric.

        Raises:
            ConfigurationError: If gradient computation is disabled
        """
        if not self.compute_gradient:
            raise ConfigurationError(
                "compute_gradient", "derivative requested but gradient computation is off"
            )
        self._check_initialized()
        parameters = np.asarray(parameters, dtype=np.float64)
        scales = (
            np.ones_like(parameters) if self.derivative_step_length_scales is None
            else np.asarray(self.derivative_step_length_scales, dtype=np.float64)
        )
        if scales.shape != parameters.shape:
            raise ConfigurationError(
                "derivative_step_length_scales",
                f"expected {parameters.size} scales, got {scales.size}"
            )

        derivative = np.zeros_like(parameters)
        for i in range(parameters.size):
            step = self.derivative_step_length / scales[i]
            forward = parameters.copy()
            backward = parameters.copy()
            forward[i] += step
            backward[i] -= step
            derivative[i] = (self.get_value(forward) - self.get_value(backward)) / (2.0 * step)

        self.transform.set_parameters(parameters)
        return derivative
