"""
Continuous intensity sampling of a discretely sampled image.

Interpolators are bound to one image and evaluate it at continuous
(x, y) indices. A point is inside the buffer when every continuous index
component lies in [-0.5, size - 0.5); samples at the half-pixel border
clamp to the edge pixels.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional
import numpy as np

from regmesh.core.image_data import ImageData, InterpolatorType
from regmesh.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class Interpolator(ABC):
    """Base class for image interpolators."""

    interpolator_type: InterpolatorType

    def __init__(self, image: Optional[ImageData] = None):
        self._image: Optional[ImageData] = None
        self._values: Optional[np.ndarray] = None
        if image is not None:
            self.set_input_image(image)

    def set_input_image(self, image: ImageData) -> None:
        self._image = image
        self._values = image.as_float64()

    @property
    def image(self) -> ImageData:
        if self._image is None:
            raise ConfigurationError("interpolator", "no input image set")
        return self._image

    def is_inside_buffer(self, continuous_index: np.ndarray) -> np.ndarray:
        """Boolean mask of indices (..., 2) that fall inside the image extent."""
        ci = np.asarray(continuous_index, dtype=np.float64)
        size = np.asarray(self.image.size, dtype=np.float64)
        return np.all((ci >= -0.5) & (ci < size - 0.5), axis=-1)

    def evaluate(self, points: np.ndarray) -> np.ndarray:
        """Evaluate at physical points (..., 2); points must be inside the buffer."""
        return self.evaluate_at_continuous_index(
            self.image.physical_to_continuous_index(points)
        )

    @abstractmethod
    def evaluate_at_continuous_index(self, continuous_index: np.ndarray) -> np.ndarray:
        """Evaluate at continuous (x, y) indices of shape (N, 2)."""


class LinearInterpolator(Interpolator):
    """Bilinear interpolation."""

    interpolator_type = InterpolatorType.LINEAR

    def evaluate_at_continuous_index(self, continuous_index: np.ndarray) -> np.ndarray:
        values = self._values
        if values is None:
            raise ConfigurationError("interpolator", "no input image set")
        ci = np.asarray(continuous_index, dtype=np.float64).reshape(-1, 2)
        height, width = values.shape

        base = np.floor(ci)
        frac = ci - base
        x0 = base[:, 0].astype(np.int64)
        y0 = base[:, 1].astype(np.int64)
        x1 = np.clip(x0 + 1, 0, width - 1)
        y1 = np.clip(y0 + 1, 0, height - 1)
        x0 = np.clip(x0, 0, width - 1)
        y0 = np.clip(y0, 0, height - 1)

        fx = frac[:, 0]
        fy = frac[:, 1]
        top = values[y0, x0] * (1.0 - fx) + values[y0, x1] * fx
        bottom = values[y1, x0] * (1.0 - fx) + values[y1, x1] * fx
        return top * (1.0 - fy) + bottom * fy


class NearestNeighborInterpolator(Interpolator):
    """Nearest-neighbour lookup."""

    interpolator_type = InterpolatorType.NEAREST

    def evaluate_at_continuous_index(self, continuous_index: np.ndarray) -> np.ndarray:
        values = self._values
        if values is None:
            raise ConfigurationError("interpolator", "no input image set")
        ci = np.asarray(continuous_index, dtype=np.float64).reshape(-1, 2)
        height, width = values.shape
        # round half up so that -0.5 maps to pixel 0
        nearest = np.floor(ci + 0.5).astype(np.int64)
        x = np.clip(nearest[:, 0], 0, width - 1)
        y = np.clip(nearest[:, 1], 0, height - 1)
        return values[y, x]


def create_interpolator(
    interpolator_type: InterpolatorType,
    image: Optional[ImageData] = None
) -> Interpolator:
    """Create an interpolator of the requested type."""
    interpolator_type = InterpolatorType(interpolator_type)
    if interpolator_type == InterpolatorType.LINEAR:
        return LinearInterpolator(image)
    return NearestNeighborInterpolator(image)
