"""
Resampling of a moving image through a transform.

Produces the registered output image: every pixel of the output grid is
mapped through the transform into the moving image and interpolated;
pixels mapping outside the moving image receive a default fill value.
"""

import logging
from typing import Optional, Tuple
import numpy as np

from regmesh.core.image_data import ImageData, ImageGeometry
from regmesh.registration.transforms import Transform
from regmesh.registration.interpolators import Interpolator, LinearInterpolator

logger = logging.getLogger(__name__)


def _cast(values: np.ndarray, dtype: np.dtype) -> np.ndarray:
    """Cast interpolated values back to the pixel type, rounding integers."""
    if np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        return np.clip(np.rint(values), info.min, info.max).astype(dtype)
    return values.astype(dtype)


def resample_image(
    moving_image: ImageData,
    transform: Transform,
    output_geometry: ImageGeometry,
    output_size: Tuple[int, int],
    interpolator: Optional[Interpolator] = None,
    default_value: float = 100.0,
    output_dtype: Optional[np.dtype] = None
) -> ImageData:
    """
    Resample ``moving_image`` onto an output grid.

    Args:
        moving_image: Image to resample
        transform: Maps output physical points into the moving image
        output_geometry: Origin, spacing and direction of the output grid
        output_size: Output size (x, y)
        interpolator: Moving-image sampler (linear when omitted)
        default_value: Fill value for points outside the moving image
        output_dtype: Pixel type of the output (moving pixel type when omitted)

    Returns:
        Resampled ImageData carrying ``output_geometry``
    """
    interpolator = interpolator or LinearInterpolator()
    interpolator.set_input_image(moving_image)
    dtype = np.dtype(output_dtype or moving_image.pixel_array.dtype)

    width, height = int(output_size[0]), int(output_size[1])
    grid_x, grid_y = np.meshgrid(np.arange(width), np.arange(height))
    indices = np.stack([grid_x.ravel(), grid_y.ravel()], axis=-1)

    points = transform.transform_points(output_geometry.index_to_physical(indices))
    continuous_index = moving_image.physical_to_continuous_index(points)
    inside = interpolator.is_inside_buffer(continuous_index)

    values = np.full(indices.shape[0], float(default_value), dtype=np.float64)
    if np.any(inside):
        values[inside] = interpolator.evaluate_at_continuous_index(continuous_index[inside])

    logger.debug(
        f"Resampled {np.count_nonzero(inside)}/{inside.size} pixels inside the moving image"
    )
    return ImageData(
        pixel_array=_cast(values.reshape(height, width), dtype),
        geometry=output_geometry
    )


def resample_to_reference(
    moving_image: ImageData,
    transform: Transform,
    reference_image: ImageData,
    interpolator: Optional[Interpolator] = None,
    default_value: float = 100.0
) -> ImageData:
    """Resample ``moving_image`` onto the grid of ``reference_image``."""
    return resample_image(
        moving_image,
        transform,
        reference_image.geometry,
        reference_image.size,
        interpolator=interpolator,
        default_value=default_value
    )
