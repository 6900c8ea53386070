"""Image I/O for geometry-carrying and standard raster formats."""

from regmesh.io.image_io import (
    ImageLoader,
    ImageWriter,
    read_image,
    write_image,
    is_supported_format,
)

__all__ = [
    "ImageLoader",
    "ImageWriter",
    "read_image",
    "write_image",
    "is_supported_format",
]
