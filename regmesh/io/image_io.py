"""
Unified image I/O for registration and meshing.

Geometry-carrying formats (MetaImage, NRRD, NIfTI) are read and written
with SimpleITK so that origin, spacing and direction survive the round
trip. Standard raster formats (PNG, TIFF, JPEG, BMP) go through OpenCV
and carry the default geometry (zero origin, unit spacing, identity
direction). Color inputs are converted to grayscale since the core
works on scalar images.
"""

import logging
from pathlib import Path
from typing import Union
import numpy as np

try:
    import SimpleITK as sitk
    SITK_AVAILABLE = True
except ImportError:
    SITK_AVAILABLE = False

try:
    import cv2
    CV2_AVAILABLE = True
except ImportError:
    CV2_AVAILABLE = False

from regmesh.core.image_data import ImageData, ImageGeometry
from regmesh.core.exceptions import ImageLoadError, ImageWriteError

logger = logging.getLogger(__name__)


SITK_EXTENSIONS = {'.mha', '.mhd', '.nrrd', '.nhdr', '.nii', '.nii.gz'}
STANDARD_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.tiff', '.tif', '.bmp'}


def _extension(filepath: Path) -> str:
    name = filepath.name.lower()
    if name.endswith('.nii.gz'):
        return '.nii.gz'
    return filepath.suffix.lower()


def is_supported_format(filepath: Union[str, Path]) -> bool:
    """Check if the file extension is readable."""
    ext = _extension(Path(filepath))
    return ext in SITK_EXTENSIONS or ext in STANDARD_EXTENSIONS


class ImageLoader:
    """
    Loader dispatching on file extension.

    Example:
        >>> loader = ImageLoader()
        >>> fixed = loader.load("fixed.mha")
        >>> fixed.spacing
    """

    def load(self, filepath: Union[str, Path]) -> ImageData:
        """
        Load a 2D scalar image.

        Raises:
            ImageLoadError: If the file cannot be loaded
        """
        filepath = Path(filepath)

        if not filepath.exists():
            raise ImageLoadError(str(filepath), "File does not exist")

        ext = _extension(filepath)
        if ext in SITK_EXTENSIONS:
            image = self._load_sitk(filepath)
        elif ext in STANDARD_EXTENSIONS:
            image = self._load_standard(filepath)
        else:
            raise ImageLoadError(
                str(filepath),
                f"Unsupported format: {ext}",
                details=f"Supported formats: {', '.join(sorted(SITK_EXTENSIONS | STANDARD_EXTENSIONS))}"
            )

        logger.info(
            f"Loaded {filepath.name}: size={image.size}, spacing={image.spacing}, "
            f"origin={image.origin}"
        )
        return image

    def _load_sitk(self, filepath: Path) -> ImageData:
        if not SITK_AVAILABLE:
            raise ImageLoadError(
                str(filepath),
                "SimpleITK is required for this format",
                details="Install with: pip install SimpleITK"
            )
        try:
            sitk_image = sitk.ReadImage(str(filepath))
        except RuntimeError as e:
            raise ImageLoadError(str(filepath), "SimpleITK could not read the file", details=str(e))

        dimension = sitk_image.GetDimension()
        if dimension == 3 and sitk_image.GetSize()[2] == 1:
            sitk_image = sitk_image[:, :, 0]
            dimension = 2
        if dimension != 2:
            raise ImageLoadError(str(filepath), f"Expected a 2D image, got {dimension}D")

        array = sitk.GetArrayFromImage(sitk_image)
        if array.ndim == 3:
            logger.debug(f"Averaging {array.shape[2]} components to grayscale")
            array = array.mean(axis=2)

        geometry = ImageGeometry(
            origin=tuple(sitk_image.GetOrigin()),
            spacing=tuple(sitk_image.GetSpacing()),
            direction=tuple(sitk_image.GetDirection()),
        )
        return ImageData(pixel_array=array, geometry=geometry, filepath=str(filepath))

    def _load_standard(self, filepath: Path) -> ImageData:
        if not CV2_AVAILABLE:
            raise ImageLoadError(
                str(filepath),
                "OpenCV is required for this format",
                details="Install with: pip install opencv-python"
            )
        array = cv2.imread(str(filepath), cv2.IMREAD_UNCHANGED)
        if array is None:
            raise ImageLoadError(str(filepath), "OpenCV could not decode the file")

        if array.ndim == 3:
            if array.shape[2] == 4:
                array = cv2.cvtColor(array, cv2.COLOR_BGRA2GRAY)
            elif array.shape[2] == 3:
                array = cv2.cvtColor(array, cv2.COLOR_BGR2GRAY)
            else:
                array = array[:, :, 0]

        return ImageData(pixel_array=array, filepath=str(filepath))


class ImageWriter:
    """Writer dispatching on file extension."""

    def __init__(self, create_dirs: bool = True):
        self.create_dirs = create_dirs

    def save(self, filepath: Union[str, Path], image: ImageData) -> Path:
        """
        Write ``image`` to ``filepath``.

        Returns:
            Path to the written file

        Raises:
            ImageWriteError: If the file cannot be written
        """
        filepath = Path(filepath)
        if self.create_dirs:
            filepath.parent.mkdir(parents=True, exist_ok=True)

        ext = _extension(filepath)
        if ext in SITK_EXTENSIONS:
            self._save_sitk(filepath, image)
        elif ext in STANDARD_EXTENSIONS:
            self._save_standard(filepath, image)
        else:
            raise ImageWriteError(str(filepath), f"Unsupported format: {ext}")

        logger.info(f"Saved image to {filepath}")
        return filepath

    def _save_sitk(self, filepath: Path, image: ImageData) -> None:
        if not SITK_AVAILABLE:
            raise ImageWriteError(str(filepath), "SimpleITK is required for this format")
        sitk_image = sitk.GetImageFromArray(np.ascontiguousarray(image.pixel_array))
        sitk_image.SetOrigin(image.geometry.origin)
        sitk_image.SetSpacing(image.geometry.spacing)
        sitk_image.SetDirection(image.geometry.direction)
        try:
            sitk.WriteImage(sitk_image, str(filepath))
        except RuntimeError as e:
            raise ImageWriteError(str(filepath), "SimpleITK could not write the file", details=str(e))

    def _save_standard(self, filepath: Path, image: ImageData) -> None:
        if not CV2_AVAILABLE:
            raise ImageWriteError(str(filepath), "OpenCV is required for this format")
        array = image.pixel_array
        if array.dtype not in (np.uint8, np.uint16):
            array = image.as_uint8()
        try:
            written = cv2.imwrite(str(filepath), array)
        except cv2.error as e:
            raise ImageWriteError(str(filepath), "OpenCV could not encode the image", details=str(e))
        if not written:
            raise ImageWriteError(str(filepath), "OpenCV could not encode the image")


def read_image(filepath: Union[str, Path]) -> ImageData:
    """Read a 2D scalar image with its geometry."""
    return ImageLoader().load(filepath)


def write_image(filepath: Union[str, Path], image: ImageData) -> Path:
    """Write a 2D scalar image with its geometry."""
    return ImageWriter().save(filepath, image)
