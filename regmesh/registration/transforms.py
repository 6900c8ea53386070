"""
Parametric 2D spatial transforms.

A transform maps physical points of the fixed image into the physical
space of the moving image. Each transform holds a fixed-length parameter
vector, modified by the optimizer, and fixed parameters (the rotation
center for rigid and affine transforms) that the optimizer never touches.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence
import numpy as np

from regmesh.core.image_data import TransformType
from regmesh.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class Transform(ABC):
    """
    Base class for 2D parametric transforms.

    Subclasses provide ``matrix()``; the transform is then
    ``T(p) = A (p - c) + c + t`` where ``c`` is the center.
    """

    transform_type: TransformType

    def __init__(self, center: Optional[Sequence[float]] = None):
        self._parameters = np.zeros(self.number_of_parameters, dtype=np.float64)
        self._center = np.zeros(2, dtype=np.float64)
        if center is not None:
            self.set_fixed_parameters(center)
        self.set_identity()

    @property
    def number_of_parameters(self) -> int:
        return self.transform_type.number_of_parameters

    def get_parameters(self) -> np.ndarray:
        """Return a copy of the parameter vector."""
        return self._parameters.copy()

    def set_parameters(self, parameters: Sequence[float]) -> None:
        parameters = np.asarray(parameters, dtype=np.float64).ravel()
        if parameters.size != self.number_of_parameters:
            raise ConfigurationError(
                "parameters",
                f"{self.transform_type.value} transform expects "
                f"{self.number_of_parameters} parameters, got {parameters.size}"
            )
        self._parameters = parameters.copy()

    def get_fixed_parameters(self) -> np.ndarray:
        return self._center.copy()

    def set_fixed_parameters(self, center: Sequence[float]) -> None:
        center = np.asarray(center, dtype=np.float64).ravel()
        if center.size != 2:
            raise ConfigurationError("center", f"expected 2 components, got {center.size}")
        self._center = center.copy()

    @abstractmethod
    def set_identity(self) -> None:
        """Reset parameters to the identity mapping."""

    @abstractmethod
    def matrix(self) -> np.ndarray:
        """Return the 2x2 linear part."""

    @abstractmethod
    def translation(self) -> np.ndarray:
        """Return the translation part."""

    def offset(self) -> np.ndarray:
        """Translation of the equivalent uncentered mapping ``A p + offset``."""
        return self._center + self.translation() - self.matrix() @ self._center

    def to_matrix(self) -> np.ndarray:
        """Return the 2x3 homogeneous matrix [A | offset]."""
        return np.hstack([self.matrix(), self.offset().reshape(2, 1)])

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """Map physical points of shape (..., 2)."""
        points = np.asarray(points, dtype=np.float64)
        return points @ self.matrix().T + self.offset()

    def transform_point(self, point: Sequence[float]) -> np.ndarray:
        return self.transform_points(np.asarray(point, dtype=np.float64).reshape(1, 2))[0]

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(parameters={self._parameters.tolist()}, "
            f"center={self._center.tolist()})"
        )


class TranslationTransform(Transform):
    """Pure translation, parameters (tx, ty)."""

    transform_type = TransformType.TRANSLATION

    def set_identity(self) -> None:
        self._parameters = np.zeros(2, dtype=np.float64)

    def matrix(self) -> np.ndarray:
        return np.eye(2)

    def translation(self) -> np.ndarray:
        return self._parameters.copy()

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        return np.asarray(points, dtype=np.float64) + self._parameters


class RigidTransform(Transform):
    """Rotation about the center followed by translation, parameters (angle, tx, ty)."""

    transform_type = TransformType.RIGID

    def set_identity(self) -> None:
        self._parameters = np.zeros(3, dtype=np.float64)

    @property
    def angle(self) -> float:
        return float(self._parameters[0])

    def matrix(self) -> np.ndarray:
        cos_a, sin_a = np.cos(self.angle), np.sin(self.angle)
        return np.array([[cos_a, -sin_a], [sin_a, cos_a]], dtype=np.float64)

    def translation(self) -> np.ndarray:
        return self._parameters[1:3].copy()


class AffineTransform(Transform):
    """General affine mapping, parameters (a11, a12, a21, a22, tx, ty)."""

    transform_type = TransformType.AFFINE

    def set_identity(self) -> None:
        self._parameters = np.array([1.0, 0.0, 0.0, 1.0, 0.0, 0.0])

    def matrix(self) -> np.ndarray:
        return self._parameters[:4].reshape(2, 2).copy()

    def translation(self) -> np.ndarray:
        return self._parameters[4:6].copy()


_TRANSFORMS = {
    TransformType.TRANSLATION: TranslationTransform,
    TransformType.RIGID: RigidTransform,
    TransformType.AFFINE: AffineTransform,
}


def create_transform(
    transform_type: TransformType,
    center: Optional[Sequence[float]] = None
) -> Transform:
    """
    Create a transform of the requested type, initialised to identity.

    Args:
        transform_type: Which transform to build
        center: Rotation center (ignored by translations)

    Returns:
        Transform instance
    """
    transform_type = TransformType(transform_type)
    transform = _TRANSFORMS[transform_type](center=center)
    logger.debug(f"Created {transform!r}")
    return transform
