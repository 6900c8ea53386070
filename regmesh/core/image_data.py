"""
Core data structures for image registration and rectilinear meshing.

This module defines the fundamental data classes used throughout the
package, including the image container with its physical geometry,
registration and meshing configuration, and registration results.

Index convention: continuous indices and sizes are ordered (x, y), i.e.
(column, row), while ``pixel_array`` keeps numpy's (row, column) layout.
"""

import json
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, Tuple, List, Union
import numpy as np

from regmesh.core.exceptions import ConfigurationError


class TransformType(Enum):
    """Supported parametric transforms."""
    TRANSLATION = "translation"      # 2 DOF: tx, ty
    RIGID = "rigid"                  # 3 DOF: angle, tx, ty
    AFFINE = "affine"                # 6 DOF: a11, a12, a21, a22, tx, ty

    @property
    def number_of_parameters(self) -> int:
        """Return the parameter count of the transform."""
        return {
            TransformType.TRANSLATION: 2,
            TransformType.RIGID: 3,
            TransformType.AFFINE: 6,
        }[self]


class InterpolatorType(Enum):
    """Supported moving-image interpolators."""
    LINEAR = "linear"
    NEAREST = "nearest"


class OptimizerType(Enum):
    """Supported optimizers."""
    AMOEBA = "amoeba"
    REGULAR_STEP_GRADIENT_DESCENT = "regular_step_gradient_descent"


class RemainderPolicy(Enum):
    """How the mesh builder treats pixels left over by the lattice."""
    TRUNCATE = "truncate"            # floor division, remainder unused
    REJECT = "reject"                # remainder is a configuration error


class OptimizerState(Enum):
    """Lifecycle states of an optimizer run."""
    INITIALIZED = "initialized"
    ITERATING = "iterating"
    CONVERGED = "converged"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"
    FAILED = "failed"


class StopCondition(Enum):
    """Reasons an optimizer stopped iterating."""
    NOT_STOPPED = "not_stopped"
    PARAMETERS_CONVERGED = "parameters_converged"
    VALUE_CONVERGED = "value_converged"
    MAXIMUM_ITERATIONS = "maximum_iterations"
    STEP_TOO_SMALL = "step_too_small"
    GRADIENT_MAGNITUDE_TOLERANCE = "gradient_magnitude_tolerance"
    FAILED = "failed"

    @property
    def converged(self) -> bool:
        """True for tolerance-based terminations."""
        return self in (
            StopCondition.PARAMETERS_CONVERGED,
            StopCondition.VALUE_CONVERGED,
            StopCondition.STEP_TOO_SMALL,
            StopCondition.GRADIENT_MAGNITUDE_TOLERANCE,
        )

    @property
    def state(self) -> OptimizerState:
        """Terminal optimizer state implied by this stop condition."""
        if self.converged:
            return OptimizerState.CONVERGED
        if self == StopCondition.MAXIMUM_ITERATIONS:
            return OptimizerState.MAX_ITERATIONS_REACHED
        if self == StopCondition.FAILED:
            return OptimizerState.FAILED
        return OptimizerState.ITERATING


@dataclass(frozen=True)
class ImageGeometry:
    """
    Physical geometry of a 2D image.

    Attributes:
        origin: Physical coordinate of sample [0, 0] (x, y)
        spacing: Physical distance between adjacent samples (x, y)
        direction: 2x2 orientation matrix, row-major
    """
    origin: Tuple[float, float] = (0.0, 0.0)
    spacing: Tuple[float, float] = (1.0, 1.0)
    direction: Tuple[float, float, float, float] = (1.0, 0.0, 0.0, 1.0)

    def __post_init__(self):
        """Validate geometry after initialization."""
        if len(self.origin) != 2 or len(self.spacing) != 2:
            raise ConfigurationError("geometry", "origin and spacing must have 2 components")
        if len(self.direction) != 4:
            raise ConfigurationError("geometry", "direction must have 4 components")
        if any(s <= 0 for s in self.spacing):
            raise ConfigurationError("spacing", f"must be positive, got {self.spacing}")
        if abs(np.linalg.det(self.direction_matrix)) < 1e-12:
            raise ConfigurationError("direction", "matrix is singular")
        object.__setattr__(self, "origin", tuple(float(v) for v in self.origin))
        object.__setattr__(self, "spacing", tuple(float(v) for v in self.spacing))
        object.__setattr__(self, "direction", tuple(float(v) for v in self.direction))

    @property
    def direction_matrix(self) -> np.ndarray:
        """Direction cosines as a 2x2 array."""
        return np.asarray(self.direction, dtype=np.float64).reshape(2, 2)

    def index_to_physical(self, indices: np.ndarray) -> np.ndarray:
        """Map continuous (x, y) indices of shape (..., 2) to physical points."""
        indices = np.asarray(indices, dtype=np.float64)
        scaled = indices * np.asarray(self.spacing)
        return scaled @ self.direction_matrix.T + np.asarray(self.origin)

    def physical_to_continuous_index(self, points: np.ndarray) -> np.ndarray:
        """Map physical points of shape (..., 2) to continuous (x, y) indices."""
        points = np.asarray(points, dtype=np.float64)
        inverse = np.linalg.inv(self.direction_matrix)
        local = (points - np.asarray(self.origin)) @ inverse.T
        return local / np.asarray(self.spacing)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "origin": list(self.origin),
            "spacing": list(self.spacing),
            "direction": list(self.direction),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ImageGeometry':
        """Create from dictionary."""
        return cls(
            origin=tuple(data.get("origin", (0.0, 0.0))),
            spacing=tuple(data.get("spacing", (1.0, 1.0))),
            direction=tuple(data.get("direction", (1.0, 0.0, 0.0, 1.0))),
        )


@dataclass(frozen=True)
class ImageRegion:
    """
    Rectangular index region of an image.

    Attributes:
        index: Start index (x, y)
        size: Extent in pixels (x, y)
    """
    index: Tuple[int, int]
    size: Tuple[int, int]

    def __post_init__(self):
        if len(self.index) != 2 or len(self.size) != 2:
            raise ConfigurationError("region", f"expected 2D index and size, got {self.index}, {self.size}")
        if any(i < 0 for i in self.index):
            raise ConfigurationError("region", f"index must be non-negative, got {tuple(self.index)}")
        if any(s <= 0 for s in self.size):
            raise ConfigurationError("region", f"size must be positive, got {tuple(self.size)}")

    @property
    def number_of_pixels(self) -> int:
        return int(self.size[0] * self.size[1])

    def is_inside(self, other: 'ImageRegion') -> bool:
        """Check whether this region lies entirely within ``other``."""
        for axis in range(2):
            if self.index[axis] < other.index[axis]:
                return False
            if self.index[axis] + self.size[axis] > other.index[axis] + other.size[axis]:
                return False
        return True

    @property
    def slices(self) -> Tuple[slice, slice]:
        """Numpy (row, column) slices selecting the region."""
        return (
            slice(self.index[1], self.index[1] + self.size[1]),
            slice(self.index[0], self.index[0] + self.size[0]),
        )


@dataclass(frozen=True, eq=False)
class ImageData:
    """
    Immutable 2D scalar image with physical geometry.

    This is the primary data structure passed to the registration engine
    and the mesh builder. The pixel buffer is stored read-only.

    Attributes:
        pixel_array: Image samples as numpy array (H, W)
        geometry: Origin, spacing and direction of the sample grid
        filepath: Original file path, if read from disk
    """
    pixel_array: np.ndarray
    geometry: ImageGeometry = field(default_factory=ImageGeometry)
    filepath: Optional[str] = None

    def __post_init__(self):
        """Validate image data after initialization."""
        if self.pixel_array is None:
            raise ConfigurationError("pixel_array", "cannot be None")
        array = np.array(self.pixel_array, copy=True)
        if array.ndim != 2:
            raise ConfigurationError(
                "pixel_array", f"must be 2D, got {array.ndim}D"
            )
        if array.size == 0:
            raise ConfigurationError("pixel_array", "image is empty")
        array.setflags(write=False)
        object.__setattr__(self, "pixel_array", array)

    @classmethod
    def from_array(
        cls,
        array: np.ndarray,
        spacing: Tuple[float, float] = (1.0, 1.0),
        origin: Tuple[float, float] = (0.0, 0.0),
        direction: Tuple[float, float, float, float] = (1.0, 0.0, 0.0, 1.0),
        filepath: Optional[str] = None
    ) -> 'ImageData':
        """Create an image from a numpy array and geometry components."""
        return cls(
            pixel_array=array,
            geometry=ImageGeometry(origin=origin, spacing=spacing, direction=direction),
            filepath=filepath
        )

    @property
    def shape(self) -> Tuple[int, int]:
        """Return numpy shape (rows, columns)."""
        return self.pixel_array.shape

    @property
    def size(self) -> Tuple[int, int]:
        """Return image size as (x, y) = (columns, rows)."""
        return (self.pixel_array.shape[1], self.pixel_array.shape[0])

    @property
    def height(self) -> int:
        return self.pixel_array.shape[0]

    @property
    def width(self) -> int:
        return self.pixel_array.shape[1]

    @property
    def origin(self) -> Tuple[float, float]:
        return self.geometry.origin

    @property
    def spacing(self) -> Tuple[float, float]:
        return self.geometry.spacing

    @property
    def direction(self) -> np.ndarray:
        return self.geometry.direction_matrix

    @property
    def largest_region(self) -> ImageRegion:
        """Region covering the whole buffer."""
        return ImageRegion(index=(0, 0), size=self.size)

    def index_to_physical(self, indices: np.ndarray) -> np.ndarray:
        return self.geometry.index_to_physical(indices)

    def physical_to_continuous_index(self, points: np.ndarray) -> np.ndarray:
        return self.geometry.physical_to_continuous_index(points)

    def as_float64(self) -> np.ndarray:
        """Return pixel array as float64 (values are not rescaled)."""
        return self.pixel_array.astype(np.float64)

    def as_uint8(self) -> np.ndarray:
        """Return pixel array normalized to uint8 range."""
        if self.pixel_array.dtype == np.uint8:
            return self.pixel_array

        arr = self.pixel_array.astype(np.float64)
        arr_min, arr_max = arr.min(), arr.max()
        if arr_max > arr_min:
            arr = (arr - arr_min) / (arr_max - arr_min) * 255
        else:
            arr = np.zeros_like(arr)
        return arr.astype(np.uint8)


def _check_keys(cls, data: Dict[str, Any]) -> None:
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(
            cls.__name__,
            f"unknown keys: {', '.join(sorted(unknown))}"
        )


@dataclass
class RegistrationConfig:
    """
    Configuration for a registration run.

    Attributes:
        transform_type: Parametric transform to optimize
        interpolator_type: Moving-image interpolator
        optimizer_type: Optimizer driving the search
        histogram_size: Joint histogram bins (fixed axis, moving axis)
        maximize: Optimize toward larger metric values
        initial_simplex_delta: Per-parameter simplex size (None = automatic)
        parameters_convergence_tolerance: Simplex extent tolerance
        function_convergence_tolerance: Simplex value-range tolerance
        max_iterations: Cap on simplex updates / gradient steps
        restarts: Number of simplex restarts after convergence
        learning_rate: Initial step length for gradient descent
        min_step: Minimum step length for gradient descent
        relaxation_factor: Step reduction when the gradient reverses
        gradient_magnitude_tolerance: Gradient norm convergence threshold
        derivative_step_length: Finite difference step for metric gradients
        padding_value: Fixed-image value excluded from the histograms
        require_convergence: Raise ConvergenceFailure on max iterations
    """
    transform_type: TransformType = TransformType.TRANSLATION
    interpolator_type: InterpolatorType = InterpolatorType.LINEAR
    optimizer_type: OptimizerType = OptimizerType.AMOEBA
    histogram_size: Tuple[int, int] = (256, 256)
    maximize: bool = True

    # Amoeba parameters
    initial_simplex_delta: Optional[List[float]] = None
    parameters_convergence_tolerance: float = 0.1
    function_convergence_tolerance: float = 0.001
    max_iterations: int = 200
    restarts: int = 0

    # Gradient descent parameters
    learning_rate: float = 1.0
    min_step: float = 0.001
    relaxation_factor: float = 0.5
    gradient_magnitude_tolerance: float = 1e-4
    derivative_step_length: float = 0.1

    # Metric parameters
    padding_value: Optional[float] = None

    require_convergence: bool = False

    def __post_init__(self):
        self.transform_type = TransformType(self.transform_type)
        self.interpolator_type = InterpolatorType(self.interpolator_type)
        self.optimizer_type = OptimizerType(self.optimizer_type)
        self.histogram_size = tuple(int(b) for b in self.histogram_size)
        if len(self.histogram_size) != 2 or min(self.histogram_size) < 1:
            raise ConfigurationError(
                "histogram_size", f"expected two positive bin counts, got {self.histogram_size}"
            )
        if self.max_iterations < 1:
            raise ConfigurationError("max_iterations", "must be at least 1")
        if self.initial_simplex_delta is not None:
            self.initial_simplex_delta = [float(d) for d in self.initial_simplex_delta]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "transform_type": self.transform_type.value,
            "interpolator_type": self.interpolator_type.value,
            "optimizer_type": self.optimizer_type.value,
            "histogram_size": list(self.histogram_size),
            "maximize": self.maximize,
            "initial_simplex_delta": self.initial_simplex_delta,
            "parameters_convergence_tolerance": self.parameters_convergence_tolerance,
            "function_convergence_tolerance": self.function_convergence_tolerance,
            "max_iterations": self.max_iterations,
            "restarts": self.restarts,
            "learning_rate": self.learning_rate,
            "min_step": self.min_step,
            "relaxation_factor": self.relaxation_factor,
            "gradient_magnitude_tolerance": self.gradient_magnitude_tolerance,
            "derivative_step_length": self.derivative_step_length,
            "padding_value": self.padding_value,
            "require_convergence": self.require_convergence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RegistrationConfig':
        """Create from dictionary."""
        _check_keys(cls, data)
        try:
            return cls(**data)
        except ValueError as e:
            raise ConfigurationError(cls.__name__, str(e))


@dataclass
class MeshConfig:
    """
    Configuration for rectilinear mesh generation.

    Attributes:
        pixels_per_element: Element extent in pixels (x, y)
        remainder_policy: Treatment of pixels left over by the lattice
        youngs_modulus: Young's modulus of the shared material
        cross_sectional_area: Cross-sectional area of the shared material
        moment_of_inertia: Moment of inertia of the shared material
        poissons_ratio: Poisson's ratio of the shared material
        thickness: Membrane thickness
        density_heat_product: Density times specific heat
    """
    pixels_per_element: Tuple[int, int] = (1, 1)
    remainder_policy: RemainderPolicy = RemainderPolicy.TRUNCATE
    youngs_modulus: float = 100000.0
    cross_sectional_area: float = 0.02
    moment_of_inertia: float = 0.004
    poissons_ratio: float = 0.2
    thickness: float = 1.0
    density_heat_product: float = 1.0

    def __post_init__(self):
        self.pixels_per_element = tuple(int(p) for p in self.pixels_per_element)
        self.remainder_policy = RemainderPolicy(self.remainder_policy)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "pixels_per_element": list(self.pixels_per_element),
            "remainder_policy": self.remainder_policy.value,
            "youngs_modulus": self.youngs_modulus,
            "cross_sectional_area": self.cross_sectional_area,
            "moment_of_inertia": self.moment_of_inertia,
            "poissons_ratio": self.poissons_ratio,
            "thickness": self.thickness,
            "density_heat_product": self.density_heat_product,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MeshConfig':
        """Create from dictionary."""
        _check_keys(cls, data)
        try:
            return cls(**data)
        except ValueError as e:
            raise ConfigurationError(cls.__name__, str(e))


@dataclass
class RegistrationResult:
    """
    Complete result from a registration run.

    Attributes:
        final_parameters: Best transform parameters found
        final_value: Metric value at the final parameters
        stop_condition: Why the optimizer stopped
        stop_description: Human-readable stop condition
        iterations: Number of optimizer iterations performed
        number_of_evaluations: Number of metric evaluations
        fixed_parameters: Transform fixed parameters (e.g. center)
        transform_type: Transform that was optimized
        value_history: Best value after each iteration
        registration_time_ms: Total registration time in milliseconds
    """
    final_parameters: np.ndarray
    final_value: float
    stop_condition: StopCondition
    stop_description: str
    iterations: int = 0
    number_of_evaluations: int = 0
    fixed_parameters: np.ndarray = field(default_factory=lambda: np.zeros(0))
    transform_type: TransformType = TransformType.TRANSLATION
    value_history: List[float] = field(default_factory=list)
    registration_time_ms: float = 0.0

    @property
    def converged(self) -> bool:
        """Whether a tolerance criterion ended the run."""
        return self.stop_condition.converged

    @property
    def state(self) -> OptimizerState:
        return self.stop_condition.state

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "final_parameters": np.asarray(self.final_parameters).tolist(),
            "final_value": float(self.final_value),
            "stop_condition": self.stop_condition.value,
            "stop_description": self.stop_description,
            "iterations": self.iterations,
            "number_of_evaluations": self.number_of_evaluations,
            "fixed_parameters": np.asarray(self.fixed_parameters).tolist(),
            "transform_type": self.transform_type.value,
            "value_history": list(self.value_history),
            "registration_time_ms": self.registration_time_ms,
            "converged": self.converged,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RegistrationResult':
        """Create from dictionary."""
        return cls(
            final_parameters=np.array(data["final_parameters"], dtype=np.float64),
            final_value=data["final_value"],
            stop_condition=StopCondition(data["stop_condition"]),
            stop_description=data.get("stop_description", ""),
            iterations=data.get("iterations", 0),
            number_of_evaluations=data.get("number_of_evaluations", 0),
            fixed_parameters=np.array(data.get("fixed_parameters", []), dtype=np.float64),
            transform_type=TransformType(data.get("transform_type", "translation")),
            value_history=data.get("value_history", []),
            registration_time_ms=data.get("registration_time_ms", 0.0),
        )


def load_config(
    filepath: Union[str, Path]
) -> Tuple[RegistrationConfig, MeshConfig]:
    """
    Load registration and mesh configuration from a JSON file.

    The file may contain ``registration`` and ``mesh`` sections; missing
    sections fall back to defaults.

    Raises:
        ConfigurationError: If the file cannot be read or is invalid
    """
    filepath = Path(filepath)
    try:
        with open(filepath, 'r') as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(str(filepath), "cannot read configuration file", details=str(e))
    except json.JSONDecodeError as e:
        raise ConfigurationError(str(filepath), "invalid JSON", details=str(e))

    if not isinstance(data, dict):
        raise ConfigurationError(str(filepath), "top level must be an object")
    unknown = set(data) - {"registration", "mesh"}
    if unknown:
        raise ConfigurationError(
            str(filepath), f"unknown sections: {', '.join(sorted(unknown))}"
        )

    registration = RegistrationConfig.from_dict(data.get("registration", {}))
    mesh = MeshConfig.from_dict(data.get("mesh", {}))
    return registration, mesh
