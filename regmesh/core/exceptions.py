"""
Custom exceptions for image registration and rectilinear meshing.

This module defines a hierarchy of exceptions for clear error handling
and reporting throughout the registration engine and the mesh builder.
Every exception carries a failure kind so callers can branch on the
category without inspecting the concrete class.
"""

from enum import Enum
from typing import Optional, Sequence


class FailureKind(Enum):
    """Categories of failure surfaced to callers."""
    CONFIGURATION = "configuration"
    EVALUATION = "evaluation"
    REGISTRATION = "registration"
    CONVERGENCE = "convergence"
    IO = "io"


class RegMeshError(Exception):
    """Base exception for all registration and meshing errors."""

    kind: FailureKind = FailureKind.REGISTRATION

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(self.full_message)

    @property
    def full_message(self) -> str:
        if self.details:
            return f"{self.message}\nDetails: {self.details}"
        return self.message


class ConfigurationError(RegMeshError):
    """Raised when an argument or configuration value is invalid."""

    kind = FailureKind.CONFIGURATION

    def __init__(self, parameter: str, reason: str, details: Optional[str] = None):
        self.parameter = parameter
        message = f"Invalid configuration for '{parameter}': {reason}"
        super().__init__(message, details)


class InvalidLatticeConfiguration(ConfigurationError):
    """Raised when pixels-per-element cannot partition the image."""

    def __init__(
        self,
        pixels_per_element: Sequence[int],
        image_size: Sequence[int],
        reason: str,
        details: Optional[str] = None
    ):
        self.pixels_per_element = tuple(pixels_per_element)
        self.image_size = tuple(image_size)
        super().__init__(
            parameter="pixels_per_element",
            reason=(
                f"{reason} (pixels_per_element={self.pixels_per_element}, "
                f"image_size={self.image_size})"
            ),
            details=details
        )


class EvaluationFailure(RegMeshError):
    """Raised when a metric cannot produce a value."""

    kind = FailureKind.EVALUATION

    def __init__(self, reason: str, details: Optional[str] = None):
        message = f"Metric evaluation failed: {reason}"
        super().__init__(message, details)


class RegistrationFailure(RegMeshError):
    """Raised when a registration run is aborted."""

    kind = FailureKind.REGISTRATION

    def __init__(self, stage: str, reason: str, details: Optional[str] = None):
        self.stage = stage
        message = f"Registration failed at stage '{stage}': {reason}"
        super().__init__(message, details)


class ConvergenceFailure(RegistrationFailure):
    """Raised when convergence is required but the iteration cap was hit."""

    kind = FailureKind.CONVERGENCE

    def __init__(self, algorithm: str, iterations: int, details: Optional[str] = None):
        self.algorithm = algorithm
        self.iterations = iterations
        super().__init__(
            stage=algorithm,
            reason=f"Failed to converge after {iterations} iterations",
            details=details
        )


class ImageIOError(RegMeshError):
    """Base class for image read/write failures."""

    kind = FailureKind.IO
    _verb = "Failed to access"

    def __init__(self, filepath: str, reason: str, details: Optional[str] = None):
        self.filepath = filepath
        super().__init__(f"{self._verb} image '{filepath}': {reason}", details)


class ImageLoadError(ImageIOError):
    """Raised when image loading fails."""

    _verb = "Failed to load"


class ImageWriteError(ImageIOError):
    """Raised when image writing fails."""

    _verb = "Failed to write"
