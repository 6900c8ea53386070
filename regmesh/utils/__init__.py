"""Utility modules for registration and meshing."""

from regmesh.utils.logging_config import (
    setup_logging,
    get_logger,
    RunLogger,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "RunLogger",
]
