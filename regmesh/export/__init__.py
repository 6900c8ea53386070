"""Export of registration results, images and meshes."""

from regmesh.export.output import ExportManager, NumpyEncoder

__all__ = [
    "ExportManager",
    "NumpyEncoder",
]
