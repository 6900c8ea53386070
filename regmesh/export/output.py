"""
Output and export utilities.

This module saves registration results, resampled images and generated
meshes to disk.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union
import numpy as np

from regmesh import __version__
from regmesh.core.image_data import ImageData, RegistrationResult
from regmesh.core.exceptions import ConfigurationError
from regmesh.fem.fem_object import FEMObject
from regmesh.io.image_io import ImageWriter

logger = logging.getLogger(__name__)


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types."""

    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)


class ExportManager:
    """
    Manager for exporting registration results, images and meshes.

    Attributes:
        output_dir: Default output directory

    Example:
        >>> export = ExportManager(output_dir="./results")
        >>> export.save_registration_result(result, "registration.json")
        >>> export.save_mesh(mesh, "mesh.json")
    """

    def __init__(
        self,
        output_dir: Optional[Union[str, Path]] = None,
        create_dirs: bool = True
    ):
        self.output_dir = Path(output_dir) if output_dir else Path.cwd()
        self.create_dirs = create_dirs

        if create_dirs:
            self.output_dir.mkdir(parents=True, exist_ok=True)

    def _resolve(self, filename: Union[str, Path]) -> Path:
        output_path = self.output_dir / filename
        if self.create_dirs:
            output_path.parent.mkdir(parents=True, exist_ok=True)
        return output_path

    def _write_json(self, data: dict, output_path: Path) -> None:
        data["export_info"] = {
            "timestamp": datetime.now().isoformat(),
            "version": __version__,
        }
        with open(output_path, 'w') as f:
            json.dump(data, f, indent=2, cls=NumpyEncoder)

    def save_image(self, image: ImageData, filename: Union[str, Path]) -> Path:
        """Save an image; the format follows the file extension."""
        return ImageWriter(create_dirs=self.create_dirs).save(self._resolve(filename), image)

    def save_registration_result(
        self,
        result: RegistrationResult,
        filename: Union[str, Path],
        include_history: bool = True
    ) -> Path:
        """
        Save a registration result to JSON.

        Args:
            result: Result to save
            filename: Output filename, relative to ``output_dir``
            include_history: Keep the per-iteration value history

        Returns:
            Path to saved file
        """
        output_path = self._resolve(filename)
        data = result.to_dict()
        if not include_history:
            data.pop("value_history", None)
        self._write_json(data, output_path)
        logger.info(f"Saved registration result to {output_path}")
        return output_path

    def load_registration_result(self, filepath: Union[str, Path]) -> RegistrationResult:
        """
        Load a registration result from JSON.

        Raises:
            ConfigurationError: If the file is not a valid result
        """
        filepath = Path(filepath)
        try:
            with open(filepath, 'r') as f:
                data = json.load(f)
        except OSError as e:
            raise ConfigurationError(str(filepath), "cannot read registration result", details=str(e))
        except json.JSONDecodeError as e:
            raise ConfigurationError(str(filepath), "invalid JSON", details=str(e))

        try:
            return RegistrationResult.from_dict(data)
        except (KeyError, ValueError) as e:
            raise ConfigurationError(str(filepath), "not a registration result", details=str(e))

    def save_mesh(self, mesh: FEMObject, filename: Union[str, Path]) -> Path:
        """Save mesh nodes, elements and materials to JSON."""
        output_path = self._resolve(filename)
        data = mesh.to_dict()
        data["summary"] = {
            "number_of_nodes": mesh.number_of_nodes,
            "number_of_elements": mesh.number_of_elements,
            "number_of_materials": mesh.number_of_materials,
        }
        self._write_json(data, output_path)
        logger.info(f"Saved mesh to {output_path}")
        return output_path
