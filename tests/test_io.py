"""
Unit tests for image I/O and result export.
"""

import json
import shutil
import tempfile
import unittest
import numpy as np
import sys
from pathlib import Path

# Add parent directory for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

try:
    import SimpleITK
    SITK_AVAILABLE = True
except ImportError:
    SITK_AVAILABLE = False

try:
    import cv2
    CV2_AVAILABLE = True
except ImportError:
    CV2_AVAILABLE = False

from regmesh.core.image_data import (
    ImageData,
    RegistrationResult,
    RegistrationConfig,
    MeshConfig,
    RemainderPolicy,
    StopCondition,
    load_config,
)
from regmesh.core.exceptions import (
    FailureKind,
    ConfigurationError,
    ImageLoadError,
    ImageWriteError,
)
from regmesh.io.image_io import read_image, write_image, is_supported_format
from regmesh.fem.rectilinear import build_mesh
from regmesh.export.output import ExportManager


class TempDirTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)


class TestImageIO(TempDirTestCase):
    """Tests for reading and writing images."""

    def test_supported_formats(self):
        self.assertTrue(is_supported_format("brain.nii.gz"))
        self.assertTrue(is_supported_format("fixed.MHA"))
        self.assertTrue(is_supported_format("slice.png"))
        self.assertFalse(is_supported_format("notes.txt"))

    def test_missing_file(self):
        with self.assertRaises(ImageLoadError) as ctx:
            read_image(self.temp_dir / "missing.png")
        self.assertEqual(ctx.exception.kind, FailureKind.IO)

    def test_unsupported_format(self):
        path = self.temp_dir / "image.xyz"
        path.write_bytes(b"\x00")
        with self.assertRaises(ImageLoadError):
            read_image(path)

        image = ImageData(pixel_array=np.zeros((2, 2)))
        with self.assertRaises(ImageWriteError):
            write_image(self.temp_dir / "image.xyz", image)

    @unittest.skipUnless(SITK_AVAILABLE, "SimpleITK not available")
    def test_metaimage_keeps_geometry(self):
        array = np.arange(12, dtype=np.float32).reshape(3, 4)
        image = ImageData.from_array(array, spacing=(0.5, 2.0), origin=(10.0, -5.0))
        path = write_image(self.temp_dir / "image.mha", image)

        loaded = read_image(path)
        np.testing.assert_array_equal(loaded.pixel_array, array)
        self.assertEqual(loaded.size, (4, 3))
        self.assertEqual(loaded.spacing, (0.5, 2.0))
        self.assertEqual(loaded.origin, (10.0, -5.0))

    @unittest.skipUnless(CV2_AVAILABLE, "OpenCV not available")
    def test_png_round_trip(self):
        array = np.arange(20, dtype=np.uint8).reshape(4, 5) * 10
        write_image(self.temp_dir / "nested" / "image.png", ImageData(pixel_array=array))

        loaded = read_image(self.temp_dir / "nested" / "image.png")
        np.testing.assert_array_equal(loaded.pixel_array, array)
        self.assertEqual(loaded.spacing, (1.0, 1.0))

    @unittest.skipUnless(CV2_AVAILABLE, "OpenCV not available")
    def test_color_png_is_converted_to_grayscale(self):
        color = np.full((4, 4, 3), 128, dtype=np.uint8)
        cv2.imwrite(str(self.temp_dir / "color.png"), color)

        loaded = read_image(self.temp_dir / "color.png")
        self.assertEqual(loaded.pixel_array.ndim, 2)
        self.assertEqual(int(loaded.pixel_array[0, 0]), 128)


class TestExportManager(TempDirTestCase):
    """Tests for JSON export of results and meshes."""

    def test_registration_result_round_trip(self):
        result = RegistrationResult(
            final_parameters=np.array([13.0, 17.0]),
            final_value=0.87,
            stop_condition=StopCondition.PARAMETERS_CONVERGED,
            stop_description="Parameters converged",
            iterations=42,
            value_history=[0.5, 0.8, 0.87],
        )
        exporter = ExportManager(output_dir=self.temp_dir)
        path = exporter.save_registration_result(result, "result.json")

        loaded = exporter.load_registration_result(path)
        np.testing.assert_array_equal(loaded.final_parameters, [13.0, 17.0])
        self.assertEqual(loaded.iterations, 42)
        self.assertEqual(loaded.value_history, [0.5, 0.8, 0.87])
        self.assertTrue(loaded.converged)

    def test_history_can_be_dropped(self):
        result = RegistrationResult(
            final_parameters=np.zeros(2),
            final_value=0.1,
            stop_condition=StopCondition.MAXIMUM_ITERATIONS,
            stop_description="Maximum number of iterations",
            value_history=[0.1],
        )
        exporter = ExportManager(output_dir=self.temp_dir)
        path = exporter.save_registration_result(result, "result.json", include_history=False)

        with open(path) as f:
            data = json.load(f)
        self.assertNotIn("value_history", data)
        self.assertIn("export_info", data)

    def test_invalid_result_file(self):
        path = self.temp_dir / "other.json"
        path.write_text(json.dumps({"nodes": []}))
        with self.assertRaises(ConfigurationError):
            ExportManager(output_dir=self.temp_dir).load_registration_result(path)

    def test_unreadable_result_file(self):
        exporter = ExportManager(output_dir=self.temp_dir)
        with self.assertRaises(ConfigurationError):
            exporter.load_registration_result(self.temp_dir / "missing.json")

        broken = self.temp_dir / "broken.json"
        broken.write_text("{not json")
        with self.assertRaises(ConfigurationError):
            exporter.load_registration_result(broken)

    def test_save_mesh(self):
        image = ImageData(pixel_array=np.zeros((4, 4)))
        mesh = build_mesh(image, (2, 2))
        path = ExportManager(output_dir=self.temp_dir).save_mesh(mesh, "mesh.json")

        with open(path) as f:
            data = json.load(f)
        self.assertEqual(data["summary"]["number_of_nodes"], 9)
        self.assertEqual(data["summary"]["number_of_elements"], 4)
        self.assertEqual(data["elements"][3]["nodes"], [4, 5, 8, 7])


class TestLoadConfig(TempDirTestCase):
    """Tests for JSON configuration files."""

    def test_sections(self):
        path = self.temp_dir / "config.json"
        path.write_text(json.dumps({
            "registration": {"histogram_size": [32, 32], "max_iterations": 50},
            "mesh": {"pixels_per_element": [2, 2], "remainder_policy": "reject"},
        }))

        registration, mesh = load_config(path)
        self.assertEqual(registration.histogram_size, (32, 32))
        self.assertEqual(registration.max_iterations, 50)
        self.assertEqual(mesh.pixels_per_element, (2, 2))
        self.assertEqual(mesh.remainder_policy, RemainderPolicy.REJECT)

    def test_missing_sections_use_defaults(self):
        path = self.temp_dir / "config.json"
        path.write_text("{}")

        registration, mesh = load_config(path)
        self.assertEqual(registration, RegistrationConfig())
        self.assertEqual(mesh, MeshConfig())

    def test_invalid_files(self):
        with self.assertRaises(ConfigurationError):
            load_config(self.temp_dir / "missing.json")

        broken = self.temp_dir / "broken.json"
        broken.write_text("{not json")
        with self.assertRaises(ConfigurationError):
            load_config(broken)

        unknown = self.temp_dir / "unknown.json"
        unknown.write_text(json.dumps({"solver": {}}))
        with self.assertRaises(ConfigurationError):
            load_config(unknown)


if __name__ == "__main__":
    unittest.main()
