#!/usr/bin/env python
"""
Translation Registration Example

This script registers a moving image onto a fixed image with a
translation transform, histogram mutual information, linear
interpolation and the Amoeba optimizer in maximize mode, then writes the
resampled moving image and a JSON report.

Usage:
    python translation_registration.py fixed.mha moving.mha --output ./results

Without input images a synthetic pair with a known shift is generated:
    python translation_registration.py --synthetic --output ./results
"""

import argparse
import sys
from pathlib import Path

import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from regmesh import (
    ImageData,
    ImageLoader,
    RegistrationConfig,
    RegistrationPipeline,
    ExportManager,
)
from regmesh.core.exceptions import RegMeshError
from regmesh.utils.logging_config import setup_logging, get_logger, RunLogger

logger = get_logger(__name__)


def create_synthetic_pair(size=128, shift=(6.0, -4.0)):
    """Create a fixed image and a copy shifted by ``shift`` pixels."""
    def render(dx, dy):
        y, x = np.mgrid[:size, :size].astype(np.float64)
        x -= dx
        y -= dy
        img = 30.0 + 0.4 * x
        img += 160.0 * np.exp(-((x - 0.4 * size) ** 2 + (y - 0.45 * size) ** 2) / (2 * (size / 8) ** 2))
        img += 80.0 * np.exp(-((x - 0.7 * size) ** 2 + (y - 0.6 * size) ** 2) / (2 * (size / 10) ** 2))
        return np.clip(img, 0, 255).astype(np.uint8)

    return ImageData(pixel_array=render(0.0, 0.0)), ImageData(pixel_array=render(*shift))


def main():
    """Main entry point for translation registration example."""

    parser = argparse.ArgumentParser(
        description="Register two images with a mutual information translation search"
    )
    parser.add_argument("fixed", type=str, nargs="?", help="Path to fixed image")
    parser.add_argument("moving", type=str, nargs="?", help="Path to moving image")
    parser.add_argument(
        "--synthetic",
        action="store_true",
        help="Register a generated image pair with a known shift"
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default="./registration_results",
        help="Output directory for results"
    )
    parser.add_argument(
        "--initial",
        type=float,
        nargs=2,
        default=[0.0, 0.0],
        help="Initial translation (tx ty)"
    )
    parser.add_argument(
        "--bins",
        type=int,
        default=32,
        help="Histogram bins per image"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()

    # Setup logging
    setup_logging(level="DEBUG" if args.verbose else "INFO")
    run_logger = RunLogger("example")

    logger.info("=" * 60)
    logger.info("Mutual Information Translation Registration")
    logger.info("=" * 60)

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    # =========================================================================
    # Step 1: Load Images
    # =========================================================================
    logger.info("Step 1: Loading images...")

    if args.synthetic:
        fixed, moving = create_synthetic_pair()
        logger.info("  Generated synthetic pair shifted by (6.0, -4.0) px")
    elif args.fixed and args.moving:
        loader = ImageLoader()
        try:
            fixed = loader.load(args.fixed)
            moving = loader.load(args.moving)
        except RegMeshError as e:
            logger.error(f"Failed to load images: {e}")
            return 1
    else:
        parser.error("provide fixed and moving images or --synthetic")

    run_logger.log_image_loaded("fixed", fixed.size, fixed.spacing)
    run_logger.log_image_loaded("moving", moving.size, moving.spacing)

    # =========================================================================
    # Step 2: Configure Registration
    # =========================================================================
    logger.info("Step 2: Configuring registration...")

    config = RegistrationConfig(
        histogram_size=(args.bins, args.bins),
        initial_simplex_delta=[5.0, 5.0],
        parameters_convergence_tolerance=0.1,
        function_convergence_tolerance=0.001,
        max_iterations=200,
    )
    pipeline = RegistrationPipeline(config)

    logger.info(f"  Histogram: {args.bins}x{args.bins} bins")
    logger.info(f"  Optimizer: Amoeba, simplex delta 5.0, maximize")

    # =========================================================================
    # Step 3: Perform Registration
    # =========================================================================
    logger.info("Step 3: Performing registration...")
    run_logger.start("registration")

    try:
        result, registered = pipeline.register_and_resample(
            fixed,
            moving,
            initial_parameters=args.initial,
            callback=run_logger.log_iteration,
        )
    except RegMeshError as e:
        run_logger.log_error("Registration failed", e)
        run_logger.end(success=False)
        return 1

    run_logger.log_registration_result(result)
    run_logger.end()

    logger.info(f"  Time: {result.registration_time_ms:.1f} ms")
    logger.info(
        f"  Translation: ({result.final_parameters[0]:.2f}, "
        f"{result.final_parameters[1]:.2f}) physical units"
    )
    logger.info(f"  Mutual information: {result.final_value:.4f}")

    # =========================================================================
    # Step 4: Export Results
    # =========================================================================
    logger.info("Step 4: Exporting results...")

    exporter = ExportManager(output_dir=output_dir)
    exporter.save_image(registered, "registered.png")
    exporter.save_registration_result(result, "registration.json")

    logger.info(f"Results saved to: {output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
