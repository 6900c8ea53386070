"""
Command-line tools for registration and mesh generation.

Usage:
    regmesh register fixed.png moving.png registered.png 13 17
    regmesh register fixed.mha moving.mha out.mha --bins 64 64 --result-json result.json
    regmesh mesh image.png 2 2 --expect-elements 2 2 --node 0 0 0 --element 0 0 1 4 3

Both commands exit with status 0 on success and 1 on any failure,
including a failed expectation check.
"""

import argparse
import dataclasses
import sys
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np

from regmesh import __version__
from regmesh.core.image_data import (
    RegistrationConfig,
    MeshConfig,
    RemainderPolicy,
    TransformType,
    load_config,
)
from regmesh.core.exceptions import RegMeshError
from regmesh.io.image_io import read_image, write_image
from regmesh.registration.registration_pipeline import RegistrationPipeline
from regmesh.fem.fem_object import FEMObject
from regmesh.fem.rectilinear import RectilinearMeshBuilder
from regmesh.export.output import ExportManager
from regmesh.utils.logging_config import (
    setup_logging,
    get_logger,
    create_session_log,
    RunLogger,
)

logger = get_logger(__name__)

# Simplex edge length used when neither the command line nor a config sets one
DEFAULT_SIMPLEX_DELTA = 5.0


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="JSON configuration file with 'registration' and 'mesh' sections"
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Write the log to this file"
    )
    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Write a timestamped session log into this directory"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for both commands."""
    parser = argparse.ArgumentParser(
        prog="regmesh",
        description="Mutual information image registration and rectilinear meshing"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # register
    reg = subparsers.add_parser(
        "register",
        help="Register a moving image onto a fixed image"
    )
    reg.add_argument("fixed", type=str, help="Path to fixed (reference) image")
    reg.add_argument("moving", type=str, help="Path to moving image")
    reg.add_argument("output", type=str, help="Path for the resampled moving image")
    reg.add_argument(
        "initial_parameters",
        type=float,
        nargs="*",
        help="Initial transform parameters (translation: tx ty)"
    )
    reg.add_argument(
        "--transform",
        type=str,
        choices=[t.value for t in TransformType],
        default=None,
        help="Transform type"
    )
    reg.add_argument(
        "--bins",
        type=int,
        nargs=2,
        metavar=("FIXED", "MOVING"),
        default=None,
        help="Joint histogram bins per image"
    )
    simplex = reg.add_mutually_exclusive_group()
    simplex.add_argument(
        "--simplex-delta",
        type=float,
        default=None,
        help=f"Initial simplex edge length for every parameter (default {DEFAULT_SIMPLEX_DELTA})"
    )
    simplex.add_argument(
        "--automatic-simplex",
        action="store_true",
        help="Size the initial simplex from the initial parameters"
    )
    reg.add_argument("--ptol", type=float, default=None, help="Parameters convergence tolerance")
    reg.add_argument("--ftol", type=float, default=None, help="Function convergence tolerance")
    reg.add_argument("--max-iterations", type=int, default=None, help="Maximum optimizer iterations")
    reg.add_argument(
        "--default-value",
        type=float,
        default=100.0,
        help="Fill value for output pixels mapping outside the moving image"
    )
    reg.add_argument(
        "--require-convergence",
        action="store_true",
        help="Fail when the optimizer stops on the iteration cap"
    )
    reg.add_argument(
        "--result-json",
        type=str,
        default=None,
        help="Write the registration result to this JSON file"
    )
    _add_common_arguments(reg)

    # mesh
    mesh = subparsers.add_parser(
        "mesh",
        help="Generate a rectilinear quadrilateral mesh over an image"
    )
    mesh.add_argument("image", type=str, help="Path to input image")
    mesh.add_argument("ppx", type=int, help="Pixels per element along x")
    mesh.add_argument("ppy", type=int, help="Pixels per element along y")
    mesh.add_argument(
        "--remainder-policy",
        type=str,
        choices=[p.value for p in RemainderPolicy],
        default=None,
        help="Treatment of pixels not covered by whole elements"
    )
    mesh.add_argument("--youngs-modulus", type=float, default=None, help="Young's modulus E")
    mesh.add_argument("--area", type=float, default=None, help="Cross-sectional area A")
    mesh.add_argument("--moment-of-inertia", type=float, default=None, help="Moment of inertia I")
    mesh.add_argument(
        "--expect-elements",
        type=int,
        nargs=2,
        metavar=("NX", "NY"),
        default=None,
        help="Expected element counts along x and y"
    )
    mesh.add_argument("--expect-nodes", type=int, default=None, help="Expected node count")
    mesh.add_argument(
        "--expect-element-count",
        type=int,
        default=None,
        help="Expected element count"
    )
    mesh.add_argument(
        "--node",
        type=float,
        nargs=3,
        action="append",
        default=None,
        metavar=("N", "X", "Y"),
        help="Expected coordinates of node N (repeatable)"
    )
    mesh.add_argument(
        "--element",
        type=int,
        nargs=5,
        action="append",
        default=None,
        metavar=("E", "N0", "N1", "N2", "N3"),
        help="Expected node numbers of element E (repeatable)"
    )
    mesh.add_argument(
        "--tolerance",
        type=float,
        default=0.0001,
        help="Tolerance for node coordinate checks"
    )
    mesh.add_argument(
        "--mesh-json",
        type=str,
        default=None,
        help="Write the mesh to this JSON file"
    )
    _add_common_arguments(mesh)

    return parser


def _load_configs(path: Optional[str]):
    if path is None:
        return RegistrationConfig(), MeshConfig()
    return load_config(path)


def _registration_config(args: argparse.Namespace, config: RegistrationConfig) -> RegistrationConfig:
    """Apply command-line overrides on top of the configured values."""
    overrides = {}
    if args.transform is not None:
        overrides["transform_type"] = TransformType(args.transform)
    if args.bins is not None:
        overrides["histogram_size"] = tuple(args.bins)
    if args.ptol is not None:
        overrides["parameters_convergence_tolerance"] = args.ptol
    if args.ftol is not None:
        overrides["function_convergence_tolerance"] = args.ftol
    if args.max_iterations is not None:
        overrides["max_iterations"] = args.max_iterations
    if args.require_convergence:
        overrides["require_convergence"] = True

    transform_type = overrides.get("transform_type", config.transform_type)
    n_params = transform_type.number_of_parameters
    if args.automatic_simplex:
        overrides["initial_simplex_delta"] = None
    elif args.simplex_delta is not None:
        overrides["initial_simplex_delta"] = [args.simplex_delta] * n_params
    elif config.initial_simplex_delta is None:
        overrides["initial_simplex_delta"] = [DEFAULT_SIMPLEX_DELTA] * n_params

    return dataclasses.replace(config, **overrides)


def _mesh_config(args: argparse.Namespace, config: MeshConfig) -> MeshConfig:
    overrides = {"pixels_per_element": (args.ppx, args.ppy)}
    if args.remainder_policy is not None:
        overrides["remainder_policy"] = RemainderPolicy(args.remainder_policy)
    if args.youngs_modulus is not None:
        overrides["youngs_modulus"] = args.youngs_modulus
    if args.area is not None:
        overrides["cross_sectional_area"] = args.area
    if args.moment_of_inertia is not None:
        overrides["moment_of_inertia"] = args.moment_of_inertia
    return dataclasses.replace(config, **overrides)


def _export_json(path: str) -> tuple:
    target = Path(path)
    return ExportManager(output_dir=target.parent), target.name


def run_register(args: argparse.Namespace, run_logger: RunLogger) -> int:
    """Register two images, write the resampled moving image and report."""
    registration_config, _ = _load_configs(args.config)
    config = _registration_config(args, registration_config)

    fixed = read_image(args.fixed)
    moving = read_image(args.moving)
    run_logger.log_image_loaded("fixed", fixed.size, fixed.spacing)
    run_logger.log_image_loaded("moving", moving.size, moving.spacing)

    initial_parameters: Optional[List[float]] = None
    if args.initial_parameters:
        initial_parameters = list(args.initial_parameters)
    logger.info(f"Initial parameters: {initial_parameters or 'identity'}")

    pipeline = RegistrationPipeline(config)
    result, registered = pipeline.register_and_resample(
        fixed,
        moving,
        initial_parameters=initial_parameters,
        callback=run_logger.log_iteration,
        default_value=args.default_value,
    )
    run_logger.log_registration_result(result)

    write_image(args.output, registered)

    if args.result_json:
        exporter, filename = _export_json(args.result_json)
        exporter.save_registration_result(result, filename)

    return 0


def _check_mesh(
    mesh: FEMObject,
    number_of_elements: Sequence[int],
    args: argparse.Namespace,
    run_logger: RunLogger
) -> bool:
    """Compare the mesh against the requested expectations."""
    all_passed = True

    def check(name: str, passed: bool, detail: str = "") -> None:
        nonlocal all_passed
        run_logger.log_check(name, passed, detail)
        all_passed = all_passed and passed

    if args.expect_elements is not None:
        expected = tuple(args.expect_elements)
        check(
            "Number of elements",
            tuple(number_of_elements) == expected,
            f"expected {expected}, got {tuple(number_of_elements)}"
        )

    if args.expect_nodes is not None:
        check(
            "Node count",
            mesh.number_of_nodes == args.expect_nodes,
            f"expected {args.expect_nodes}, got {mesh.number_of_nodes}"
        )

    if args.expect_element_count is not None:
        check(
            "Element count",
            mesh.number_of_elements == args.expect_element_count,
            f"expected {args.expect_element_count}, got {mesh.number_of_elements}"
        )

    for number, x, y in args.node or []:
        number = int(number)
        if not 0 <= number < mesh.number_of_nodes:
            check(f"Node {number}", False, "no such node")
            continue
        coordinates = mesh.get_node(number).coordinates
        passed = bool(np.all(np.abs(coordinates - np.array([x, y])) <= args.tolerance))
        check(
            f"Node {number}",
            passed,
            f"expected ({x}, {y}), got ({coordinates[0]}, {coordinates[1]})"
        )

    for number, *expected_nodes in args.element or []:
        if not 0 <= number < mesh.number_of_elements:
            check(f"Element {number}", False, "no such element")
            continue
        node_numbers = mesh.get_element(number).node_numbers
        check(
            f"Element {number}",
            tuple(node_numbers) == tuple(expected_nodes),
            f"expected {tuple(expected_nodes)}, got {tuple(node_numbers)}"
        )

    return all_passed


def run_mesh(args: argparse.Namespace, run_logger: RunLogger) -> int:
    """Build a mesh over an image and check it against expectations."""
    _, mesh_config = _load_configs(args.config)
    config = _mesh_config(args, mesh_config)

    image = read_image(args.image)
    run_logger.log_image_loaded("input", image.size, image.spacing)

    builder = RectilinearMeshBuilder.from_config(config)
    mesh = builder.build(image)
    run_logger.log_mesh(mesh, builder.number_of_elements)

    if args.mesh_json:
        exporter, filename = _export_json(args.mesh_json)
        exporter.save_mesh(mesh, filename)

    return 0 if _check_mesh(mesh, builder.number_of_elements, args, run_logger) else 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    log_file = args.log_file
    if log_file is None and args.log_dir is not None:
        log_file = create_session_log(args.log_dir, prefix=args.command)
    setup_logging(level="DEBUG" if args.verbose else "INFO", log_file=log_file)

    run_logger = RunLogger(session_id=args.command)
    run_logger.start(args.command)

    commands = {"register": run_register, "mesh": run_mesh}
    try:
        status = commands[args.command](args, run_logger)
    except RegMeshError as e:
        run_logger.log_error(f"{e.kind.value} failure", e)
        run_logger.end(success=False)
        return 1

    run_logger.end(success=status == 0)
    return status


if __name__ == "__main__":
    sys.exit(main())
