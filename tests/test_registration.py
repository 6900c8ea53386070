"""
Unit tests for the registration engine.

These tests verify transforms, interpolators, the mutual information
metric, the optimizers and complete registrations using synthetic
analytic images to ensure reproducible behavior.
"""

import unittest
import numpy as np
import sys
from pathlib import Path

# Add parent directory for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from regmesh.core.image_data import (
    ImageData,
    ImageRegion,
    RegistrationConfig,
    RegistrationResult,
    OptimizerState,
    StopCondition,
    TransformType,
)
from regmesh.core.exceptions import (
    FailureKind,
    ConfigurationError,
    EvaluationFailure,
    RegistrationFailure,
    ConvergenceFailure,
)
from regmesh.registration.transforms import (
    TranslationTransform,
    RigidTransform,
    AffineTransform,
    create_transform,
)
from regmesh.registration.interpolators import (
    LinearInterpolator,
    NearestNeighborInterpolator,
)
from regmesh.registration.metrics import (
    MutualInformationHistogramMetric,
    compute_mutual_information,
)
from regmesh.registration.optimizers import (
    AmoebaOptimizer,
    RegularStepGradientDescentOptimizer,
)
from regmesh.registration.registration_method import RegistrationMethod, register
from regmesh.registration.registration_pipeline import RegistrationPipeline
from regmesh.registration.resample import resample_image


def create_smooth_image(size=64, shift=(0.0, 0.0)):
    """
    Create a smooth analytic test image.

    The returned image satisfies ``image(p) = g(p - shift)`` for a fixed
    function ``g`` made of two Gaussian blobs on an intensity ramp.
    """
    y, x = np.mgrid[:size, :size].astype(np.float64)
    x = x - shift[0]
    y = y - shift[1]

    img = 40.0 + 0.5 * x
    img += 150.0 * np.exp(-((x - 24) ** 2 + (y - 28) ** 2) / (2 * 8.0 ** 2))
    img += 90.0 * np.exp(-((x - 44) ** 2 + (y - 40) ** 2) / (2 * 6.0 ** 2))
    return img


def quadratic(center, sign=1.0):
    """Paraboloid with its extremum at ``center``."""
    center = np.asarray(center, dtype=np.float64)

    def cost(parameters):
        return sign * float(np.sum((np.asarray(parameters) - center) ** 2))

    return cost


def create_registration_method(fixed, moving, initial=(0.0, 0.0), max_iterations=200):
    return RegistrationMethod(
        fixed,
        moving,
        transform=TranslationTransform(),
        metric=MutualInformationHistogramMetric(histogram_size=(16, 16)),
        interpolator=LinearInterpolator(),
        optimizer=AmoebaOptimizer(
            maximize=True,
            initial_simplex_delta=[2.0, 2.0],
            parameters_convergence_tolerance=0.01,
            function_convergence_tolerance=1e-6,
            max_iterations=max_iterations,
        ),
        initial_parameters=initial,
    )


class TestTransforms(unittest.TestCase):
    """Tests for parametric transforms."""

    def test_translation(self):
        transform = TranslationTransform()
        transform.set_parameters([3.0, -2.0])

        points = np.array([[0.0, 0.0], [1.5, 2.5]])
        np.testing.assert_allclose(
            transform.transform_points(points), [[3.0, -2.0], [4.5, 0.5]]
        )
        self.assertEqual(transform.number_of_parameters, 2)

    def test_identity_after_creation(self):
        for transform_type in TransformType:
            transform = create_transform(transform_type)
            point = np.array([7.0, -3.0])
            np.testing.assert_allclose(transform.transform_point(point), point)

    def test_wrong_parameter_count(self):
        transform = TranslationTransform()
        with self.assertRaises(ConfigurationError) as ctx:
            transform.set_parameters([1.0, 2.0, 3.0])
        self.assertEqual(ctx.exception.kind, FailureKind.CONFIGURATION)

    def test_rigid_rotation_about_center(self):
        transform = RigidTransform(center=[1.0, 1.0])
        transform.set_parameters([np.pi / 2, 0.0, 0.0])

        np.testing.assert_allclose(transform.transform_point([2.0, 1.0]), [1.0, 2.0], atol=1e-12)
        np.testing.assert_allclose(transform.transform_point([1.0, 1.0]), [1.0, 1.0], atol=1e-12)
        np.testing.assert_allclose(transform.get_fixed_parameters(), [1.0, 1.0])

    def test_affine_matrix(self):
        transform = AffineTransform()
        transform.set_parameters([2.0, 0.0, 0.0, 0.5, 1.0, -1.0])

        matrix = transform.to_matrix()
        self.assertEqual(matrix.shape, (2, 3))
        np.testing.assert_allclose(transform.transform_point([2.0, 4.0]), [5.0, 1.0])


class TestInterpolators(unittest.TestCase):
    """Tests for image interpolators."""

    def setUp(self):
        self.image = ImageData(pixel_array=np.array([[0.0, 10.0], [20.0, 30.0]]))

    def test_linear_at_grid_points(self):
        interpolator = LinearInterpolator(self.image)
        values = interpolator.evaluate_at_continuous_index(
            np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
        )
        np.testing.assert_allclose(values, [0.0, 10.0, 20.0, 30.0])

    def test_linear_between_grid_points(self):
        interpolator = LinearInterpolator(self.image)
        values = interpolator.evaluate_at_continuous_index(np.array([[0.5, 0.5], [0.25, 0.0]]))
        np.testing.assert_allclose(values, [15.0, 2.5])

    def test_linear_clamps_at_half_pixel_border(self):
        interpolator = LinearInterpolator(self.image)
        values = interpolator.evaluate_at_continuous_index(np.array([[-0.5, 0.0], [1.4, 1.0]]))
        np.testing.assert_allclose(values, [0.0, 30.0])

    def test_inside_buffer(self):
        interpolator = LinearInterpolator(self.image)
        inside = interpolator.is_inside_buffer(
            np.array([[-0.5, -0.5], [1.49, 1.49], [1.5, 0.0], [0.0, -0.51]])
        )
        np.testing.assert_array_equal(inside, [True, True, False, False])

    def test_nearest(self):
        interpolator = NearestNeighborInterpolator(self.image)
        values = interpolator.evaluate_at_continuous_index(np.array([[0.4, 0.6], [0.6, 0.4]]))
        np.testing.assert_allclose(values, [20.0, 10.0])

    def test_evaluate_uses_geometry(self):
        image = ImageData.from_array(self.image.pixel_array, spacing=(2.0, 2.0), origin=(10.0, 0.0))
        interpolator = LinearInterpolator(image)
        np.testing.assert_allclose(interpolator.evaluate(np.array([[11.0, 1.0]])), [15.0])


class TestMutualInformation(unittest.TestCase):
    """Tests for the mutual information metric."""

    def setUp(self):
        self.fixed = ImageData(pixel_array=create_smooth_image())
        self.moving = ImageData(pixel_array=create_smooth_image(shift=(2.0, -1.0)))

    def create_metric(self, fixed=None, moving=None, **kwargs):
        kwargs.setdefault("histogram_size", (16, 16))
        metric = MutualInformationHistogramMetric(**kwargs)
        metric.initialize(
            fixed or self.fixed,
            moving or self.moving,
            TranslationTransform(),
            LinearInterpolator(),
        )
        return metric

    def test_independent_histogram_has_zero_information(self):
        self.assertAlmostEqual(compute_mutual_information(np.ones((4, 4))), 0.0)

    def test_two_level_image_information(self):
        """Identical two-level images share exactly ln(2) nats."""
        array = np.zeros((8, 8), dtype=np.uint8)
        array[:, 4:] = 255
        image = ImageData(pixel_array=array)

        metric = self.create_metric(image, image, histogram_size=(2, 2))
        self.assertAlmostEqual(metric.get_value([0.0, 0.0]), np.log(2.0), places=10)

    def test_empty_histogram_fails(self):
        with self.assertRaises(EvaluationFailure):
            compute_mutual_information(np.zeros((4, 4)))

    def test_value_is_deterministic(self):
        metric = self.create_metric()
        first = metric.get_value([0.7, -0.3])
        second = metric.get_value([0.7, -0.3])
        self.assertEqual(first, second)
        self.assertEqual(metric.number_of_evaluations, 2)

    def test_value_peaks_at_true_shift(self):
        metric = self.create_metric()
        aligned = metric.get_value([2.0, -1.0])
        self.assertGreater(aligned, metric.get_value([0.0, 0.0]))
        self.assertGreater(aligned, metric.get_value([4.0, -1.0]))
        self.assertGreater(aligned, metric.get_value([2.0, 1.0]))

    def test_histogram_counts_only_valid_samples(self):
        metric = self.create_metric()
        histogram = metric.get_histogram([10.0, 0.0])

        # columns 0..53 map inside a 64 pixel wide moving image
        self.assertEqual(metric.number_of_valid_samples, 54 * 64)
        self.assertEqual(int(histogram.sum()), 54 * 64)
        self.assertEqual(histogram.shape, (16, 16))

    def test_padding_value_excluded(self):
        array = create_smooth_image()
        array[:8, :] = 0.0
        fixed = ImageData(pixel_array=array)

        metric = self.create_metric(fixed=fixed, padding_value=0.0)
        metric.get_value([0.0, 0.0])
        self.assertEqual(metric.number_of_valid_samples, 56 * 64)

    def test_no_overlap_fails(self):
        metric = self.create_metric()
        with self.assertRaises(EvaluationFailure) as ctx:
            metric.get_value([1000.0, 1000.0])
        self.assertEqual(ctx.exception.kind, FailureKind.EVALUATION)

    def test_derivative_points_toward_alignment(self):
        metric = self.create_metric(compute_gradient=True, derivative_step_length=0.25)
        derivative = metric.get_derivative([0.0, -1.0])
        self.assertGreater(derivative[0], 0.0)

    def test_derivative_requires_gradient(self):
        metric = self.create_metric()
        with self.assertRaises(ConfigurationError):
            metric.get_derivative([0.0, 0.0])

    def test_evaluation_before_initialize(self):
        metric = MutualInformationHistogramMetric()
        with self.assertRaises(ConfigurationError):
            metric.get_value([0.0, 0.0])


class TestAmoebaOptimizer(unittest.TestCase):
    """Tests for the downhill simplex optimizer."""

    def test_minimizes_quadratic(self):
        optimizer = AmoebaOptimizer(
            initial_simplex_delta=[1.0, 1.0],
            parameters_convergence_tolerance=1e-4,
            function_convergence_tolerance=1e-10,
        )
        best = optimizer.optimize(quadratic([3.0, -1.0]), [0.0, 0.0])

        np.testing.assert_allclose(best, [3.0, -1.0], atol=1e-2)
        self.assertTrue(optimizer.stop_condition.converged)
        self.assertEqual(optimizer.state, OptimizerState.CONVERGED)

    def test_maximize(self):
        optimizer = AmoebaOptimizer(
            maximize=True,
            initial_simplex_delta=[1.0],
            parameters_convergence_tolerance=1e-5,
            function_convergence_tolerance=1e-12,
        )
        cost = quadratic([2.0], sign=-1.0)
        best = optimizer.optimize(lambda p: cost(p) + 5.0, [0.0])

        np.testing.assert_allclose(best, [2.0], atol=1e-3)
        self.assertAlmostEqual(optimizer.current_value, 5.0, places=4)

    def test_maximum_iterations(self):
        optimizer = AmoebaOptimizer(
            max_iterations=3,
            initial_simplex_delta=[1.0, 1.0],
            parameters_convergence_tolerance=0.0,
            function_convergence_tolerance=0.0,
        )
        events = list(optimizer.iterate(quadratic([30.0, 30.0]), [0.0, 0.0]))

        self.assertEqual(len(events), 3)
        self.assertEqual(optimizer.stop_condition, StopCondition.MAXIMUM_ITERATIONS)
        self.assertEqual(optimizer.state, OptimizerState.MAX_ITERATIONS_REACHED)
        self.assertIn("Maximum number of iterations", optimizer.get_stop_condition_description())

    def test_converged_simplex_meets_a_tolerance(self):
        ptol, ftol = 0.05, 1e-3
        optimizer = AmoebaOptimizer(
            initial_simplex_delta=[2.0, 2.0],
            parameters_convergence_tolerance=ptol,
            function_convergence_tolerance=ftol,
        )
        optimizer.optimize(quadratic([1.0, 4.0]), [0.0, 0.0])

        extent = np.max(np.abs(optimizer.simplex[1:] - optimizer.simplex[0]))
        value_range = optimizer.simplex_values[-1] - optimizer.simplex_values[0]
        self.assertTrue(optimizer.stop_condition.converged)
        self.assertTrue(extent <= ptol or value_range <= ftol)

    def test_best_value_never_worsens(self):
        optimizer = AmoebaOptimizer(initial_simplex_delta=[1.0, 1.0], max_iterations=50)
        values = [e.value for e in optimizer.iterate(quadratic([5.0, 5.0]), [0.0, 0.0])]
        self.assertTrue(all(b <= a for a, b in zip(values, values[1:])))

    def test_callback_receives_every_iteration(self):
        calls = []
        optimizer = AmoebaOptimizer(initial_simplex_delta=[1.0, 1.0], max_iterations=10)
        optimizer.optimize(
            quadratic([5.0, 5.0]),
            [0.0, 0.0],
            callback=lambda i, value, params: calls.append((i, value, params.copy())),
        )
        self.assertEqual([c[0] for c in calls], list(range(optimizer.iteration)))

    def test_automatic_initial_simplex(self):
        optimizer = AmoebaOptimizer()
        simplex = optimizer._build_simplex(np.array([0.0, 2.0]))
        np.testing.assert_allclose(simplex, [[0.0, 2.0], [0.00025, 2.0], [0.0, 2.1]])

    def test_restarts_keep_best_point(self):
        optimizer = AmoebaOptimizer(
            initial_simplex_delta=[1.0, 1.0],
            parameters_convergence_tolerance=1e-3,
            function_convergence_tolerance=1e-8,
            restarts=2,
        )
        best = optimizer.optimize(quadratic([-2.0, 1.0]), [0.0, 0.0])
        np.testing.assert_allclose(best, [-2.0, 1.0], atol=1e-2)

    def test_evaluation_failure_stops_optimizer(self):
        def failing(parameters):
            raise EvaluationFailure("no samples")

        optimizer = AmoebaOptimizer(initial_simplex_delta=[1.0])
        with self.assertRaises(EvaluationFailure):
            optimizer.optimize(failing, [0.0])
        self.assertEqual(optimizer.stop_condition, StopCondition.FAILED)
        self.assertEqual(optimizer.state, OptimizerState.FAILED)

    def test_simplex_delta_length_mismatch(self):
        optimizer = AmoebaOptimizer(initial_simplex_delta=[1.0, 1.0, 1.0])
        with self.assertRaises(ConfigurationError):
            optimizer.optimize(quadratic([0.0, 0.0]), [0.0, 0.0])


class TestRegularStepGradientDescent(unittest.TestCase):
    """Tests for the gradient optimizer."""

    def test_maximizes_quadratic(self):
        center = np.array([1.0, 2.0])
        optimizer = RegularStepGradientDescentOptimizer(
            learning_rate=1.0,
            min_step=1e-4,
            max_iterations=500,
            maximize=True,
        )
        best = optimizer.optimize(
            quadratic(center, sign=-1.0),
            [0.0, 0.0],
            derivative_function=lambda p: -2.0 * (np.asarray(p) - center),
        )

        np.testing.assert_allclose(best, center, atol=1e-2)
        self.assertTrue(optimizer.stop_condition.converged)

    def test_requires_derivative(self):
        optimizer = RegularStepGradientDescentOptimizer()
        with self.assertRaises(ConfigurationError):
            optimizer.optimize(quadratic([0.0]), [1.0])


class TestRegistrationMethod(unittest.TestCase):
    """Integration tests for complete registrations."""

    def setUp(self):
        self.fixed = ImageData(pixel_array=create_smooth_image())
        self.moving = ImageData(pixel_array=create_smooth_image(shift=(2.0, -1.0)))

    def test_recovers_translation(self):
        method = create_registration_method(self.fixed, self.moving)
        result = method.execute()

        np.testing.assert_allclose(result.final_parameters, [2.0, -1.0], atol=0.5)
        self.assertNotEqual(result.stop_condition, StopCondition.MAXIMUM_ITERATIONS)
        self.assertTrue(result.converged)
        np.testing.assert_allclose(method.transform.get_parameters(), result.final_parameters)

    def test_recovers_physical_translation_with_anisotropic_spacing(self):
        geometry = dict(spacing=(2.0, 0.5), origin=(3.0, -1.0))
        fixed = ImageData.from_array(create_smooth_image(), **geometry)
        moving = ImageData.from_array(create_smooth_image(shift=(3.0, -2.0)), **geometry)
        ptol = 0.1

        result = register(
            fixed,
            moving,
            transform=TranslationTransform(),
            metric=MutualInformationHistogramMetric((16, 16)),
            interpolator=LinearInterpolator(),
            optimizer=AmoebaOptimizer(
                maximize=True,
                initial_simplex_delta=[2.0, 2.0],
                parameters_convergence_tolerance=ptol,
                function_convergence_tolerance=1e-6,
                max_iterations=200,
            ),
        )

        np.testing.assert_allclose(result.final_parameters, [6.0, -1.0], atol=ptol)
        self.assertIn(
            result.stop_condition,
            (StopCondition.PARAMETERS_CONVERGED, StopCondition.VALUE_CONVERGED),
        )

    def test_self_registration_stays_at_identity(self):
        method = create_registration_method(self.fixed, self.fixed)
        result = method.execute()
        np.testing.assert_allclose(result.final_parameters, [0.0, 0.0], atol=0.5)

    def test_intensity_remapping_does_not_matter(self):
        moving = ImageData(pixel_array=255.0 - 0.5 * create_smooth_image(shift=(2.0, -1.0)))
        result = create_registration_method(self.fixed, moving).execute()
        np.testing.assert_allclose(result.final_parameters, [2.0, -1.0], atol=0.5)

    def test_iterations_are_lazy_events(self):
        method = create_registration_method(self.fixed, self.moving, max_iterations=5)
        events = list(method.iterations())

        self.assertEqual(len(events), 5)
        self.assertEqual([e.iteration for e in events], list(range(5)))
        result = method.result()
        self.assertEqual(result.iterations, 5)
        self.assertEqual(result.value_history, [e.value for e in events])

    def test_metric_failure_aborts_registration(self):
        method = create_registration_method(self.fixed, self.moving, initial=(1000.0, 1000.0))
        with self.assertRaises(RegistrationFailure) as ctx:
            method.execute()

        self.assertEqual(ctx.exception.kind, FailureKind.REGISTRATION)
        self.assertIsInstance(ctx.exception.__cause__, EvaluationFailure)

    def test_require_convergence(self):
        with self.assertRaises(ConvergenceFailure) as ctx:
            register(
                self.fixed,
                self.moving,
                transform=TranslationTransform(),
                metric=MutualInformationHistogramMetric((16, 16)),
                interpolator=LinearInterpolator(),
                optimizer=AmoebaOptimizer(
                    maximize=True,
                    initial_simplex_delta=[2.0, 2.0],
                    parameters_convergence_tolerance=0.0,
                    function_convergence_tolerance=0.0,
                    max_iterations=2,
                ),
                require_convergence=True,
            )
        self.assertEqual(ctx.exception.kind, FailureKind.CONVERGENCE)
        self.assertIsInstance(ctx.exception, RegistrationFailure)

    def test_initial_parameter_count_checked(self):
        with self.assertRaises(ConfigurationError):
            create_registration_method(self.fixed, self.moving, initial=(0.0, 0.0, 0.0))

    def test_region_outside_fixed_image(self):
        with self.assertRaises(ConfigurationError):
            RegistrationMethod(
                self.fixed,
                self.moving,
                transform=TranslationTransform(),
                metric=MutualInformationHistogramMetric((16, 16)),
                interpolator=LinearInterpolator(),
                optimizer=AmoebaOptimizer(),
                fixed_region=ImageRegion(index=(60, 0), size=(10, 10)),
            )

    def test_region_with_non_positive_size(self):
        with self.assertRaises(ConfigurationError) as ctx:
            RegistrationMethod(
                self.fixed,
                self.moving,
                transform=TranslationTransform(),
                metric=MutualInformationHistogramMetric((16, 16)),
                interpolator=LinearInterpolator(),
                optimizer=AmoebaOptimizer(),
                fixed_region=ImageRegion(index=(0, 0), size=(-1, -1)),
            )
        self.assertEqual(ctx.exception.kind, FailureKind.CONFIGURATION)

        with self.assertRaises(ConfigurationError):
            ImageRegion(index=(-1, 0), size=(4, 4))
        with self.assertRaises(ConfigurationError):
            ImageRegion(index=(0, 0), size=(4, 0))

    def test_result_before_run(self):
        method = create_registration_method(self.fixed, self.moving)
        with self.assertRaises(RegistrationFailure):
            method.result()


class TestRegistrationPipeline(unittest.TestCase):
    """Tests for the configuration-driven pipeline."""

    def test_register_and_resample(self):
        fixed = ImageData(pixel_array=create_smooth_image())
        moving = ImageData(pixel_array=create_smooth_image(shift=(2.0, -1.0)))
        config = RegistrationConfig(
            histogram_size=(16, 16),
            initial_simplex_delta=[2.0, 2.0],
            parameters_convergence_tolerance=0.01,
            function_convergence_tolerance=1e-6,
        )

        result, registered = RegistrationPipeline(config).register_and_resample(
            fixed, moving, initial_parameters=[0.0, 0.0]
        )

        np.testing.assert_allclose(result.final_parameters, [2.0, -1.0], atol=0.5)
        self.assertEqual(registered.size, fixed.size)
        # interior pixels are realigned with the fixed image
        np.testing.assert_allclose(
            registered.pixel_array[10:50, 10:50], fixed.pixel_array[10:50, 10:50], atol=10.0
        )

    def test_rigid_transform_is_centered(self):
        fixed = ImageData(pixel_array=create_smooth_image(size=33))
        pipeline = RegistrationPipeline(RegistrationConfig(transform_type="rigid"))
        transform = pipeline.create_transform(fixed)
        np.testing.assert_allclose(transform.get_fixed_parameters(), [16.0, 16.0])


class TestResample(unittest.TestCase):
    """Tests for moving image resampling."""

    def test_translation_with_default_fill(self):
        ramp = np.tile(np.arange(5, dtype=np.float64) * 10.0, (3, 1))
        image = ImageData(pixel_array=ramp)
        transform = TranslationTransform()
        transform.set_parameters([1.0, 0.0])

        resampled = resample_image(image, transform, image.geometry, image.size)

        np.testing.assert_allclose(resampled.pixel_array[0], [10.0, 20.0, 30.0, 40.0, 100.0])
        self.assertEqual(resampled.pixel_array.dtype, np.float64)

    def test_integer_output_is_rounded(self):
        image = ImageData(pixel_array=np.array([[0, 255]], dtype=np.uint8))
        transform = TranslationTransform()
        transform.set_parameters([0.5, 0.0])

        resampled = resample_image(image, transform, image.geometry, image.size, default_value=7)
        np.testing.assert_array_equal(resampled.pixel_array, [[128, 7]])
        self.assertEqual(resampled.pixel_array.dtype, np.uint8)


class TestConfiguration(unittest.TestCase):
    """Tests for configuration and result serialization."""

    def test_defaults(self):
        config = RegistrationConfig()
        self.assertEqual(config.histogram_size, (256, 256))
        self.assertTrue(config.maximize)
        self.assertEqual(config.parameters_convergence_tolerance, 0.1)
        self.assertEqual(config.function_convergence_tolerance, 0.001)
        self.assertEqual(config.max_iterations, 200)

    def test_round_trip(self):
        config = RegistrationConfig(transform_type="affine", initial_simplex_delta=[1] * 6)
        loaded = RegistrationConfig.from_dict(config.to_dict())
        self.assertEqual(loaded, config)
        self.assertEqual(loaded.transform_type, TransformType.AFFINE)

    def test_unknown_key(self):
        with self.assertRaises(ConfigurationError):
            RegistrationConfig.from_dict({"bins": 32})

    def test_invalid_histogram(self):
        with self.assertRaises(ConfigurationError):
            RegistrationConfig(histogram_size=(0, 16))

    def test_result_serialization(self):
        result = RegistrationResult(
            final_parameters=np.array([13.0, 17.0]),
            final_value=1.25,
            stop_condition=StopCondition.VALUE_CONVERGED,
            stop_description="converged",
            iterations=12,
        )
        data = result.to_dict()
        loaded = RegistrationResult.from_dict(data)

        np.testing.assert_array_almost_equal(result.final_parameters, loaded.final_parameters)
        self.assertEqual(loaded.stop_condition, StopCondition.VALUE_CONVERGED)
        self.assertTrue(data["converged"])


if __name__ == "__main__":
    unittest.main()
