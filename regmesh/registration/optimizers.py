"""
Iterative optimizers for registration.

Two optimizers are provided:

- ``AmoebaOptimizer``: derivative-free downhill simplex (Nelder-Mead)
  search with the standard coefficients (reflection 1, expansion 2,
  contraction 0.5, shrink 0.5), optional restarts, and parameter/value
  tolerance convergence checked once per simplex update.
- ``RegularStepGradientDescentOptimizer``: fixed-length steps along the
  normalized gradient, relaxing the step whenever the gradient reverses.

Both expose ``iterate()``, a finite generator of ``IterationEvent``
tuples, and ``optimize()``, which drains it and optionally forwards each
event to a callback. Internally the amoeba always minimizes; in maximize
mode values are negated on the way in and out.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterator, NamedTuple, Optional, Sequence
import numpy as np

from regmesh.core.image_data import OptimizerState, StopCondition
from regmesh.core.exceptions import ConfigurationError, EvaluationFailure

logger = logging.getLogger(__name__)

CostFunction = Callable[[np.ndarray], float]
DerivativeFunction = Callable[[np.ndarray], np.ndarray]
IterationCallback = Callable[[int, float, np.ndarray], None]


class IterationEvent(NamedTuple):
    """Progress report emitted once per accepted iteration."""
    iteration: int
    value: float
    parameters: np.ndarray


class Optimizer(ABC):
    """
    Base class for single-valued optimizers.

    Attributes:
        maximize: Search for a maximum instead of a minimum
        max_iterations: Iteration cap
        state: Current lifecycle state
        stop_condition: Why the last run stopped
        current_position: Best (amoeba) or current (gradient) parameters
        current_value: Metric value at ``current_position``
        iteration: Completed iterations in the last run
        number_of_evaluations: Cost function calls in the last run
    """

    name = "optimizer"

    def __init__(self, max_iterations: int = 200, maximize: bool = False):
        if max_iterations < 1:
            raise ConfigurationError("max_iterations", "must be at least 1")
        self.max_iterations = max_iterations
        self.maximize = maximize
        self._reset()

    def _reset(self) -> None:
        self.state = OptimizerState.INITIALIZED
        self.stop_condition = StopCondition.NOT_STOPPED
        self._stop_description = "Optimizer has not been run"
        self.current_position: Optional[np.ndarray] = None
        self.current_value = float("nan")
        self.iteration = 0
        self.number_of_evaluations = 0

    def _stop(self, condition: StopCondition, description: str) -> None:
        self.stop_condition = condition
        self.state = condition.state
        self._stop_description = description
        logger.info(f"{self.name} stopped after {self.iteration} iterations: {description}")

    def _fail(self, error: EvaluationFailure) -> None:
        self._stop(StopCondition.FAILED, f"Cost function evaluation failed: {error.message}")

    def get_stop_condition_description(self) -> str:
        return self._stop_description

    @abstractmethod
    def iterate(
        self,
        cost_function: CostFunction,
        initial_position: Sequence[float],
        derivative_function: Optional[DerivativeFunction] = None
    ) -> Iterator[IterationEvent]:
        """Run the search lazily, yielding one event per iteration."""

    def optimize(
        self,
        cost_function: CostFunction,
        initial_position: Sequence[float],
        derivative_function: Optional[DerivativeFunction] = None,
        callback: Optional[IterationCallback] = None
    ) -> np.ndarray:
        """
        Run the search to completion.

        Args:
            cost_function: Maps a parameter vector to a scalar
            initial_position: Starting parameters
            derivative_function: Gradient of the cost (gradient optimizers only)
            callback: Called as ``callback(iteration, value, parameters)``

        Returns:
            Final parameters

        Raises:
            EvaluationFailure: If the cost function cannot be evaluated
        """
        for event in self.iterate(cost_function, initial_position, derivative_function):
            if callback is not None:
                callback(event.iteration, event.value, event.parameters)
        return self.current_position.copy()


class AmoebaOptimizer(Optimizer):
    """
    Downhill simplex optimizer.

    Example:
        >>> optimizer = AmoebaOptimizer(
        ...     maximize=True,
        ...     initial_simplex_delta=[5.0, 5.0],
        ...     parameters_convergence_tolerance=0.1,
        ...     function_convergence_tolerance=0.001,
        ... )
        >>> best = optimizer.optimize(metric.get_value, [0.0, 0.0])
        >>> optimizer.get_stop_condition_description()
    """

    name = "AmoebaOptimizer"

    REFLECTION = 1.0
    EXPANSION = 2.0
    CONTRACTION = 0.5
    SHRINK = 0.5

    # automatic simplex: relative size, and absolute size for zero components
    RELATIVE_SIMPLEX_DELTA = 0.05
    ZERO_TERM_DELTA = 0.00025

    def __init__(
        self,
        max_iterations: int = 500,
        parameters_convergence_tolerance: float = 1e-8,
        function_convergence_tolerance: float = 1e-4,
        maximize: bool = False,
        initial_simplex_delta: Optional[Sequence[float]] = None,
        restarts: int = 0
    ):
        """
        Initialize the simplex optimizer.

        Args:
            max_iterations: Maximum number of simplex updates
            parameters_convergence_tolerance: Stop when every vertex lies
                within this distance (per component) of the best vertex
            function_convergence_tolerance: Stop when the simplex values
                span less than this
            maximize: Maximize the cost function
            initial_simplex_delta: Per-parameter simplex size; None selects
                the automatic simplex
            restarts: Simplex re-initialisations allowed after convergence
        """
        super().__init__(max_iterations=max_iterations, maximize=maximize)
        if parameters_convergence_tolerance < 0 or function_convergence_tolerance < 0:
            raise ConfigurationError("tolerance", "convergence tolerances must be non-negative")
        if restarts < 0:
            raise ConfigurationError("restarts", "must be non-negative")
        self.parameters_convergence_tolerance = parameters_convergence_tolerance
        self.function_convergence_tolerance = function_convergence_tolerance
        self.initial_simplex_delta = (
            None if initial_simplex_delta is None
            else np.asarray(initial_simplex_delta, dtype=np.float64)
        )
        self.restarts = restarts
        self.simplex: Optional[np.ndarray] = None
        self.simplex_values: Optional[np.ndarray] = None
        self._convergence_description = ""

    @property
    def automatic_initial_simplex(self) -> bool:
        return self.initial_simplex_delta is None

    def _signed(self, value: float) -> float:
        return -value if self.maximize else value

    def _evaluate(self, cost_function: CostFunction, position: np.ndarray) -> float:
        self.number_of_evaluations += 1
        try:
            value = cost_function(position.copy())
        except EvaluationFailure as e:
            self._fail(e)
            raise
        return self._signed(float(value))

    def _simplex_deltas(self, position: np.ndarray) -> np.ndarray:
        if self.automatic_initial_simplex:
            deltas = self.RELATIVE_SIMPLEX_DELTA * np.abs(position)
            deltas[position == 0] = self.ZERO_TERM_DELTA
            return deltas
        if self.initial_simplex_delta.size != position.size:
            raise ConfigurationError(
                "initial_simplex_delta",
                f"expected {position.size} values, got {self.initial_simplex_delta.size}"
            )
        return self.initial_simplex_delta

    def _build_simplex(self, position: np.ndarray) -> np.ndarray:
        deltas = self._simplex_deltas(position)
        simplex = np.tile(position, (position.size + 1, 1))
        for i in range(position.size):
            simplex[i + 1, i] += deltas[i]
        return simplex

    def _order(self) -> None:
        order = np.argsort(self.simplex_values, kind="stable")
        self.simplex = self.simplex[order]
        self.simplex_values = self.simplex_values[order]
        self.current_position = self.simplex[0].copy()
        self.current_value = self._signed(float(self.simplex_values[0]))

    def _check_convergence(self) -> Optional[StopCondition]:
        extent = float(np.max(np.abs(self.simplex[1:] - self.simplex[0])))
        if extent <= self.parameters_convergence_tolerance:
            self._convergence_description = (
                f"Parameters converged: simplex extent {extent:.6g} is within "
                f"the parameter tolerance {self.parameters_convergence_tolerance}"
            )
            return StopCondition.PARAMETERS_CONVERGED

        value_range = float(self.simplex_values[-1] - self.simplex_values[0])
        if value_range <= self.function_convergence_tolerance:
            self._convergence_description = (
                f"Function value converged: simplex value range {value_range:.6g} "
                f"is within the value tolerance {self.function_convergence_tolerance}"
            )
            return StopCondition.VALUE_CONVERGED
        return None

    def _replace_worst(self, position: np.ndarray, value: float) -> None:
        self.simplex[-1] = position
        self.simplex_values[-1] = value

    def _update(self, cost_function: CostFunction) -> None:
        """One full simplex update: reflect, then expand, contract or shrink."""
        best = self.simplex_values[0]
        second_worst = self.simplex_values[-2]
        worst = self.simplex_values[-1]
        worst_vertex = self.simplex[-1]
        centroid = self.simplex[:-1].mean(axis=0)

        reflected = centroid + self.REFLECTION * (centroid - worst_vertex)
        f_reflected = self._evaluate(cost_function, reflected)

        if f_reflected < best:
            expanded = centroid + self.EXPANSION * (reflected - centroid)
            f_expanded = self._evaluate(cost_function, expanded)
            if f_expanded < f_reflected:
                self._replace_worst(expanded, f_expanded)
            else:
                self._replace_worst(reflected, f_reflected)
            return

        if f_reflected < second_worst:
            self._replace_worst(reflected, f_reflected)
            return

        if f_reflected < worst:
            contracted = centroid + self.CONTRACTION * (reflected - centroid)
            f_contracted = self._evaluate(cost_function, contracted)
            if f_contracted <= f_reflected:
                self._replace_worst(contracted, f_contracted)
                return
        else:
            contracted = centroid + self.CONTRACTION * (worst_vertex - centroid)
            f_contracted = self._evaluate(cost_function, contracted)
            if f_contracted < worst:
                self._replace_worst(contracted, f_contracted)
                return

        best_vertex = self.simplex[0]
        for i in range(1, self.simplex.shape[0]):
            self.simplex[i] = best_vertex + self.SHRINK * (self.simplex[i] - best_vertex)
            self.simplex_values[i] = self._evaluate(cost_function, self.simplex[i])

    def iterate(
        self,
        cost_function: CostFunction,
        initial_position: Sequence[float],
        derivative_function: Optional[DerivativeFunction] = None
    ) -> Iterator[IterationEvent]:
        self._reset()
        position = np.asarray(initial_position, dtype=np.float64).ravel()
        if position.size == 0:
            raise ConfigurationError("initial_position", "must not be empty")

        self.simplex = self._build_simplex(position)
        self.simplex_values = np.array(
            [self._evaluate(cost_function, vertex) for vertex in self.simplex]
        )
        self.state = OptimizerState.ITERATING
        self._order()

        restarts_left = self.restarts
        restart_reference: Optional[float] = None

        while True:
            condition = self._check_convergence()
            if condition is not None:
                improved = (
                    restart_reference is None
                    or restart_reference - self.simplex_values[0] > self.function_convergence_tolerance
                )
                if restarts_left > 0 and improved and self.iteration < self.max_iterations:
                    restarts_left -= 1
                    restart_reference = float(self.simplex_values[0])
                    logger.debug(f"Restarting simplex around {self.current_position.tolist()}")
                    self.simplex = self._build_simplex(self.current_position)
                    self.simplex_values = np.array(
                        [self._evaluate(cost_function, vertex) for vertex in self.simplex]
                    )
                    self._order()
                    continue
                self._stop(condition, self._convergence_description)
                return

            if self.iteration >= self.max_iterations:
                self._stop(
                    StopCondition.MAXIMUM_ITERATIONS,
                    f"Maximum number of iterations ({self.max_iterations}) exceeded "
                    f"before reaching the parameter or value tolerance"
                )
                return

            self._update(cost_function)
            self._order()
            event = IterationEvent(self.iteration, self.current_value, self.current_position.copy())
            self.iteration += 1
            yield event


class RegularStepGradientDescentOptimizer(Optimizer):
    """
    Gradient descent (or ascent) with a regulated step length.

    The step starts at ``learning_rate`` and is multiplied by
    ``relaxation_factor`` whenever consecutive gradients point in
    opposite directions. The search stops when the step falls below
    ``min_step``, the gradient norm falls below
    ``gradient_magnitude_tolerance``, or the iteration cap is reached.
    """

    name = "RegularStepGradientDescentOptimizer"

    def __init__(
        self,
        learning_rate: float = 1.0,
        min_step: float = 0.001,
        max_iterations: int = 200,
        relaxation_factor: float = 0.5,
        gradient_magnitude_tolerance: float = 1e-4,
        maximize: bool = False
    ):
        super().__init__(max_iterations=max_iterations, maximize=maximize)
        if learning_rate <= 0 or min_step <= 0:
            raise ConfigurationError("learning_rate", "step lengths must be positive")
        if not 0.0 < relaxation_factor < 1.0:
            raise ConfigurationError("relaxation_factor", "must be in (0, 1)")
        self.learning_rate = learning_rate
        self.min_step = min_step
        self.relaxation_factor = relaxation_factor
        self.gradient_magnitude_tolerance = gradient_magnitude_tolerance
        self.current_step_length = learning_rate
        self.gradient: Optional[np.ndarray] = None

    def _measure(
        self,
        cost_function: CostFunction,
        derivative_function: DerivativeFunction,
        position: np.ndarray
    ) -> None:
        try:
            self.current_value = float(cost_function(position.copy()))
            self.gradient = np.asarray(derivative_function(position.copy()), dtype=np.float64)
        except EvaluationFailure as e:
            self._fail(e)
            raise
        self.number_of_evaluations += 1
        self.current_position = position

    def iterate(
        self,
        cost_function: CostFunction,
        initial_position: Sequence[float],
        derivative_function: Optional[DerivativeFunction] = None
    ) -> Iterator[IterationEvent]:
        if derivative_function is None:
            raise ConfigurationError(
                "derivative_function", f"{self.name} requires the cost function derivative"
            )
        self._reset()
        self.current_step_length = self.learning_rate
        direction = 1.0 if self.maximize else -1.0

        self._measure(cost_function, derivative_function,
                      np.asarray(initial_position, dtype=np.float64).ravel())
        self.state = OptimizerState.ITERATING
        previous_gradient: Optional[np.ndarray] = None

        while True:
            if self.iteration >= self.max_iterations:
                self._stop(
                    StopCondition.MAXIMUM_ITERATIONS,
                    f"Maximum number of iterations ({self.max_iterations}) exceeded"
                )
                return

            magnitude = float(np.linalg.norm(self.gradient))
            if magnitude < self.gradient_magnitude_tolerance:
                self._stop(
                    StopCondition.GRADIENT_MAGNITUDE_TOLERANCE,
                    f"Gradient magnitude {magnitude:.6g} is below the tolerance "
                    f"{self.gradient_magnitude_tolerance}"
                )
                return

            if previous_gradient is not None and np.dot(self.gradient, previous_gradient) < 0:
                self.current_step_length *= self.relaxation_factor

            if self.current_step_length < self.min_step:
                self._stop(
                    StopCondition.STEP_TOO_SMALL,
                    f"Step length {self.current_step_length:.6g} is below the minimum "
                    f"step {self.min_step}"
                )
                return

            previous_gradient = self.gradient
            new_position = (
                self.current_position
                + direction * self.current_step_length * self.gradient / magnitude
            )
            self._measure(cost_function, derivative_function, new_position)

            event = IterationEvent(self.iteration, self.current_value, self.current_position.copy())
            self.iteration += 1
            yield event
