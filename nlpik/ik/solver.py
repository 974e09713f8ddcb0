"""
Inverse kinematics as a nonlinear program.

inverse_kinematics() builds a Problem with one configuration variable set
and one pose-error cost term (plus any requested constraint sets), hands
it to the ScipySolver with exact Jacobians and returns the optimal
configuration vector.

No retries are made: a solve that hits the iteration cap or fails still
returns the last iterate. Use solve_ik() to get the solver status as well.
"""

from dataclasses import dataclass, field
from logging import getLogger
from typing import Callable, NamedTuple, Optional, Sequence

import jax.numpy as jnp
import numpy as np

from nlpik.ik.costs import PoseCostWeights, get_orientation_metric
from nlpik.ik.cost_term import IKCost
from nlpik.ik.robot import RobotModel, ScalarType, forward_kinematics
from nlpik.ik.utils import Transform, rotation_angle
from nlpik.ik.variables import CONFIGURATION_VECTOR, IKVariables
from nlpik.nlp import ConstraintSet, Problem, ScipySolver, SolverStatus

logger = getLogger(__name__)


@dataclass(frozen=True)
class IKSolverConfig:
    """
    Knobs of an IK solve.

    Attributes:
        max_iterations: Iteration cap handed to the solver.
        tolerance: Convergence tolerance handed to the solver.
        jacobian: "exact" (forward-mode autodiff) or "finite-difference-values".
        method: "SLSQP" or "trust-constr".
        linear_solver: Factorization used by trust-constr, "auto" by default.
        orientation_metric: "trace" or "axis_angle", see nlpik.ik.costs.
        weights: Weights of the pose-error cost.
        constraints: Factories called with the configuration variable set's
                     name, each returning a ConstraintSet to add.
        verbose: Forward the solver's own progress output.
    """
    max_iterations: int = 250
    tolerance: float = 1e-9
    jacobian: str = "exact"
    method: str = "SLSQP"
    linear_solver: str = "auto"
    orientation_metric: str = "trace"
    weights: PoseCostWeights = field(default_factory=PoseCostWeights)
    constraints: Sequence[Callable[[str], ConstraintSet]] = ()
    verbose: bool = False

    def make_solver(self) -> ScipySolver:
        return ScipySolver(
            method=self.method,
            linear_solver=self.linear_solver,
            jacobian_approximation=self.jacobian,
            max_iter=self.max_iterations,
            acceptable_tol=self.tolerance,
            print_level=5 if self.verbose else 0,
        )


class IKResult(NamedTuple):
    """Result of an IK solve."""
    q: np.ndarray  # (n_q,) solved configuration
    status: SolverStatus  # as reported by the NLP solver
    position_error: float  # L2 distance to the desired translation
    orientation_error: float  # orientation metric at the solution
    cost: float  # pose-error cost at the solution

    @property
    def converged(self) -> bool:
        return self.status.success


def build_problem(
    model: RobotModel,
    source_link_name: str,
    target_link_name: str,
    desired_pose: Transform,
    q0: Sequence[float],
    config: Optional[IKSolverConfig] = None
) -> Problem:
    """
    Assemble the IK Problem without solving it.

    Raises LinkNotFoundError / DimensionMismatchError before anything is
    built.
    """
    config = config or IKSolverConfig()
    model.check_link(source_link_name)
    model.check_link(target_link_name)
    model.check_configuration(np.asarray(q0, dtype=np.float64), "Initial configuration")
    get_orientation_metric(config.orientation_metric)

    # Cast model to the differentiable scalar type
    autodiff_model = model.cast(ScalarType.DUAL)

    nlp = Problem()
    nlp.add_variable_set(IKVariables(CONFIGURATION_VECTOR, model, q0))
    for make_constraint in config.constraints:
        nlp.add_constraint_set(make_constraint(CONFIGURATION_VECTOR))
    nlp.add_cost_set(IKCost(
        "IK_cost",
        autodiff_model,
        source_link_name,
        target_link_name,
        desired_pose,
        weights=config.weights,
        orientation_metric=config.orientation_metric,
    ))
    return nlp


def solve_ik(
    model: RobotModel,
    source_link_name: str,
    target_link_name: str,
    desired_pose: Transform,
    q0: Sequence[float],
    config: Optional[IKSolverConfig] = None
) -> IKResult:
    """
    Solve the IK problem and report how well the solution matches.

    Args:
        model: The robot model.
        source_link_name: {s} The link from which the transform is computed.
        target_link_name: {t} The link to which the transform is computed.
        desired_pose: {d} The desired pose of the target link in the source frame.
        q0: The initial guess for the configuration vector.
        config: Solver configuration, defaults to IKSolverConfig().

    Returns:
        IKResult with the configuration and the solver status.
    """
    config = config or IKSolverConfig()
    nlp = build_problem(model, source_link_name, target_link_name, desired_pose, q0, config)

    solver = config.make_solver()
    logger.debug(
        "IK %s -> %s on %r: max_iter=%d tol=%g",
        source_link_name, target_link_name, model, config.max_iterations, config.tolerance,
    )
    status = solver.solve(nlp)

    q = nlp.get_opt_variables().get_values()
    cost_term: IKCost = nlp.get_costs().get_component("IK_cost")

    H = forward_kinematics(model, q, source_link_name, target_link_name)
    position_error = float(jnp.linalg.norm(H.translation - jnp.asarray(desired_pose.translation)))
    metric = get_orientation_metric(config.orientation_metric)
    orientation_error = float(metric(jnp.asarray(desired_pose.rotation), H.rotation))
    angle = float(rotation_angle(jnp.asarray(desired_pose.rotation) @ jnp.transpose(H.rotation)))

    logger.info(
        "IK finished: success=%s iters=%d pos_error=%.3e ori_error=%.3e (%.3e rad)",
        status.success, status.iterations, position_error, orientation_error, angle,
    )
    return IKResult(
        q=q,
        status=status,
        position_error=position_error,
        orientation_error=orientation_error,
        cost=cost_term.get_cost(),
    )


def inverse_kinematics(
    model: RobotModel,
    source_link_name: str,
    target_link_name: str,
    desired_pose: Transform,
    q0: Sequence[float],
    config: Optional[IKSolverConfig] = None
) -> np.ndarray:
    """
    Solve the inverse kinematics problem between two links.

    Args:
        model: The robot model.
        source_link_name: {s} The link from which the transform is computed.
        target_link_name: {t} The link to which the transform is computed.
        desired_pose: {d} The desired pose of the target link in the source frame.
        q0: The initial guess for the configuration vector.
        config: Solver configuration, defaults to IKSolverConfig().

    Returns:
        The configuration vector which achieves the desired pose (best effort).
    """
    return solve_ik(model, source_link_name, target_link_name, desired_pose, q0, config).q
