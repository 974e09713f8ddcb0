"""
Pose-error cost for IK optimization.

The cost is written once against jax.numpy and is used unchanged for
both plain evaluation (float64 arrays) and differentiable evaluation
(jax.jacfwd tracers), so the gradient is exact and cannot drift away
from the value:

    cost = (t(q) - t*)^T K (t(q) - t*)  +  q^T (w_reg I) q  +  w_ori e(R(q), R*)^2

Orientation metrics:
    trace:      e = trace(I - R* R^T) = 2 (1 - cos theta). Zero iff the
                rotations coincide, monotone in theta on [0, pi]. Its
                derivative with respect to theta vanishes at theta = pi,
                so a target exactly half a turn away gives a zero gradient.
    axis_angle: e = |sin(theta) u|^2, the squared vector part of the skew
                residual (R* R^T - R R*^T) / 2. It is zero at theta = pi as
                well as at theta = 0, so it is only trustworthy for
                rotation errors below pi/2.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, NamedTuple, Optional

import jax.numpy as jnp
import numpy as np
from jax import Array

from nlpik.ik.robot import RobotModel, forward_kinematics
from nlpik.ik.utils import Transform, rot2rpy


def trace_orientation_error(R_desired: Array, R_current: Array) -> Array:
    """
    trace(I - R_v_r) with R_v_r = R_desired R_current^T.

    Args:
        R_desired: Desired rotation (3, 3).
        R_current: Current rotation (3, 3).

    Returns:
        Scalar in [0, 4].
    """
    R_v_r = R_desired @ jnp.transpose(R_current)
    return jnp.trace(jnp.eye(3) - R_v_r)


def axis_angle_orientation_error(R_desired: Array, R_current: Array) -> Array:
    """
    Squared norm of sin(theta) * axis for R_v_r = R_desired R_current^T.

    Returns:
        Scalar in [0, 1].
    """
    R_v_r = R_desired @ jnp.transpose(R_current)
    v = 0.5 * jnp.stack([
        R_v_r[2, 1] - R_v_r[1, 2],
        R_v_r[0, 2] - R_v_r[2, 0],
        R_v_r[1, 0] - R_v_r[0, 1],
    ])
    return jnp.sum(v * v)


ORIENTATION_METRICS: Dict[str, Callable[[Array, Array], Array]] = {
    "trace": trace_orientation_error,
    "axis_angle": axis_angle_orientation_error,
}


def get_orientation_metric(name: str) -> Callable[[Array, Array], Array]:
    try:
        return ORIENTATION_METRICS[name]
    except KeyError:
        raise ValueError(
            f"Unknown orientation metric '{name}'. "
            f"Available: {sorted(ORIENTATION_METRICS)}"
        ) from None


@dataclass(frozen=True, eq=False)
class PoseCostWeights:
    """
    Fixed weights of the pose-error cost.

    Attributes:
        translation: Positive-definite (3, 3) weight K on the translation error.
        regularization: Scalar w_reg of the quadratic penalty on q.
        orientation: Scalar gain w_ori on the squared orientation error.
    """
    translation: np.ndarray = field(default_factory=lambda: np.eye(3))
    regularization: float = 1e-6
    orientation: float = 50.0

    def __post_init__(self):
        K = np.asarray(self.translation, dtype=np.float64)
        if K.shape != (3, 3):
            raise ValueError(f"Translation weight must be 3x3, got shape {K.shape}")
        if not np.allclose(K, K.T) or np.any(np.linalg.eigvalsh(K) <= 0.0):
            raise ValueError("Translation weight must be symmetric positive-definite")
        if self.regularization < 0.0 or self.orientation < 0.0:
            raise ValueError("Cost weights must be non-negative")
        object.__setattr__(self, "translation", K)


class PoseError(NamedTuple):
    """Breakdown of the pose-error cost at one configuration."""
    translation: Array  # weighted squared translation error
    regularization: Array  # q^T W q term
    orientation: Array  # w_ori * e^2
    orientation_error: Array  # the raw metric e
    rpy_current: Array  # roll-pitch-yaw of the current rotation (diagnostic only)
    rpy_desired: Array  # roll-pitch-yaw of the desired rotation (diagnostic only)

    @property
    def total(self) -> Array:
        return self.translation + self.regularization + self.orientation


def pose_error_terms(
    q: Array,
    model: RobotModel,
    source_link_name: str,
    target_link_name: str,
    desired_pose: Transform,
    weights: Optional[PoseCostWeights] = None,
    orientation_metric: str = "trace"
) -> PoseError:
    """
    Evaluate every term of the pose-error cost.

    Args:
        q: Configuration vector (n_q,), float64 or a jax tracer.
        model: The robot model, in the scalar type matching `q`.
        source_link_name: {s} The link from which the transform is computed.
        target_link_name: {t} The link to which the transform is computed.
        desired_pose: {d} Desired pose of the target link in the source frame.
        weights: Cost weights, PoseCostWeights() when omitted.
        orientation_metric: Key into ORIENTATION_METRICS.

    Returns:
        PoseError with the individual terms.
    """
    metric = get_orientation_metric(orientation_metric)
    if weights is None:
        weights = PoseCostWeights()
    q = jnp.asarray(q)

    Hst_current = forward_kinematics(model, q, source_link_name, target_link_name)

    R_current = Hst_current.rotation
    R_desired = jnp.asarray(desired_pose.rotation)

    # Position
    diff = Hst_current.translation - jnp.asarray(desired_pose.translation)
    translation = diff @ weights.translation @ diff

    # Regularization towards q = 0
    regularization = weights.regularization * (q @ q)

    # Orientation
    o_error = metric(R_desired, R_current)
    orientation = weights.orientation * o_error * o_error

    return PoseError(
        translation=translation,
        regularization=regularization,
        orientation=orientation,
        orientation_error=o_error,
        rpy_current=rot2rpy(R_current),
        rpy_desired=rot2rpy(R_desired),
    )


def pose_error_cost(
    q: Array,
    model: RobotModel,
    source_link_name: str,
    target_link_name: str,
    desired_pose: Transform,
    weights: Optional[PoseCostWeights] = None,
    orientation_metric: str = "trace"
) -> Array:
    """
    Scalar pose-error cost as a (1, 1) matrix in the scalar type of `q`.

    See pose_error_terms for the arguments.
    """
    terms = pose_error_terms(
        q, model, source_link_name, target_link_name, desired_pose,
        weights, orientation_metric
    )
    return jnp.reshape(terms.total, (1, 1))
