"""
Pose-error cost as an NLP cost term.

The value and the gradient come from the same pose_error_cost function.
The gradient is obtained with jax.jacfwd, i.e. forward-mode automatic
differentiation through the kinematic chain, so it is exact rather than
finite-differenced.
"""

from logging import getLogger
from typing import Optional

import jax
import jax.numpy as jnp
import numpy as np
from scipy import sparse

from nlpik.ik.costs import PoseCostWeights, get_orientation_metric, pose_error_cost
from nlpik.ik.robot import RobotModel, ScalarType
from nlpik.ik.utils import Transform
from nlpik.ik.variables import CONFIGURATION_VECTOR
from nlpik.nlp import CostTerm

logger = getLogger(__name__)


class IKCost(CostTerm):
    """
    Pose-error cost between two links of a robot.

    Args:
        name: Name of the cost term.
        model: The robot model instantiated over ScalarType.DUAL.
        source_link_name: {s} The link from which the transform is computed.
        target_link_name: {t} The link to which the transform is computed.
        desired_pose: {d} Desired pose of the target link in the source frame.
        weights: Cost weights, PoseCostWeights() when omitted.
        orientation_metric: "trace" or "axis_angle".
        var_set: Name of the configuration variable set.
    """

    def __init__(
        self,
        name: str,
        model: RobotModel,
        source_link_name: str,
        target_link_name: str,
        desired_pose: Transform,
        weights: Optional[PoseCostWeights] = None,
        orientation_metric: str = "trace",
        var_set: str = CONFIGURATION_VECTOR
    ):
        super().__init__(name)
        if model.scalar_type is not ScalarType.DUAL:
            raise ValueError(
                f"IKCost needs a model cast to {ScalarType.DUAL}, got {model.scalar_type}"
            )
        model.check_link(source_link_name)
        model.check_link(target_link_name)
        get_orientation_metric(orientation_metric)
        if weights is None:
            weights = PoseCostWeights()

        self.model = model
        self.real_model = model.cast(ScalarType.REAL)
        self.source_link_name = source_link_name
        self.target_link_name = target_link_name
        self.desired_pose = Transform(
            rotation=np.asarray(desired_pose.rotation, dtype=np.float64),
            translation=np.asarray(desired_pose.translation, dtype=np.float64),
        )
        self.weights = weights
        self.orientation_metric = orientation_metric
        self.var_set = var_set

        def cost_real(q):
            return pose_error_cost(
                q, self.real_model, source_link_name, target_link_name,
                self.desired_pose, weights, orientation_metric
            )

        def cost_dual(q):
            F = pose_error_cost(
                q, self.model, source_link_name, target_link_name,
                self.desired_pose, weights, orientation_metric
            )
            return F, F

        self._cost_fn = jax.jit(cost_real)
        # One forward sweep gives both the Jacobian (1 x 1 x n_q) and F
        self._jacobian_fn = jax.jit(jax.jacfwd(cost_dual, has_aux=True))

        logger.debug(
            "IKCost '%s': %s -> %s, n_q=%d, metric=%s",
            name, source_link_name, target_link_name, model.n_q, orientation_metric,
        )

    def _q(self) -> np.ndarray:
        return self.get_variables().get_component(self.var_set).get_values()

    def get_cost(self) -> float:
        cost_val = self._cost_fn(jnp.asarray(self._q(), dtype=jnp.float64))
        return float(cost_val[0, 0])

    def value_and_jacobian(self, q):
        """Cost value and its (1, n_q) Jacobian at `q`."""
        q_auto = jnp.asarray(q, dtype=jnp.float64)
        J, F = self._jacobian_fn(q_auto)
        return float(F[0, 0]), np.asarray(J).reshape(1, self.model.n_q)

    def fill_jacobian_block(self, var_set: str, jac_block: sparse.lil_matrix) -> None:
        if var_set == self.var_set:
            _, J = self.value_and_jacobian(self._q())
            for i in range(self.model.n_q):
                jac_block[0, i] = J[0, i]
