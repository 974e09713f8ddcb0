"""Configuration vector as an NLP variable set."""

from typing import List, Sequence

import numpy as np

from nlpik.exceptions import DimensionMismatchError
from nlpik.ik.robot import RobotModel
from nlpik.nlp import Bounds, VariableSet

CONFIGURATION_VECTOR = "configuration_vector"

JOINT_BOUNDS = Bounds(-np.pi, np.pi)


class IKVariables(VariableSet):
    """
    The robot's configuration vector q, bounded to [-pi, pi] per joint.

    The name lets constraints and costs fill their Jacobians with respect
    to this set specifically.

    Args:
        name: Name of the variable set.
        model: The robot model (only n_q is used).
        q0: Initial values the solver starts iterating from.
    """

    def __init__(self, name: str, model: RobotModel, q0: Sequence[float]):
        super().__init__(model.n_q, name)
        self._q = self._checked(q0, "Initial configuration")

    def _checked(self, x: Sequence[float], what: str) -> np.ndarray:
        x = np.array(x, dtype=np.float64)
        if x.ndim != 1 or x.shape[0] != self.rows:
            raise DimensionMismatchError(what, self.rows, x.shape[0] if x.ndim == 1 else x.shape)
        return x

    def set_variables(self, x: Sequence[float]) -> None:
        self._q = self._checked(x, "Configuration update")

    def get_values(self) -> np.ndarray:
        return self._q.copy()

    def get_bounds(self) -> List[Bounds]:
        return [JOINT_BOUNDS] * self.rows
