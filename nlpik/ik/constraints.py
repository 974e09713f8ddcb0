"""Example constraint set over the configuration vector."""

from typing import List

import numpy as np
from scipy import sparse

from nlpik.exceptions import DimensionMismatchError
from nlpik.ik.variables import CONFIGURATION_VECTOR
from nlpik.nlp import Bounds, ConstraintSet


class IKConstraint(ConstraintSet):
    """
    The equality x0^2 + x1 = 1 on the first two configuration entries.

    It has nothing to do with kinematics: it shows how a constraint set
    declares its value, bounds and Jacobian block. Solves do not add it
    unless asked to.
    """

    def __init__(self, name: str = "constraint1", var_set: str = CONFIGURATION_VECTOR):
        super().__init__(1, name)
        self.var_set = var_set

    def _x(self) -> np.ndarray:
        x = self.get_variables().get_component(self.var_set).get_values()
        if x.shape[0] < 2:
            raise DimensionMismatchError(
                f"Variables of '{self.var_set}' used by '{self.name}'", 2, x.shape[0]
            )
        return x

    def get_values(self) -> np.ndarray:
        x = self._x()
        # The constant 1 lives in the bounds, not in the value
        return np.array([x[0] ** 2 + x[1]])

    def get_bounds(self) -> List[Bounds]:
        return [Bounds(1.0, 1.0)]

    def fill_jacobian_block(self, var_set: str, jac_block: sparse.lil_matrix) -> None:
        if var_set == self.var_set:
            x = self._x()
            jac_block[0, 0] = 2.0 * x[0]
            jac_block[0, 1] = 1.0
