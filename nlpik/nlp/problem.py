"""
A generic nonlinear program.

    min_x   sum_i cost_i(x)
    s.t.    lower_g <= g(x) <= upper_g
            lower_x <=  x   <= upper_x

The Problem stitches the user's variable sets, constraint sets and cost
terms together and exposes the flat vectors and matrices a solver needs.
Every evaluation first writes the solver's iterate into the variable sets.
"""

from logging import getLogger
from typing import List, Sequence

import numpy as np
from scipy import sparse

from nlpik.nlp.bounds import Bounds
from nlpik.nlp.components import Composite, ConstraintSet, CostTerm, VariableSet

logger = getLogger(__name__)


class Problem:
    """
    Aggregate of variable sets, constraint sets and cost terms.

    Example:
        >>> nlp = Problem()
        >>> nlp.add_variable_set(MyVariables("x"))
        >>> nlp.add_constraint_set(MyConstraint("g"))
        >>> nlp.add_cost_set(MyCost("f"))
        >>> ScipySolver().solve(nlp)
        >>> x = nlp.get_opt_variables().get_values()
    """

    def __init__(self):
        self._variables = Composite("variable-sets", is_cost=False)
        self._constraints = Composite("constraint-sets", is_cost=False)
        self._costs = Composite("cost-terms", is_cost=True)

    def add_variable_set(self, variable_set: VariableSet) -> None:
        self._variables.add_component(variable_set)

    def add_constraint_set(self, constraint_set: ConstraintSet) -> None:
        constraint_set.link_with_variables(self._variables)
        self._constraints.add_component(constraint_set)

    def add_cost_set(self, cost_set: CostTerm) -> None:
        cost_set.link_with_variables(self._variables)
        self._costs.add_component(cost_set)

    def get_number_of_optimization_variables(self) -> int:
        return self._variables.rows

    def get_number_of_constraints(self) -> int:
        return self._constraints.rows

    def has_cost_terms(self) -> bool:
        return bool(self._costs.components)

    def has_constraints(self) -> bool:
        return self._constraints.rows > 0

    def get_bound_on_optimization_variables(self) -> List[Bounds]:
        return self._variables.get_bounds()

    def get_bounds_on_constraints(self) -> List[Bounds]:
        return self._constraints.get_bounds()

    def get_variable_values(self) -> np.ndarray:
        return self._variables.get_values()

    def set_variables(self, x: Sequence[float]) -> None:
        self._variables.set_variables(x)

    def evaluate_cost_function(self, x: Sequence[float]) -> float:
        if not self.has_cost_terms():
            return 0.0
        self.set_variables(x)
        return float(self._costs.get_values()[0])

    def evaluate_cost_function_gradient(self, x: Sequence[float]) -> np.ndarray:
        n = self.get_number_of_optimization_variables()
        if not self.has_cost_terms():
            return np.zeros(n)
        self.set_variables(x)
        return np.asarray(self._costs.get_jacobian().toarray()).reshape(n)

    def evaluate_constraints(self, x: Sequence[float]) -> np.ndarray:
        self.set_variables(x)
        return self._constraints.get_values()

    def get_jacobian_of_constraints(self, x: Sequence[float]) -> sparse.csr_matrix:
        self.set_variables(x)
        if not self.has_constraints():
            return sparse.csr_matrix((0, self.get_number_of_optimization_variables()))
        return self._constraints.get_jacobian()

    def get_opt_variables(self) -> Composite:
        return self._variables

    def get_costs(self) -> Composite:
        return self._costs

    def get_constraints(self) -> Composite:
        return self._constraints

    def print_current(self) -> None:
        """Log the current variables, constraint values and costs."""
        x = self.get_variable_values()
        logger.info("%s", "*" * 60)
        for component in self._variables.components:
            logger.info("variable set %-24s rows=%d", component.name, component.rows)
        for component in self._constraints.components:
            logger.info(
                "constraint   %-24s rows=%d values=%s",
                component.name, component.rows, np.array2string(component.get_values(), precision=6),
            )
        for component in self._costs.components:
            logger.info("cost         %-24s value=%.6e", component.name, float(component.get_values()[0]))
        logger.info("x = %s", np.array2string(x, precision=6))
