"""
Building blocks of a nonlinear program.

A program is made of variable sets, constraint sets and cost terms. Each
constraint set or cost term only describes its own rows and fills its own
Jacobian block with respect to one named variable set at a time: block
(row 0, col 0) is always the first row of this set and the first variable
of that variable set. The Composite places the blocks in the full matrix.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

import numpy as np
from scipy import sparse

from nlpik.exceptions import DimensionMismatchError
from nlpik.nlp.bounds import NO_BOUND, Bounds


class Component(ABC):
    """A named group of rows (variables, constraints or costs)."""

    def __init__(self, num_rows: int, name: str):
        self._rows = int(num_rows)
        self.name = name

    @property
    def rows(self) -> int:
        return self._rows

    @abstractmethod
    def get_values(self) -> np.ndarray:
        """Current values of the rows, shape (rows,)."""

    @abstractmethod
    def get_bounds(self) -> List[Bounds]:
        """One Bounds per row."""

    def set_variables(self, x: Sequence[float]) -> None:
        raise NotImplementedError(f"'{self.name}' does not hold variables")

    def get_jacobian(self) -> sparse.spmatrix:
        raise NotImplementedError(f"'{self.name}' does not provide a Jacobian")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name='{self.name}', rows={self.rows})"


class VariableSet(Component):
    """A block of decision variables."""

    @abstractmethod
    def set_variables(self, x: Sequence[float]) -> None:
        """Replace all values at once; `x` must have length `rows`."""


class ConstraintSet(Component):
    """
    A block of constraint rows g(x) with lower <= g(x) <= upper.

    Subclasses implement get_values, get_bounds and fill_jacobian_block.
    """

    def __init__(self, num_rows: int, name: str):
        super().__init__(num_rows, name)
        self._variables: Optional["Composite"] = None

    def link_with_variables(self, variables: "Composite") -> None:
        """Give this set access to the problem's variable sets."""
        self._variables = variables
        self.initialize_variable_dependent_quantities(variables)

    def initialize_variable_dependent_quantities(self, variables: "Composite") -> None:
        """Hook for sets that need the variables once they are linked."""

    def get_variables(self) -> "Composite":
        if self._variables is None:
            raise RuntimeError(f"'{self.name}' is not linked to any variables yet")
        return self._variables

    @abstractmethod
    def fill_jacobian_block(self, var_set: str, jac_block: sparse.lil_matrix) -> None:
        """
        Write d(rows)/d(var_set) into `jac_block`.

        `jac_block` has shape (rows, variable set rows) and starts out empty.
        Sets that do not depend on `var_set` leave it untouched.
        """

    def get_jacobian(self) -> sparse.csr_matrix:
        """Full-width Jacobian (rows x all variables), one fresh block per variable set."""
        blocks = []
        for var_set in self.get_variables().components:
            jac_block = sparse.lil_matrix((self.rows, var_set.rows))
            self.fill_jacobian_block(var_set.name, jac_block)
            blocks.append(jac_block)
        if not blocks:
            return sparse.csr_matrix((self.rows, 0))
        return sparse.hstack(blocks, format="csr")


class CostTerm(ConstraintSet):
    """A single-row, unbounded constraint set whose value is minimized."""

    def __init__(self, name: str):
        super().__init__(1, name)

    @abstractmethod
    def get_cost(self) -> float:
        """Scalar cost at the current variables."""

    def get_values(self) -> np.ndarray:
        return np.array([self.get_cost()], dtype=np.float64)

    def get_bounds(self) -> List[Bounds]:
        return [NO_BOUND]


class Composite(Component):
    """
    Ordered collection of components stacked on top of each other.

    A cost composite sums its components into one row instead of stacking.
    """

    def __init__(self, name: str, is_cost: bool = False):
        super().__init__(1 if is_cost else 0, name)
        self.is_cost = is_cost
        self._components: List[Component] = []
        self._by_name: Dict[str, Component] = {}

    @property
    def components(self) -> List[Component]:
        return list(self._components)

    def add_component(self, component: Component) -> None:
        if component.name in self._by_name:
            raise ValueError(f"Component '{component.name}' already added to '{self.name}'")
        self._components.append(component)
        self._by_name[component.name] = component
        if not self.is_cost:
            self._rows += component.rows

    def get_component(self, name: str) -> Component:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(
                f"No component '{name}' in '{self.name}'. "
                f"Available: {list(self._by_name)}"
            ) from None

    def get_values(self) -> np.ndarray:
        if self.is_cost:
            total = sum(float(c.get_values()[0]) for c in self._components)
            return np.array([total], dtype=np.float64)
        if not self._components:
            return np.zeros(0)
        return np.concatenate([c.get_values() for c in self._components])

    def set_variables(self, x: Sequence[float]) -> None:
        x = np.asarray(x, dtype=np.float64)
        if x.shape != (self.rows,):
            raise DimensionMismatchError(
                f"Variables of '{self.name}'", self.rows, x.shape[0] if x.ndim == 1 else x.shape
            )
        offset = 0
        for c in self._components:
            c.set_variables(x[offset:offset + c.rows])
            offset += c.rows

    def get_bounds(self) -> List[Bounds]:
        if self.is_cost:
            return [NO_BOUND]
        bounds: List[Bounds] = []
        for c in self._components:
            bounds.extend(c.get_bounds())
        return bounds

    def get_jacobian(self) -> sparse.csr_matrix:
        jacobians = [c.get_jacobian() for c in self._components]
        if self.is_cost:
            if not jacobians:
                raise ValueError(f"'{self.name}' has no cost terms")
            total = jacobians[0]
            for jac in jacobians[1:]:
                total = total + jac
            return sparse.csr_matrix(total)
        return sparse.vstack(jacobians, format="csr")
