"""
NLP solver adapter over scipy.optimize.minimize.

ScipySolver consumes a Problem and exposes an option surface similar to
an interior-point solver's:

    method                   "SLSQP" (sequential quadratic programming) or
                             "trust-constr" (interior point / barrier)
    linear_solver            factorization used by trust-constr for its
                             projections ("auto", "NormalEquation",
                             "AugmentedSystem", "QRFactorization",
                             "SVDFactorization"); SLSQP ignores it
    jacobian_approximation   "exact" uses the components' Jacobians,
                             "finite-difference-values" lets scipy difference
                             the values instead
    max_iter                 iteration cap
    acceptable_tol           convergence tolerance
    print_level              0 silent, >0 forwards scipy's own progress output
"""

from logging import getLogger
from typing import Any, Dict, NamedTuple

import numpy as np
from scipy.optimize import BFGS, Bounds as ScipyBounds, NonlinearConstraint, minimize

from nlpik.nlp.problem import Problem

logger = getLogger(__name__)

METHODS = ("SLSQP", "trust-constr")
LINEAR_SOLVERS = ("auto", "NormalEquation", "AugmentedSystem", "QRFactorization", "SVDFactorization")
JACOBIAN_MODES = ("exact", "finite-difference-values")


class SolverStatus(NamedTuple):
    """What scipy reported for a solve, passed through unchanged."""
    success: bool
    status: int
    message: str
    iterations: int
    cost: float


class ScipySolver:
    """
    Solves a Problem with scipy.optimize.minimize.

    Example:
        >>> solver = ScipySolver()
        >>> solver.set_option("max_iter", 250)
        >>> status = solver.solve(nlp)
    """

    DEFAULT_OPTIONS: Dict[str, Any] = {
        "method": "SLSQP",
        "linear_solver": "auto",
        "jacobian_approximation": "exact",
        "max_iter": 3000,
        "acceptable_tol": 1e-6,
        "print_level": 0,
    }

    def __init__(self, **options: Any):
        self._options = dict(self.DEFAULT_OPTIONS)
        for name, value in options.items():
            self.set_option(name, value)

    @property
    def options(self) -> Dict[str, Any]:
        return dict(self._options)

    def set_option(self, name: str, value: Any) -> None:
        if name not in self.DEFAULT_OPTIONS:
            raise ValueError(
                f"Unknown solver option '{name}'. Available: {sorted(self.DEFAULT_OPTIONS)}"
            )
        if name == "method" and value not in METHODS:
            raise ValueError(f"Unknown method '{value}'. Available: {METHODS}")
        if name == "linear_solver" and value not in LINEAR_SOLVERS:
            raise ValueError(f"Unknown linear_solver '{value}'. Available: {LINEAR_SOLVERS}")
        if name == "jacobian_approximation" and value not in JACOBIAN_MODES:
            raise ValueError(
                f"Unknown jacobian_approximation '{value}'. Available: {JACOBIAN_MODES}"
            )
        if name == "max_iter" and int(value) < 1:
            raise ValueError("max_iter must be at least 1")
        if name == "acceptable_tol" and float(value) <= 0.0:
            raise ValueError("acceptable_tol must be positive")
        self._options[name] = value

    def _scipy_options(self) -> Dict[str, Any]:
        method = self._options["method"]
        tol = float(self._options["acceptable_tol"])
        max_iter = int(self._options["max_iter"])
        print_level = int(self._options["print_level"])

        if method == "SLSQP":
            return {"maxiter": max_iter, "ftol": tol, "disp": print_level > 0}

        options = {
            "maxiter": max_iter,
            "gtol": tol,
            "xtol": tol,
            "barrier_tol": tol,
            "verbose": min(print_level, 3),
        }
        if self._options["linear_solver"] != "auto":
            options["factorization_method"] = self._options["linear_solver"]
        return options

    def solve(self, problem: Problem) -> SolverStatus:
        """
        Run the optimizer from the problem's current variable values.

        The final iterate is written back into the problem's variables
        whether or not the optimizer reports success.
        """
        method = self._options["method"]
        exact = self._options["jacobian_approximation"] == "exact"
        dense_jacobian = method == "SLSQP"

        x0 = problem.get_variable_values()
        var_bounds = problem.get_bound_on_optimization_variables()
        bounds = ScipyBounds(
            np.array([b.lower for b in var_bounds], dtype=np.float64),
            np.array([b.upper for b in var_bounds], dtype=np.float64),
        )

        constraints = []
        if problem.has_constraints():
            con_bounds = problem.get_bounds_on_constraints()

            def constraint_jacobian(x):
                jac = problem.get_jacobian_of_constraints(x)
                return jac.toarray() if dense_jacobian else jac

            constraints.append(NonlinearConstraint(
                problem.evaluate_constraints,
                np.array([b.lower for b in con_bounds], dtype=np.float64),
                np.array([b.upper for b in con_bounds], dtype=np.float64),
                jac=constraint_jacobian if exact else "2-point",
            ))

        kwargs: Dict[str, Any] = {}
        if method == "trust-constr":
            # No second derivatives are provided, use a quasi-Newton Hessian
            kwargs["hess"] = BFGS()

        logger.debug(
            "Solving NLP: %d variables, %d constraints, method=%s, jacobian=%s",
            problem.get_number_of_optimization_variables(),
            problem.get_number_of_constraints(),
            method,
            self._options["jacobian_approximation"],
        )

        result = minimize(
            problem.evaluate_cost_function,
            x0,
            method=method,
            jac=problem.evaluate_cost_function_gradient if exact else "2-point",
            bounds=bounds,
            constraints=constraints,
            options=self._scipy_options(),
            **kwargs,
        )

        problem.set_variables(result.x)

        status = SolverStatus(
            success=bool(result.success),
            status=int(getattr(result, "status", 0)),
            message=str(result.message),
            iterations=int(getattr(result, "nit", 0)),
            cost=float(result.fun) if "fun" in result else problem.evaluate_cost_function(result.x),
        )
        if not status.success:
            logger.warning("NLP solver did not succeed: %s (status %d)", status.message, status.status)
        return status
