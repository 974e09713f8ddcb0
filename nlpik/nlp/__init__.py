"""
Generic nonlinear-program abstraction.

Variable sets, constraint sets and cost terms describe their own rows
and Jacobian blocks; a Problem assembles them and a ScipySolver solves it.
"""

from nlpik.nlp.bounds import (
    BOUND_GREATER_ZERO,
    BOUND_SMALLER_ZERO,
    BOUND_ZERO,
    INF,
    NO_BOUND,
    Bounds,
)
from nlpik.nlp.components import Component, Composite, ConstraintSet, CostTerm, VariableSet
from nlpik.nlp.problem import Problem
from nlpik.nlp.solver import ScipySolver, SolverStatus

__all__ = [
    "Bounds",
    "INF",
    "NO_BOUND",
    "BOUND_ZERO",
    "BOUND_GREATER_ZERO",
    "BOUND_SMALLER_ZERO",
    "Component",
    "Composite",
    "VariableSet",
    "ConstraintSet",
    "CostTerm",
    "Problem",
    "ScipySolver",
    "SolverStatus",
]
