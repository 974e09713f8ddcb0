"""
IK Package

Inverse kinematics formulated as a nonlinear program: a pose-error cost
over the configuration vector, differentiated exactly with JAX forward-mode
autodiff, solved under joint bounds by a generic NLP solver.

Entry points:
    inverse_kinematics: model, links, desired pose, initial guess -> q
    solve_ik: same, returning the solver status and residual errors too
"""

from nlpik.ik.robot import JointSpec, RobotModel, ScalarType, chain_model, forward_kinematics
from nlpik.ik.utils import Transform
from nlpik.ik import costs
from nlpik.ik.costs import PoseCostWeights, PoseError, pose_error_cost, pose_error_terms
from nlpik.ik.variables import CONFIGURATION_VECTOR, IKVariables
from nlpik.ik.constraints import IKConstraint
from nlpik.ik.cost_term import IKCost
from nlpik.ik.solver import IKResult, IKSolverConfig, build_problem, inverse_kinematics, solve_ik

__all__ = [
    "RobotModel",
    "JointSpec",
    "ScalarType",
    "chain_model",
    "forward_kinematics",
    "Transform",
    "costs",
    "PoseCostWeights",
    "PoseError",
    "pose_error_cost",
    "pose_error_terms",
    "CONFIGURATION_VECTOR",
    "IKVariables",
    "IKConstraint",
    "IKCost",
    "IKResult",
    "IKSolverConfig",
    "build_problem",
    "inverse_kinematics",
    "solve_ik",
]
