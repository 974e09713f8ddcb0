"""
nlpik: inverse kinematics through nonlinear programming.

Importing the package switches JAX to 64-bit floats; solver tolerances
around 1e-9 are meaningless in float32.
"""

import jax

jax.config.update("jax_enable_x64", True)

from nlpik.exceptions import DimensionMismatchError, IKError, InvalidModelError, LinkNotFoundError  # noqa: E402
from nlpik.ik import IKSolverConfig, RobotModel, Transform, inverse_kinematics, solve_ik  # noqa: E402

__version__ = "0.1.0"

__all__ = [
    "IKError",
    "DimensionMismatchError",
    "LinkNotFoundError",
    "InvalidModelError",
    "IKSolverConfig",
    "RobotModel",
    "Transform",
    "inverse_kinematics",
    "solve_ik",
]
