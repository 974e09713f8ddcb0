"""
Utility classes and functions for rigid transforms and rotation math.

This module provides a small Transform dataclass and helper functions
for building rotation matrices (axis-angle, roll-pitch-yaw, quaternion)
and decomposing them again. Every helper is written with jax.numpy so it
can be evaluated on plain float64 arrays or traced by jax.jacfwd.
"""

from dataclasses import dataclass
from typing import Sequence

import jax.numpy as jnp
import numpy as np
from jax import Array


@dataclass(frozen=True)
class Transform:
    """
    A rigid transform in 3D space (rotation + translation).

    Attributes:
        rotation: A (3, 3) rotation matrix.
        translation: A (3,) array representing [x, y, z] translation.
    """
    rotation: Array
    translation: Array

    @classmethod
    def identity(cls) -> "Transform":
        return cls(rotation=np.eye(3), translation=np.zeros(3))

    @classmethod
    def from_matrix(cls, matrix) -> "Transform":
        """Create a Transform from a 4x4 homogeneous transformation matrix."""
        matrix = jnp.asarray(matrix)
        if matrix.shape != (4, 4):
            raise ValueError(f"Expected a 4x4 matrix, got shape {matrix.shape}")
        return cls(rotation=matrix[:3, :3], translation=matrix[:3, 3])

    @classmethod
    def from_xyz_rpy(cls, xyz: Sequence[float], rpy: Sequence[float] = (0.0, 0.0, 0.0)) -> "Transform":
        """Create a Transform from position XYZ and rotation RPY."""
        return cls(
            rotation=rotation_matrix_from_rpy(rpy),
            translation=jnp.asarray(xyz, dtype=jnp.float64),
        )

    @classmethod
    def from_quaternion(cls, xyz: Sequence[float], quaternion: Sequence[float]) -> "Transform":
        """Create a Transform from position XYZ and a [w, x, y, z] quaternion."""
        return cls(
            rotation=rotation_matrix_from_quaternion(jnp.asarray(quaternion, dtype=jnp.float64)),
            translation=jnp.asarray(xyz, dtype=jnp.float64),
        )

    def to_matrix(self) -> Array:
        """Convert to a 4x4 homogeneous transformation matrix."""
        T = jnp.eye(4, dtype=jnp.result_type(self.rotation))
        T = T.at[:3, :3].set(self.rotation)
        T = T.at[:3, 3].set(self.translation)
        return T

    def inverse(self) -> "Transform":
        R_T = jnp.transpose(self.rotation)
        return Transform(rotation=R_T, translation=-R_T @ self.translation)

    def __matmul__(self, other: "Transform") -> "Transform":
        return Transform(
            rotation=self.rotation @ other.rotation,
            translation=self.rotation @ other.translation + self.translation,
        )


def rotation_matrix_from_rpy(rpy) -> Array:
    """
    Rotation matrix for roll, pitch, yaw (fixed-axis XYZ, i.e. Rz @ Ry @ Rx).

    This is the URDF convention for <origin rpy="..."/>.
    """
    roll, pitch, yaw = rpy[0], rpy[1], rpy[2]

    cr, sr = jnp.cos(roll), jnp.sin(roll)
    cp, sp = jnp.cos(pitch), jnp.sin(pitch)
    cy, sy = jnp.cos(yaw), jnp.sin(yaw)

    return jnp.array([
        [cy*cp, cy*sp*sr - sy*cr, cy*sp*cr + sy*sr],
        [sy*cp, sy*sp*sr + cy*cr, sy*sp*cr - cy*sr],
        [-sp, cp*sr, cp*cr]
    ])


def rot2rpy(R) -> Array:
    """
    Decompose a rotation matrix into roll, pitch, yaw angles.

    Inverse of rotation_matrix_from_rpy. The decomposition is singular at
    pitch = +-pi/2 (gimbal lock): roll and yaw are then only determined up
    to their sum, and derivatives through this function blow up.

    Args:
        R: A (3, 3) rotation matrix.

    Returns:
        A (3,) array [roll, pitch, yaw].
    """
    roll = jnp.arctan2(R[2, 1], R[2, 2])
    pitch = jnp.arctan2(-R[2, 0], jnp.sqrt(R[2, 1]**2 + R[2, 2]**2))
    yaw = jnp.arctan2(R[1, 0], R[0, 0])
    return jnp.stack([roll, pitch, yaw])


def rotation_about_axis(axis, angle) -> Array:
    """Create a 3x3 rotation matrix about a unit axis (Rodrigues' formula)."""
    c, s = jnp.cos(angle), jnp.sin(angle)
    t = 1 - c
    x, y, z = axis[0], axis[1], axis[2]

    return jnp.array([
        [t*x*x + c, t*x*y - z*s, t*x*z + y*s],
        [t*x*y + z*s, t*y*y + c, t*y*z - x*s],
        [t*x*z - y*s, t*y*z + x*s, t*z*z + c]
    ])


def rotation_matrix_from_quaternion(quat: Array) -> Array:
    """
    Convert a quaternion [w, x, y, z] to a 3x3 rotation matrix.

    Args:
        quat: A (4,) array with scalar-first convention [w, x, y, z].

    Returns:
        A (3, 3) rotation matrix.
    """
    w, x, y, z = quat[0], quat[1], quat[2], quat[3]

    # Normalize quaternion for safety
    norm = jnp.sqrt(w*w + x*x + y*y + z*z)
    w, x, y, z = w/norm, x/norm, y/norm, z/norm

    return jnp.array([
        [1 - 2*(y*y + z*z), 2*(x*y - z*w), 2*(x*z + y*w)],
        [2*(x*y + z*w), 1 - 2*(x*x + z*z), 2*(y*z - x*w)],
        [2*(x*z - y*w), 2*(y*z + x*w), 1 - 2*(x*x + y*y)]
    ])


def rotation_angle(R) -> Array:
    """Angle (radians, in [0, pi]) of the rotation R."""
    cos_angle = jnp.clip((jnp.trace(R) - 1.0) / 2.0, -1.0, 1.0)
    return jnp.arccos(cos_angle)
