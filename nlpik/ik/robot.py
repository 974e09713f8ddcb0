"""
Robot model abstraction over kinematic trees.

This module provides the RobotModel class which:
1. Builds a kinematic tree from a URDF file or from joint descriptions
2. Can be re-instantiated over a scalar type (plain real or differentiable)
3. Provides forward kinematics between any two links of the tree

The implementation uses urdf-parser-py for URDF parsing and
JAX for the differentiable computations.
"""

from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

import jax.numpy as jnp
import numpy as np
from urdf_parser_py.urdf import URDF

from nlpik.exceptions import DimensionMismatchError, InvalidModelError, LinkNotFoundError
from nlpik.ik.utils import Transform, rotation_about_axis, rotation_matrix_from_rpy

ACTUATED_JOINT_TYPES = ("revolute", "continuous", "prismatic")
SUPPORTED_JOINT_TYPES = ACTUATED_JOINT_TYPES + ("fixed",)


class ScalarType(Enum):
    """
    Scalar type a RobotModel's parameters are instantiated over.

    REAL stores parameters as host NumPy float64 arrays (bookkeeping, final
    results). DUAL stores them as JAX float64 arrays, the type traced by
    jax.jacfwd into forward-mode dual numbers when a gradient is needed.
    """
    REAL = "real"
    DUAL = "dual"


class JointSpec(NamedTuple):
    """Structural description of one joint (mirrors a URDF <joint> element)."""
    name: str
    type: str
    parent: str
    child: str
    xyz: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    rpy: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    axis: Tuple[float, float, float] = (0.0, 0.0, 1.0)
    lower: Optional[float] = None
    upper: Optional[float] = None


class RobotModel:
    """
    A kinematic tree whose parameters live in a single scalar type.

    The structural description (joint specs) is immutable. cast() builds a
    fresh, independently owned instance over another scalar type, so the
    real and differentiable models never share per-evaluation state.

    Attributes:
        name: The robot's name.
        scalar_type: The ScalarType parameters are stored in.
        n_q: Number of actuated joints (length of the configuration vector).
        joint_names: Actuated joint names, in configuration-vector order.
        link_names: All link names of the tree.

    Example:
        >>> robot = RobotModel.from_urdf("path/to/robot.urdf")
        >>> H = forward_kinematics(robot, jnp.zeros(robot.n_q), "base_link", "hand")
        >>> print(H.translation)
    """

    def __init__(
        self,
        name: str,
        joints: Sequence[JointSpec],
        scalar_type: ScalarType = ScalarType.REAL
    ):
        self.name = name
        self.scalar_type = scalar_type
        self._joints: Tuple[JointSpec, ...] = tuple(joints)

        for joint in self._joints:
            if joint.type not in SUPPORTED_JOINT_TYPES:
                raise InvalidModelError(
                    f"Joint '{joint.name}' has unsupported type '{joint.type}'. "
                    f"Supported types: {SUPPORTED_JOINT_TYPES}"
                )

        self._joint_by_child: Dict[str, JointSpec] = {}
        for joint in self._joints:
            if joint.child in self._joint_by_child:
                raise InvalidModelError(
                    f"Link '{joint.child}' has more than one parent joint."
                )
            self._joint_by_child[joint.child] = joint

        links = {j.parent for j in self._joints} | {j.child for j in self._joints}
        roots = links - set(self._joint_by_child)
        if len(roots) != 1:
            raise InvalidModelError(
                f"Expected exactly one root link, found {sorted(roots)}."
            )
        self.root_link = roots.pop()
        self.link_names = sorted(links)

        # Extract actuated joints (revolute/prismatic only)
        self._actuated_joints = [
            j for j in self._joints if j.type in ACTUATED_JOINT_TYPES
        ]
        self.joint_names = [j.name for j in self._actuated_joints]
        self.n_q = len(self._actuated_joints)
        self._q_index = {name: i for i, name in enumerate(self.joint_names)}

        # Walk every link back to the root once
        self._paths = {link: self._build_path(link) for link in self.link_names}

        # Joint limits: explicit `is None` checks, 0.0 is a valid limit
        lower, upper = [], []
        for joint in self._actuated_joints:
            lower.append(-np.pi if joint.lower is None else joint.lower)
            upper.append(np.pi if joint.upper is None else joint.upper)
        self._lower_limits = np.array(lower, dtype=np.float64)
        self._upper_limits = np.array(upper, dtype=np.float64)

        # Instantiate the per-joint parameters over the scalar type
        if scalar_type is ScalarType.DUAL:
            xp, dtype = jnp, jnp.float64
        else:
            xp, dtype = np, np.float64
        self._origin_rotations = {}
        self._origin_translations = {}
        self._axes = {}
        for joint in self._joints:
            axis = np.asarray(joint.axis, dtype=np.float64)
            norm = np.linalg.norm(axis)
            if norm == 0.0:
                raise InvalidModelError(f"Joint '{joint.name}' has a zero axis.")
            self._origin_rotations[joint.name] = xp.asarray(
                np.asarray(rotation_matrix_from_rpy(np.asarray(joint.rpy, dtype=np.float64))),
                dtype=dtype,
            )
            self._origin_translations[joint.name] = xp.asarray(joint.xyz, dtype=dtype)
            self._axes[joint.name] = xp.asarray(axis / norm, dtype=dtype)

    @classmethod
    def from_urdf(cls, urdf_path: str, scalar_type: ScalarType = ScalarType.REAL) -> "RobotModel":
        """
        Load a robot model from a URDF file.

        Args:
            urdf_path: Path to the URDF file.
            scalar_type: Scalar type to instantiate the parameters over.
        """
        urdf = URDF.from_xml_file(str(urdf_path))
        return cls(urdf.name, [_joint_spec_from_urdf(j) for j in urdf.joints], scalar_type)

    def cast(self, scalar_type: ScalarType) -> "RobotModel":
        """Return a structurally identical model instantiated over `scalar_type`."""
        return RobotModel(self.name, self._joints, scalar_type)

    @property
    def joints(self) -> Tuple[JointSpec, ...]:
        return self._joints

    @property
    def joint_limits(self) -> Tuple[np.ndarray, np.ndarray]:
        """Return (lower_limits, upper_limits) as float64 arrays."""
        return (self._lower_limits.copy(), self._upper_limits.copy())

    def check_link(self, link_name: str) -> None:
        """Raise LinkNotFoundError unless `link_name` belongs to the tree."""
        if link_name not in self._paths:
            raise LinkNotFoundError(link_name, self.link_names)

    def check_configuration(self, q, what: str = "Configuration vector") -> None:
        """Raise DimensionMismatchError unless `q` is a vector of length n_q."""
        shape = jnp.shape(q)
        if len(shape) != 1 or shape[0] != self.n_q:
            actual = shape[0] if len(shape) == 1 else tuple(shape)
            raise DimensionMismatchError(what, self.n_q, actual)

    def _build_path(self, link: str) -> Tuple[JointSpec, ...]:
        """
        Joints from the root link down to `link`.

        Raises InvalidModelError when the walk back loops without reaching
        the root.
        """
        chain: List[JointSpec] = []
        visited = set()
        current = link
        while current != self.root_link:
            if current in visited:
                raise InvalidModelError(
                    f"Kinematic loop detected while walking back from '{link}'."
                )
            visited.add(current)
            joint = self._joint_by_child[current]
            chain.append(joint)
            current = joint.parent
        chain.reverse()
        return tuple(chain)

    def _joint_transform(self, joint: JointSpec, q) -> Transform:
        """
        Transform across one joint: the fixed origin offset followed by the
        motion of the joint variable.
        """
        origin = Transform(
            rotation=self._origin_rotations[joint.name],
            translation=self._origin_translations[joint.name],
        )
        if joint.type == "fixed":
            return origin

        value = q[self._q_index[joint.name]]
        axis = self._axes[joint.name]
        if joint.type in ("revolute", "continuous"):
            motion = Transform(rotation=rotation_about_axis(axis, value), translation=jnp.zeros(3))
        else:
            motion = Transform(rotation=jnp.eye(3), translation=axis * value)
        return origin @ motion

    def link_transform(self, q, link_name: str) -> Transform:
        """Pose of `link_name` in the root link frame at configuration `q`."""
        self.check_link(link_name)
        H = Transform(rotation=jnp.eye(3), translation=jnp.zeros(3))
        for joint in self._paths[link_name]:
            H = H @ self._joint_transform(joint, q)
        return H

    def __repr__(self) -> str:
        return (
            f"RobotModel(name='{self.name}', "
            f"n_q={self.n_q}, "
            f"root='{self.root_link}', "
            f"scalar_type={self.scalar_type.value})"
        )


def forward_kinematics(model: RobotModel, q, source_link: str, target_link: str) -> Transform:
    """
    Compute the pose of the target link expressed in the source link frame.

    Works in whichever scalar type `q` carries: concrete float64 arrays give
    a plain evaluation, jax.jacfwd tracers give a differentiable one.

    Args:
        model: The robot model.
        q: Configuration vector of shape (n_q,).
        source_link: {s} The link from which the transform is computed.
        target_link: {t} The link to which the transform is computed.

    Returns:
        Transform H_st.

    Raises:
        LinkNotFoundError: if either link is not part of the model.
        DimensionMismatchError: if `q` does not have length n_q.
    """
    model.check_link(source_link)
    model.check_link(target_link)
    model.check_configuration(q)
    q = jnp.asarray(q)

    H_ws = model.link_transform(q, source_link)
    H_wt = model.link_transform(q, target_link)
    return H_ws.inverse() @ H_wt


def _joint_spec_from_urdf(joint) -> JointSpec:
    origin = joint.origin
    xyz = tuple(origin.xyz) if origin is not None and origin.xyz is not None else (0.0, 0.0, 0.0)
    rpy = tuple(origin.rpy) if origin is not None and origin.rpy is not None else (0.0, 0.0, 0.0)
    axis = tuple(joint.axis) if joint.axis is not None else (1.0, 0.0, 0.0)

    lower = upper = None
    if joint.type != "continuous" and joint.limit is not None:
        lower = joint.limit.lower
        upper = joint.limit.upper

    return JointSpec(
        name=joint.name,
        type=joint.type,
        parent=joint.parent,
        child=joint.child,
        xyz=xyz,
        rpy=rpy,
        axis=axis,
        lower=lower,
        upper=upper,
    )


def chain_model(name: str, link_lengths: Iterable[float], axis=(0.0, 0.0, 1.0)) -> RobotModel:
    """
    Serial chain of revolute joints with links laid out along +x.

    Links are named "base", "link1" ... "linkN" and a fixed "tip" link sits
    at the end of the last segment.
    """
    joints = []
    parent = "base"
    offset = 0.0
    for i, length in enumerate(link_lengths, start=1):
        child = f"link{i}"
        joints.append(JointSpec(f"joint{i}", "revolute", parent, child, xyz=(offset, 0.0, 0.0), axis=tuple(axis)))
        parent = child
        offset = float(length)
    joints.append(JointSpec("tip_joint", "fixed", parent, "tip", xyz=(offset, 0.0, 0.0)))
    return RobotModel(name, joints)
