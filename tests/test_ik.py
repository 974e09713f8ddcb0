#!/usr/bin/env python3
"""
Test suite for the IK formulation: the configuration variable set, the
autodiff cost term and the end-to-end solve.
"""

import sys
import unittest
from pathlib import Path
from unittest import mock

# Add repo root to path
REPO_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(REPO_ROOT))

import numpy as np
from scipy import sparse

from nlpik.exceptions import DimensionMismatchError, LinkNotFoundError
from nlpik.ik import (
    CONFIGURATION_VECTOR,
    IKConstraint,
    IKCost,
    IKSolverConfig,
    IKVariables,
    JointSpec,
    RobotModel,
    ScalarType,
    Transform,
    build_problem,
    chain_model,
    forward_kinematics,
    inverse_kinematics,
    pose_error_cost,
    solve_ik,
)
from nlpik.ik.costs import trace_orientation_error


def spatial_arm() -> RobotModel:
    """Yaw-pitch-pitch arm with a fixed tool link."""
    joints = [
        JointSpec("shoulder_yaw", "revolute", "base", "shoulder", axis=(0.0, 0.0, 1.0)),
        JointSpec("shoulder_pitch", "revolute", "shoulder", "upper_arm", xyz=(0.0, 0.0, 0.5), axis=(0.0, 1.0, 0.0)),
        JointSpec("elbow", "revolute", "upper_arm", "forearm", xyz=(0.6, 0.0, 0.0), axis=(0.0, 1.0, 0.0)),
        JointSpec("tool_joint", "fixed", "forearm", "tool", xyz=(0.4, 0.0, 0.0), rpy=(0.1, 0.0, 0.0)),
    ]
    return RobotModel("spatial_arm", joints)


class TestIKVariables(unittest.TestCase):

    def setUp(self):
        self.robot = spatial_arm()

    def test_initial_values(self):
        variables = IKVariables(CONFIGURATION_VECTOR, self.robot, [0.1, 0.2, 0.3])
        self.assertEqual(variables.rows, 3)
        self.assertEqual(variables.name, CONFIGURATION_VECTOR)
        np.testing.assert_array_equal(variables.get_values(), [0.1, 0.2, 0.3])

    def test_set_then_get_round_trip(self):
        variables = IKVariables(CONFIGURATION_VECTOR, self.robot, np.zeros(3))
        rng = np.random.default_rng(7)
        for _ in range(5):
            x = rng.uniform(-10.0, 10.0, size=3)
            variables.set_variables(x)
            np.testing.assert_array_equal(variables.get_values(), x)

    def test_values_are_not_aliased(self):
        x = np.array([0.1, 0.2, 0.3])
        variables = IKVariables(CONFIGURATION_VECTOR, self.robot, x)
        x[0] = 5.0
        variables.get_values()[1] = 5.0
        np.testing.assert_array_equal(variables.get_values(), [0.1, 0.2, 0.3])

    def test_bounds_are_plus_minus_pi(self):
        variables = IKVariables(CONFIGURATION_VECTOR, self.robot, np.zeros(3))
        for q in (np.zeros(3), np.full(3, 7.0), np.array([-4.0, 0.5, 3.2])):
            variables.set_variables(q)
            bounds = variables.get_bounds()
            self.assertEqual(len(bounds), 3)
            for b in bounds:
                self.assertEqual(b.lower, -np.pi)
                self.assertEqual(b.upper, np.pi)

    def test_wrong_initial_length(self):
        with self.assertRaises(DimensionMismatchError):
            IKVariables(CONFIGURATION_VECTOR, self.robot, np.zeros(2))

    def test_wrong_update_length(self):
        variables = IKVariables(CONFIGURATION_VECTOR, self.robot, np.zeros(3))
        with self.assertRaises(DimensionMismatchError):
            variables.set_variables(np.zeros(4))
        np.testing.assert_array_equal(variables.get_values(), np.zeros(3))

    def test_column_vector_reports_shape(self):
        with self.assertRaises(DimensionMismatchError) as ctx:
            IKVariables(CONFIGURATION_VECTOR, self.robot, np.zeros((3, 1)))
        self.assertIn("shape (3, 1)", str(ctx.exception))


class TestIKCost(unittest.TestCase):

    def setUp(self):
        self.robot = spatial_arm()
        self.desired = forward_kinematics(self.robot, np.array([0.4, -0.3, 0.8]), "base", "tool")
        self.nlp = build_problem(self.robot, "base", "tool", self.desired, np.zeros(3))
        self.cost_term = self.nlp.get_costs().get_component("IK_cost")

    def test_requires_dual_model(self):
        with self.assertRaises(ValueError):
            IKCost("IK_cost", self.robot, "base", "tool", self.desired)

    def test_unknown_link(self):
        with self.assertRaises(LinkNotFoundError):
            IKCost("IK_cost", self.robot.cast(ScalarType.DUAL), "base", "hand", self.desired)

    def test_cost_matches_pose_error_cost(self):
        q = np.array([0.2, -0.1, 0.5])
        self.nlp.set_variables(q)
        expected = float(pose_error_cost(q, self.robot, "base", "tool", self.desired)[0, 0])
        self.assertAlmostEqual(self.cost_term.get_cost(), expected, places=12)

    def test_value_and_jacobian_agree_with_get_cost(self):
        q = np.array([-0.6, 0.3, 1.2])
        self.nlp.set_variables(q)
        value, J = self.cost_term.value_and_jacobian(q)
        self.assertEqual(J.shape, (1, 3))
        self.assertAlmostEqual(value, self.cost_term.get_cost(), places=12)

    def test_gradient_matches_finite_differences(self):
        """Forward-mode gradient vs. central differences at random configurations."""
        rng = np.random.default_rng(42)
        h = 1e-6
        for _ in range(5):
            q = rng.uniform(-np.pi, np.pi, size=3)
            self.nlp.set_variables(q)

            jac_block = sparse.lil_matrix((1, 3))
            self.cost_term.fill_jacobian_block(CONFIGURATION_VECTOR, jac_block)
            analytic = jac_block.toarray()[0]

            numeric = np.zeros(3)
            for i in range(3):
                dq = np.zeros(3)
                dq[i] = h
                plus = float(pose_error_cost(q + dq, self.robot, "base", "tool", self.desired)[0, 0])
                minus = float(pose_error_cost(q - dq, self.robot, "base", "tool", self.desired)[0, 0])
                numeric[i] = (plus - minus) / (2 * h)

            np.testing.assert_allclose(analytic, numeric, rtol=1e-5, atol=1e-6)

    def test_other_variable_sets_are_untouched(self):
        jac_block = sparse.lil_matrix((1, 3))
        self.cost_term.fill_jacobian_block("some_other_set", jac_block)
        self.assertEqual(jac_block.nnz, 0)

    def test_problem_gradient(self):
        q = np.array([0.2, 0.2, 0.2])
        _, J = self.cost_term.value_and_jacobian(q)
        np.testing.assert_allclose(self.nlp.evaluate_cost_function_gradient(q), J[0])

    def test_default_weights_are_not_shared(self):
        dual = self.robot.cast(ScalarType.DUAL)
        first = IKCost("first", dual, "base", "tool", self.desired)
        second = IKCost("second", dual, "base", "tool", self.desired)
        self.assertIsNot(first.weights, second.weights)

        first.weights.translation[0, 0] = 10.0
        np.testing.assert_array_equal(second.weights.translation, np.eye(3))
        np.testing.assert_array_equal(IKSolverConfig().weights.translation, np.eye(3))


class TestSolverConfig(unittest.TestCase):

    def test_defaults(self):
        options = IKSolverConfig().make_solver().options
        self.assertEqual(options["max_iter"], 250)
        self.assertEqual(options["acceptable_tol"], 1e-9)
        self.assertEqual(options["jacobian_approximation"], "exact")

    def test_overrides(self):
        config = IKSolverConfig(max_iterations=10, tolerance=1e-4, jacobian="finite-difference-values")
        options = config.make_solver().options
        self.assertEqual(options["max_iter"], 10)
        self.assertEqual(options["acceptable_tol"], 1e-4)
        self.assertEqual(options["jacobian_approximation"], "finite-difference-values")


class TestInverseKinematics(unittest.TestCase):

    def setUp(self):
        self.planar = chain_model("planar_2dof", [1.0, 1.0])

    def test_planar_two_link_reaches_target(self):
        """Target (1, 1, 0) with zero rotation from q0 = (0, 0)."""
        desired = Transform.from_xyz_rpy((1.0, 1.0, 0.0))
        q = inverse_kinematics(self.planar, "base", "tip", desired, np.zeros(2))

        self.assertEqual(q.shape, (2,))
        H = forward_kinematics(self.planar, q, "base", "tip")
        np.testing.assert_allclose(H.translation, [1.0, 1.0, 0.0], atol=1e-3)

    def test_spatial_arm_from_nearby_guess(self):
        robot = spatial_arm()
        q_star = np.array([0.4, -0.3, 0.8])
        desired = forward_kinematics(robot, q_star, "base", "tool")

        result = solve_ik(robot, "base", "tool", desired, q_star + np.array([0.1, -0.08, 0.05]))

        H = forward_kinematics(robot, result.q, "base", "tool")
        self.assertLess(float(np.linalg.norm(H.translation - desired.translation)), 1e-4)
        self.assertLess(float(trace_orientation_error(desired.rotation, H.rotation)), 1e-4)
        self.assertLess(result.position_error, 1e-4)

    def test_unreachable_target_is_best_effort(self):
        """A target beyond reach converges to the stretched-out arm."""
        desired = Transform.from_xyz_rpy((3.0, 0.0, 0.0))
        result = solve_ik(self.planar, "base", "tip", desired, np.array([0.3, -0.2]))

        self.assertTrue(np.all(np.isfinite(result.q)))
        self.assertGreater(result.position_error, 0.99)
        self.assertLess(result.position_error, 1.01)

    def test_iteration_limited_solve_still_returns(self):
        desired = Transform.from_xyz_rpy((1.0, 1.0, 0.0))
        config = IKSolverConfig(max_iterations=1)
        result = solve_ik(self.planar, "base", "tip", desired, np.zeros(2), config)

        self.assertFalse(result.converged)
        self.assertEqual(result.q.shape, (2,))
        self.assertTrue(np.all(np.isfinite(result.q)))

    def test_finite_difference_mode(self):
        desired = Transform.from_xyz_rpy((1.0, 1.0, 0.0))
        config = IKSolverConfig(jacobian="finite-difference-values", tolerance=1e-10)
        result = solve_ik(self.planar, "base", "tip", desired, np.zeros(2), config)
        self.assertLess(result.position_error, 1e-3)

    def test_trust_constr_method(self):
        desired = Transform.from_xyz_rpy((1.0, 1.0, 0.0))
        config = IKSolverConfig(method="trust-constr", max_iterations=2000, tolerance=1e-8)
        result = solve_ik(self.planar, "base", "tip", desired, np.array([0.5, -0.5]), config)
        self.assertLess(result.position_error, 1e-2)

    def test_axis_angle_metric(self):
        desired = Transform.from_xyz_rpy((1.0, 1.0, 0.0))
        config = IKSolverConfig(orientation_metric="axis_angle")
        result = solve_ik(self.planar, "base", "tip", desired, np.array([1.2, -1.2]), config)
        self.assertLess(result.position_error, 1e-3)

    def test_with_example_constraint(self):
        """Opting in to the x0^2 + x1 = 1 constraint set."""
        desired = Transform.from_xyz_rpy((1.0, 1.0, 0.0))
        config = IKSolverConfig(constraints=(lambda name: IKConstraint(var_set=name),))
        result = solve_ik(self.planar, "base", "tip", desired, np.array([0.5, 0.5]), config)

        self.assertAlmostEqual(result.q[0] ** 2 + result.q[1], 1.0, places=5)

    def test_wrong_initial_guess_fails_before_solving(self):
        desired = Transform.from_xyz_rpy((1.0, 1.0, 0.0))
        with mock.patch("nlpik.nlp.solver.minimize") as minimize:
            with self.assertRaises(DimensionMismatchError):
                inverse_kinematics(self.planar, "base", "tip", desired, np.zeros(3))
            minimize.assert_not_called()

    def test_unknown_link_fails_before_solving(self):
        desired = Transform.from_xyz_rpy((1.0, 1.0, 0.0))
        with mock.patch("nlpik.nlp.solver.minimize") as minimize:
            with self.assertRaises(LinkNotFoundError):
                inverse_kinematics(self.planar, "base", "gripper", desired, np.zeros(2))
            with self.assertRaises(LinkNotFoundError):
                inverse_kinematics(self.planar, "world", "tip", desired, np.zeros(2))
            minimize.assert_not_called()

    def test_model_without_actuated_joints(self):
        """A zero-DOF model has nothing to solve for but still returns."""
        robot = RobotModel("fixed", [JointSpec("j", "fixed", "base", "tip", xyz=(1.0, 0.0, 0.0))])
        desired = Transform.from_xyz_rpy((1.0, 0.0, 0.0))

        result = solve_ik(robot, "base", "tip", desired, np.zeros(0))

        self.assertEqual(result.q.shape, (0,))
        self.assertTrue(result.converged)
        self.assertAlmostEqual(result.position_error, 0.0, places=12)
        self.assertAlmostEqual(result.cost, 0.0, places=12)

    def test_column_initial_guess_reports_shape(self):
        desired = Transform.from_xyz_rpy((1.0, 1.0, 0.0))
        with self.assertRaises(DimensionMismatchError) as ctx:
            solve_ik(self.planar, "base", "tip", desired, np.zeros((2, 1)))
        self.assertIn("shape (2, 1)", str(ctx.exception))

    def test_solve_is_logged(self):
        desired = Transform.from_xyz_rpy((1.0, 1.0, 0.0))
        with self.assertLogs("nlpik.ik.solver", level="INFO") as logs:
            solve_ik(self.planar, "base", "tip", desired, np.zeros(2))
        self.assertTrue(any("IK finished" in line for line in logs.output))


if __name__ == "__main__":
    unittest.main(verbosity=2)
