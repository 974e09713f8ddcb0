#!/usr/bin/env python3
"""
IK round-trip check for a robot description.

Draws random configurations, computes forward kinematics to get a
reachable target pose, perturbs the configuration to get an initial guess,
and solves IK back. Reports position/orientation errors and solver status.

Usage:
    python scripts/solve_urdf_ik.py                       # planar 2-DOF demo chain
    python scripts/solve_urdf_ik.py robot.urdf base hand  # any URDF link pair
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Add the repo root to path for imports
REPO_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(REPO_ROOT))

import numpy as np

from nlpik.ik import IKSolverConfig, RobotModel, chain_model, forward_kinematics, solve_ik


def print_separator(title: str = "") -> None:
    """Print a visual separator."""
    if title:
        print(f"\n{'=' * 60}")
        print(f"  {title}")
        print('=' * 60)
    else:
        print('-' * 60)


def main():
    parser = argparse.ArgumentParser(description="IK round-trip check")
    parser.add_argument("urdf", nargs="?", help="URDF file (default: planar 2-DOF chain)")
    parser.add_argument("source", nargs="?", default="base", help="Source link")
    parser.add_argument("target", nargs="?", default="tip", help="Target link")
    parser.add_argument("--trials", type=int, default=10)
    parser.add_argument("--noise", type=float, default=0.2, help="Initial guess perturbation (rad)")
    parser.add_argument("--max-iter", type=int, default=250)
    parser.add_argument("--tol", type=float, default=1e-9)
    parser.add_argument("--metric", choices=["trace", "axis_angle"], default="trace")
    parser.add_argument("--method", choices=["SLSQP", "trust-constr"], default="SLSQP")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    if args.urdf:
        robot = RobotModel.from_urdf(args.urdf)
    else:
        robot = chain_model("planar_2dof", [1.0, 1.0])
    print(f"Robot loaded: {robot}")
    print(f"Joint names: {robot.joint_names}")

    config = IKSolverConfig(
        max_iterations=args.max_iter,
        tolerance=args.tol,
        orientation_metric=args.metric,
        method=args.method,
        verbose=args.verbose,
    )

    rng = np.random.default_rng(args.seed)
    converged = 0
    for trial in range(args.trials):
        print_separator(f"Trial {trial + 1}/{args.trials}")
        q_star = rng.uniform(-np.pi / 2, np.pi / 2, size=robot.n_q)
        desired = forward_kinematics(robot, q_star, args.source, args.target)
        q0 = np.clip(q_star + rng.normal(0.0, args.noise, size=robot.n_q), -np.pi, np.pi)

        start = time.perf_counter()
        result = solve_ik(robot, args.source, args.target, desired, q0, config)
        elapsed_ms = (time.perf_counter() - start) * 1000

        converged += int(result.converged)
        print(f"q*      = {np.array2string(q_star, precision=4)}")
        print(f"q0      = {np.array2string(q0, precision=4)}")
        print(f"q       = {np.array2string(result.q, precision=4)}")
        print(f"status  = {result.status.message} ({result.status.iterations} iterations)")
        print(f"pos err = {result.position_error:.3e}")
        print(f"ori err = {result.orientation_error:.3e}")
        print(f"time    = {elapsed_ms:.1f} ms")

    print_separator("Summary")
    print(f"Converged: {converged}/{args.trials}")


if __name__ == "__main__":
    main()
