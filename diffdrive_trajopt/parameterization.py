"""
Reduced-dimension update rules for over-parameterized optimization variables.

Each manifold pairs an ambient storage format with a `plus` rule mapping a
tangent-space increment to a new ambient value. The numeric rule re-anchors
stored values between solves; the symbolic rule is what the solver
differentiates through.
"""

import casadi as ca
import numpy as np

from .kinematics import rotation_matrix, rotation_matrix_symbolic


class Rotation2DManifold:
    """2x2 rotation block (4 scalars) with a 1-D heading increment."""

    ambient_size = 4
    tangent_size = 1

    @staticmethod
    def plus(rotation: np.ndarray, delta) -> np.ndarray:
        delta = float(np.asarray(delta).reshape(-1)[0])
        return rotation @ rotation_matrix(delta)

    @staticmethod
    def plus_symbolic(rotation, delta: ca.MX) -> ca.MX:
        return ca.mtimes(rotation, rotation_matrix_symbolic(delta))


class DiffDriveTwistManifold:
    """
    Twist [omega, vx, vy] with a 2-D increment on (omega, vx).

    The lateral component keeps its current value for every update, which
    enforces the nonholonomic constraint structurally.
    """

    ambient_size = 3
    tangent_size = 2
    locked_index = 2

    @staticmethod
    def plus(twist: np.ndarray, delta) -> np.ndarray:
        delta = np.asarray(delta, dtype=np.float64).reshape(2)
        twist = np.asarray(twist, dtype=np.float64).reshape(3)
        return np.array([twist[0] + delta[0], twist[1] + delta[1], twist[2]])

    @staticmethod
    def plus_symbolic(twist, delta: ca.MX) -> ca.MX:
        return ca.vertcat(twist[0] + delta[0], twist[1] + delta[1], twist[2])
