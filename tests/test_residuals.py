"""Tests for the least-squares residual functions."""

import numpy as np
import pytest

from diffdrive_trajopt.kinematics import Pose2D, Twist2D, propagate, rotation_matrix
from diffdrive_trajopt.residuals import (
    create_kinematic_constraint_residual,
    create_reference_path_residual,
    create_velocity_change_residual,
    residual_cost,
)


def _evaluate(f, *args) -> np.ndarray:
    return np.array(f(*args)).reshape(-1)


class TestReferencePathResidual:

    def test_zero_at_reference(self, random_pose):
        f_reference = create_reference_path_residual()
        r = _evaluate(f_reference, random_pose.rotation, random_pose.position,
                      random_pose.rotation, random_pose.position)
        np.testing.assert_array_almost_equal(r, np.zeros(3))

    def test_angle_and_position_error(self):
        f_reference = create_reference_path_residual()
        r = _evaluate(f_reference, rotation_matrix(0.1), np.array([1.0, 2.0]),
                      rotation_matrix(0.4), np.array([1.5, 1.0]))
        np.testing.assert_array_almost_equal(r, [0.3, 0.5, -1.0])

    def test_angle_error_wraps(self):
        f_reference = create_reference_path_residual()
        r = _evaluate(f_reference, rotation_matrix(3.0), np.zeros(2),
                      rotation_matrix(-3.0), np.zeros(2))
        assert r[0] == pytest.approx(2 * np.pi - 6.0)


class TestVelocityChangeResidual:

    def test_difference(self):
        f_velocity = create_velocity_change_residual()
        r = _evaluate(f_velocity, np.array([0.5, 1.0, 0.0]), np.array([0.2, 1.5, 0.0]))
        np.testing.assert_array_almost_equal(r, [0.3, -0.5, 0.0])


class TestKinematicConstraintResidual:

    def test_zero_on_model_prediction(self, random_pose, random_twist):
        dt = 0.05
        f_kinematic = create_kinematic_constraint_residual(dt)
        pose = propagate(random_pose, random_twist, dt)
        r = _evaluate(f_kinematic, pose.rotation, pose.position,
                      random_pose.rotation, random_pose.position, random_twist.as_vector())
        np.testing.assert_array_almost_equal(r, np.zeros(3))

    def test_measures_deviation(self, origin_pose):
        f_kinematic = create_kinematic_constraint_residual(0.1)
        # Model predicts (0.1, 0) at heading 0
        actual = Pose2D.from_xy_heading(0.3, 0.0, 0.0)
        r = _evaluate(f_kinematic, actual.rotation, actual.position,
                      origin_pose.rotation, origin_pose.position, Twist2D(vx=1.0).as_vector())
        np.testing.assert_array_almost_equal(r, [0.0, 0.2, 0.0])


class TestResidualCost:

    def test_half_squared_norm(self):
        assert residual_cost(np.array([3.0, 4.0, 0.0])) == pytest.approx(12.5)

    def test_zero(self):
        assert residual_cost(np.zeros(3)) == 0.0
