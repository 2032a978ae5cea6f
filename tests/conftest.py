"""Pytest fixtures for trajectory optimizer tests."""

import numpy as np
import pytest

from diffdrive_trajopt import MpcOptions, Pose2D, Twist2D, TrajectoryOptimizer


@pytest.fixture
def origin_pose() -> Pose2D:
    """Identity pose at the origin."""
    return Pose2D.from_xy_heading(0.0, 0.0, 0.0)


@pytest.fixture
def random_pose() -> Pose2D:
    """Random pose within a few meters of the origin."""
    rng = np.random.default_rng(42)
    x, y = rng.uniform(-3.0, 3.0, 2)
    return Pose2D.from_xy_heading(x, y, rng.uniform(-np.pi, np.pi))


@pytest.fixture
def random_twist() -> Twist2D:
    """Random differential drive twist."""
    rng = np.random.default_rng(43)
    omega, vx = rng.uniform(-1.0, 1.0, 2)
    return Twist2D(omega, vx, 0.0)


@pytest.fixture
def straight_line_path() -> list[Pose2D]:
    """10 poses at heading 0, 0.1 m apart along x."""
    return [Pose2D.from_xy_heading(0.1 * i, 0.0, 0.0) for i in range(10)]


@pytest.fixture
def small_options() -> MpcOptions:
    """Short horizon for fast solves."""
    return MpcOptions(max_num_poses=10, time_step=0.01)


@pytest.fixture
def optimizer(small_options) -> TrajectoryOptimizer:
    return TrajectoryOptimizer(small_options)
